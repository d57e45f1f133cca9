"""Error taxonomy shared by the order core and the request layer.

Every error carries a ``kind`` (``validation_error``, ``not_found``,
``conflict`` or ``unexpected``) and the HTTP status the request layer answers
with.
"""
from typing import Dict, List, Optional


class PharmacyError(Exception):
    kind = "unexpected"
    status_code = 500

    def __init__(self, message: str, details: Optional[List[Dict]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict:
        body = {"error": self.kind, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


# -----------------------------
# validation_error
# -----------------------------

class ValidationError(PharmacyError):
    kind = "validation_error"
    status_code = 422

    def __init__(self, message: str = "Invalid request data", errors: Optional[List[Dict]] = None):
        super().__init__(message, details=errors or [])

    @property
    def errors(self) -> List[Dict]:
        return self.details


# -----------------------------
# not_found
# -----------------------------

class NotFound(PharmacyError):
    kind = "not_found"
    status_code = 404


class CustomerNotFound(NotFound):
    def __init__(self, customer_id: int):
        super().__init__(f"Customer with id {customer_id} not found")
        self.customer_id = customer_id


class ProductNotFound(NotFound):
    def __init__(self, product_id: int):
        super().__init__(f"Product with id {product_id} not found")
        self.product_id = product_id


class OrderNotFound(NotFound):
    def __init__(self, order_id: int):
        super().__init__(f"Order with id {order_id} not found")
        self.order_id = order_id


class UserNotFound(NotFound):
    def __init__(self, user_id: int):
        super().__init__(f"User with id {user_id} not found")
        self.user_id = user_id


# -----------------------------
# conflict
# -----------------------------

class Conflict(PharmacyError):
    kind = "conflict"
    status_code = 409


class InsufficientStock(Conflict):
    def __init__(self, product_id: int, available: int, requested: int, name: Optional[str] = None):
        label = f"'{name}' (ID: {product_id})" if name else f"ID: {product_id}"
        super().__init__(
            f"Insufficient stock for product {label}. Available: {available}, Requested: {requested}",
            details=[{"product_id": product_id, "available": available, "requested": requested}],
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class DuplicateKey(Conflict):
    def __init__(self, field: str, value: str):
        super().__init__(f"A record with {field} '{value}' already exists")
        self.field = field
        self.value = value


class NotPending(Conflict):
    def __init__(self, order_id: int, status: str):
        super().__init__(f"Order {order_id} is '{status}'; only pending orders can be deleted")
        self.order_id = order_id
        self.status = status


class InvalidTransition(Conflict):
    def __init__(self, order_id: int, current: str, requested: str):
        super().__init__(f"Order {order_id} cannot move from '{current}' to '{requested}'")
        self.order_id = order_id
        self.current = current
        self.requested = requested


class InUse(Conflict):
    """Deleting a record that orders still reference."""


# -----------------------------
# unexpected
# -----------------------------

class Unexpected(PharmacyError):
    kind = "unexpected"
    status_code = 500


class CompensationFailed(Unexpected):
    def __init__(self, unreleased: List[Dict]):
        super().__init__(
            "Order failed and stock could not be restored for some products",
            details=unreleased,
        )
        self.unreleased = unreleased
