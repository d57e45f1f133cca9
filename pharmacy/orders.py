"""Order lifecycle: creation with stock reservation, status changes, deletion.

Every stock movement of one order is a single unit of work. With
``write_mode="transaction"`` the whole operation shares one database
transaction and a failure rolls everything back. With
``write_mode="compensate"`` each stock step is committed on its own and the
steps already taken are undone in reverse order when a later one fails; a
crash between steps can still leave stock under-counted.

Line items are reserved in the order the client sent them. On PostgreSQL two
concurrent transaction-mode orders naming the same products in opposite
order ([A, B] and [B, A]) can deadlock; the database aborts one of them and
the request fails as ``unexpected``. Nothing is reserved by the aborted one.
"""
import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from . import crud, schemas
from .errors import (
    CompensationFailed,
    CustomerNotFound,
    InvalidTransition,
    NotPending,
    OrderNotFound,
    ValidationError,
)
from .models import Order, OrderItem
from .stock_ledger import ReservedLine, StockLedger

logger = logging.getLogger(__name__)

WRITE_MODES = ("transaction", "compensate")

ALLOWED_TRANSITIONS = {
    "pending": {"processing", "cancelled"},
    "processing": {"completed"},
    "completed": set(),
    "cancelled": set(),
}


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


class OrderManager:
    def __init__(self, db: Session, *, write_mode: str = "transaction"):
        if write_mode not in WRITE_MODES:
            raise ValueError(f"unknown order write mode: {write_mode!r}")
        self.db = db
        self.ledger = StockLedger(db)
        self.write_mode = write_mode

    # -----------------------------
    # Reads
    # -----------------------------

    def get_order(self, order_id: int) -> Order:
        db_order = self.db.query(Order).filter(Order.id == order_id).first()
        if db_order is None:
            raise OrderNotFound(order_id)
        return db_order

    def list_orders(
        self, customer_id: Optional[int] = None, skip: int = 0, limit: int = 100
    ) -> List[Order]:
        query = self.db.query(Order)
        if customer_id is not None:
            query = query.filter(Order.customer_id == customer_id)
        return query.order_by(Order.created_at.desc(), Order.id.desc()).offset(skip).limit(limit).all()

    def count_orders(self, customer_id: Optional[int] = None) -> int:
        query = self.db.query(Order)
        if customer_id is not None:
            query = query.filter(Order.customer_id == customer_id)
        return query.count()

    # -----------------------------
    # Create
    # -----------------------------

    def create_order(self, order_in: schemas.OrderCreate, *, created_by: Optional[int] = None) -> Order:
        if not crud.customer_exists(self.db, order_in.customer_id):
            raise CustomerNotFound(order_in.customer_id)

        if self.write_mode == "transaction":
            db_order = self._create_in_transaction(order_in, created_by)
        else:
            db_order = self._create_with_compensation(order_in, created_by)

        self.db.refresh(db_order)
        return db_order

    def _create_in_transaction(self, order_in: schemas.OrderCreate, created_by: Optional[int]) -> Order:
        try:
            reserved = [
                self.ledger.check_and_reserve(item.product_id, item.quantity)
                for item in order_in.items
            ]
            db_order = self._add_order(order_in, reserved, created_by)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return db_order

    def _create_with_compensation(self, order_in: schemas.OrderCreate, created_by: Optional[int]) -> Order:
        reserved: List[ReservedLine] = []
        try:
            for item in order_in.items:
                line = self.ledger.check_and_reserve(item.product_id, item.quantity)
                self.db.commit()
                reserved.append(line)
            db_order = self._add_order(order_in, reserved, created_by)
            self.db.commit()
        except Exception as exc:
            self.db.rollback()
            if reserved:
                logger.warning(
                    "order for customer %s failed after %d reservation(s); compensating",
                    order_in.customer_id,
                    len(reserved),
                )
            self._compensate([(line.product_id, line.quantity) for line in reversed(reserved)], exc)
            raise
        return db_order

    def _add_order(
        self,
        order_in: schemas.OrderCreate,
        reserved: List[ReservedLine],
        created_by: Optional[int],
    ) -> Order:
        total = Decimal("0")
        lines = []
        for item, line in zip(order_in.items, reserved):
            price = item.price if item.price is not None else line.price
            total += price * item.quantity
            lines.append(
                OrderItem(
                    product_id=item.product_id,
                    product_name=line.name,
                    quantity=item.quantity,
                    price=price,
                )
            )

        db_order = Order(
            customer_id=order_in.customer_id,
            total=total,
            status=schemas.OrderStatus.PENDING.value,
            payment_method=order_in.payment_method,
            payment_status=schemas.PaymentStatus.PENDING.value,
            shipping_address=(
                order_in.shipping_address.model_dump() if order_in.shipping_address else None
            ),
            created_by=created_by,
            items=lines,
        )
        self.db.add(db_order)
        self.db.flush()
        return db_order

    # -----------------------------
    # Status
    # -----------------------------

    def update_status(self, order_id: int, new_status) -> Order:
        try:
            new_status = schemas.OrderStatus(new_status).value
        except ValueError:
            allowed = ", ".join(s.value for s in schemas.OrderStatus)
            raise ValidationError(
                "Invalid order status",
                errors=[{"field": "status", "message": f"must be one of: {allowed}"}],
            )

        db_order = self.get_order(order_id)
        current = db_order.status
        if not can_transition(current, new_status):
            raise InvalidTransition(order_id, current, new_status)

        items = _line_items(db_order)
        restore = new_status == schemas.OrderStatus.CANCELLED.value

        if self.write_mode == "transaction" or not restore:
            try:
                self._swap_status(order_id, current, new_status)
                if restore:
                    for product_id, quantity in items:
                        self.ledger.release(product_id, quantity)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
        else:
            try:
                self._swap_status(order_id, current, new_status)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            self._release_committed(order_id, items)

        self.db.expire_all()
        return self.get_order(order_id)

    def _swap_status(self, order_id: int, expected: str, new_status: str) -> None:
        result = self.db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == expected)
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current = self._current_status(order_id)
            raise InvalidTransition(order_id, current, new_status)

    def _current_status(self, order_id: int) -> str:
        current = self.db.execute(select(Order.status).where(Order.id == order_id)).scalar_one_or_none()
        if current is None:
            raise OrderNotFound(order_id)
        return current

    # -----------------------------
    # Delete
    # -----------------------------

    def delete_order(self, order_id: int) -> None:
        db_order = self.get_order(order_id)
        if db_order.status != schemas.OrderStatus.PENDING.value:
            raise NotPending(order_id, db_order.status)

        items = _line_items(db_order)

        pending = schemas.OrderStatus.PENDING.value

        if self.write_mode == "transaction":
            # order row before product rows, the same lock order as a cancel
            try:
                if self._remove(order_id, only_if_status=pending) != 1:
                    raise NotPending(order_id, self._current_status(order_id))
                for product_id, quantity in items:
                    self.ledger.release(product_id, quantity)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
        else:
            # Claim the order first so that only one caller ever releases its stock.
            try:
                result = self.db.execute(
                    update(Order)
                    .where(Order.id == order_id, Order.status == pending)
                    .values(status=schemas.OrderStatus.CANCELLED.value)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise NotPending(order_id, self._current_status(order_id))
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            self._release_committed(order_id, items)
            try:
                self._remove(order_id)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        self.db.expire_all()

    def _remove(self, order_id: int, only_if_status: Optional[str] = None) -> int:
        """Delete the order and its line items; returns the number of order rows removed."""
        condition = [Order.id == order_id]
        if only_if_status is not None:
            condition.append(Order.status == only_if_status)
        claimed = select(Order.id).where(*condition).scalar_subquery()

        # items first: order_items.order_id references orders.id
        self.db.execute(
            delete(OrderItem)
            .where(OrderItem.order_id == claimed)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(
            delete(Order).where(*condition).execution_options(synchronize_session=False)
        )
        return result.rowcount

    # -----------------------------
    # Compensation helpers
    # -----------------------------

    def _release_committed(self, order_id: int, items: List[Tuple[int, int]]) -> None:
        try:
            self._compensate(items, None)
        except CompensationFailed:
            logger.error("order %s: stock was not fully restored", order_id)
            raise

    def _compensate(self, items: Iterable[Tuple[int, int]], cause: Optional[BaseException]) -> None:
        unreleased = []
        for product_id, quantity in items:
            try:
                self.ledger.release(product_id, quantity)
                self.db.commit()
            except Exception:
                self.db.rollback()
                logger.exception("could not release %s x product %s", quantity, product_id)
                unreleased.append({"product_id": product_id, "quantity": quantity})
        if unreleased:
            raise CompensationFailed(unreleased) from cause


def _line_items(db_order: Order) -> List[Tuple[int, int]]:
    return [(item.product_id, item.quantity) for item in db_order.items]
