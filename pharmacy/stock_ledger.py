"""Product stock counts and the only sanctioned way to move them on the order path.

Both operations are single UPDATE statements evaluated by the database, so
the ``stock >= quantity`` check and the decrement cannot be interleaved with
another request's. The ledger never commits; the caller owns the unit of work.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from .errors import InsufficientStock, ProductNotFound, ValidationError
from .models import Product

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservedLine:
    product_id: int
    quantity: int
    name: str
    price: Decimal


def _check_quantity(quantity: int) -> None:
    if quantity <= 0:
        raise ValidationError(
            "Quantity must be greater than zero",
            errors=[{"field": "quantity", "message": "must be > 0"}],
        )


class StockLedger:
    def __init__(self, db: Session):
        self.db = db

    def check_and_reserve(self, product_id: int, quantity: int) -> ReservedLine:
        _check_quantity(quantity)

        result = self.db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
            .execution_options(synchronize_session=False)
        )

        row = self.db.execute(
            select(Product.name, Product.price, Product.stock).where(Product.id == product_id)
        ).first()
        if row is None:
            raise ProductNotFound(product_id)
        if result.rowcount != 1:
            raise InsufficientStock(product_id, available=row.stock, requested=quantity, name=row.name)

        logger.debug("reserved %s x product %s (left: %s)", quantity, product_id, row.stock)
        return ReservedLine(
            product_id=product_id,
            quantity=quantity,
            name=row.name,
            price=Decimal(str(row.price)),
        )

    def release(self, product_id: int, quantity: int) -> None:
        _check_quantity(quantity)

        result = self.db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ProductNotFound(product_id)
        logger.debug("released %s x product %s", quantity, product_id)

    def available(self, product_id: int) -> int:
        stock = self.db.execute(select(Product.stock).where(Product.id == product_id)).scalar_one_or_none()
        if stock is None:
            raise ProductNotFound(product_id)
        return int(stock)
