import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from .. import schemas
from ..auth import get_current_user
from ..config import settings
from ..database import get_db
from ..orders import OrderManager
from ..validation import validate_order

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
)


def get_order_manager(db: Session = Depends(get_db)) -> OrderManager:
    return OrderManager(db, write_mode=settings.ORDER_WRITE_MODE)


@router.post("", response_model=schemas.OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: Any = Body(..., examples=[{
        "customer_id": 1,
        "items": [{"product_id": 1, "quantity": 2}],
        "payment_method": "cash",
    }]),
    current_user: schemas.CurrentUser = Depends(get_current_user),
    manager: OrderManager = Depends(get_order_manager),
):
    """Create a pending order, reserving stock for every line item.

    Either every item is reserved and the order is stored, or nothing changes.
    """
    order_in = validate_order(payload)
    db_order = manager.create_order(order_in, created_by=current_user.id)
    logger.info(
        "order %s created by user %s for customer %s (%d item(s), total %s)",
        db_order.id, current_user.id, db_order.customer_id, len(db_order.items), db_order.total,
    )
    return {"message": "Order created successfully", "order": db_order}


@router.get("", response_model=schemas.OrderListResponse)
def get_orders(
    customer_id: Optional[int] = Query(None, gt=0, description="Only orders of this customer"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: schemas.CurrentUser = Depends(get_current_user),
    manager: OrderManager = Depends(get_order_manager),
):
    orders = manager.list_orders(customer_id=customer_id, skip=skip, limit=limit)
    return {"orders": orders, "total": manager.count_orders(customer_id=customer_id)}


@router.get("/{order_id}", response_model=schemas.OrderOut)
def get_order(
    order_id: int,
    current_user: schemas.CurrentUser = Depends(get_current_user),
    manager: OrderManager = Depends(get_order_manager),
):
    return manager.get_order(order_id)


@router.api_route("/{order_id}/status", methods=["PATCH", "PUT"], response_model=schemas.OrderResponse)
def update_order_status(
    order_id: int,
    status_update: schemas.OrderStatusUpdate,
    current_user: schemas.CurrentUser = Depends(get_current_user),
    manager: OrderManager = Depends(get_order_manager),
):
    db_order = manager.update_status(order_id, status_update.status)
    logger.info("order %s moved to %s by user %s", order_id, db_order.status, current_user.id)
    return {"message": "Order status updated successfully", "order": db_order}


@router.delete("/{order_id}")
def delete_order(
    order_id: int,
    current_user: schemas.CurrentUser = Depends(get_current_user),
    manager: OrderManager = Depends(get_order_manager),
):
    """Delete a pending order and put its items back in stock."""
    manager.delete_order(order_id)
    logger.info("order %s deleted by user %s", order_id, current_user.id)
    return {"message": "Order deleted successfully", "order_id": order_id}
