from decimal import Decimal
from typing import Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from .models import Customer, Order, OrderItem, Product


def get_metrics(db: Session, *, low_stock_threshold: int = 10, top: int = 5) -> Dict:
    total_revenue = (
        db.query(func.coalesce(func.sum(Order.total), 0))
        .filter(Order.status == "completed")
        .scalar()
    )

    orders_by_status = {
        status: count
        for status, count in db.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
    }

    return {
        "total_products": db.query(Product).count(),
        "low_stock_products": db.query(Product).filter(Product.stock < low_stock_threshold).count(),
        "total_orders": db.query(Order).count(),
        "total_customers": db.query(Customer).count(),
        "total_revenue": Decimal(str(total_revenue or 0)),
        "orders_by_status": orders_by_status,
        "top_products": get_top_products(db, limit=top),
    }


def get_top_products(db: Session, limit: int = 5) -> List[Dict]:
    total_sold = func.sum(OrderItem.quantity).label("total_sold")
    rows = (
        db.query(OrderItem.product_id, total_sold)
        .group_by(OrderItem.product_id)
        .order_by(total_sold.desc(), OrderItem.product_id)
        .limit(limit)
        .all()
    )
    products = {
        p.id: p
        for p in db.query(Product).filter(Product.id.in_([r.product_id for r in rows])).all()
    }
    return [
        {"product_id": r.product_id, "total_sold": int(r.total_sold), "product": products.get(r.product_id)}
        for r in rows
    ]


def get_recent_orders(db: Session, limit: int = 5) -> List[Order]:
    return db.query(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()
