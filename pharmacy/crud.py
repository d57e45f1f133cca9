from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import CustomerNotFound, DuplicateKey, InUse, ProductNotFound
from .models import Customer, Order, OrderItem, Product, User


def _commit_unique(db: Session, field: str, value: str) -> None:
    # The pre-check can race with a concurrent insert; the unique index decides.
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateKey(field, value)


# -----------------------------
# Users
# -----------------------------

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower()).first()


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def admin_exists(db: Session) -> bool:
    return db.query(User.id).filter(User.role == "admin").first() is not None


def create_user(db: Session, *, email: str, name: str, hashed_password: str, role: str = "user") -> User:
    email = email.lower()
    if get_user_by_email(db, email):
        raise DuplicateKey("email", email)

    db_user = User(email=email, name=name, hashed_password=hashed_password, role=role)
    db.add(db_user)
    _commit_unique(db, "email", email)
    db.refresh(db_user)
    return db_user


# -----------------------------
# Products
# -----------------------------

def get_product(db: Session, product_id: int) -> Optional[Product]:
    return db.query(Product).filter(Product.id == product_id).first()


def get_product_or_404(db: Session, product_id: int) -> Product:
    product = get_product(db, product_id)
    if product is None:
        raise ProductNotFound(product_id)
    return product


def get_products(db: Session, skip: int = 0, limit: int = 100, search: Optional[str] = None) -> List[Product]:
    query = db.query(Product)
    if search:
        search_pattern = f"%{search}%"
        query = query.filter(
            or_(
                Product.name.ilike(search_pattern),
                Product.description.ilike(search_pattern),
                Product.category.ilike(search_pattern),
                Product.sku.ilike(search_pattern),
            )
        )
    return query.order_by(Product.created_at.desc(), Product.id.desc()).offset(skip).limit(limit).all()


def create_product(db: Session, product_data: dict) -> Product:
    sku = product_data["sku"]
    if db.query(Product.id).filter(Product.sku == sku).first():
        raise DuplicateKey("sku", sku)

    db_product = Product(**product_data)
    db.add(db_product)
    _commit_unique(db, "sku", sku)
    db.refresh(db_product)
    return db_product


def update_product(db: Session, product_id: int, update_data: dict) -> Product:
    db_product = get_product_or_404(db, product_id)

    new_sku = update_data.get("sku")
    if new_sku is not None and new_sku != db_product.sku:
        taken = (
            db.query(Product.id)
            .filter(Product.sku == new_sku)
            .filter(Product.id != product_id)
            .first()
        )
        if taken:
            raise DuplicateKey("sku", new_sku)

    for key, value in update_data.items():
        if value is not None:
            setattr(db_product, key, value)
    _commit_unique(db, "sku", new_sku or db_product.sku)
    db.refresh(db_product)
    return db_product


def delete_product(db: Session, product_id: int) -> Product:
    db_product = get_product_or_404(db, product_id)
    if db.query(OrderItem.id).filter(OrderItem.product_id == product_id).first():
        raise InUse(f"Product {product_id} cannot be deleted because orders reference it")

    db.delete(db_product)
    db.commit()
    return db_product


# -----------------------------
# Customers
# -----------------------------

def customer_exists(db: Session, customer_id: int) -> bool:
    return db.query(Customer.id).filter(Customer.id == customer_id).first() is not None


def get_customer(db: Session, customer_id: int) -> Optional[Customer]:
    return db.query(Customer).filter(Customer.id == customer_id).first()


def get_customer_or_404(db: Session, customer_id: int) -> Customer:
    customer = get_customer(db, customer_id)
    if customer is None:
        raise CustomerNotFound(customer_id)
    return customer


def get_customers(db: Session, skip: int = 0, limit: int = 100) -> List[Customer]:
    return (
        db.query(Customer)
        .order_by(Customer.created_at.desc(), Customer.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def create_customer(db: Session, customer_data: dict) -> Customer:
    email = customer_data["email"]
    if db.query(Customer.id).filter(Customer.email == email).first():
        raise DuplicateKey("email", email)

    db_customer = Customer(**customer_data)
    db.add(db_customer)
    _commit_unique(db, "email", email)
    db.refresh(db_customer)
    return db_customer


def update_customer(db: Session, customer_id: int, update_data: dict) -> Customer:
    db_customer = get_customer_or_404(db, customer_id)

    new_email = update_data.get("email")
    if new_email is not None and new_email != db_customer.email:
        taken = (
            db.query(Customer.id)
            .filter(Customer.email == new_email)
            .filter(Customer.id != customer_id)
            .first()
        )
        if taken:
            raise DuplicateKey("email", new_email)

    for key, value in update_data.items():
        if value is not None:
            setattr(db_customer, key, value)
    _commit_unique(db, "email", new_email or db_customer.email)
    db.refresh(db_customer)
    return db_customer


def delete_customer(db: Session, customer_id: int) -> Customer:
    db_customer = get_customer_or_404(db, customer_id)
    if db.query(Order.id).filter(Order.customer_id == customer_id).first():
        raise InUse(f"Customer {customer_id} cannot be deleted because they have orders")

    db.delete(db_customer)
    db.commit()
    return db_customer
