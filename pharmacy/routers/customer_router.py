import logging
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..auth import get_current_user
from ..database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.post("", response_model=schemas.CustomerResponse, status_code=status.HTTP_201_CREATED)
def create_customer(
    customer_in: schemas.CustomerCreate,
    current_user: schemas.CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    customer = crud.create_customer(db, customer_in.model_dump())
    logger.info("customer %s created by user %s", customer.id, current_user.id)
    return {"message": "Customer created successfully", "customer": customer}


@router.get("", response_model=List[schemas.CustomerOut])
def list_customers(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: schemas.CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return crud.get_customers(db, skip=skip, limit=limit)


@router.get("/{customer_id}", response_model=schemas.CustomerOut)
def get_customer(
    customer_id: int,
    current_user: schemas.CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return crud.get_customer_or_404(db, customer_id)


@router.put("/{customer_id}", response_model=schemas.CustomerResponse)
def update_customer(
    customer_id: int,
    customer_in: schemas.CustomerUpdate,
    current_user: schemas.CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    update_data = {k: v for k, v in customer_in.model_dump().items() if v is not None}
    customer = crud.update_customer(db, customer_id, update_data)
    logger.info("customer %s updated by user %s", customer_id, current_user.id)
    return {"message": "Customer updated successfully", "customer": customer}


@router.delete("/{customer_id}", response_model=schemas.CustomerResponse)
def delete_customer(
    customer_id: int,
    current_user: schemas.CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    customer = schemas.CustomerOut.model_validate(crud.get_customer_or_404(db, customer_id))
    crud.delete_customer(db, customer_id)
    logger.info("customer %s deleted by user %s", customer_id, current_user.id)
    return {"message": "Customer deleted successfully", "customer": customer}
