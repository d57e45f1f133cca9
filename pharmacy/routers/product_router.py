import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..auth import get_current_admin, get_current_user
from ..database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["Products"])


@router.post("", response_model=schemas.ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    product_in: schemas.ProductCreate,
    current_admin: schemas.CurrentUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    product = crud.create_product(db, product_in.model_dump())
    logger.info("product %s (%s) created by user %s", product.id, product.sku, current_admin.id)
    return {"message": "Product created successfully", "product": product}


@router.get("", response_model=List[schemas.ProductOut])
def list_products(
    skip: int = Query(0, ge=0, description="**Skip** number of products"),
    limit: int = Query(100, ge=1, le=1000, description="**Limit** number of products"),
    search: Optional[str] = Query(None, description="**Search** in name, description, category or SKU"),
    current_user: schemas.CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return crud.get_products(db, skip=skip, limit=limit, search=search)


@router.get("/{product_id}", response_model=schemas.ProductOut)
def get_product(
    product_id: int,
    current_user: schemas.CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return crud.get_product_or_404(db, product_id)


@router.put("/{product_id}", response_model=schemas.ProductResponse)
def update_product(
    product_id: int,
    product_in: schemas.ProductUpdate,
    current_admin: schemas.CurrentUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    update_data = {k: v for k, v in product_in.model_dump().items() if v is not None}
    product = crud.update_product(db, product_id, update_data)
    logger.info("product %s updated by user %s", product_id, current_admin.id)
    return {"message": "Product updated successfully", "product": product}


@router.delete("/{product_id}", response_model=schemas.ProductResponse)
def delete_product(
    product_id: int,
    current_admin: schemas.CurrentUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    product = schemas.ProductOut.model_validate(crud.get_product_or_404(db, product_id))
    crud.delete_product(db, product_id)
    logger.info("product %s deleted by user %s", product_id, current_admin.id)
    return {"message": "Product deleted successfully", "product": product}
