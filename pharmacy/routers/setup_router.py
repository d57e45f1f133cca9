import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..auth import get_password_hash
from ..database import get_db
from ..errors import Conflict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/setup", tags=["Setup"])


@router.post("/admin", status_code=status.HTTP_201_CREATED)
def create_first_admin(admin_in: schemas.AdminSetup, db: Session = Depends(get_db)):
    """Create the first administrator. Only allowed while no admin exists."""
    if crud.admin_exists(db):
        raise Conflict("An administrator already exists")

    user = crud.create_user(
        db,
        email=admin_in.email,
        name=admin_in.name,
        hashed_password=get_password_hash(admin_in.password),
        role="admin",
    )
    logger.info("administrator %s created", user.id)
    return {"message": "Administrator created successfully", "user": schemas.UserOut.model_validate(user)}
