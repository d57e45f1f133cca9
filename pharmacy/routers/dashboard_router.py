from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import dashboard, schemas
from ..auth import get_current_user
from ..config import settings
from ..database import get_db

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("", response_model=schemas.DashboardResponse)
def get_dashboard(
    current_user: schemas.CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {
        "metrics": dashboard.get_metrics(db, low_stock_threshold=settings.LOW_STOCK_THRESHOLD),
        "recent_orders": dashboard.get_recent_orders(db),
    }
