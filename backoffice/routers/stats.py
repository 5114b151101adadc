from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from backoffice.db import get_db
from backoffice.routers.common import parse_date_param
from backoffice.services.sales import sales_stats

router = APIRouter(prefix="/sales/stats", tags=["sales-stats"])


@router.get("")
def get_stats(
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    stats = sales_stats(
        db,
        date_from=parse_date_param("date_from", date_from),
        date_to=parse_date_param("date_to", date_to),
    )
    return {"success": True, "data": stats}
