from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from backoffice import config
from backoffice.db import get_db
from backoffice.routers.common import parse_date_param
from backoffice.schemas.sales import SaleReturnCreate
from backoffice.services import returns as returns_service
from backoffice.services import sales as sales_service
from backoffice.utils.enums import SaleStatusFilter
from backoffice.utils.serializers import sale_return_to_dict, sale_to_dict

router = APIRouter(prefix="/sales/sales_returns", tags=["sales-returns"])


# --------- ПРОДАЖИ ДЛЯ ЭКРАНА ВОЗВРАТОВ ----------
@router.get("")
def list_sales_for_returns(
    page: int = Query(1, ge=1),
    limit: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    client_id: Optional[int] = Query(None),
    employee_id: Optional[int] = Query(None),
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    status: SaleStatusFilter = Query(SaleStatusFilter.ALL),
    search: Optional[str] = Query(None, description="номер продажи"),
    db: Session = Depends(get_db),
):
    q = sales_service.query_sales(
        db,
        client_id=client_id,
        employee_id=employee_id,
        status=status,
        date_from=parse_date_param("date_from", date_from),
        date_to=parse_date_param("date_to", date_to),
        search=search,
    )
    rows, pagination = sales_service.paginate(q, page, limit)
    return {
        "success": True,
        "data": [sale_to_dict(s) for s in rows],
        "pagination": pagination,
    }


# --------- ЖУРНАЛ ВОЗВРАТОВ ----------
@router.get("/records")
def list_return_records(
    sale_id: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    rows = returns_service.list_sale_returns(db, sale_id)
    return {"success": True, "data": [sale_return_to_dict(r) for r in rows]}


@router.get("/records/{return_id}")
def get_return_record(return_id: int, db: Session = Depends(get_db)):
    record = returns_service.get_sale_return(db, return_id)
    data = sale_return_to_dict(record)
    data["sale"] = sale_to_dict(record.sale) if record.sale else None
    return {"success": True, "data": data}


# --------- ОФОРМЛЕНИЕ ВОЗВРАТА ----------
@router.post("")
def create_sale_return(payload: SaleReturnCreate, db: Session = Depends(get_db)):
    data = returns_service.create_sale_return(db, payload)
    return {
        "success": True,
        "data": data,
        "message": "Sales return processed successfully",
    }
