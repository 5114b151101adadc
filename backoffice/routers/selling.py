from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, selectinload

from backoffice import config
from backoffice.db import get_db
from backoffice.errors import NotFound
from backoffice.models.sale import Sale
from backoffice.routers.common import parse_date_param
from backoffice.schemas.sales import SaleCreate
from backoffice.services import sales as sales_service
from backoffice.utils.enums import SaleStatusFilter
from backoffice.utils.serializers import sale_return_to_dict, sale_to_dict

router = APIRouter(prefix="/sales/selling", tags=["sales"])


# ---------- СПИСОК ПРОДАЖ ----------
@router.get("")
def list_sales(
    page: int = Query(1, ge=1),
    limit: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    client_id: Optional[int] = Query(None),
    employee_id: Optional[int] = Query(None),
    status: Optional[bool] = Query(None),
    payment_method: Optional[str] = Query(None),
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    if status is None:
        status_filter = SaleStatusFilter.ALL
    else:
        status_filter = SaleStatusFilter.ACTIVE if status else SaleStatusFilter.RETURNED

    q = sales_service.query_sales(
        db,
        client_id=client_id,
        employee_id=employee_id,
        status=status_filter,
        payment_method=payment_method,
        date_from=parse_date_param("date_from", date_from),
        date_to=parse_date_param("date_to", date_to),
    )
    rows, pagination = sales_service.paginate(q, page, limit)
    return {
        "success": True,
        "data": [sale_to_dict(s) for s in rows],
        "pagination": pagination,
    }


# ---------- ОДНА ПРОДАЖА ----------
@router.get("/{sale_id}")
def get_sale(sale_id: int, db: Session = Depends(get_db)):
    sale = (
        db.query(Sale)
        .options(selectinload(Sale.client), selectinload(Sale.employee), selectinload(Sale.returns))
        .filter(Sale.id == sale_id)
        .first()
    )
    if not sale:
        raise NotFound("Sale not found", f"Sale {sale_id} does not exist")

    data = sale_to_dict(sale)
    data["sales_returns"] = [sale_return_to_dict(r) for r in sale.returns]
    return {"success": True, "data": data}


# ---------- ОФОРМЛЕНИЕ ----------
@router.post("")
def create_sale(payload: SaleCreate, db: Session = Depends(get_db)):
    return sales_service.create_sale(db, payload)
