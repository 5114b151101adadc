from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from backoffice import config
from backoffice.db import get_db
from backoffice.schemas.sales import ClientCreate, ClientUpdate
from backoffice.services import clients as clients_service
from backoffice.services.sales import paginate
from backoffice.utils.enums import ClientStatus, ClientType
from backoffice.utils.serializers import client_to_dict

router = APIRouter(prefix="/sales/clients", tags=["clients"])


@router.get("")
def list_clients(
    page: int = Query(1, ge=1),
    limit: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    client_type: Optional[ClientType] = Query(None),
    status: Optional[ClientStatus] = Query(None),
    search: Optional[str] = Query(None, description="имя/название/email"),
    db: Session = Depends(get_db),
):
    q = clients_service.query_clients(
        db,
        client_type=client_type.value if client_type else None,
        status=status.value if status else None,
        search=search,
    )
    rows, pagination = paginate(q, page, limit)
    return {
        "success": True,
        "data": [client_to_dict(c) for c in rows],
        "pagination": pagination,
    }


@router.post("")
def create_client(payload: ClientCreate, db: Session = Depends(get_db)):
    client = clients_service.create_client(db, payload)
    return {
        "success": True,
        "data": client_to_dict(client),
        "message": "Client created successfully",
    }


@router.get("/{client_id}")
def get_client(client_id: int, db: Session = Depends(get_db)):
    client = clients_service.get_client(db, client_id)
    data = client_to_dict(client)
    data["sales"] = [
        {
            "sale_id": s.id,
            "sale_date": s.sale_date.isoformat() if s.sale_date else None,
            "vat": float(s.vat or 0),
            "status": bool(s.status),
        }
        for s in clients_service.client_sales(db, client_id)
    ]
    return {"success": True, "data": data}


@router.put("/{client_id}")
def update_client(client_id: int, payload: ClientUpdate, db: Session = Depends(get_db)):
    client = clients_service.update_client(db, client_id, payload)
    return {
        "success": True,
        "data": client_to_dict(client),
        "message": "Client updated successfully",
    }
