import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backoffice.errors import NotFound, ValidationFailed
from backoffice.models.people import Client
from backoffice.models.sale import Sale
from backoffice.schemas.sales import ClientCreate, ClientUpdate

log = logging.getLogger(__name__)


def query_clients(
    db: Session,
    client_type: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
):
    q = db.query(Client).order_by(Client.client_id.asc())
    if client_type:
        q = q.filter(Client.client_type == client_type)
    if status:
        q = q.filter(Client.status == status)
    if search:
        like = "%%%s%%" % search.strip()
        q = q.filter(
            or_(
                Client.first_name.ilike(like),
                Client.last_name.ilike(like),
                Client.business_name.ilike(like),
                Client.email.ilike(like),
            )
        )
    return q


def get_client(db: Session, client_id: int) -> Client:
    client = db.get(Client, client_id)
    if not client:
        raise NotFound("Client not found", f"Client {client_id} does not exist")
    return client


def client_sales(db: Session, client_id: int) -> List[Sale]:
    return (
        db.query(Sale)
        .filter(Sale.client_id == client_id)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .all()
    )


def _check_unique(db: Session, email: Optional[str], tax_id: Optional[str], exclude_id: Optional[int] = None):
    # уникальные поля проверяем заранее, чтобы дать понятное сообщение
    def taken(column, value):
        q = db.query(Client).filter(column == value)
        if exclude_id is not None:
            q = q.filter(Client.client_id != exclude_id)
        return q.first() is not None

    if email and taken(Client.email, email):
        raise ValidationFailed("A client with this email already exists")
    if tax_id and taken(Client.tax_id, tax_id):
        raise ValidationFailed("A client with this tax ID already exists")


def _commit_client(db: Session, client: Client, action: str) -> Client:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        log.error("%s client failed: %s", action, e)
        raise ValidationFailed("A client with these details already exists", str(e.orig))
    except Exception:
        db.rollback()
        raise
    db.refresh(client)
    return client


def create_client(db: Session, payload: ClientCreate) -> Client:
    _check_unique(db, payload.email, payload.tax_id)

    data = payload.model_dump(exclude_none=True, mode="json")
    client = Client(**data)
    db.add(client)
    _commit_client(db, client, "Create")
    log.info("Client %s created", client.client_id)
    return client


def update_client(db: Session, client_id: int, payload: ClientUpdate) -> Client:
    client = get_client(db, client_id)
    data = payload.model_dump(exclude_unset=True, exclude_none=True, mode="json")
    _check_unique(db, data.get("email"), data.get("tax_id"), exclude_id=client_id)

    for key, value in data.items():
        setattr(client, key, value)
    _commit_client(db, client, "Update")
    log.info("Client %s updated: %s", client_id, ", ".join(sorted(data)) or "no changes")
    return client
