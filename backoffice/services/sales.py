"""
Продажи: запись/чтение строк продаж и оформление чека.

Чек из N товаров сохраняется как N строк Sale с общим референсом.
Всё оформление идёт в одной транзакции: если что-то фатально упало,
откатываются и строки продаж, и списания остатков.
"""

import json
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, false
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from backoffice.errors import (
    DependencyWriteFailed,
    InsufficientStock,
    InvalidReference,
    NotFound,
    ServiceError,
)
from backoffice.models.catalog import Product
from backoffice.models.people import Client, Employee
from backoffice.models.sale import Sale
from backoffice.schemas.sales import SaleCreate
from backoffice.services import inventory, stock
from backoffice.utils.dates import end_of_day
from backoffice.utils.enums import MovementType, SaleStatusFilter
from backoffice.utils.money import q2, split_vat, to_decimal
from backoffice.utils.tokens import make_sale_reference

log = logging.getLogger(__name__)


# ----------------------- ЧТЕНИЕ -----------------------

def get_sale(db: Session, sale_id: int, lock: bool = False) -> Sale:
    q = db.query(Sale).filter(Sale.id == sale_id)
    if lock:
        q = q.with_for_update().populate_existing()
    sale = q.first()
    if not sale:
        raise NotFound("Sale not found", f"Sale {sale_id} does not exist")
    return sale


def _int_or_none(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _price_or_none(value) -> Optional[Decimal]:
    try:
        d = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    return d if d.is_finite() else None


def _raw_line_items(sale: Sale) -> List[Dict[str, Any]]:
    raw = sale.products
    if raw is None:
        raise ValueError("sale has no product list")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"product list is not valid JSON: {e}")
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list) or not all(isinstance(x, dict) for x in raw):
        raise ValueError("product list is malformed")
    return raw


def sale_line_items(sale: Sale) -> List[Dict[str, Any]]:
    """
    Список позиций продажи из колонки products, с приведёнными числами.
    product_id/quantity, которые не читаются как целые, становятся None:
    такие строки вызывающий пропускает. totalPrice обязан быть числом.
    ValueError - если список не восстановить (нет, не JSON, не список словарей,
    нечисловая сумма строки).
    """
    items = []
    for n, line in enumerate(_raw_line_items(sale), 1):
        price = _price_or_none(line.get("totalPrice"))
        if price is None:
            raise ValueError(f"line {n}: totalPrice {line.get('totalPrice')!r} is not a number")
        items.append({
            **line,
            "product_id": _int_or_none(line.get("product_id")),
            "quantity": _int_or_none(line.get("quantity")),
            "totalPrice": price,
        })
    return items


def sale_totals(sale: Sale) -> Tuple[int, Decimal, Decimal]:
    """(кол-во единиц, подытог, итог с налогом); битый список считаем пустым, битые поля нулём."""
    try:
        lines = _raw_line_items(sale)
    except ValueError:
        lines = []
    items = sum(_int_or_none(l.get("quantity")) or 0 for l in lines)
    subtotal = sum((_price_or_none(l.get("totalPrice")) or Decimal("0") for l in lines), Decimal("0"))
    return items, subtotal, subtotal + to_decimal(sale.vat)


def query_sales(
    db: Session,
    client_id: Optional[int] = None,
    employee_id: Optional[int] = None,
    status: SaleStatusFilter = SaleStatusFilter.ALL,
    payment_method: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    search: Optional[str] = None,
):
    q = (
        db.query(Sale)
        .options(selectinload(Sale.client), selectinload(Sale.employee))
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
    )

    if client_id:
        q = q.filter(Sale.client_id == client_id)
    if employee_id:
        q = q.filter(Sale.employee_id == employee_id)
    if status == SaleStatusFilter.ACTIVE:
        q = q.filter(Sale.status.is_(True))
    elif status == SaleStatusFilter.RETURNED:
        q = q.filter(Sale.status.is_(False))
    if payment_method:
        q = q.filter(Sale.payment_method == payment_method)

    # дата "по" без времени включает весь день
    if date_to and (date_to.hour, date_to.minute, date_to.second) == (0, 0, 0):
        date_to = end_of_day(date_to)
    if date_from and date_to:
        q = q.filter(and_(Sale.sale_date >= date_from, Sale.sale_date <= date_to))
    elif date_from:
        q = q.filter(Sale.sale_date >= date_from)
    elif date_to:
        q = q.filter(Sale.sale_date <= date_to)

    if search:
        s = search.strip()
        # поиск только по номеру продажи
        q = q.filter(Sale.id == int(s)) if s.isdigit() else q.filter(false())

    return q


def paginate(q, page: int, limit: int):
    total = q.order_by(None).count()
    rows = q.offset((page - 1) * limit).limit(limit).all()
    return rows, {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": (total + limit - 1) // limit if limit else 0,
    }


def sales_stats(db: Session, date_from: Optional[datetime] = None, date_to: Optional[datetime] = None) -> dict:
    sales = query_sales(db, date_from=date_from, date_to=date_to).all()
    active = [s for s in sales if s.status]
    revenue = sum((sale_totals(s)[2] for s in active), Decimal("0"))
    return {
        "totalSales": len(sales),
        "activeSales": len(active),
        "returnedSales": len(sales) - len(active),
        "totalRevenue": float(q2(revenue)),
        "averageOrderValue": float(q2(revenue / len(active))) if active else 0.0,
    }


# ----------------------- ЗАПИСЬ -----------------------

def _classify_write_error(db: Session, exc: IntegrityError, payload: SaleCreate, product_id: int) -> ServiceError:
    """Разбираем, какой внешний ключ сломался: сотрудник, клиент или товар."""
    msg = str(getattr(exc, "orig", exc)).lower()

    if "employee" in msg:
        return InvalidReference("Invalid employee reference", f"Employee {payload.employee_id} does not exist")
    if "client" in msg:
        return InvalidReference("Invalid client reference", f"Client {payload.client_id} does not exist")
    if "product" in msg and "foreign key" in msg:
        return InvalidReference("Invalid product reference", f"Product {product_id} does not exist")

    # SQLite не называет колонку - проверяем ссылки сами
    if "foreign key" in msg:
        if payload.employee_id is not None and db.get(Employee, payload.employee_id) is None:
            return InvalidReference("Invalid employee reference", f"Employee {payload.employee_id} does not exist")
        if payload.client_id is not None and db.get(Client, payload.client_id) is None:
            return InvalidReference("Invalid client reference", f"Client {payload.client_id} does not exist")
        if db.get(Product, product_id) is None:
            return InvalidReference("Invalid product reference", f"Product {product_id} does not exist")

    return DependencyWriteFailed(f"Failed to create sale for product {product_id}", str(getattr(exc, "orig", exc)))


def _annotate_notes(notes: Optional[str], reference: str) -> str:
    return f"{notes} | Ref: {reference}" if notes else f"Ref: {reference}"


def create_sale(db: Session, payload: SaleCreate) -> dict:
    """Оформление чека: проверка остатков -> строки продаж -> списание -> журнал."""
    items = payload.items

    # 1-2. проверка остатков до любых записей
    products = stock.get_products(db, [i.product_id for i in items])
    for item in items:
        available = stock.available_stock(products, item.product_id)
        if item.quantity > available:
            p = products.get(item.product_id)
            raise InsufficientStock(item.product_id, p.name if p else None, available, item.quantity)

    # 3. общий референс
    reference = make_sale_reference()
    shares = split_vat(payload.vat, [i.total_price for i in items])
    notes = _annotate_notes(payload.notes, reference)

    created: List[int] = []
    try:
        # 4. по строке Sale на каждую позицию
        for item, share in zip(items, shares):
            sale = Sale(
                client_id=payload.client_id,
                employee_id=payload.employee_id,
                product_id=item.product_id,
                payment_method=payload.payment_method,
                vat=share,
                status=True,
                notes=notes,
                reference=reference,
                products=[{
                    "product_id": item.product_id,
                    "quantity": item.quantity,
                    "unitPrice": float(item.unit_price),
                    "totalPrice": float(item.total_price),
                }],
            )
            db.add(sale)
            try:
                db.flush()
            except IntegrityError as e:
                db.rollback()
                raise _classify_write_error(db, e, payload, item.product_id)
            created.append(sale.id)

        # 5. списание + журнал движений
        for item in items:
            try:
                new_stock = stock.decrement_stock(db, item.product_id, item.quantity)
            except SQLAlchemyError as e:
                raise DependencyWriteFailed(f"Failed to update stock for product {item.product_id}", str(e))
            log.info("Sale %s: product %s stock -> %s", reference, item.product_id, new_stock)

            inventory.record_movement_safely(
                db,
                item.product_id,
                MovementType.EXIT,
                item.quantity,
                reference,
                employee_id=payload.employee_id,
            )

        db.commit()
    except ServiceError as e:
        db.rollback()
        log.error("Sale %s aborted: %s (%s)", reference, e.error, e.details)
        raise
    except SQLAlchemyError as e:
        db.rollback()
        log.error("Sale %s aborted on database error: %s", reference, e)
        raise DependencyWriteFailed("Failed to create sale", str(e))

    subtotal = sum((i.total_price for i in items), Decimal("0"))
    total = q2(subtotal + payload.vat)
    log.info("Sale %s created: %s line(s), total %s", reference, len(created), total)

    return {
        "success": True,
        "sale_reference": reference,
        "sales_created": created,
        "total_items": len(items),
        "total_amount": float(total),
        "message": f"Sale created successfully with {len(items)} item(s)",
    }
