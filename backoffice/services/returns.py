"""
Возврат продажи: товар обратно на склад, запись "entry" в журнал,
продажа помечается возвращённой, плюс необязательная запись SaleReturn.
Повторный возврат той же продажи запрещён.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.errors import (
    Conflict,
    DependencyWriteFailed,
    InvalidReference,
    NotFound,
    ServiceError,
    ValidationFailed,
)
from backoffice.models.people import Employee
from backoffice.models.sale import Sale
from backoffice.models.sale_return import SaleReturn
from backoffice.schemas.sales import SaleReturnCreate
from backoffice.services import inventory, sales, stock
from backoffice.utils.dates import to_display
from backoffice.utils.enums import MovementType
from backoffice.utils.money import q2, to_decimal
from backoffice.utils.tokens import make_return_reference

log = logging.getLogger(__name__)

RETURN_STATUS = "Processed"


def _return_note(original: Optional[str], reason: str, when: datetime) -> str:
    parts = [original] if original else []
    parts.append(f"[RETURNED {to_display(when)}] Reason: {reason}")
    return "\n".join(parts)


def _record_sale_return(db: Session, sale: Sale, payload: SaleReturnCreate, employee_id: Optional[int], when: datetime) -> bool:
    # SaleReturn - вспомогательная запись, её ошибка возврат не отменяет
    try:
        with db.begin_nested():
            db.add(SaleReturn(
                sale_id=sale.id,
                employee_id=employee_id,
                refound_method=payload.refound_method.value,
                status=RETURN_STATUS,
                reason=payload.reason,
                return_date=when,
            ))
            db.flush()
        return True
    except SQLAlchemyError as e:
        log.error("Sale %s: sales_returns record not saved: %s", sale.id, e)
        return False


def create_sale_return(db: Session, payload: SaleReturnCreate) -> dict:
    sale_id = payload.sale_id
    try:
        sale = sales.get_sale(db, sale_id, lock=True)

        if not sale.status:
            raise Conflict("Sale has already been returned", f"Sale {sale_id} is already marked as returned")

        try:
            lines = sales.sale_line_items(sale)
        except ValueError as e:
            raise ValidationFailed("Sale has no valid product list", str(e))
        if not lines:
            raise ValidationFailed("Sale has no valid product list", "product list is empty")

        # неизвестный сотрудник сломал бы FK у журнала и SaleReturn
        if payload.employee_id is not None and db.get(Employee, payload.employee_id) is None:
            raise InvalidReference("Invalid employee reference", f"Employee {payload.employee_id} does not exist")

        now = datetime.utcnow()
        reference = make_return_reference(sale.id)
        actor_id = payload.employee_id or sale.employee_id

        stock_updates: List[dict] = []
        movements = 0
        items_returned = 0
        amount = Decimal("0")

        for line in lines:
            amount += line["totalPrice"]

            product_id = line["product_id"]
            quantity = line["quantity"]
            if product_id is None or not quantity or quantity < 0:
                log.warning("Sale %s: skipping line without valid product_id/quantity: %s", sale.id, line)
                continue

            try:
                res = stock.increment_stock(db, product_id, quantity)
            except SQLAlchemyError as e:
                raise DependencyWriteFailed(f"Failed to update stock for product {product_id}", str(e))
            if res is None:
                log.error("Sale %s: product %s not found, stock not restored", sale.id, product_id)
                continue

            product, previous = res
            stock_updates.append({
                "product_id": product.id,
                "product_name": product.name,
                "quantity_returned": quantity,
                "previous_stock": previous,
                "new_stock": int(product.stock),
            })
            items_returned += quantity

            if inventory.record_movement_safely(
                db,
                product.id,
                MovementType.ENTRY,
                quantity,
                reference,
                employee_id=actor_id,
            ):
                movements += 1

        # продажа -> возвращена
        sale.status = False
        sale.notes = _return_note(sale.notes, payload.reason, now)
        db.flush()

        _record_sale_return(db, sale, payload, actor_id, now)

        db.commit()
    except ServiceError as e:
        db.rollback()
        log.warning("Return of sale %s rejected: %s (%s)", sale_id, e.error, e.details)
        raise
    except SQLAlchemyError as e:
        db.rollback()
        log.error("Return of sale %s failed on database error: %s", sale_id, e)
        raise DependencyWriteFailed("Failed to process sale return", str(e))

    total_amount = q2(amount + to_decimal(sale.vat))
    log.info("Sale %s returned: %s item(s), %s", sale_id, items_returned, total_amount)

    return {
        "sale_id": sale_id,
        "return_date": now.isoformat(),
        "refound_method": payload.refound_method.value,
        "stock_updates": stock_updates,
        "inventory_movements": movements,
        "total_items_returned": items_returned,
        "total_amount_returned": float(total_amount),
        "reason": payload.reason,
        "products_processed": len(stock_updates),
    }


def list_sale_returns(db: Session, sale_id: Optional[int] = None) -> List[SaleReturn]:
    q = db.query(SaleReturn).order_by(SaleReturn.return_date.desc(), SaleReturn.id.desc())
    if sale_id:
        q = q.filter(SaleReturn.sale_id == sale_id)
    return q.all()


def get_sale_return(db: Session, return_id: int) -> SaleReturn:
    record = db.get(SaleReturn, return_id)
    if not record:
        raise NotFound("Sale return not found", f"Sale return {return_id} does not exist")
    return record
