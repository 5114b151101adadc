import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.models.inventory import InventoryMovement
from backoffice.utils.enums import MovementType

log = logging.getLogger(__name__)


def record_movement(
    db: Session,
    product_id: int,
    movement_type: MovementType,
    quantity: int,
    reference: Optional[str],
    employee_id: Optional[int] = None,
) -> InventoryMovement:
    mv = InventoryMovement(
        product_id=product_id,
        movement_type=MovementType(movement_type).value,
        quantity=int(quantity),
        reference=reference,
        employee_id=employee_id,
    )
    db.add(mv)
    db.flush()
    return mv


def record_movement_safely(db: Session, *args, **kwargs) -> bool:
    """
    Запись в журнал движений внутри SAVEPOINT.
    Ошибка откатывает только эту запись: журнал не должен ронять продажу/возврат.
    """
    try:
        with db.begin_nested():
            record_movement(db, *args, **kwargs)
        return True
    except SQLAlchemyError as e:
        log.warning("Inventory movement not recorded (%s, %s): %s", args, kwargs, e)
        return False


def list_movements(
    db: Session,
    product_id: Optional[int] = None,
    reference: Optional[str] = None,
    limit: int = 200,
) -> List[InventoryMovement]:
    q = db.query(InventoryMovement).order_by(InventoryMovement.movement_date.desc(), InventoryMovement.id.desc())
    if product_id:
        q = q.filter(InventoryMovement.product_id == product_id)
    if reference:
        q = q.filter(InventoryMovement.reference == reference)
    return q.limit(limit).all()
