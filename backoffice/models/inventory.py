# backoffice/models/inventory.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from backoffice.db import Base


class InventoryMovement(Base):
    __tablename__ = "inventory_movements"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_inventory_movements_quantity_positive"),
    )

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)

    # entry | exit
    movement_type = Column(String(16), nullable=False)

    quantity = Column(Integer, nullable=False)
    reference = Column(String(64), nullable=True, index=True)   # референс продажи/возврата

    employee_id = Column(Integer, ForeignKey("employees.employee_id"), nullable=True)
    movement_date = Column(DateTime, default=datetime.utcnow, nullable=False)

    product = relationship("Product")
