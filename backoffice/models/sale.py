# backoffice/models/sale.py
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Boolean, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db import Base


class Sale(Base):
    __tablename__ = "sales"

    id: Mapped[int] = mapped_column(primary_key=True)
    sale_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    client_id: Mapped[Optional[int]] = mapped_column(ForeignKey("clients.client_id"), nullable=True, index=True)
    employee_id: Mapped[Optional[int]] = mapped_column(ForeignKey("employees.employee_id"), nullable=True, index=True)

    # одна строка продажи = один товар
    product_id: Mapped[Optional[int]] = mapped_column(ForeignKey("products.id"), nullable=True, index=True)

    payment_method: Mapped[str] = mapped_column(String(50))
    vat: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)  # доля налога этой строки

    # True - продажа действует, False - оформлен возврат
    status: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # общий референс чека: все строки одной покупки делят его
    reference: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)

    # [{product_id, quantity, unitPrice, totalPrice}]
    products: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    client = relationship("Client")
    employee = relationship("Employee")
    returns: Mapped[List["SaleReturn"]] = relationship("SaleReturn", back_populates="sale")
