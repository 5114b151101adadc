# backoffice/models/sale_return.py
from typing import Optional
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db import Base
from backoffice.utils.enums import RefundMethod


class SaleReturn(Base):
    __tablename__ = "sales_returns"

    id: Mapped[int] = mapped_column(primary_key=True)
    sale_id: Mapped[int] = mapped_column(ForeignKey("sales.id"), index=True)
    employee_id: Mapped[Optional[int]] = mapped_column(ForeignKey("employees.employee_id"), nullable=True)

    refound_method: Mapped[str] = mapped_column(String(24), default=RefundMethod.STORE_CREDIT.value)
    status: Mapped[str] = mapped_column(String(24), default="Processed")
    reason: Mapped[str] = mapped_column(Text)

    return_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    sale = relationship("Sale", back_populates="returns")
