"""
Pydantic-модели тел запросов для продаж, возвратов и клиентов.
Имена полей JSON (unitPrice, totalPrice, refound_method) сохраняем как есть:
на них завязан фронтенд.
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from backoffice.utils.enums import ClientStatus, ClientType, RefundMethod


class SaleItemIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(gt=0)
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(alias="unitPrice", ge=0)
    total_price: Decimal = Field(alias="totalPrice", ge=0)


class SaleCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    client_id: Optional[int] = None
    employee_id: Optional[int] = None
    payment_method: str = Field(min_length=1, max_length=50)
    vat: Decimal = Field(default=Decimal("0"), ge=0)
    notes: Optional[str] = None
    items: List[SaleItemIn] = Field(min_length=1)


class SaleReturnCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    sale_id: int = Field(gt=0)
    reason: str = Field(min_length=1)
    refound_method: RefundMethod = RefundMethod.STORE_CREDIT
    employee_id: Optional[int] = None


class _ClientFields(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    client_type: Optional[ClientType] = None
    first_name: Optional[str] = Field(default=None, max_length=20)
    last_name: Optional[str] = Field(default=None, max_length=20)
    business_name: Optional[str] = Field(default=None, max_length=40)
    tax_id: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=30, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: Optional[str] = Field(default=None, max_length=20)
    city: Optional[str] = Field(default=None, max_length=30)
    notes: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _drop_empty(cls, data):
        # пустые строки из формы считаем незаполненными полями
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if not (isinstance(v, str) and not v.strip())}
        return data


class ClientCreate(_ClientFields):
    status: ClientStatus = ClientStatus.ACTIVE

    @model_validator(mode="after")
    def _name_required(self):
        if not self.first_name and not self.business_name:
            raise ValueError("Either first_name or business_name is required")
        return self


class ClientUpdate(_ClientFields):
    # передаются только меняемые поля
    status: Optional[ClientStatus] = None
