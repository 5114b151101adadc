from typing import Any, Dict

from backoffice.models.catalog import Product
from backoffice.models.inventory import InventoryMovement
from backoffice.models.people import Client
from backoffice.models.sale import Sale
from backoffice.models.sale_return import SaleReturn
from backoffice.services.sales import sale_totals


def _iso(dt):
    return dt.isoformat() if dt else None


def product_to_dict(p: Product) -> Dict[str, Any]:
    """Конвертирует объект Product в словарь для API"""
    return {
        "id": p.id,
        "name": p.name,
        "sku": p.sku,
        "stock": int(p.stock or 0),
        "sale_price": float(p.sale_price or 0),
        "is_active": bool(p.is_active),
    }


def sale_to_dict(s: Sale) -> Dict[str, Any]:
    """Строка продажи + имена клиента/сотрудника и посчитанные суммы."""
    total_items, subtotal, total = sale_totals(s)
    return {
        "sale_id": s.id,
        "sale_date": _iso(s.sale_date),
        "client_id": s.client_id,
        "client_name": s.client.display_name if s.client else None,
        "employee_id": s.employee_id,
        "employee_name": s.employee.display_name if s.employee else None,
        "product_id": s.product_id,
        "payment_method": s.payment_method,
        "vat": float(s.vat or 0),
        "status": bool(s.status),
        "notes": s.notes,
        "reference": s.reference,
        "products": s.products,
        "total_items": total_items,
        "subtotal": float(subtotal),
        "total": float(total),
    }


def sale_return_to_dict(r: SaleReturn) -> Dict[str, Any]:
    return {
        "return_id": r.id,
        "sale_id": r.sale_id,
        "employee_id": r.employee_id,
        "refound_method": r.refound_method,
        "status": r.status,
        "reason": r.reason,
        "return_date": _iso(r.return_date),
    }


def client_to_dict(c: Client) -> Dict[str, Any]:
    return {
        "client_id": c.client_id,
        "client_type": c.client_type,
        "first_name": c.first_name,
        "last_name": c.last_name,
        "business_name": c.business_name,
        "tax_id": c.tax_id,
        "email": c.email,
        "phone": c.phone,
        "city": c.city,
        "notes": c.notes,
        "status": c.status,
    }


def movement_to_dict(m: InventoryMovement) -> Dict[str, Any]:
    return {
        "id": m.id,
        "product_id": m.product_id,
        "movement_type": m.movement_type,
        "quantity": m.quantity,
        "reference": m.reference,
        "employee_id": m.employee_id,
        "movement_date": _iso(m.movement_date),
    }
