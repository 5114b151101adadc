from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from backoffice.db import get_db
from backoffice.models.catalog import Product
from backoffice.services.inventory import list_movements
from backoffice.utils.serializers import movement_to_dict, product_to_dict

router = APIRouter(prefix="/inventory", tags=["inventory"])


# 📦 товары с остатками
@router.get("/products")
def list_products(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
):
    q = db.query(Product).order_by(Product.name.asc())
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    return [product_to_dict(p) for p in q.all()]


# журнал движений склада
@router.get("/movements")
def movements(
    product_id: Optional[int] = Query(None),
    reference: Optional[str] = Query(None),
    limit: int = Query(200, ge=1, le=2000),
    db: Session = Depends(get_db),
):
    rows = list_movements(db, product_id=product_id, reference=reference, limit=limit)
    return {"success": True, "data": [movement_to_dict(m) for m in rows]}
