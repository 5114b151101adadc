from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from backoffice.errors import InsufficientStock
from backoffice.models.catalog import Product


def get_products(db: Session, product_ids: Iterable[int]) -> Dict[int, Product]:
    """Товары по id одним запросом; отсутствующих в словаре просто нет."""
    ids = list({int(x) for x in product_ids})
    if not ids:
        return {}
    products = db.query(Product).filter(Product.id.in_(ids)).all()
    return {p.id: p for p in products}


def available_stock(products: Dict[int, Product], product_id: int) -> int:
    # нет товара - значит остаток 0
    p = products.get(int(product_id))
    return int(p.stock or 0) if p else 0


def decrement_stock(db: Session, product_id: int, quantity: int) -> int:
    """
    Атомарное списание: UPDATE ... WHERE stock >= qty.
    Если строка не обновилась - остатка уже не хватает (параллельная продажа).
    Возвращает новый остаток.
    """
    result = db.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session="fetch")
    )
    product = db.get(Product, product_id)
    if result.rowcount == 0:
        available = int(product.stock or 0) if product else 0
        raise InsufficientStock(product_id, product.name if product else None, available, quantity)
    return int(product.stock)


def increment_stock(db: Session, product_id: int, quantity: int) -> Optional[Tuple[Product, int]]:
    """
    Возврат товара на склад под блокировкой строки.
    Возвращает (товар, старый остаток) или None, если товара нет.
    """
    product = db.execute(
        select(Product)
        .where(Product.id == product_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if product is None:
        return None

    previous = int(product.stock or 0)
    product.stock = previous + int(quantity)
    db.flush()
    return product, previous
