"""Shared pytest fixtures: in-memory SQLite database, API client and seed data."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterator, Optional

# Настройки должны попасть в окружение до первого импорта пакета.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "backoffice-test-logs"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from backoffice.db import Base, SessionLocal, engine  # noqa: E402
from backoffice.main import app  # noqa: E402
from backoffice.models import Client, Employee, InventoryMovement, Product, Sale  # noqa: E402


@dataclass(frozen=True)
class Seeded:
    """Identifiers of the rows every test starts with."""

    employee_id: int
    client_id: int
    product_ids: tuple[int, ...]


@pytest.fixture(autouse=True)
def _schema() -> Iterator[None]:
    """Recreate all tables so each test starts from an empty database."""

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def api() -> TestClient:
    return TestClient(app)


@pytest.fixture
def seeded() -> Seeded:
    """One employee, one client and three products (stock 10, 3, 0)."""

    with SessionLocal() as db:
        employee = Employee(first_name="Ana", last_name="Lopez")
        client = Client(client_type="Individual", first_name="Carlos", last_name="Ruiz", email="c@example.com")
        products = [
            Product(name="Oil filter", sku="OF-1", stock=10, sale_price=Decimal("10.00")),
            Product(name="Brake pad", sku="BP-1", stock=3, sale_price=Decimal("25.00")),
            Product(name="Spark plug", sku="SP-1", stock=0, sale_price=Decimal("5.00")),
        ]
        db.add_all([employee, client, *products])
        db.commit()
        return Seeded(
            employee_id=employee.employee_id,
            client_id=client.client_id,
            product_ids=tuple(p.id for p in products),
        )


@pytest.fixture
def stock_of() -> Callable[[int], Optional[int]]:
    """Read a product's stock through a short-lived session."""

    def _read(product_id: int) -> Optional[int]:
        with SessionLocal() as db:
            product = db.get(Product, product_id)
            return None if product is None else product.stock

    return _read


@pytest.fixture
def movements_for() -> Callable[..., list[tuple[int, str, int, str]]]:
    """Return (product_id, type, quantity, reference) tuples, optionally by reference."""

    def _read(reference: Optional[str] = None) -> list[tuple[int, str, int, str]]:
        with SessionLocal() as db:
            q = db.query(InventoryMovement).order_by(InventoryMovement.id)
            if reference is not None:
                q = q.filter(InventoryMovement.reference == reference)
            return [(m.product_id, m.movement_type, m.quantity, m.reference) for m in q.all()]

    return _read


@pytest.fixture
def sale_factory() -> Callable[..., int]:
    """Insert a Sale row directly, bypassing the checkout flow."""

    def _create(
        products,
        *,
        vat: str = "0",
        status: bool = True,
        sale_date: Optional[datetime] = None,
        client_id: Optional[int] = None,
        employee_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> int:
        with SessionLocal() as db:
            sale = Sale(
                payment_method="Cash",
                vat=Decimal(vat),
                status=status,
                products=products,
                client_id=client_id,
                employee_id=employee_id,
                notes=notes,
            )
            if sale_date is not None:
                sale.sale_date = sale_date
            db.add(sale)
            db.commit()
            return sale.id

    return _create


@pytest.fixture
def sale_row() -> Callable[[int], dict]:
    """Snapshot of a sale row as a plain dict."""

    def _read(sale_id: int) -> dict:
        with SessionLocal() as db:
            s = db.get(Sale, sale_id)
            return {
                "status": s.status,
                "notes": s.notes,
                "vat": s.vat,
                "reference": s.reference,
                "products": s.products,
                "employee_id": s.employee_id,
                "client_id": s.client_id,
            }

    return _read
