"""Tests for the sale-return workflow and the returns listing."""

from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy.exc import SQLAlchemyError

from backoffice.db import SessionLocal
from backoffice.models import InventoryMovement, SaleReturn
from backoffice.services import inventory, returns, stock


def _checkout(api, items, **extra) -> dict:
    payload = {"payment_method": "Cash", "items": items, **extra}
    resp = api.post("/sales/selling", json=payload)
    assert resp.status_code == 200, resp.text
    return resp.json()


def _return_records() -> list[tuple[int, str, str, str]]:
    with SessionLocal() as db:
        return [
            (r.sale_id, r.refound_method, r.status, r.reason)
            for r in db.query(SaleReturn).order_by(SaleReturn.id)
        ]


def test_return_restores_stock_and_marks_sale_returned(api, seeded, stock_of, movements_for, sale_row):
    oil, _, _ = seeded.product_ids
    sale = _checkout(api, [{"product_id": oil, "quantity": 4, "unitPrice": 10, "totalPrice": 40}], vat=4)
    sale_id = sale["sales_created"][0]
    assert stock_of(oil) == 6

    resp = api.post("/sales/sales_returns", json={
        "sale_id": sale_id,
        "reason": "Customer changed their mind",
        "refound_method": "Cash",
    })

    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["sale_id"] == sale_id
    assert data["refound_method"] == "Cash"
    assert data["total_items_returned"] == 4
    assert data["total_amount_returned"] == pytest.approx(44.0)
    assert data["inventory_movements"] == 1
    assert data["products_processed"] == 1
    assert data["reason"] == "Customer changed their mind"
    assert data["stock_updates"] == [{
        "product_id": oil,
        "product_name": "Oil filter",
        "quantity_returned": 4,
        "previous_stock": 6,
        "new_stock": 10,
    }]
    datetime.fromisoformat(data["return_date"])

    assert stock_of(oil) == 10
    assert movements_for(f"RETURN-SALE-{sale_id}") == [(oil, "entry", 4, f"RETURN-SALE-{sale_id}")]

    row = sale_row(sale_id)
    assert row["status"] is False
    assert row["notes"].startswith("Ref: SALE-")
    assert "Reason: Customer changed their mind" in row["notes"]
    assert "[RETURNED " in row["notes"]

    assert _return_records() == [(sale_id, "Cash", "Processed", "Customer changed their mind")]


def test_refund_method_defaults_to_store_credit(api, seeded):
    oil, _, _ = seeded.product_ids
    sale = _checkout(api, [{"product_id": oil, "quantity": 1, "unitPrice": 10, "totalPrice": 10}])

    resp = api.post("/sales/sales_returns", json={"sale_id": sale["sales_created"][0], "reason": "Damaged"})

    assert resp.status_code == 200
    assert resp.json()["data"]["refound_method"] == "Store Credit"


def test_create_then_return_is_net_zero_for_stock(api, seeded, stock_of):
    oil, _, _ = seeded.product_ids
    before = stock_of(oil)

    sale = _checkout(api, [{"product_id": oil, "quantity": 2, "unitPrice": 10, "totalPrice": 20}])
    api.post("/sales/sales_returns", json={"sale_id": sale["sales_created"][0], "reason": "Wrong part"})

    assert stock_of(oil) == before


def test_second_return_is_rejected_and_does_not_double_credit(api, seeded, stock_of, movements_for):
    oil, _, _ = seeded.product_ids
    sale = _checkout(api, [{"product_id": oil, "quantity": 3, "unitPrice": 10, "totalPrice": 30}])
    sale_id = sale["sales_created"][0]

    first = api.post("/sales/sales_returns", json={"sale_id": sale_id, "reason": "Wrong part"})
    second = api.post("/sales/sales_returns", json={"sale_id": sale_id, "reason": "Wrong part"})

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json()["error"] == "Sale has already been returned"
    assert stock_of(oil) == 10
    assert len(movements_for(f"RETURN-SALE-{sale_id}")) == 1
    assert len(_return_records()) == 1


def test_missing_sale_is_404(api, seeded):
    resp = api.post("/sales/sales_returns", json={"sale_id": 999, "reason": "Wrong part"})

    assert resp.status_code == 404
    assert resp.json()["error"] == "Sale not found"


@pytest.mark.parametrize(
    "payload",
    [
        {"reason": "Wrong part"},
        {"sale_id": 1},
        {"sale_id": 1, "reason": "  "},
        {"sale_id": 1, "reason": "Wrong part", "refound_method": "Bitcoin"},
    ],
)
def test_invalid_return_body_is_400(api, seeded, payload):
    resp = api.post("/sales/sales_returns", json=payload)

    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation failed"


@pytest.mark.parametrize(
    "products",
    [
        None,
        "not json",
        [1, {"product_id": 1}],
        ["a", "b"],
        [],
        [{"product_id": 1, "quantity": 1, "unitPrice": 10, "totalPrice": "n/a"}],
        [{"product_id": 1, "quantity": 1, "unitPrice": 10, "totalPrice": "NaN"}],
    ],
)
def test_sale_without_recoverable_products_is_400(api, seeded, sale_factory, sale_row, products):
    sale_id = sale_factory(products)

    resp = api.post("/sales/sales_returns", json={"sale_id": sale_id, "reason": "Wrong part"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "Sale has no valid product list"
    assert sale_row(sale_id)["status"] is True


def test_lines_without_fields_or_product_are_skipped(api, seeded, sale_factory, stock_of, sale_row):
    """Incomplete lines and unknown products are skipped; the rest is still returned."""

    oil, brake, _ = seeded.product_ids
    sale_id = sale_factory([
        {"product_id": oil, "quantity": 2, "unitPrice": 10, "totalPrice": 20},
        {"product_id": brake, "unitPrice": 25, "totalPrice": 25},
        {"product_id": brake, "quantity": "two", "unitPrice": 25, "totalPrice": 50},
        {"product_id": "abc", "quantity": 1, "unitPrice": 5, "totalPrice": 5},
        {"product_id": brake, "quantity": -1, "unitPrice": 25, "totalPrice": 0},
        {"product_id": 4040, "quantity": 1, "unitPrice": 5, "totalPrice": 5},
    ])

    resp = api.post("/sales/sales_returns", json={"sale_id": sale_id, "reason": "Wrong part"})

    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["products_processed"] == 1
    assert data["total_items_returned"] == 2
    assert data["inventory_movements"] == 1
    assert [u["product_id"] for u in data["stock_updates"]] == [oil]
    assert stock_of(oil) == 12
    assert stock_of(brake) == 3
    assert sale_row(sale_id)["status"] is False


def test_unknown_return_actor_is_rejected_before_any_change(api, seeded, sale_factory, stock_of, movements_for, sale_row):
    oil, _, _ = seeded.product_ids
    sale_id = sale_factory([{"product_id": oil, "quantity": 2, "unitPrice": 10, "totalPrice": 20}])

    resp = api.post("/sales/sales_returns", json={"sale_id": sale_id, "reason": "Wrong part", "employee_id": 999})

    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid employee reference"
    assert stock_of(oil) == 10
    assert movements_for() == []
    assert sale_row(sale_id)["status"] is True
    assert _return_records() == []


def test_return_actor_is_recorded_on_movements_and_record(api, seeded, sale_factory):
    oil, _, _ = seeded.product_ids
    sale_id = sale_factory([{"product_id": oil, "quantity": 1, "unitPrice": 10, "totalPrice": 10}])

    resp = api.post("/sales/sales_returns", json={
        "sale_id": sale_id,
        "reason": "Wrong part",
        "employee_id": seeded.employee_id,
    })

    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["inventory_movements"] == 1
    with SessionLocal() as db:
        assert [m.employee_id for m in db.query(InventoryMovement)] == [seeded.employee_id]
        assert [r.employee_id for r in db.query(SaleReturn)] == [seeded.employee_id]


def test_stock_update_failure_rolls_back_the_whole_return(api, seeded, sale_factory, stock_of, movements_for, sale_row, monkeypatch):
    oil, brake, _ = seeded.product_ids
    sale_id = sale_factory([
        {"product_id": oil, "quantity": 2, "unitPrice": 10, "totalPrice": 20},
        {"product_id": brake, "quantity": 1, "unitPrice": 25, "totalPrice": 25},
    ])
    real_increment = stock.increment_stock

    def _flaky(db, product_id, quantity):
        if product_id == brake:
            raise SQLAlchemyError("lock timeout")
        return real_increment(db, product_id, quantity)

    monkeypatch.setattr(stock, "increment_stock", _flaky)

    resp = api.post("/sales/sales_returns", json={"sale_id": sale_id, "reason": "Wrong part"})

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == f"Failed to update stock for product {brake}"
    assert body["details"] == "lock timeout"
    assert stock_of(oil) == 10
    assert movements_for() == []
    assert sale_row(sale_id)["status"] is True
    assert _return_records() == []


def test_movement_and_record_failures_are_tolerated(api, seeded, sale_factory, stock_of, sale_row, monkeypatch):
    oil, _, _ = seeded.product_ids
    sale_id = sale_factory([{"product_id": oil, "quantity": 1, "unitPrice": 10, "totalPrice": 10}])

    def _broken(*args, **kwargs):
        raise SQLAlchemyError("journal unavailable")

    monkeypatch.setattr(inventory, "record_movement", _broken)
    monkeypatch.setattr(returns, "SaleReturn", _broken)

    resp = api.post("/sales/sales_returns", json={"sale_id": sale_id, "reason": "Wrong part"})

    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["inventory_movements"] == 0
    assert stock_of(oil) == 11
    assert sale_row(sale_id)["status"] is False
    assert _return_records() == []


# ---------------------------------------------------------------------------
# GET /sales/sales_returns
# ---------------------------------------------------------------------------


def test_listing_returned_sales_is_paginated(api, seeded, sale_factory):
    oil, _, _ = seeded.product_ids
    line = [{"product_id": oil, "quantity": 1, "unitPrice": 10, "totalPrice": 10}]
    for _ in range(3):
        sale_factory(line)
    returned = [sale_factory(line, status=False) for _ in range(12)]

    resp = api.get("/sales/sales_returns", params={"status": "returned", "page": 1, "limit": 10})

    assert resp.status_code == 200
    body = resp.json()
    assert body["pagination"] == {"page": 1, "limit": 10, "total": 12, "totalPages": 2}
    assert len(body["data"]) == 10
    assert all(row["status"] is False for row in body["data"])

    page2 = api.get("/sales/sales_returns", params={"status": "returned", "page": 2, "limit": 10}).json()
    ids = {row["sale_id"] for row in body["data"]} | {row["sale_id"] for row in page2["data"]}
    assert ids == set(returned)


def test_listing_rows_are_denormalised(api, seeded, sale_factory):
    oil, brake, _ = seeded.product_ids
    sale_factory(
        [
            {"product_id": oil, "quantity": 2, "unitPrice": 10, "totalPrice": 20},
            {"product_id": brake, "quantity": 1, "unitPrice": 25, "totalPrice": 25},
        ],
        vat="4.50",
        client_id=seeded.client_id,
        employee_id=seeded.employee_id,
    )

    row = api.get("/sales/sales_returns").json()["data"][0]

    assert row["client_name"] == "Carlos Ruiz"
    assert row["employee_name"] == "Ana Lopez"
    assert row["total_items"] == 3
    assert row["subtotal"] == pytest.approx(45.0)
    assert row["total"] == pytest.approx(49.5)


def test_listing_tolerates_rows_with_unreadable_numbers(api, seeded, sale_factory):
    """A stored line with garbage numbers counts as zero instead of breaking the page."""

    oil, _, _ = seeded.product_ids
    good = sale_factory([{"product_id": oil, "quantity": 1, "unitPrice": 10, "totalPrice": 10}])
    odd = sale_factory([
        {"product_id": oil, "quantity": "two", "unitPrice": 10, "totalPrice": 20},
        {"product_id": oil, "quantity": 1, "unitPrice": 10, "totalPrice": "n/a"},
    ], vat="1.00")

    resp = api.get("/sales/sales_returns")

    assert resp.status_code == 200, resp.text
    rows = {row["sale_id"]: row for row in resp.json()["data"]}
    assert set(rows) == {good, odd}
    assert rows[odd]["total_items"] == 1
    assert rows[odd]["subtotal"] == pytest.approx(20.0)
    assert rows[odd]["total"] == pytest.approx(21.0)

    assert api.get("/sales/selling").status_code == 200
    assert api.get(f"/sales/selling/{odd}").status_code == 200
    stats = api.get("/sales/stats")
    assert stats.status_code == 200
    assert stats.json()["data"]["totalRevenue"] == pytest.approx(31.0)


def test_listing_filters_by_status_search_and_dates(api, seeded, sale_factory):
    oil, _, _ = seeded.product_ids
    line = [{"product_id": oil, "quantity": 1, "unitPrice": 10, "totalPrice": 10}]
    old = sale_factory(line, sale_date=datetime(2024, 1, 10, 12, 0))
    mid = sale_factory(line, sale_date=datetime(2024, 2, 15, 18, 30))
    new = sale_factory(line, sale_date=datetime(2024, 3, 1, 9, 0), status=False)

    def ids(**params):
        return [row["sale_id"] for row in api.get("/sales/sales_returns", params=params).json()["data"]]

    assert ids() == [new, mid, old]
    assert ids(status="active") == [mid, old]
    assert ids(search=str(mid)) == [mid]
    assert ids(search="abc") == []
    assert ids(date_from="2024-02-01", date_to="2024-02-15") == [mid]
    assert ids(date_to="10.01.2024") == [old]


def test_listing_rejects_bad_status_and_dates(api, seeded):
    assert api.get("/sales/sales_returns", params={"status": "pending"}).status_code == 400
    assert api.get("/sales/sales_returns", params={"date_from": "yesterday"}).status_code == 400


def test_return_records_endpoint(api, seeded):
    oil, _, _ = seeded.product_ids
    sale = _checkout(api, [{"product_id": oil, "quantity": 1, "unitPrice": 10, "totalPrice": 10}])
    sale_id = sale["sales_created"][0]
    api.post("/sales/sales_returns", json={"sale_id": sale_id, "reason": "Wrong part", "refound_method": "Credit"})

    body = api.get("/sales/sales_returns/records", params={"sale_id": sale_id}).json()

    assert [(r["sale_id"], r["refound_method"], r["status"]) for r in body["data"]] == [
        (sale_id, "Credit", "Processed"),
    ]
    assert api.get("/sales/sales_returns/records", params={"sale_id": sale_id + 1}).json()["data"] == []


def test_return_record_by_id_includes_the_sale(api, seeded):
    oil, _, _ = seeded.product_ids
    sale = _checkout(api, [{"product_id": oil, "quantity": 1, "unitPrice": 10, "totalPrice": 10}])
    sale_id = sale["sales_created"][0]
    api.post("/sales/sales_returns", json={"sale_id": sale_id, "reason": "Wrong part"})
    record_id = api.get("/sales/sales_returns/records").json()["data"][0]["return_id"]

    data = api.get(f"/sales/sales_returns/records/{record_id}").json()["data"]

    assert data["reason"] == "Wrong part"
    assert data["sale"]["sale_id"] == sale_id
    assert data["sale"]["status"] is False

    missing = api.get(f"/sales/sales_returns/records/{record_id + 1}")
    assert missing.status_code == 404
    assert missing.json()["error"] == "Sale return not found"
