from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import update

from app.core.scheduler import scan_low_stock
from app.models.sales.sales_order_models import SalesOrder
from app.services.sales.sales_order_service import flag_overdue_payments


@pytest.fixture
async def so_setup(make_warehouse, make_product, make_inventory, make_customer):
    warehouse = await make_warehouse()
    product = await make_product()
    inventory = await make_inventory(product["id"], warehouse["id"], quantity=10)
    customer = await make_customer()
    return {"warehouse": warehouse, "product": product, "inventory": inventory, "customer": customer}


@pytest.fixture
def create_so(client, headers, so_setup):
    async def _create(quantity=4, **overrides) -> dict:
        payload = {
            "customer_id": so_setup["customer"]["id"],
            "customer_name": so_setup["customer"]["company_name"],
            "warehouse_id": so_setup["warehouse"]["id"],
            "tax_rate": "0.05",
            "items": [{"product_id": so_setup["product"]["id"], "quantity_ordered": quantity, "unit_price": "25.00"}],
            **overrides,
        }
        resp = await client.post("/sales-orders/", json=payload, headers=headers("sales"))
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _create


async def stock(client, headers, so_setup) -> dict:
    resp = await client.get(f"/inventory/{so_setup['inventory']['id']}", headers=headers("inventory"))
    return resp.json()["data"]


async def confirm(client, headers, so_id) -> dict:
    resp = await client.post(f"/sales-orders/{so_id}/confirm", headers=headers("sales"))
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


async def fulfill(client, headers, so, quantity=None):
    item = so["items"][0]
    return await client.post(
        f"/sales-orders/{so['id']}/fulfill",
        json={"items": [{"item_id": item["id"], "quantity": quantity or item["quantity_ordered"]}]},
        headers=headers("inventory"),
    )


async def deliver_order(client, headers, create_so, **overrides) -> dict:
    so = await create_so(**overrides)
    so = await confirm(client, headers, so["id"])
    await fulfill(client, headers, so)
    await client.post(f"/sales-orders/{so['id']}/ship", json={}, headers=headers("inventory"))
    resp = await client.post(f"/sales-orders/{so['id']}/deliver", headers=headers("inventory"))
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


# -------------------------------------------------------------------
# create / approve
# -------------------------------------------------------------------
async def test_create_sales_order(create_so):
    so = await create_so()

    assert so["status"] == "draft"
    assert so["payment_status"] == "pending"
    assert so["so_number"].startswith("SO-")
    assert Decimal(so["subtotal"]) == Decimal("100.00")
    assert Decimal(so["tax_amount"]) == Decimal("5.00")
    assert Decimal(so["total_amount"]) == Decimal("105.00")


async def test_unknown_customer_is_not_found(client, headers, so_setup):
    resp = await client.post(
        "/sales-orders/",
        json={
            "customer_id": 999,
            "customer_name": "Ghost",
            "warehouse_id": so_setup["warehouse"]["id"],
            "items": [{"product_id": so_setup["product"]["id"], "quantity_ordered": 1, "unit_price": "1.00"}],
        },
        headers=headers("sales"),
    )
    assert resp.status_code == 404


async def test_submit_and_approve(client, headers, create_so):
    so = await create_so()

    submitted = await client.post(f"/sales-orders/{so['id']}/submit", headers=headers("sales"))
    assert submitted.json()["data"]["status"] == "pending_approval"

    pending = await client.get("/sales-orders/pending-approvals", headers=headers("manager"))
    assert [p["id"] for p in pending.json()["data"]] == [so["id"]]

    denied = await client.post(f"/sales-orders/{so['id']}/approve", headers=headers("sales"))
    assert denied.status_code == 403

    approved = await client.post(f"/sales-orders/{so['id']}/approve", headers=headers("manager"))
    assert approved.status_code == 200
    assert approved.json()["data"]["status"] == "approved"
    assert approved.json()["data"]["approved_by_name"] == "manager@example.com"


# -------------------------------------------------------------------
# confirm / fulfil
# -------------------------------------------------------------------
async def test_confirm_reserves_stock(client, headers, create_so, so_setup):
    so = await create_so(quantity=4)
    confirmed = await confirm(client, headers, so["id"])

    assert confirmed["status"] == "confirmed"
    assert confirmed["confirmed_at"] is not None
    assert confirmed["items"][0]["quantity_allocated"] == 4
    assert confirmed["items"][0]["status"] == "allocated"

    inv = await stock(client, headers, so_setup)
    assert inv["quantity_reserved"] == 4
    assert inv["quantity_on_hand"] == 10


async def test_confirm_shortfall_reserves_nothing(client, headers, create_so, so_setup, make_product):
    extra = await make_product()
    so = await create_so(
        items=[
            {"product_id": so_setup["product"]["id"], "quantity_ordered": 3, "unit_price": "25.00"},
            {"product_id": extra["id"], "quantity_ordered": 1, "unit_price": "5.00"},
        ]
    )

    resp = await client.post(f"/sales-orders/{so['id']}/confirm", headers=headers("sales"))
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "INSUFFICIENT_STOCK"

    inv = await stock(client, headers, so_setup)
    assert inv["quantity_reserved"] == 0

    unchanged = await client.get(f"/sales-orders/{so['id']}", headers=headers("sales"))
    assert unchanged.json()["data"]["status"] == "draft"


async def test_fulfil_consumes_reservation(client, headers, create_so, so_setup):
    so = await confirm(client, headers, (await create_so(quantity=4))["id"])

    partial = await fulfill(client, headers, so, quantity=3)
    assert partial.status_code == 200
    data = partial.json()["data"]
    assert data["status"] == "partially_fulfilled"
    assert data["items"][0]["quantity_allocated"] == 1
    assert data["fulfillment_progress"] == 75.0

    inv = await stock(client, headers, so_setup)
    assert inv["quantity_on_hand"] == 7
    assert inv["quantity_reserved"] == 1

    over = await fulfill(client, headers, so, quantity=2)
    assert over.status_code == 400
    assert over.json()["error_code"] == "SALES_ORDER_INVALID_FULFILLMENT"

    rest = await fulfill(client, headers, so, quantity=1)
    data = rest.json()["data"]
    assert data["status"] == "fully_fulfilled"
    assert data["fulfilled_by_name"] == "inventory@example.com"

    ledger = await client.get(
        "/inventory-movements/",
        params={"reference_type": "SALES_ORDER", "movement_type": "stock_out"},
        headers=headers("inventory"),
    )
    assert sorted(m["quantity_change"] for m in ledger.json()["data"]["items"]) == [-3, -1]


async def test_cannot_fulfil_unconfirmed_order(client, headers, create_so):
    so = await create_so()
    resp = await fulfill(client, headers, so)
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "SALES_ORDER_INVALID_STATUS"


# -------------------------------------------------------------------
# ship / deliver / cancel
# -------------------------------------------------------------------
async def test_ship_and_deliver(client, headers, create_so):
    so = await confirm(client, headers, (await create_so())["id"])
    await fulfill(client, headers, so)

    awaiting = await client.get("/sales-orders/awaiting-shipment", headers=headers("inventory"))
    assert [o["id"] for o in awaiting.json()["data"]] == [so["id"]]

    shipped = await client.post(
        f"/sales-orders/{so['id']}/ship",
        json={"carrier": "UPS", "tracking_number": "1Z999"},
        headers=headers("inventory"),
    )
    data = shipped.json()["data"]
    assert data["status"] == "shipped"
    assert data["carrier"] == "UPS"
    assert data["items"][0]["quantity_shipped"] == 4

    delivered = await client.post(f"/sales-orders/{so['id']}/deliver", headers=headers("inventory"))
    data = delivered.json()["data"]
    assert data["status"] == "delivered"
    assert data["items"][0]["status"] == "delivered"

    too_late = await client.post(
        f"/sales-orders/{so['id']}/cancel",
        json={"reason": "Customer changed mind"},
        headers=headers("manager"),
    )
    assert too_late.status_code == 409


async def test_cancel_releases_reserved_stock(client, headers, create_so, so_setup):
    so = await confirm(client, headers, (await create_so(quantity=4))["id"])
    await fulfill(client, headers, so, quantity=1)

    resp = await client.post(
        f"/sales-orders/{so['id']}/cancel",
        json={"reason": "Customer changed mind"},
        headers=headers("manager"),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "cancelled"
    assert data["payment_status"] == "cancelled"
    assert data["items"][0]["quantity_allocated"] == 0

    inv = await stock(client, headers, so_setup)
    assert inv["quantity_reserved"] == 0
    assert inv["quantity_on_hand"] == 9


async def test_items_editable_only_while_draft(client, headers, create_so, so_setup):
    so = await create_so(quantity=2)

    changed = await client.patch(
        f"/sales-orders/{so['id']}/items/{so['items'][0]['id']}",
        json={"quantity_ordered": 3},
        headers=headers("sales"),
    )
    assert changed.status_code == 200
    assert Decimal(changed.json()["data"]["subtotal"]) == Decimal("75.00")

    await confirm(client, headers, so["id"])
    locked = await client.post(
        f"/sales-orders/{so['id']}/items",
        json={"product_id": so_setup["product"]["id"], "quantity_ordered": 1, "unit_price": "25.00"},
        headers=headers("sales"),
    )
    assert locked.status_code == 409


# -------------------------------------------------------------------
# payments and reports
# -------------------------------------------------------------------
async def test_payment_status_update(client, headers, create_so):
    so = await create_so()

    paid = await client.patch(
        f"/sales-orders/{so['id']}/payment-status",
        json={"payment_status": "paid"},
        headers=headers("sales"),
    )
    assert paid.status_code == 200
    assert paid.json()["data"]["payment_status"] == "paid"

    same = await client.patch(
        f"/sales-orders/{so['id']}/payment-status",
        json={"payment_status": "paid"},
        headers=headers("sales"),
    )
    assert same.status_code == 400

    listed = await client.get("/sales-orders/by-payment-status/paid", headers=headers("sales"))
    assert [o["id"] for o in listed.json()["data"]] == [so["id"]]


async def test_flag_overdue_payments(client, headers, create_so, db):
    default_terms = await deliver_order(client, headers, create_so, quantity=1)
    long_terms = await deliver_order(client, headers, create_so, quantity=1, payment_terms="net_60")

    forty_days_ago = datetime.now(timezone.utc) - timedelta(days=40)
    await db.execute(
        update(SalesOrder)
        .where(SalesOrder.id.in_([default_terms["id"], long_terms["id"]]))
        .values(delivered_at=forty_days_ago)
    )
    await db.commit()

    assert await flag_overdue_payments(db) == 1

    first = await client.get(f"/sales-orders/{default_terms['id']}", headers=headers("sales"))
    second = await client.get(f"/sales-orders/{long_terms['id']}", headers=headers("sales"))
    assert first.json()["data"]["payment_status"] == "overdue"
    assert second.json()["data"]["payment_status"] == "pending"

    assert await flag_overdue_payments(db) == 0


async def test_overdue_and_by_customer_reports(client, headers, create_so, so_setup):
    yesterday = (datetime.now(timezone.utc) - timedelta(days=2)).date().isoformat()
    late = await create_so(promised_delivery_date=yesterday)
    await create_so()

    overdue = await client.get("/sales-orders/overdue", headers=headers("sales"))
    assert [o["id"] for o in overdue.json()["data"]] == [late["id"]]
    assert overdue.json()["data"][0]["is_overdue"] is True

    by_customer = await client.get(
        f"/sales-orders/by-customer/{so_setup['customer']['id']}", headers=headers("sales")
    )
    assert len(by_customer.json()["data"]) == 2


async def test_customer_with_open_order_cannot_be_deleted(client, headers, create_so, so_setup):
    await create_so()

    resp = await client.delete(f"/customers/{so_setup['customer']['id']}", headers=headers("admin"))
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "CUSTOMER_HAS_ACTIVE_ORDERS"


async def test_statistics(client, headers, create_so):
    await create_so()
    cancelled = await create_so()
    await client.post(
        f"/sales-orders/{cancelled['id']}/cancel",
        json={"reason": "duplicate"},
        headers=headers("manager"),
    )

    resp = await client.get("/sales-orders/statistics", headers=headers("manager"))
    data = resp.json()["data"]
    assert data["total_orders"] == 2
    assert data["by_status"] == {"draft": 1, "cancelled": 1}
    assert data["by_payment_status"] == {"pending": 1, "cancelled": 1}
    assert Decimal(data["total_value"]) == Decimal("105.00")


async def test_scan_low_stock_counts_records(db, client, headers, create_so):
    # ten on hand with a minimum of five; reserving six leaves four available
    so = await create_so(quantity=6)
    assert await scan_low_stock(db) == 0

    await confirm(client, headers, so["id"])
    assert await scan_low_stock(db) == 1


async def test_unfulfilled_lists_confirmed_work(client, headers, create_so):
    await create_so(quantity=1)
    waiting = await confirm(client, headers, (await create_so(quantity=2))["id"])
    started = await confirm(client, headers, (await create_so(quantity=4))["id"])
    await fulfill(client, headers, started, quantity=3)

    resp = await client.get("/sales-orders/unfulfilled", headers=headers("inventory"))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert sorted(o["id"] for o in data) == sorted([waiting["id"], started["id"]])
    assert {o["status"] for o in data} == {"confirmed", "partially_fulfilled"}


async def test_customer_metrics(client, headers, create_so, so_setup):
    await create_so()
    cancelled = await create_so()
    await client.post(
        f"/sales-orders/{cancelled['id']}/cancel",
        json={"reason": "duplicate"},
        headers=headers("manager"),
    )

    resp = await client.get(f"/customers/{so_setup['customer']['id']}/metrics", headers=headers("sales"))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["total_orders"] == 2
    assert data["open_orders"] == 1
    assert Decimal(data["lifetime_value"]) == Decimal("105.00")
    assert Decimal(data["average_order_value"]) == Decimal("105.00")
    assert data["overdue_payments"] == 0
    assert data["credit_utilization"] == 0.0

    missing = await client.get("/customers/9999/metrics", headers=headers("sales"))
    assert missing.status_code == 404
