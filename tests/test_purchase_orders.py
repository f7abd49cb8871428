from decimal import Decimal

import pytest
from sqlalchemy import update

from app.models.purchasing.purchase_order_models import PurchaseOrder


@pytest.fixture
async def po_setup(make_warehouse, make_product, make_supplier):
    warehouse = await make_warehouse()
    product = await make_product()
    supplier = await make_supplier()
    return {"warehouse": warehouse, "product": product, "supplier": supplier}


@pytest.fixture
def create_po(client, headers, po_setup):
    async def _create(role="purchasing", quantity=10, **overrides) -> dict:
        payload = {
            "supplier_id": po_setup["supplier"]["id"],
            "supplier_name": po_setup["supplier"]["company_name"],
            "warehouse_id": po_setup["warehouse"]["id"],
            "tax_rate": "0.1",
            "shipping_cost": "5.00",
            "items": [
                {"product_id": po_setup["product"]["id"], "quantity_ordered": quantity, "unit_cost": "12.50"}
            ],
            **overrides,
        }
        resp = await client.post("/purchase-orders/", json=payload, headers=headers(role))
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _create


async def advance(client, headers, po_id, *steps):
    """Run lifecycle actions in order with the role allowed to perform each."""
    roles = {"submit": "purchasing", "approve": "manager", "send": "purchasing"}
    resp = None
    for step in steps:
        resp = await client.post(f"/purchase-orders/{po_id}/{step}", headers=headers(roles[step]))
        assert resp.status_code == 200, resp.text
    return resp.json()["data"]


async def test_create_computes_totals(create_po):
    po = await create_po()

    assert po["status"] == "draft"
    assert po["po_number"].startswith("PO-")
    assert po["po_number"].endswith("-001")
    assert Decimal(po["subtotal"]) == Decimal("125.00")
    assert Decimal(po["tax_amount"]) == Decimal("12.50")
    assert Decimal(po["total_amount"]) == Decimal("142.50")
    assert po["items"][0]["quantity_pending"] == 10


async def test_numbers_increase_within_month(create_po):
    first = await create_po()
    second = await create_po()
    assert int(second["po_number"].rsplit("-", 1)[1]) == int(first["po_number"].rsplit("-", 1)[1]) + 1


async def test_create_requires_items(client, headers, po_setup):
    resp = await client.post(
        "/purchase-orders/",
        json={
            "supplier_name": "Anyone",
            "warehouse_id": po_setup["warehouse"]["id"],
            "items": [],
        },
        headers=headers("purchasing"),
    )
    assert resp.status_code == 422


async def test_full_lifecycle_posts_stock(client, headers, create_po, po_setup):
    po = await create_po()
    po = await advance(client, headers, po["id"], "submit", "approve", "send")
    assert po["status"] == "sent_to_supplier"
    assert po["approved_by_name"] == "manager@example.com"
    item_id = po["items"][0]["id"]

    partial = await client.post(
        f"/purchase-orders/{po['id']}/receive",
        json={"items": [{"item_id": item_id, "quantity_received": 4}]},
        headers=headers("inventory"),
    )
    assert partial.status_code == 200
    assert partial.json()["data"]["status"] == "partially_received"
    assert partial.json()["data"]["receiving_progress"] == 40.0

    rest = await client.post(
        f"/purchase-orders/{po['id']}/receive",
        json={"items": [{"item_id": item_id, "quantity_received": 6}]},
        headers=headers("inventory"),
    )
    data = rest.json()["data"]
    assert data["status"] == "fully_received"
    assert data["received_by_name"] == "inventory@example.com"

    ledger = await client.get(
        "/inventory-movements/",
        params={"reference_type": "PURCHASE_ORDER", "movement_type": "stock_in"},
        headers=headers("inventory"),
    )
    assert [m["quantity_change"] for m in ledger.json()["data"]["items"]] == [6, 4]

    stock = await client.get(
        "/inventory/",
        params={"product_id": po_setup["product"]["id"], "warehouse_id": po_setup["warehouse"]["id"]},
        headers=headers("inventory"),
    )
    assert stock.json()["data"]["items"][0]["quantity_on_hand"] == 10

    closed = await client.post(f"/purchase-orders/{po['id']}/close", headers=headers("manager"))
    assert closed.json()["data"]["status"] == "closed"


async def test_over_receipt_rejected_and_nothing_posted(client, headers, create_po):
    po = await create_po(quantity=5)
    po = await advance(client, headers, po["id"], "submit", "approve", "send")

    resp = await client.post(
        f"/purchase-orders/{po['id']}/receive",
        json={"items": [{"item_id": po["items"][0]["id"], "quantity_received": 6}]},
        headers=headers("inventory"),
    )
    assert resp.status_code == 400
    assert resp.json()["error_code"] == "PURCHASE_ORDER_INVALID_RECEIPT"

    ledger = await client.get("/inventory-movements/", headers=headers("inventory"))
    assert ledger.json()["data"]["total"] == 0


async def test_cannot_receive_before_sending(client, headers, create_po):
    po = await create_po()
    po = await advance(client, headers, po["id"], "submit", "approve")

    resp = await client.post(
        f"/purchase-orders/{po['id']}/receive",
        json={"items": [{"item_id": po["items"][0]["id"], "quantity_received": 1}]},
        headers=headers("inventory"),
    )
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "PURCHASE_ORDER_INVALID_STATUS"


async def test_approval_restricted_to_managers(client, headers, create_po):
    po = await create_po()
    await advance(client, headers, po["id"], "submit")

    resp = await client.post(f"/purchase-orders/{po['id']}/approve", headers=headers("purchasing"))
    assert resp.status_code == 403

    pending = await client.get("/purchase-orders/pending-approvals", headers=headers("manager"))
    assert [p["id"] for p in pending.json()["data"]] == [po["id"]]


async def test_only_creator_edits_draft(client, headers, create_po, users):
    po = await create_po(role="purchasing")

    other = await client.patch(
        f"/purchase-orders/{po['id']}",
        json={"notes": "Rush please"},
        headers=headers("manager"),
    )
    assert other.status_code == 403

    own = await client.patch(
        f"/purchase-orders/{po['id']}",
        json={"shipping_cost": "15.00"},
        headers=headers("purchasing"),
    )
    assert own.status_code == 200
    assert Decimal(own.json()["data"]["total_amount"]) == Decimal("152.50")


async def test_items_locked_once_sent(client, headers, create_po, po_setup):
    po = await create_po()
    await advance(client, headers, po["id"], "submit", "approve", "send")

    resp = await client.post(
        f"/purchase-orders/{po['id']}/items",
        json={"product_id": po_setup["product"]["id"], "quantity_ordered": 1, "unit_cost": "1.00"},
        headers=headers("admin"),
    )
    assert resp.status_code == 409


async def test_item_changes_recalculate_totals(client, headers, create_po, make_product):
    po = await create_po()
    extra = await make_product()

    added = await client.post(
        f"/purchase-orders/{po['id']}/items",
        json={"product_id": extra["id"], "quantity_ordered": 2, "unit_cost": "10.00", "discount_percentage": "50"},
        headers=headers("purchasing"),
    )
    assert added.status_code == 201
    data = added.json()["data"]
    assert len(data["items"]) == 2
    assert Decimal(data["subtotal"]) == Decimal("135.00")

    first_item = data["items"][0]["id"]
    removed = await client.delete(f"/purchase-orders/{po['id']}/items/{first_item}", headers=headers("purchasing"))
    assert removed.status_code == 200
    assert Decimal(removed.json()["data"]["subtotal"]) == Decimal("10.00")


async def test_cancel_and_delete_rules(client, headers, create_po):
    po = await create_po()
    await advance(client, headers, po["id"], "submit")

    not_draft = await client.delete(f"/purchase-orders/{po['id']}", headers=headers("purchasing"))
    assert not_draft.status_code == 409

    cancelled = await client.post(
        f"/purchase-orders/{po['id']}/cancel",
        json={"reason": "Supplier out of business"},
        headers=headers("manager"),
    )
    assert cancelled.status_code == 200
    data = cancelled.json()["data"]
    assert data["status"] == "cancelled"
    assert data["cancellation_reason"] == "Supplier out of business"
    assert data["items"][0]["status"] == "cancelled"

    again = await client.post(
        f"/purchase-orders/{po['id']}/cancel",
        json={"reason": "twice"},
        headers=headers("manager"),
    )
    assert again.status_code == 409

    draft = await create_po()
    deleted = await client.delete(f"/purchase-orders/{draft['id']}", headers=headers("purchasing"))
    assert deleted.status_code == 200


async def test_statistics(client, headers, create_po):
    await create_po()
    cancelled = await create_po()
    await client.post(
        f"/purchase-orders/{cancelled['id']}/cancel",
        json={"reason": "duplicate"},
        headers=headers("manager"),
    )

    resp = await client.get("/purchase-orders/statistics", headers=headers("manager"))
    data = resp.json()["data"]
    assert data["total_orders"] == 2
    assert data["by_status"] == {"draft": 1, "cancelled": 1}
    assert Decimal(data["total_value"]) == Decimal("142.50")


async def test_receipt_records_rejected_units(client, headers, create_po, po_setup):
    po = await create_po()
    po = await advance(client, headers, po["id"], "submit", "approve", "send")
    item_id = po["items"][0]["id"]

    resp = await client.post(
        f"/purchase-orders/{po['id']}/receive",
        json={
            "items": [
                {
                    "item_id": item_id,
                    "quantity_received": 8,
                    "quantity_rejected": 2,
                    "rejection_reason": "Crushed boxes",
                    "notes": "Pallet 1 of 2",
                }
            ]
        },
        headers=headers("inventory"),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "partially_received"
    item = data["items"][0]
    assert item["quantity_received"] == 8
    assert item["quantity_rejected"] == 2
    assert item["rejection_reason"] == "Crushed boxes"
    assert item["quantity_pending"] == 2
    assert "Pallet 1 of 2" in item["notes"]

    stock = await client.get(
        "/inventory/",
        params={"product_id": po_setup["product"]["id"], "warehouse_id": po_setup["warehouse"]["id"]},
        headers=headers("inventory"),
    )
    assert stock.json()["data"]["items"][0]["quantity_on_hand"] == 8


async def test_supplier_metrics(client, headers, create_po, po_setup):
    kept = await create_po()
    dropped = await create_po()
    await advance(client, headers, dropped["id"], "submit")
    await client.post(
        f"/purchase-orders/{dropped['id']}/cancel",
        json={"reason": "Ordered twice"},
        headers=headers("manager"),
    )

    resp = await client.get(f"/suppliers/{po_setup['supplier']['id']}/metrics", headers=headers("purchasing"))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["total_orders"] == 2
    assert data["open_orders"] == 1
    assert Decimal(data["total_order_value"]) == Decimal(kept["total_amount"])
    assert Decimal(data["average_order_value"]) == Decimal("142.50")
    assert data["on_time_delivery_percentage"] == 0.0
    assert data["contact_logs_count"] == 0
    assert data["last_order_date"] is not None

    denied = await client.get(f"/suppliers/{po_setup['supplier']['id']}/metrics", headers=headers("sales"))
    assert denied.status_code == 403


async def test_po_numbers_keep_counting_past_999(create_po, db):
    first = await create_po()
    month_prefix = first["po_number"].rsplit("-", 1)[0]
    await db.execute(
        update(PurchaseOrder).where(PurchaseOrder.id == first["id"]).values(po_number=f"{month_prefix}-999")
    )
    await db.commit()

    assert (await create_po())["po_number"] == f"{month_prefix}-1000"
    assert (await create_po())["po_number"] == f"{month_prefix}-1001"
