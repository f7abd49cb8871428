from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import update

from app.models.inventory.stock_transfer_models import StockTransfer


@pytest.fixture
async def stocked(make_warehouse, make_product, make_inventory):
    """One product with ten units on hand in a single warehouse."""
    warehouse = await make_warehouse()
    product = await make_product()
    inventory = await make_inventory(product["id"], warehouse["id"], quantity=10)
    return {"warehouse": warehouse, "product": product, "inventory": inventory}


async def on_hand(client, headers, product_id, warehouse_id) -> int:
    resp = await client.get(
        "/inventory/",
        params={"product_id": product_id, "warehouse_id": warehouse_id},
        headers=headers("inventory"),
    )
    items = resp.json()["data"]["items"]
    return items[0]["quantity_on_hand"] if items else 0


# -------------------------------------------------------------------
# inventory records
# -------------------------------------------------------------------
async def test_opening_balance_is_posted_to_ledger(client, headers, stocked):
    inv = stocked["inventory"]
    assert inv["quantity_on_hand"] == 10
    assert inv["quantity_available"] == 10

    resp = await client.get(
        "/inventory-movements/",
        params={"product_id": stocked["product"]["id"], "reference_type": "OPENING"},
        headers=headers("inventory"),
    )
    assert resp.status_code == 200
    items = resp.json()["data"]["items"]
    assert len(items) == 1
    assert items[0]["movement_type"] == "adjustment_in"
    assert items[0]["quantity_before"] == 0
    assert items[0]["quantity_after"] == 10


async def test_duplicate_inventory_record_conflicts(client, headers, stocked):
    resp = await client.post(
        "/inventory/",
        json={"product_id": stocked["product"]["id"], "warehouse_id": stocked["warehouse"]["id"]},
        headers=headers("inventory"),
    )
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "INVENTORY_EXISTS"


async def test_reserve_and_release(client, headers, stocked):
    inv_id = stocked["inventory"]["id"]

    reserved = await client.post(f"/inventory/{inv_id}/reserve", json={"quantity": 4}, headers=headers("sales"))
    assert reserved.status_code == 200
    assert reserved.json()["data"]["quantity_reserved"] == 4
    assert reserved.json()["data"]["quantity_available"] == 6

    too_much = await client.post(f"/inventory/{inv_id}/reserve", json={"quantity": 7}, headers=headers("sales"))
    assert too_much.status_code == 409
    assert too_much.json()["error_code"] == "INSUFFICIENT_STOCK"

    released = await client.post(f"/inventory/{inv_id}/release", json={"quantity": 10}, headers=headers("sales"))
    assert released.status_code == 200
    assert released.json()["data"]["quantity_reserved"] == 0


async def test_low_stock_filter(client, headers, make_warehouse, make_product, make_inventory):
    warehouse = await make_warehouse()
    scarce = await make_product(min_stock_level=5)
    plenty = await make_product(min_stock_level=5)
    await make_inventory(scarce["id"], warehouse["id"], quantity=5)
    await make_inventory(plenty["id"], warehouse["id"], quantity=50)

    resp = await client.get("/inventory/", params={"low_stock": True}, headers=headers("manager"))
    items = resp.json()["data"]["items"]
    assert [i["product_id"] for i in items] == [scarce["id"]]
    assert items[0]["is_low_stock"] is True


async def test_reserved_inventory_cannot_be_deleted(client, headers, stocked):
    inv_id = stocked["inventory"]["id"]
    await client.post(f"/inventory/{inv_id}/reserve", json={"quantity": 1}, headers=headers("inventory"))

    resp = await client.delete(f"/inventory/{inv_id}", headers=headers("manager"))
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "INVENTORY_HAS_RESERVATIONS"


# -------------------------------------------------------------------
# stock adjustments
# -------------------------------------------------------------------
async def test_increase_adjustment(client, headers, stocked):
    resp = await client.post(
        "/stock-adjustments/",
        json={
            "inventory_id": stocked["inventory"]["id"],
            "adjustment_type": "increase",
            "quantity": 5,
            "reason": "found",
        },
        headers=headers("inventory"),
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["reference_number"].startswith("ADJ-")
    assert data["quantity_before"] == 10
    assert data["quantity_after"] == 15


async def test_decrease_is_floored_to_available(client, headers, stocked):
    inv_id = stocked["inventory"]["id"]
    await client.post(f"/inventory/{inv_id}/reserve", json={"quantity": 4}, headers=headers("inventory"))

    resp = await client.post(
        "/stock-adjustments/",
        json={"inventory_id": inv_id, "adjustment_type": "decrease", "quantity": 8, "reason": "damage"},
        headers=headers("inventory"),
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["quantity_adjusted"] == 6
    assert data["quantity_after"] == 4

    inv = (await client.get(f"/inventory/{inv_id}", headers=headers("inventory"))).json()["data"]
    assert inv["quantity_on_hand"] == 4
    assert inv["quantity_reserved"] == 4

    nothing_left = await client.post(
        "/stock-adjustments/",
        json={"inventory_id": inv_id, "adjustment_type": "decrease", "quantity": 1, "reason": "damage"},
        headers=headers("inventory"),
    )
    assert nothing_left.status_code == 409


async def test_adjustments_require_stock_role(client, headers, stocked):
    resp = await client.post(
        "/stock-adjustments/",
        json={
            "inventory_id": stocked["inventory"]["id"],
            "adjustment_type": "increase",
            "quantity": 1,
            "reason": "correction",
        },
        headers=headers("sales"),
    )
    assert resp.status_code == 403


# -------------------------------------------------------------------
# stock transfers
# -------------------------------------------------------------------
async def test_transfer_lifecycle_moves_stock(client, headers, stocked, make_warehouse):
    source = stocked["warehouse"]
    destination = await make_warehouse()
    product_id = stocked["product"]["id"]
    payload = {
        "product_id": product_id,
        "quantity": 4,
        "from_warehouse_id": source["id"],
        "to_warehouse_id": destination["id"],
    }

    created = await client.post("/stock-transfers/", json=payload, headers=headers("inventory"))
    assert created.status_code == 201
    transfer = created.json()["data"]
    assert transfer["status"] == "pending"
    assert transfer["reference_number"].startswith("ST-")

    dup = await client.post("/stock-transfers/", json=payload, headers=headers("inventory"))
    assert dup.status_code == 409
    assert dup.json()["error_code"] == "STOCK_TRANSFER_DUPLICATE"

    not_approver = await client.post(f"/stock-transfers/{transfer['id']}/approve", headers=headers("inventory"))
    assert not_approver.status_code == 403

    approved = await client.post(f"/stock-transfers/{transfer['id']}/approve", headers=headers("manager"))
    assert approved.json()["data"]["status"] == "approved"

    shipped = await client.post(f"/stock-transfers/{transfer['id']}/ship", headers=headers("inventory"))
    assert shipped.json()["data"]["status"] == "in_transit"
    assert await on_hand(client, headers, product_id, source["id"]) == 6

    completed = await client.post(f"/stock-transfers/{transfer['id']}/complete", headers=headers("inventory"))
    assert completed.json()["data"]["status"] == "completed"
    assert await on_hand(client, headers, product_id, destination["id"]) == 4

    late_cancel = await client.post(
        f"/stock-transfers/{transfer['id']}/cancel",
        json={"reason": "changed our mind"},
        headers=headers("inventory"),
    )
    assert late_cancel.status_code == 409


async def test_transfer_validation(client, headers, stocked, make_warehouse):
    source = stocked["warehouse"]
    destination = await make_warehouse()

    same = await client.post(
        "/stock-transfers/",
        json={
            "product_id": stocked["product"]["id"],
            "quantity": 1,
            "from_warehouse_id": source["id"],
            "to_warehouse_id": source["id"],
        },
        headers=headers("inventory"),
    )
    assert same.status_code == 400

    short = await client.post(
        "/stock-transfers/",
        json={
            "product_id": stocked["product"]["id"],
            "quantity": 11,
            "from_warehouse_id": source["id"],
            "to_warehouse_id": destination["id"],
        },
        headers=headers("inventory"),
    )
    assert short.status_code == 409
    assert short.json()["error_code"] == "STOCK_TRANSFER_INSUFFICIENT_STOCK"


async def test_cancel_pending_transfer(client, headers, stocked, make_warehouse):
    destination = await make_warehouse()
    transfer = (
        await client.post(
            "/stock-transfers/",
            json={
                "product_id": stocked["product"]["id"],
                "quantity": 2,
                "from_warehouse_id": stocked["warehouse"]["id"],
                "to_warehouse_id": destination["id"],
            },
            headers=headers("inventory"),
        )
    ).json()["data"]

    resp = await client.post(
        f"/stock-transfers/{transfer['id']}/cancel",
        json={"reason": "Truck unavailable"},
        headers=headers("inventory"),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "cancelled"
    assert data["cancellation_reason"] == "Truck unavailable"


async def open_transfer(client, headers, stocked, destination, quantity) -> dict:
    resp = await client.post(
        "/stock-transfers/",
        json={
            "product_id": stocked["product"]["id"],
            "quantity": quantity,
            "from_warehouse_id": stocked["warehouse"]["id"],
            "to_warehouse_id": destination["id"],
        },
        headers=headers("inventory"),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def test_bulk_approve_reports_each_id(client, headers, stocked, make_warehouse):
    destination = await make_warehouse()
    first = await open_transfer(client, headers, stocked, destination, 1)
    cancelled = await open_transfer(client, headers, stocked, destination, 2)
    last = await open_transfer(client, headers, stocked, destination, 3)
    await client.post(
        f"/stock-transfers/{cancelled['id']}/cancel",
        json={"reason": "Not needed"},
        headers=headers("inventory"),
    )

    resp = await client.post(
        "/stock-transfers/bulk/approve",
        json={"transfer_ids": [first["id"], cancelled["id"], 9999, last["id"]]},
        headers=headers("manager"),
    )
    assert resp.status_code == 200
    result = resp.json()["data"]
    assert result["processed"] == 2
    assert result["failed"] == 2
    assert len(result["errors"]) == 2
    assert result["errors"][0].startswith(f"Transfer {cancelled['id']}:")
    assert result["errors"][1].startswith("Transfer 9999:")

    for transfer_id, status in ((first["id"], "approved"), (cancelled["id"], "cancelled"), (last["id"], "approved")):
        fetched = await client.get(f"/stock-transfers/{transfer_id}", headers=headers("inventory"))
        assert fetched.json()["data"]["status"] == status


async def test_bulk_cancel_keeps_completed_work(client, headers, stocked, make_warehouse):
    destination = await make_warehouse()
    pending = await open_transfer(client, headers, stocked, destination, 1)
    shipped = await open_transfer(client, headers, stocked, destination, 2)
    await client.post(f"/stock-transfers/{shipped['id']}/approve", headers=headers("manager"))
    await client.post(f"/stock-transfers/{shipped['id']}/ship", headers=headers("inventory"))

    denied = await client.post(
        "/stock-transfers/bulk/cancel",
        json={"transfer_ids": [pending["id"]], "reason": "Audit"},
        headers=headers("inventory"),
    )
    assert denied.status_code == 403

    resp = await client.post(
        "/stock-transfers/bulk/cancel",
        json={"transfer_ids": [pending["id"], shipped["id"]], "reason": "Audit"},
        headers=headers("manager"),
    )
    result = resp.json()["data"]
    assert result["processed"] == 1
    assert result["failed"] == 1

    first = (await client.get(f"/stock-transfers/{pending['id']}", headers=headers("inventory"))).json()["data"]
    assert first["status"] == "cancelled"
    assert first["cancellation_reason"] == "Audit"
    second = (await client.get(f"/stock-transfers/{shipped['id']}", headers=headers("inventory"))).json()["data"]
    assert second["status"] == "in_transit"


async def test_overdue_transfers_are_in_transit_past_cutoff(client, headers, stocked, make_warehouse, db):
    destination = await make_warehouse()
    late = await open_transfer(client, headers, stocked, destination, 1)
    recent = await open_transfer(client, headers, stocked, destination, 2)
    for transfer in (late, recent):
        await client.post(f"/stock-transfers/{transfer['id']}/approve", headers=headers("manager"))
        await client.post(f"/stock-transfers/{transfer['id']}/ship", headers=headers("inventory"))

    await db.execute(
        update(StockTransfer)
        .where(StockTransfer.id == late["id"])
        .values(shipped_at=datetime.now(timezone.utc) - timedelta(days=8))
    )
    await db.commit()

    resp = await client.get("/stock-transfers/overdue", headers=headers("inventory"))
    assert resp.status_code == 200
    assert [t["id"] for t in resp.json()["data"]] == [late["id"]]


async def test_transfer_analytics(client, headers, stocked, make_warehouse):
    destination = await make_warehouse()
    done = await open_transfer(client, headers, stocked, destination, 3)
    for step, role in (("approve", "manager"), ("ship", "inventory"), ("complete", "inventory")):
        await client.post(f"/stock-transfers/{done['id']}/{step}", headers=headers(role))
    await open_transfer(client, headers, stocked, destination, 1)
    dropped = await open_transfer(client, headers, stocked, destination, 2)
    await client.post(
        f"/stock-transfers/{dropped['id']}/cancel",
        json={"reason": "Duplicate request"},
        headers=headers("inventory"),
    )

    resp = await client.get("/stock-transfers/analytics", headers=headers("manager"))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["total"] == 3
    assert data["pending"] == 1
    assert data["completed"] == 1
    assert data["cancelled"] == 1
    assert data["in_transit"] == 0
    assert data["this_month"] == 3
    assert data["total_quantity_transferred"] == 3


async def test_adjustment_analytics(client, headers, stocked):
    inv_id = stocked["inventory"]["id"]
    for adjustment_type, quantity, reason in (
        ("increase", 5, "found"),
        ("decrease", 2, "damage"),
        ("decrease", 1, "damage"),
    ):
        resp = await client.post(
            "/stock-adjustments/",
            json={"inventory_id": inv_id, "adjustment_type": adjustment_type, "quantity": quantity, "reason": reason},
            headers=headers("inventory"),
        )
        assert resp.status_code == 201

    resp = await client.get("/stock-adjustments/analytics", headers=headers("manager"))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["total_adjustments"] == 3
    assert data["total_increases"] == 1
    assert data["total_decreases"] == 2
    assert data["quantity_increased"] == 5
    assert data["quantity_decreased"] == 3
    assert data["net_quantity"] == 2
    assert data["by_reason"] == {"found": 1, "damage": 2}


async def test_adjustments_by_inventory(client, headers, stocked, make_product, make_inventory):
    inv_id = stocked["inventory"]["id"]
    other = await make_product()
    other_inv = await make_inventory(other["id"], stocked["warehouse"]["id"], quantity=4)

    refs = []
    for inventory_id, reason in ((inv_id, "found"), (other_inv["id"], "found"), (inv_id, "correction")):
        resp = await client.post(
            "/stock-adjustments/",
            json={"inventory_id": inventory_id, "adjustment_type": "increase", "quantity": 1, "reason": reason},
            headers=headers("inventory"),
        )
        assert resp.status_code == 201
        refs.append(resp.json()["data"]["reference_number"])

    resp = await client.get(f"/stock-adjustments/by-inventory/{inv_id}", headers=headers("inventory"))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [a["reference_number"] for a in data] == [refs[2], refs[0]]
    assert data[0]["product_id"] == stocked["product"]["id"]

    missing = await client.get("/stock-adjustments/by-inventory/9999", headers=headers("inventory"))
    assert missing.status_code == 404


async def test_transfer_availability(client, headers, stocked, make_warehouse):
    product_id = stocked["product"]["id"]
    source = stocked["warehouse"]
    await client.post(f"/inventory/{stocked['inventory']['id']}/reserve", json={"quantity": 3}, headers=headers("inventory"))

    resp = await client.get(
        "/stock-transfers/availability",
        params={"product_id": product_id, "warehouse_id": source["id"], "quantity": 5},
        headers=headers("inventory"),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["has_inventory"] is True
    assert data["quantity_reserved"] == 3
    assert data["available_quantity"] == 7
    assert data["is_sufficient"] is True

    short = await client.get(
        "/stock-transfers/availability",
        params={"product_id": product_id, "warehouse_id": source["id"], "quantity": 8},
        headers=headers("inventory"),
    )
    assert short.json()["data"]["is_sufficient"] is False
    assert short.json()["data"]["message"] == "Insufficient stock. Available: 7, Requested: 8"

    empty = await make_warehouse()
    none = await client.get(
        "/stock-transfers/availability",
        params={"product_id": product_id, "warehouse_id": empty["id"]},
        headers=headers("inventory"),
    )
    assert none.json()["data"]["has_inventory"] is False
    assert none.json()["data"]["is_sufficient"] is False


# -------------------------------------------------------------------
# stock movements
# -------------------------------------------------------------------
async def test_small_movement_is_applied_immediately(client, headers, stocked):
    resp = await client.post(
        "/stock-movements/",
        json={
            "inventory_id": stocked["inventory"]["id"],
            "movement_type": "adjustment_increase",
            "quantity_moved": 2,
            "unit_cost": "10.00",
        },
        headers=headers("inventory"),
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["status"] == "applied"
    assert Decimal(data["total_value"]) == Decimal("20.00")

    inv = (await client.get(f"/inventory/{stocked['inventory']['id']}", headers=headers("inventory"))).json()["data"]
    assert inv["quantity_on_hand"] == 12


async def test_large_movement_waits_for_approval(client, headers, stocked):
    inv_id = stocked["inventory"]["id"]
    resp = await client.post(
        "/stock-movements/",
        json={"inventory_id": inv_id, "movement_type": "adjustment_increase", "quantity_moved": 20, "unit_cost": "10.00"},
        headers=headers("inventory"),
    )
    movement = resp.json()["data"]
    assert movement["status"] == "pending"

    denied = await client.post(f"/stock-movements/{movement['id']}/approve", headers=headers("inventory"))
    assert denied.status_code == 403

    approved = await client.post(f"/stock-movements/{movement['id']}/approve", headers=headers("manager"))
    assert approved.status_code == 200
    assert approved.json()["data"]["status"] == "applied"

    inv = (await client.get(f"/inventory/{inv_id}", headers=headers("inventory"))).json()["data"]
    assert inv["quantity_on_hand"] == 30

    again = await client.post(f"/stock-movements/{movement['id']}/approve", headers=headers("manager"))
    assert again.status_code == 409


async def test_rejected_movement_leaves_stock_alone(client, headers, stocked):
    inv_id = stocked["inventory"]["id"]
    movement = (
        await client.post(
            "/stock-movements/",
            json={"inventory_id": inv_id, "movement_type": "damage", "quantity_moved": -3},
            headers=headers("inventory"),
        )
    ).json()["data"]
    assert movement["status"] == "pending"

    rejected = await client.post(
        f"/stock-movements/{movement['id']}/reject",
        json={"reason": "Items were fine"},
        headers=headers("admin"),
    )
    assert rejected.status_code == 200
    assert rejected.json()["data"]["status"] == "rejected"
    assert "Rejected: Items were fine" in rejected.json()["data"]["notes"]

    inv = (await client.get(f"/inventory/{inv_id}", headers=headers("inventory"))).json()["data"]
    assert inv["quantity_on_hand"] == 10


async def test_movement_cannot_drive_stock_negative(client, headers, stocked):
    resp = await client.post(
        "/stock-movements/",
        json={"inventory_id": stocked["inventory"]["id"], "movement_type": "correction", "quantity_moved": -11},
        headers=headers("inventory"),
    )
    assert resp.status_code == 409


async def test_movement_search(client, headers, stocked):
    for qty in (1, 2):
        await client.post(
            "/stock-movements/",
            json={"inventory_id": stocked["inventory"]["id"], "movement_type": "adjustment_increase", "quantity_moved": qty},
            headers=headers("inventory"),
        )

    resp = await client.post("/stock-movements/search", json={"status": "applied"}, headers=headers("manager"))
    assert resp.status_code == 200
    assert resp.json()["data"]["total"] == 2
