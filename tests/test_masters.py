from decimal import Decimal


# -------------------------------------------------------------------
# warehouses
# -------------------------------------------------------------------
async def test_warehouse_code_is_normalised_and_unique(client, headers, make_warehouse):
    wh = await make_warehouse(code=" east-1 ")
    assert wh["code"] == "EAST-1"
    assert wh["version"] == 1

    dup = await client.post(
        "/warehouses/",
        json={
            "name": "Other",
            "code": "East-1",
            "address": "2 Dock Road",
            "city": "Springfield",
            "state": "IL",
            "postal_code": "62701",
            "country": "US",
        },
        headers=headers("manager"),
    )
    assert dup.status_code == 409
    assert dup.json()["error_code"] == "WAREHOUSE_CODE_EXISTS"


async def test_warehouse_create_records_activity_with_code(client, headers, make_warehouse):
    wh = await make_warehouse(code="north-7")

    resp = await client.get("/activities/", params={"action_code": "create_warehouse"}, headers=headers("admin"))
    assert resp.status_code == 200
    items = resp.json()["data"]["items"]
    assert len(items) == 1
    assert f"({wh['code']})" in items[0]["message"]
    assert "NORTH-7" in items[0]["message"]


async def test_warehouse_create_requires_manager_or_admin(client, headers):
    resp = await client.post("/warehouses/", json={"name": "x"}, headers=headers("sales"))
    assert resp.status_code == 403


async def test_warehouse_update_checks_version(client, headers, make_warehouse):
    wh = await make_warehouse()

    ok = await client.patch(
        f"/warehouses/{wh['id']}",
        json={"city": "Shelbyville", "version": 1},
        headers=headers("manager"),
    )
    assert ok.status_code == 200
    assert ok.json()["data"]["city"] == "Shelbyville"
    assert ok.json()["data"]["version"] == 2

    stale = await client.patch(
        f"/warehouses/{wh['id']}",
        json={"city": "Capital City", "version": 1},
        headers=headers("manager"),
    )
    assert stale.status_code == 409
    assert stale.json()["error_code"] == "VERSION_CONFLICT"

    same = await client.patch(
        f"/warehouses/{wh['id']}",
        json={"city": "Shelbyville", "version": 2},
        headers=headers("manager"),
    )
    assert same.status_code == 400


async def test_warehouse_deactivate_and_activate(client, headers, make_warehouse):
    wh = await make_warehouse()

    off = await client.patch(f"/warehouses/{wh['id']}/deactivate", json={"version": 1}, headers=headers("admin"))
    assert off.status_code == 200
    assert off.json()["data"]["is_active"] is False

    on = await client.patch(f"/warehouses/{wh['id']}/activate", headers=headers("admin"))
    assert on.status_code == 200
    assert on.json()["data"]["is_active"] is True

    listed = await client.get("/warehouses/", params={"is_active": True}, headers=headers("sales"))
    assert listed.json()["data"]["total"] == 1


async def test_warehouse_with_stock_cannot_be_deleted(client, headers, make_warehouse, make_product, make_inventory):
    wh = await make_warehouse()
    product = await make_product()
    await make_inventory(product["id"], wh["id"], quantity=3)

    resp = await client.delete(f"/warehouses/{wh['id']}", headers=headers("admin"))
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "WAREHOUSE_HAS_STOCK"

    summary = await client.get(f"/warehouses/{wh['id']}/summary", headers=headers("inventory"))
    assert summary.status_code == 200
    assert summary.json()["data"]["total_on_hand"] == 3


async def test_warehouse_analytics(client, headers, make_warehouse, make_product, make_inventory):
    wh = await make_warehouse()
    capped = await make_product(max_stock_level=20)
    empty = await make_product()
    await make_inventory(capped["id"], wh["id"], quantity=10)
    await make_inventory(empty["id"], wh["id"], quantity=0)

    resp = await client.get(f"/warehouses/{wh['id']}/analytics", headers=headers("inventory"))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["warehouse_code"] == wh["code"]
    assert data["total_on_hand"] == 10
    assert data["out_of_stock_count"] == 1
    assert Decimal(data["stock_value"]) == Decimal("100.00")
    assert data["capacity_utilization"] == 50.0
    assert data["inbound_last_30_days"] == 10
    assert data["outbound_last_30_days"] == 0

    denied = await client.get(f"/warehouses/{wh['id']}/analytics", headers=headers("sales"))
    assert denied.status_code == 403


async def test_empty_warehouse_is_soft_deleted(client, headers, make_warehouse):
    wh = await make_warehouse()

    resp = await client.delete(f"/warehouses/{wh['id']}", headers=headers("admin"))
    assert resp.status_code == 200

    gone = await client.get(f"/warehouses/{wh['id']}", headers=headers("admin"))
    assert gone.status_code == 404


# -------------------------------------------------------------------
# products
# -------------------------------------------------------------------
async def test_product_sku_must_be_unique(client, headers, make_product):
    await make_product(sku="BOLT-10")

    dup = await client.post(
        "/products/",
        json={"sku": "BOLT-10", "name": "Another bolt", "price": "1.00"},
        headers=headers("inventory"),
    )
    assert dup.status_code == 409
    assert dup.json()["error_code"] == "PRODUCT_SKU_EXISTS"


async def test_product_stock_levels_validated(client, headers):
    resp = await client.post(
        "/products/",
        json={"sku": "X-1", "name": "X", "price": "1.00", "min_stock_level": 10, "max_stock_level": 5},
        headers=headers("admin"),
    )
    assert resp.status_code == 422


async def test_product_create_forbidden_for_sales(client, headers):
    resp = await client.post(
        "/products/",
        json={"sku": "X-2", "name": "X", "price": "1.00"},
        headers=headers("sales"),
    )
    assert resp.status_code == 403


async def test_product_total_stock_spans_warehouses(client, headers, make_warehouse, make_product, make_inventory):
    product = await make_product()
    first = await make_warehouse()
    second = await make_warehouse()
    await make_inventory(product["id"], first["id"], quantity=4)
    await make_inventory(product["id"], second["id"], quantity=6)

    resp = await client.get(f"/products/{product['id']}", headers=headers("sales"))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["total_stock"] == 10
    assert Decimal(data["price"]) == Decimal("25.00")

    blocked = await client.delete(f"/products/{product['id']}", headers=headers("admin"))
    assert blocked.status_code == 409
    assert blocked.json()["error_code"] == "PRODUCT_HAS_STOCK"


async def test_products_needing_reorder(client, headers, make_warehouse, make_product, make_inventory):
    wh = await make_warehouse()
    low = await make_product(min_stock_level=5, max_stock_level=20)
    unstocked = await make_product(min_stock_level=2)
    healthy = await make_product(min_stock_level=5)
    untracked = await make_product(track_quantity=False)
    await make_inventory(low["id"], wh["id"], quantity=3)
    await make_inventory(healthy["id"], wh["id"], quantity=12)

    resp = await client.get("/products/needing-reorder", headers=headers("purchasing"))
    assert resp.status_code == 200
    items = resp.json()["data"]
    assert [i["id"] for i in items] == [unstocked["id"], low["id"]]
    assert untracked["id"] not in [i["id"] for i in items]

    by_id = {i["id"]: i for i in items}
    assert by_id[low["id"]]["total_available"] == 3
    assert by_id[low["id"]]["suggested_quantity"] == 17
    assert by_id[unstocked["id"]]["suggested_quantity"] == 2

    denied = await client.get("/products/needing-reorder", headers=headers("sales"))
    assert denied.status_code == 403


async def test_product_availability(client, headers, make_warehouse, make_product, make_inventory):
    product = await make_product()
    first = await make_warehouse()
    second = await make_warehouse()
    await make_inventory(product["id"], first["id"], quantity=4)
    await make_inventory(product["id"], second["id"], quantity=6)

    enough = await client.get(
        f"/products/{product['id']}/availability", params={"quantity": 8}, headers=headers("sales")
    )
    assert enough.status_code == 200
    assert enough.json()["data"]["is_available"] is True
    assert enough.json()["data"]["available_quantity"] == 10

    short = await client.get(
        f"/products/{product['id']}/availability",
        params={"quantity": 8, "warehouse_id": first["id"]},
        headers=headers("sales"),
    )
    data = short.json()["data"]
    assert data["is_available"] is False
    assert data["shortage"] == 4
    assert data["message"] == "Insufficient stock. Available: 4, Requested: 8"

    missing = await client.get("/products/9999/availability", params={"quantity": 1}, headers=headers("sales"))
    assert missing.status_code == 404


async def test_category_and_brand_lookups(client, headers, make_product):
    await make_product(category="Fasteners", brand="Acme")
    await make_product(category="Adhesives", brand="Acme")
    await make_product(category="Fasteners")

    categories = await client.get("/products/categories", headers=headers("sales"))
    assert categories.json()["data"] == ["Adhesives", "Fasteners"]

    brands = await client.get("/products/brands", headers=headers("sales"))
    assert brands.json()["data"] == ["Acme"]


# -------------------------------------------------------------------
# suppliers
# -------------------------------------------------------------------
async def test_supplier_gets_code_and_pending_status(make_supplier):
    supplier = await make_supplier()
    assert supplier["supplier_code"].startswith("SUP-")
    assert supplier["status"] == "pending_approval"


async def test_supplier_email_is_case_insensitive(client, headers, make_supplier):
    await make_supplier(email="orders@acme.example.com")

    dup = await client.post(
        "/suppliers/",
        json={
            "company_name": "Acme Again",
            "email": "ORDERS@acme.example.com",
            "address_line_1": "1 Road",
            "city": "York",
            "country": "UK",
        },
        headers=headers("purchasing"),
    )
    assert dup.status_code == 409
    assert dup.json()["error_code"] == "SUPPLIER_EMAIL_EXISTS"


async def test_supplier_status_change(client, headers, make_supplier):
    supplier = await make_supplier()

    resp = await client.patch(
        f"/suppliers/{supplier['id']}/status",
        json={"status": "active", "version": 1},
        headers=headers("manager"),
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "active"

    again = await client.patch(
        f"/suppliers/{supplier['id']}/status",
        json={"status": "active", "version": 2},
        headers=headers("manager"),
    )
    assert again.status_code == 400

    denied = await client.patch(
        f"/suppliers/{supplier['id']}/status",
        json={"status": "blacklisted", "version": 2},
        headers=headers("purchasing"),
    )
    assert denied.status_code == 403


async def test_supplier_with_open_po_cannot_be_deleted(
    client, headers, make_supplier, make_warehouse, make_product
):
    supplier = await make_supplier()
    wh = await make_warehouse()
    product = await make_product()

    po = await client.post(
        "/purchase-orders/",
        json={
            "supplier_id": supplier["id"],
            "supplier_name": supplier["company_name"],
            "warehouse_id": wh["id"],
            "items": [{"product_id": product["id"], "quantity_ordered": 5, "unit_cost": "4.00"}],
        },
        headers=headers("purchasing"),
    )
    assert po.status_code == 201

    resp = await client.delete(f"/suppliers/{supplier['id']}", headers=headers("admin"))
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "SUPPLIER_HAS_ACTIVE_ORDERS"


# -------------------------------------------------------------------
# customers
# -------------------------------------------------------------------
async def test_customer_requires_a_name(client, headers):
    resp = await client.post(
        "/customers/",
        json={
            "customer_type": "individual",
            "billing_address_line_1": "1 Lane",
            "billing_city": "Austin",
            "billing_country": "US",
        },
        headers=headers("sales"),
    )
    assert resp.status_code == 422


async def test_customer_terms_exclude_net_90(client, headers):
    resp = await client.post(
        "/customers/",
        json={
            "company_name": "Slow Payers",
            "payment_terms": "net_90",
            "billing_address_line_1": "1 Lane",
            "billing_city": "Austin",
            "billing_country": "US",
        },
        headers=headers("sales"),
    )
    assert resp.status_code == 422


async def test_customer_defaults(make_customer):
    customer = await make_customer(credit_limit="1000.00")
    assert customer["customer_code"].startswith("CUS-")
    assert customer["status"] == "prospect"
    assert Decimal(customer["available_credit"]) == Decimal("1000.00")


async def test_customer_with_balance_cannot_be_deleted(client, headers, make_customer):
    customer = await make_customer()

    updated = await client.patch(
        f"/customers/{customer['id']}",
        json={"current_balance": "150.00", "version": 1},
        headers=headers("manager"),
    )
    assert updated.status_code == 200

    resp = await client.delete(f"/customers/{customer['id']}", headers=headers("admin"))
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "CUSTOMER_HAS_BALANCE"


async def test_customer_delete_is_admin_only(client, headers, make_customer):
    customer = await make_customer()

    denied = await client.delete(f"/customers/{customer['id']}", headers=headers("sales"))
    assert denied.status_code == 403

    resp = await client.delete(f"/customers/{customer['id']}", headers=headers("admin"))
    assert resp.status_code == 200
