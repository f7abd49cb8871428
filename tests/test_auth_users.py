from sqlalchemy import select

from app.models.support.activity_models import UserActivity

PASSWORD = "password123"


async def login(client, email, password=PASSWORD):
    return await client.post("/auth/login", json={"email": email, "password": password})


# -------------------------------------------------------------------
# auth
# -------------------------------------------------------------------
async def test_login_returns_tokens_and_records_activity(client, users, db):
    resp = await login(client, "sales@example.com")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["auth"]["token_type"] == "bearer"
    assert body["data"]["user"]["role"] == "sales"

    codes = (await db.execute(select(UserActivity.action_code))).scalars().all()
    assert "LOGIN" in codes


async def test_login_rejects_bad_password(client, users):
    resp = await login(client, "sales@example.com", "wrong-password")
    assert resp.status_code == 401
    assert resp.json()["error_code"] == "INVALID_CREDENTIALS"


async def test_login_blocks_inactive_user(client, users, db):
    users["inventory"].is_active = False
    await db.commit()

    resp = await login(client, "inventory@example.com")
    assert resp.status_code == 403


async def test_refresh_rotates_token(client, users):
    tokens = (await login(client, "manager@example.com")).json()["data"]["auth"]

    first = await client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert first.status_code == 200
    assert first.json()["data"]["refresh_token"] != tokens["refresh_token"]

    replay = await client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert replay.status_code == 401


async def test_logout_invalidates_access_token(client, users):
    access = (await login(client, "purchasing@example.com")).json()["data"]["auth"]["access_token"]
    auth = {"Authorization": f"Bearer {access}"}

    resp = await client.post("/auth/logout", headers=auth)
    assert resp.status_code == 200

    again = await client.get("/warehouses/", headers=auth)
    assert again.status_code == 401


async def test_missing_token_is_unauthorized(client, users):
    resp = await client.get("/warehouses/")
    assert resp.status_code == 401
    assert resp.json()["error_code"] == "UNAUTHORIZED"


async def test_request_id_is_echoed_or_generated(client, headers):
    echoed = await client.get("/warehouses/", headers={**headers("sales"), "X-Request-ID": "trace-42"})
    assert echoed.status_code == 200
    assert echoed.headers["X-Request-ID"] == "trace-42"

    generated = await client.get("/warehouses/", headers=headers("sales"))
    assert len(generated.headers["X-Request-ID"]) == 32


# -------------------------------------------------------------------
# users
# -------------------------------------------------------------------
async def test_admin_creates_user(client, headers):
    resp = await client.post(
        "/users/",
        json={"email": "New.Clerk@Example.com", "password": "longenough", "role": "Inventory"},
        headers=headers("admin"),
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["username"] == "new.clerk@example.com"
    assert data["role"] == "inventory"

    dup = await client.post(
        "/users/",
        json={"email": "new.clerk@example.com", "password": "longenough", "role": "sales"},
        headers=headers("admin"),
    )
    assert dup.status_code == 409


async def test_invalid_role_rejected(client, headers):
    resp = await client.post(
        "/users/",
        json={"email": "x@example.com", "password": "longenough", "role": "cashier"},
        headers=headers("admin"),
    )
    assert resp.status_code == 422


async def test_non_admin_cannot_manage_users(client, headers):
    resp = await client.get("/users/", headers=headers("manager"))
    assert resp.status_code == 403


async def test_role_change_bumps_token_version(client, headers, users):
    target = users["sales"]
    old_headers = headers(user=target)

    resp = await client.patch(
        f"/users/{target.id}",
        json={"role": "manager", "version": 1},
        headers=headers("admin"),
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["role"] == "manager"
    assert resp.json()["data"]["version"] == 2

    stale = await client.get("/warehouses/", headers=old_headers)
    assert stale.status_code == 401


async def test_update_with_stale_version_conflicts(client, headers, users):
    resp = await client.patch(
        f"/users/{users['sales'].id}",
        json={"full_name": "Renamed", "version": 7},
        headers=headers("admin"),
    )
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "USER_VERSION_CONFLICT"


async def test_deactivate_and_reactivate(client, headers, users):
    uid = users["inventory"].id

    off = await client.post(f"/users/{uid}/deactivate", json={"version": 1}, headers=headers("admin"))
    assert off.status_code == 200
    assert off.json()["data"]["is_active"] is False

    again = await client.post(f"/users/{uid}/deactivate", json={"version": 2}, headers=headers("admin"))
    assert again.status_code == 409

    on = await client.post(f"/users/{uid}/activate", json={"version": 2}, headers=headers("admin"))
    assert on.status_code == 200
    assert on.json()["data"]["is_active"] is True


async def test_list_users_filters_by_role(client, headers):
    resp = await client.get("/users/", params={"role": "sales"}, headers=headers("admin"))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["total"] == 1
    assert data["items"][0]["username"] == "sales@example.com"


# -------------------------------------------------------------------
# activities
# -------------------------------------------------------------------
async def test_activity_feed_is_admin_only(client, headers, make_warehouse):
    await make_warehouse()

    denied = await client.get("/activities/", headers=headers("sales"))
    assert denied.status_code == 403

    resp = await client.get("/activities/", params={"action_code": "create_warehouse"}, headers=headers("admin"))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["total"] == 1
    assert "created warehouse" in data["items"][0]["message"].lower()
