from datetime import datetime, timedelta, timezone


def ago(**kwargs) -> str:
    return (datetime.now(timezone.utc) - timedelta(**kwargs)).isoformat()


def ahead(**kwargs) -> str:
    return (datetime.now(timezone.utc) + timedelta(**kwargs)).isoformat()


def log_payload(target_type, target_id, **overrides):
    return {
        "contactable_type": target_type,
        "contactable_id": target_id,
        "contact_type": "call",
        "subject": "Quarterly review",
        "description": "Walked through open orders and delivery dates.",
        "contact_date": ago(hours=2),
        "duration_minutes": 30,
        **overrides,
    }


async def test_create_stamps_last_contact_date(client, headers, make_customer):
    customer = await make_customer()

    resp = await client.post(
        "/contact-logs/",
        json=log_payload("customer", customer["id"]),
        headers=headers("sales"),
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["contact_person_name"] == "sales@example.com"
    assert data["formatted_duration"] == "30m"
    assert data["is_follow_up_due"] is False

    refreshed = await client.get(f"/customers/{customer['id']}", headers=headers("sales"))
    assert refreshed.json()["data"]["last_contact_date"] is not None


async def test_unknown_target_is_not_found(client, headers):
    resp = await client.post("/contact-logs/", json=log_payload("supplier", 999), headers=headers("purchasing"))
    assert resp.status_code == 404
    assert resp.json()["error_code"] == "CONTACTABLE_NOT_FOUND"


async def test_contact_date_cannot_be_in_future(client, headers, make_supplier):
    supplier = await make_supplier()

    resp = await client.post(
        "/contact-logs/",
        json=log_payload("supplier", supplier["id"], contact_date=ahead(days=1)),
        headers=headers("purchasing"),
    )
    assert resp.status_code == 400


async def test_follow_up_must_follow_contact(client, headers, make_supplier):
    supplier = await make_supplier()

    resp = await client.post(
        "/contact-logs/",
        json=log_payload("supplier", supplier["id"], contact_date=ago(hours=2), follow_up_date=ago(hours=3)),
        headers=headers("purchasing"),
    )
    assert resp.status_code == 400


async def test_short_description_rejected(client, headers, make_supplier):
    supplier = await make_supplier()

    resp = await client.post(
        "/contact-logs/",
        json=log_payload("supplier", supplier["id"], description="short"),
        headers=headers("purchasing"),
    )
    assert resp.status_code == 422


async def test_only_author_or_admin_may_edit(client, headers, make_customer):
    customer = await make_customer()
    log = (
        await client.post("/contact-logs/", json=log_payload("customer", customer["id"]), headers=headers("sales"))
    ).json()["data"]

    denied = await client.patch(
        f"/contact-logs/{log['id']}",
        json={"subject": "Changed"},
        headers=headers("manager"),
    )
    assert denied.status_code == 403

    ok = await client.patch(
        f"/contact-logs/{log['id']}",
        json={"subject": "Changed"},
        headers=headers("sales"),
    )
    assert ok.status_code == 200
    assert ok.json()["data"]["subject"] == "Changed"

    removed = await client.delete(f"/contact-logs/{log['id']}", headers=headers("admin"))
    assert removed.status_code == 200

    gone = await client.get(f"/contact-logs/{log['id']}", headers=headers("admin"))
    assert gone.status_code == 404


async def test_due_follow_ups_and_completion(client, headers, make_customer):
    customer = await make_customer()

    due = (
        await client.post(
            "/contact-logs/",
            json=log_payload("customer", customer["id"], contact_date=ago(days=3), follow_up_date=ago(days=1)),
            headers=headers("sales"),
        )
    ).json()["data"]
    await client.post(
        "/contact-logs/",
        json=log_payload("customer", customer["id"], follow_up_date=ahead(days=5)),
        headers=headers("sales"),
    )

    listed = await client.get("/contact-logs/follow-ups/due", headers=headers("sales"))
    assert listed.status_code == 200
    assert [log["id"] for log in listed.json()["data"]] == [due["id"]]
    assert listed.json()["data"][0]["is_follow_up_due"] is True

    done = await client.post(f"/contact-logs/{due['id']}/complete-follow-up", headers=headers("sales"))
    assert done.status_code == 200
    assert done.json()["data"]["follow_up_date"] is None

    again = await client.post(f"/contact-logs/{due['id']}/complete-follow-up", headers=headers("sales"))
    assert again.status_code == 400


async def test_metrics_and_entity_summary(client, headers, make_supplier):
    supplier = await make_supplier()

    for contact_type, minutes in (("call", 30), ("call", 90), ("email", None)):
        payload = log_payload("supplier", supplier["id"], contact_type=contact_type, duration_minutes=minutes)
        resp = await client.post("/contact-logs/", json=payload, headers=headers("purchasing"))
        assert resp.status_code == 201

    metrics = (await client.get("/contact-logs/metrics", headers=headers("manager"))).json()["data"]
    assert metrics["total_contacts"] == 3
    assert metrics["by_type"] == {"call": 2, "email": 1}
    assert metrics["average_duration_minutes"] == 60.0
    assert metrics["total_duration_minutes"] == 120

    summary = (
        await client.get(f"/contact-logs/summary/supplier/{supplier['id']}", headers=headers("manager"))
    ).json()["data"]
    assert summary["total_contacts"] == 3
    assert summary["most_common_type"] == "call"
    assert summary["pending_follow_ups"] == 0
