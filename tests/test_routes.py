OWNER = {"X-User-Id": "owner-1"}
OTHER = {"X-User-Id": "owner-2"}


async def _create_pool(client, codes, name="Spring drop"):
    res = await client.post(
        "/discount-codes/pools",
        json={"name": name, "description": "for reels", "codes": codes},
        headers=OWNER,
    )
    assert res.status_code == 201, res.text
    return res.json()["data"]


async def _assign(client, pool_id, event_id, **extra):
    body = {
        "automation_id": "auto-1",
        "pool_id": pool_id,
        "event_id": event_id,
        "claimant_id": f"ig-{event_id}",
        "claimant_name": "commenter",
        **extra,
    }
    res = await client.post("/discount-codes/assign", json=body)
    assert res.status_code == 200, res.text
    return res.json()


async def test_health(client):
    res = await client.get("/health")
    assert res.json() == {"status": "ok"}


async def test_create_and_list_pools(client):
    pool = await _create_pool(client, ["A1", "A2"])
    assert pool["total_codes"] == 2
    assert pool["assigned_codes"] == 0
    assert pool["owner_id"] == "owner-1"

    res = await client.get("/discount-codes/pools", headers=OWNER)
    body = res.json()
    assert body["success"] is True
    assert body["count"] == 1
    assert body["data"][0]["id"] == pool["id"]

    res = await client.get("/discount-codes/pools", headers=OTHER)
    assert res.json()["count"] == 0


async def test_requests_without_owner_are_rejected(client):
    res = await client.get("/discount-codes/pools")
    assert res.status_code == 401
    assert res.json() == {"success": False, "error": "Not authenticated"}


async def test_create_pool_with_duplicate_codes_is_400(client):
    res = await client.post(
        "/discount-codes/pools",
        json={"name": "Dupes", "codes": ["A", "A"]},
        headers=OWNER,
    )
    assert res.status_code == 400
    assert res.json() == {
        "success": False,
        "error": "Code pool contains duplicate codes",
        "field": "codes",
    }


async def test_malformed_body_uses_error_envelope(client):
    res = await client.post("/discount-codes/pools", json={"name": "No codes"}, headers=OWNER)
    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["field"] == "codes"
    assert body["error"]

    res = await client.post(
        "/discount-codes/assign",
        json={
            "automation_id": "auto-1",
            "pool_id": "00000000-0000-0000-0000-000000000000",
            "event_id": "c1",
            "claimant_id": "ig-1",
            "first_n_cutoff": -1,
        },
    )
    assert res.status_code == 400
    assert res.json()["field"] == "first_n_cutoff"


async def test_pool_stats_are_owner_only(client):
    pool = await _create_pool(client, ["A1"])

    assert (await client.get(f"/discount-codes/pools/{pool['id']}", headers=OWNER)).status_code == 200
    res = await client.get(f"/discount-codes/pools/{pool['id']}", headers=OTHER)
    assert res.status_code == 403
    assert res.json()["error"] == "Access denied"

    res = await client.get("/discount-codes/pools/00000000-0000-0000-0000-000000000000", headers=OWNER)
    assert res.status_code == 404


async def test_assign_fills_template_and_falls_back(client):
    pool = await _create_pool(client, ["SAVE10"])

    first = await _assign(client, pool["id"], "c1", message_template="Your code: {{CODE}}")
    assert first == {"code": "SAVE10", "fallback": False, "message": "Your code: SAVE10"}

    second = await _assign(
        client,
        pool["id"],
        "c2",
        message_template="Your code: {{CODE}}",
        fallback_message="Too late, all gone!",
    )
    assert second == {"code": None, "fallback": True, "message": "Too late, all gone!"}

    # Redelivery of c1 still gets its code
    assert (await _assign(client, pool["id"], "c1"))["code"] == "SAVE10"


async def test_assign_unknown_pool_is_404(client):
    res = await client.post(
        "/discount-codes/assign",
        json={
            "automation_id": "auto-1",
            "pool_id": "00000000-0000-0000-0000-000000000000",
            "event_id": "c1",
            "claimant_id": "ig-1",
        },
    )
    assert res.status_code == 404


async def test_assignment_history_and_codes(client):
    pool = await _create_pool(client, ["A1", "A2"])
    await _assign(client, pool["id"], "c1")

    res = await client.get(f"/discount-codes/pools/{pool['id']}/assignments", headers=OWNER)
    body = res.json()
    assert body["count"] == 1
    assert body["data"][0]["code"] == "A1"
    assert body["data"][0]["event_id"] == "c1"

    res = await client.get(f"/discount-codes/pools/{pool['id']}/codes", headers=OWNER)
    assert [(c["code"], c["is_assigned"]) for c in res.json()["data"]] == [("A1", True), ("A2", False)]

    res = await client.get(f"/discount-codes/pools/{pool['id']}/codes", headers=OTHER)
    assert res.status_code == 403


async def test_update_pool_replaces_codes(client):
    pool = await _create_pool(client, ["A1", "A2"])
    await _assign(client, pool["id"], "c1")

    res = await client.patch(
        f"/discount-codes/pools/{pool['id']}",
        json={"codes": ["A1", "B1", "B2"], "description": "restocked"},
        headers=OWNER,
    )
    assert res.status_code == 200, res.text
    data = res.json()["data"]
    assert (data["total_codes"], data["assigned_codes"], data["description"]) == (3, 1, "restocked")


async def test_update_pool_cannot_drop_assigned_code(client):
    pool = await _create_pool(client, ["Z"])
    await _assign(client, pool["id"], "c1")

    res = await client.patch(f"/discount-codes/pools/{pool['id']}", json={"codes": []}, headers=OWNER)
    assert res.status_code == 409
    assert "Z" in res.json()["error"]

    stats = (await client.get(f"/discount-codes/pools/{pool['id']}", headers=OWNER)).json()["data"]
    assert (stats["total_codes"], stats["assigned_codes"]) == (1, 1)


async def test_delete_pool_guarded_by_history(client):
    used = await _create_pool(client, ["A1"], name="Used")
    fresh = await _create_pool(client, ["B1"], name="Fresh")
    await _assign(client, used["id"], "c1")

    res = await client.delete(f"/discount-codes/pools/{used['id']}", headers=OWNER)
    assert res.status_code == 409
    assert res.json()["error"] == "Cannot delete a pool that has already issued codes"

    res = await client.delete(f"/discount-codes/pools/{fresh['id']}", headers=OTHER)
    assert res.status_code == 403

    res = await client.delete(f"/discount-codes/pools/{fresh['id']}", headers=OWNER)
    assert res.status_code == 204
    assert (await client.get(f"/discount-codes/pools/{fresh['id']}", headers=OWNER)).status_code == 404
