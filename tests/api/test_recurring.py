"""Recurring templates and the process-due endpoint, end to end on SQLite."""
from datetime import date, timedelta
from decimal import Decimal

from conftest import add_member, create_workspace, sign_up, use_session

from budgetspace.services.schedule import next_occurrence


async def _setup(client):
    token = await sign_up(client, "ana@mailbox.org")
    use_session(client, token)
    ws = await create_workspace(client)
    cats = (await client.get("/api/v1/categories/", params={"workspace_id": ws["id"]})).json()
    housing = next(c for c in cats if c["name"] == "Housing")
    return ws["id"], housing["id"], token


async def _create(client, ws_id, **overrides):
    body = {
        "workspace_id": ws_id,
        "name": "Rent",
        "type": "expense",
        "amount": "1200.00",
        "currency": "USD",
        "frequency": "monthly",
        "start_date": (date.today() - timedelta(days=2)).isoformat(),
    }
    body.update(overrides)
    resp = await client.post("/api/v1/recurring/", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestRecurringCrud:
    async def test_create_sets_first_due_date(self, client):
        ws_id, housing_id, _ = await _setup(client)
        rec = await _create(client, ws_id, category_id=housing_id, start_date="2030-05-31")
        assert rec["next_due_date"] == "2030-05-31"
        assert rec["last_processed_date"] is None
        assert rec["is_active"] is True

    async def test_end_before_start_rejected(self, client):
        ws_id, _, _ = await _setup(client)
        resp = await client.post("/api/v1/recurring/", json={
            "workspace_id": ws_id, "name": "Gym", "type": "expense", "amount": "30",
            "currency": "USD", "frequency": "weekly",
            "start_date": "2030-02-01", "end_date": "2030-01-01",
        })
        assert resp.status_code == 422

    async def test_moving_start_pulls_due_date(self, client):
        ws_id, _, _ = await _setup(client)
        rec = await _create(client, ws_id, start_date="2030-01-10")
        resp = await client.patch(f"/api/v1/recurring/{rec['id']}", json={"start_date": "2030-03-01"})
        assert resp.status_code == 200
        assert resp.json()["next_due_date"] == "2030-03-01"

    async def test_toggle_and_delete(self, client):
        ws_id, _, _ = await _setup(client)
        rec = await _create(client, ws_id)

        resp = await client.post(f"/api/v1/recurring/{rec['id']}/toggle")
        assert resp.json()["is_active"] is False

        assert (await client.delete(f"/api/v1/recurring/{rec['id']}")).status_code == 204
        assert (await client.get(f"/api/v1/recurring/{rec['id']}")).status_code == 404


class TestProcessDue:
    async def test_due_template_creates_transaction_and_advances(self, client):
        ws_id, housing_id, _ = await _setup(client)
        start = date.today() - timedelta(days=2)
        rec = await _create(client, ws_id, category_id=housing_id, start_date=start.isoformat())

        resp = await client.post("/api/v1/recurring/process-due", params={"workspace_id": ws_id})
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["count"] == 1
        outcome = body["processed"][0]
        assert outcome["recurring_id"] == rec["id"]
        assert outcome["transaction_date"] == start.isoformat()
        assert outcome["deactivated"] is False

        expected_next = next_occurrence(start, "monthly", start.day)
        rec = (await client.get(f"/api/v1/recurring/{rec['id']}")).json()
        assert rec["next_due_date"] == expected_next.isoformat()
        assert rec["last_processed_date"] is not None

        page = (await client.get("/api/v1/transactions/", params={"workspace_id": ws_id})).json()
        assert page["total"] == 1
        txn = page["transactions"][0]
        assert txn["description"] == "Recurring: Rent"
        assert txn["recurring_expense_id"] == rec["id"]
        assert txn["category_id"] == housing_id
        assert txn["transaction_date"] == start.isoformat()

    async def test_rerun_same_day_does_nothing(self, client):
        ws_id, _, _ = await _setup(client)
        await _create(client, ws_id)

        await client.post("/api/v1/recurring/process-due", params={"workspace_id": ws_id})
        resp = await client.post("/api/v1/recurring/process-due", params={"workspace_id": ws_id})
        assert resp.json() == {"count": 0, "processed": []}

        page = (await client.get("/api/v1/transactions/", params={"workspace_id": ws_id})).json()
        assert page["total"] == 1

    async def test_one_time_deactivates(self, client):
        ws_id, _, _ = await _setup(client)
        rec = await _create(client, ws_id, name="Deposit", frequency="one_time")

        body = (await client.post(
            "/api/v1/recurring/process-due", params={"workspace_id": ws_id}
        )).json()
        assert body["count"] == 1
        assert body["processed"][0]["deactivated"] is True
        assert body["processed"][0]["next_due_date"] is None

        rec = (await client.get(f"/api/v1/recurring/{rec['id']}")).json()
        assert rec["is_active"] is False

    async def test_future_template_untouched(self, client):
        ws_id, _, _ = await _setup(client)
        await _create(client, ws_id, start_date=(date.today() + timedelta(days=10)).isoformat())

        resp = await client.post("/api/v1/recurring/process-due", params={"workspace_id": ws_id})
        assert resp.json()["count"] == 0

    async def test_concurrent_run_rejected(self, client, fake_redis):
        ws_id, _, _ = await _setup(client)
        await _create(client, ws_id)
        fake_redis.data[f"process_due:{ws_id}"] = "someone-else"

        resp = await client.post("/api/v1/recurring/process-due", params={"workspace_id": ws_id})
        assert resp.status_code == 409

        page = (await client.get("/api/v1/transactions/", params={"workspace_id": ws_id})).json()
        assert page["total"] == 0

    async def test_lock_released_after_run(self, client, fake_redis):
        ws_id, _, _ = await _setup(client)
        await client.post("/api/v1/recurring/process-due", params={"workspace_id": ws_id})
        assert f"process_due:{ws_id}" not in fake_redis.data

    async def test_viewer_cannot_process(self, client):
        ws_id, _, owner = await _setup(client)
        viewer = await sign_up(client, "viewer@mailbox.org")
        await add_member(client, ws_id, owner, viewer, "viewer@mailbox.org", "viewer")

        use_session(client, viewer)
        resp = await client.post("/api/v1/recurring/process-due", params={"workspace_id": ws_id})
        assert resp.status_code == 403

    async def test_month_end_template_clamps_then_returns_to_its_day(self, client):
        ws_id, _, _ = await _setup(client)
        rec = await _create(client, ws_id, name="Storage", start_date="2024-01-31")

        first = (await client.post(
            "/api/v1/recurring/process-due", params={"workspace_id": ws_id}
        )).json()
        assert first["processed"][0]["transaction_date"] == "2024-01-31"
        assert first["processed"][0]["next_due_date"] == "2024-02-29"

        second = (await client.post(
            "/api/v1/recurring/process-due", params={"workspace_id": ws_id}
        )).json()
        assert second["processed"][0]["transaction_date"] == "2024-02-29"
        assert second["processed"][0]["next_due_date"] == "2024-03-31"

        rec = (await client.get(f"/api/v1/recurring/{rec['id']}")).json()
        assert rec["next_due_date"] == "2024-03-31"

    async def test_rollover_entries_are_read_only(self, client):
        ws_id, _, _ = await _setup(client)
        await _create(client, ws_id)
        await client.post("/api/v1/recurring/process-due", params={"workspace_id": ws_id})

        page = (await client.get("/api/v1/transactions/", params={"workspace_id": ws_id})).json()
        txn = page["transactions"][0]
        resp = await client.patch(f"/api/v1/transactions/{txn['id']}", json={"amount": "1.00"})
        assert resp.status_code == 409

        txn = (await client.get(f"/api/v1/transactions/{txn['id']}")).json()
        assert Decimal(txn["amount"]) == Decimal("1200.00")


class TestFinishedTemplates:
    async def _ledger_total(self, client, ws_id):
        page = (await client.get("/api/v1/transactions/", params={"workspace_id": ws_id})).json()
        return page["total"]

    async def _process(self, client, ws_id):
        resp = await client.post("/api/v1/recurring/process-due", params={"workspace_id": ws_id})
        assert resp.status_code == 200, resp.text
        return resp.json()

    async def test_one_time_cannot_be_toggled_back_on(self, client):
        ws_id, _, _ = await _setup(client)
        rec = await _create(client, ws_id, name="Deposit", frequency="one_time")
        await self._process(client, ws_id)

        resp = await client.post(f"/api/v1/recurring/{rec['id']}/toggle")
        assert resp.status_code == 409
        assert (await client.get(f"/api/v1/recurring/{rec['id']}")).json()["is_active"] is False

        assert (await self._process(client, ws_id))["count"] == 0
        assert await self._ledger_total(client, ws_id) == 1

    async def test_ended_template_cannot_be_patched_back_on(self, client):
        ws_id, _, _ = await _setup(client)
        today = date.today()
        rec = await _create(
            client, ws_id, name="Gym", frequency="weekly",
            start_date=(today - timedelta(days=2)).isoformat(),
            end_date=(today - timedelta(days=1)).isoformat(),
        )
        body = await self._process(client, ws_id)
        assert body["processed"][0]["deactivated"] is True

        assert (await self._process(client, ws_id))["count"] == 0

        resp = await client.patch(f"/api/v1/recurring/{rec['id']}", json={"is_active": True})
        assert resp.status_code == 409

        assert (await self._process(client, ws_id))["count"] == 0
        assert await self._ledger_total(client, ws_id) == 1

    async def test_restart_with_later_start_date(self, client):
        ws_id, _, _ = await _setup(client)
        rec = await _create(client, ws_id, name="Deposit", frequency="one_time")
        await self._process(client, ws_id)

        restart = (date.today() + timedelta(days=5)).isoformat()
        resp = await client.patch(f"/api/v1/recurring/{rec['id']}", json={
            "is_active": True, "start_date": restart,
        })
        assert resp.status_code == 200, resp.text
        assert resp.json()["is_active"] is True
        assert resp.json()["next_due_date"] == restart

    async def test_paused_template_can_resume(self, client):
        ws_id, _, _ = await _setup(client)
        rec = await _create(client, ws_id, start_date=(date.today() + timedelta(days=3)).isoformat())

        await client.post(f"/api/v1/recurring/{rec['id']}/toggle")
        resp = await client.post(f"/api/v1/recurring/{rec['id']}/toggle")
        assert resp.status_code == 200
        assert resp.json()["is_active"] is True


class TestWorkspaceReferences:
    async def test_category_from_another_workspace_rejected(self, client):
        ws_id, _, _ = await _setup(client)
        other = await create_workspace(client, "Cabin")
        cats = (await client.get("/api/v1/categories/", params={"workspace_id": other["id"]})).json()

        resp = await client.post("/api/v1/recurring/", json={
            "workspace_id": ws_id, "name": "Rent", "type": "expense", "amount": "100",
            "currency": "USD", "frequency": "monthly", "start_date": "2030-01-01",
            "category_id": cats[0]["id"],
        })
        assert resp.status_code == 404

        rec = await _create(client, ws_id)
        resp = await client.patch(f"/api/v1/recurring/{rec['id']}", json={"category_id": cats[0]["id"]})
        assert resp.status_code == 404
