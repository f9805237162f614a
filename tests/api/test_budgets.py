"""Monthly budgets, the overview aggregation, budget items and the ledger."""
from decimal import Decimal

from conftest import create_workspace, sign_up, use_session


async def _setup(client):
    use_session(client, await sign_up(client, "ana@mailbox.org"))
    ws = await create_workspace(client)
    cats = (await client.get("/api/v1/categories/", params={"workspace_id": ws["id"]})).json()
    by_name = {c["name"]: c["id"] for c in cats}
    return ws["id"], by_name


async def _txn(client, ws_id, kind, amount, day, category_id=None, **extra):
    body = {
        "workspace_id": ws_id,
        "type": kind,
        "amount": amount,
        "currency": "USD",
        "transaction_date": day,
        "category_id": category_id,
    }
    body.update(extra)
    resp = await client.post("/api/v1/transactions/", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _set_budget(client, ws_id, category_id, amount, year=2024, month=3):
    resp = await client.put("/api/v1/budgets/", json={
        "workspace_id": ws_id, "category_id": category_id,
        "year": year, "month": month, "planned_amount": amount, "currency": "USD",
    })
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestMonthlyBudgets:
    async def test_set_is_an_upsert(self, client):
        ws_id, cats = await _setup(client)
        first = await _set_budget(client, ws_id, cats["Housing"], "1000")
        second = await _set_budget(client, ws_id, cats["Housing"], "1200")
        assert first["id"] == second["id"]
        assert Decimal(second["planned_amount"]) == Decimal("1200")

        listed = (await client.get("/api/v1/budgets/", params={
            "workspace_id": ws_id, "year": 2024, "month": 3,
        })).json()
        assert len(listed) == 1

    async def test_negative_and_out_of_range_rejected(self, client):
        ws_id, cats = await _setup(client)
        resp = await client.put("/api/v1/budgets/", json={
            "workspace_id": ws_id, "category_id": cats["Housing"],
            "year": 2024, "month": 13, "planned_amount": "10", "currency": "USD",
        })
        assert resp.status_code == 422
        resp = await client.put("/api/v1/budgets/", json={
            "workspace_id": ws_id, "category_id": cats["Housing"],
            "year": 2024, "month": 3, "planned_amount": "-1", "currency": "USD",
        })
        assert resp.status_code == 422

    async def test_overview(self, client):
        ws_id, cats = await _setup(client)
        await _set_budget(client, ws_id, cats["Housing"], "1200")
        await _set_budget(client, ws_id, cats["Food & Dining"], "400")

        await _txn(client, ws_id, "expense", "1300", "2024-03-05", cats["Housing"])
        await _txn(client, ws_id, "income", "500", "2024-03-06", cats["Housing"])
        await _txn(client, ws_id, "expense", "100", "2024-03-31", cats["Food & Dining"])
        await _txn(client, ws_id, "expense", "999", "2024-04-01", cats["Food & Dining"])

        resp = await client.get("/api/v1/budgets/overview", params={
            "workspace_id": ws_id, "year": 2024, "month": 3,
        })
        assert resp.status_code == 200
        body = resp.json()
        rows = {r["category"]["name"]: r for r in body["overview"]}
        assert len(rows) == 10

        housing = rows["Housing"]
        assert Decimal(housing["spent"]) == Decimal("1300")
        assert Decimal(housing["remaining"]) == Decimal("-100")
        assert housing["percentage"] == 108
        assert housing["is_over_budget"] is True

        food = rows["Food & Dining"]
        assert Decimal(food["spent"]) == Decimal("100")
        assert food["percentage"] == 25
        assert food["is_over_budget"] is False

        assert rows["Other"]["percentage"] == 0

        summary = body["summary"]
        assert Decimal(summary["total_planned"]) == Decimal("1600")
        assert Decimal(summary["total_spent"]) == Decimal("1400")
        assert summary["overall_percentage"] == 88

    async def test_copy_from_previous_month(self, client):
        ws_id, cats = await _setup(client)
        await _set_budget(client, ws_id, cats["Housing"], "1200", month=3)
        await _set_budget(client, ws_id, cats["Utilities"], "150", month=3)
        await _set_budget(client, ws_id, cats["Housing"], "1300", month=4)

        resp = await client.post("/api/v1/budgets/copy-from-previous-month", params={
            "workspace_id": ws_id, "year": 2024, "month": 4,
        })
        assert resp.status_code == 201
        body = resp.json()
        assert body["count"] == 1
        assert body["created"][0]["category_id"] == cats["Utilities"]

        april = (await client.get("/api/v1/budgets/", params={
            "workspace_id": ws_id, "year": 2024, "month": 4,
        })).json()
        amounts = {b["category_id"]: Decimal(b["planned_amount"]) for b in april}
        assert amounts[cats["Housing"]] == Decimal("1300")

    async def test_copy_across_year_boundary_with_nothing_to_copy(self, client):
        ws_id, _ = await _setup(client)
        resp = await client.post("/api/v1/budgets/copy-from-previous-month", params={
            "workspace_id": ws_id, "year": 2024, "month": 1,
        })
        assert resp.status_code == 404

    async def test_deleting_category_drops_its_budgets(self, client):
        ws_id, cats = await _setup(client)
        await _set_budget(client, ws_id, cats["Education"], "80")

        assert (await client.delete(f"/api/v1/categories/{cats['Education']}")).status_code == 204
        listed = (await client.get("/api/v1/budgets/", params={
            "workspace_id": ws_id, "year": 2024, "month": 3,
        })).json()
        assert listed == []


class TestTransactions:
    async def test_filters_and_paging(self, client):
        ws_id, cats = await _setup(client)
        for day in ("2024-03-01", "2024-03-02", "2024-03-03"):
            await _txn(client, ws_id, "expense", "10", day, cats["Shopping"])
        await _txn(client, ws_id, "income", "2000", "2024-03-04")

        page = (await client.get("/api/v1/transactions/", params={
            "workspace_id": ws_id, "type": "expense", "limit": 2,
        })).json()
        assert page["total"] == 3
        assert [t["transaction_date"] for t in page["transactions"]] == ["2024-03-03", "2024-03-02"]

        page = (await client.get("/api/v1/transactions/", params={
            "workspace_id": ws_id, "start_date": "2024-03-02", "end_date": "2024-03-03",
        })).json()
        assert page["total"] == 2

    async def test_inverted_range_rejected(self, client):
        ws_id, _ = await _setup(client)
        resp = await client.get("/api/v1/transactions/", params={
            "workspace_id": ws_id, "start_date": "2024-03-05", "end_date": "2024-03-01",
        })
        assert resp.status_code == 422

    async def test_amount_must_be_positive(self, client):
        ws_id, _ = await _setup(client)
        resp = await client.post("/api/v1/transactions/", json={
            "workspace_id": ws_id, "type": "expense", "amount": "0",
            "currency": "USD", "transaction_date": "2024-03-01",
        })
        assert resp.status_code == 422

    async def test_summary_and_recent(self, client):
        ws_id, cats = await _setup(client)
        await _txn(client, ws_id, "income", "3000", "2024-03-01")
        await _txn(client, ws_id, "expense", "250.50", "2024-03-10", cats["Utilities"])
        await _txn(client, ws_id, "expense", "40", "2024-02-28", cats["Utilities"])

        summary = (await client.get("/api/v1/transactions/summary", params={
            "workspace_id": ws_id, "year": 2024, "month": 3,
        })).json()
        assert Decimal(summary["total_income"]) == Decimal("3000")
        assert Decimal(summary["total_expenses"]) == Decimal("250.50")
        assert Decimal(summary["net_balance"]) == Decimal("2749.50")
        assert summary["transaction_count"] == 2
        assert Decimal(summary["expenses_by_category"][cats["Utilities"]]) == Decimal("250.50")

        recent = (await client.get("/api/v1/transactions/recent", params={
            "workspace_id": ws_id, "limit": 2,
        })).json()
        assert [t["transaction_date"] for t in recent] == ["2024-03-10", "2024-03-01"]

    async def test_update_and_delete(self, client):
        ws_id, _ = await _setup(client)
        txn = await _txn(client, ws_id, "expense", "10", "2024-03-01")

        resp = await client.patch(f"/api/v1/transactions/{txn['id']}", json={
            "amount": "12.75", "description": "Coffee beans",
        })
        assert resp.status_code == 200
        assert Decimal(resp.json()["amount"]) == Decimal("12.75")
        assert resp.json()["description"] == "Coffee beans"

        assert (await client.delete(f"/api/v1/transactions/{txn['id']}")).status_code == 204
        assert (await client.get(f"/api/v1/transactions/{txn['id']}")).status_code == 404

    async def test_null_only_clears_optional_fields(self, client):
        ws_id, cats = await _setup(client)
        txn = await _txn(client, ws_id, "expense", "10", "2024-03-01", cats["Shopping"],
                         description="Socks")

        resp = await client.patch(f"/api/v1/transactions/{txn['id']}", json={
            "amount": None, "transaction_date": None, "description": None, "category_id": None,
        })
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert Decimal(body["amount"]) == Decimal("10")
        assert body["transaction_date"] == "2024-03-01"
        assert body["description"] is None
        assert body["category_id"] is None

    async def test_references_must_share_the_workspace(self, client):
        ws_id, _ = await _setup(client)
        other = await create_workspace(client, "Cabin")
        other_cats = (await client.get(
            "/api/v1/categories/", params={"workspace_id": other["id"]}
        )).json()
        resp = await client.post("/api/v1/budget-items/", json={
            "workspace_id": other["id"], "year": 2024, "month": 3, "name": "Firewood",
            "unit_price": "50", "planned_amount": "50", "currency": "USD",
        })
        foreign_item = resp.json()

        resp = await client.post("/api/v1/transactions/", json={
            "workspace_id": ws_id, "type": "expense", "amount": "5", "currency": "USD",
            "transaction_date": "2024-03-01", "budget_item_id": foreign_item["id"],
        })
        assert resp.status_code == 404

        resp = await client.post("/api/v1/transactions/", json={
            "workspace_id": ws_id, "type": "expense", "amount": "5", "currency": "USD",
            "transaction_date": "2024-03-01", "category_id": other_cats[0]["id"],
        })
        assert resp.status_code == 404

        txn = await _txn(client, ws_id, "expense", "5", "2024-03-01")
        resp = await client.patch(f"/api/v1/transactions/{txn['id']}", json={
            "budget_item_id": foreign_item["id"],
        })
        assert resp.status_code == 404

        page = (await client.get("/api/v1/transactions/", params={"workspace_id": ws_id})).json()
        assert page["total"] == 1


class TestBudgetItems:
    async def test_actual_amount_nets_linked_transactions(self, client):
        ws_id, cats = await _setup(client)
        resp = await client.post("/api/v1/budget-items/", json={
            "workspace_id": ws_id, "year": 2024, "month": 3,
            "category_id": cats["Food & Dining"], "name": "Groceries",
            "quantity_type": "fixed", "quantity": "1",
            "unit_price": "300", "planned_amount": "300", "currency": "USD",
        })
        assert resp.status_code == 201, resp.text
        item = resp.json()

        await _txn(client, ws_id, "expense", "120", "2024-03-03", budget_item_id=item["id"])
        await _txn(client, ws_id, "expense", "90", "2024-03-17", budget_item_id=item["id"])
        await _txn(client, ws_id, "income", "15", "2024-03-18", budget_item_id=item["id"])

        items = (await client.get("/api/v1/budget-items/", params={
            "workspace_id": ws_id, "year": 2024, "month": 3,
        })).json()
        assert len(items) == 1
        assert Decimal(items[0]["actual_amount"]) == Decimal("195")

    async def test_populate_from_recurring_is_idempotent(self, client):
        ws_id, cats = await _setup(client)
        for name, start, end in (
            ("Internet", "2024-01-05", None),
            ("Old gym", "2023-01-01", "2024-02-01"),
            ("Future lease", "2024-05-01", None),
        ):
            resp = await client.post("/api/v1/recurring/", json={
                "workspace_id": ws_id, "name": name, "type": "expense",
                "amount": "45.00", "currency": "USD", "frequency": "monthly",
                "start_date": start, "end_date": end, "category_id": cats["Utilities"],
            })
            assert resp.status_code == 201

        params = {"workspace_id": ws_id, "year": 2024, "month": 3}
        first = (await client.post("/api/v1/budget-items/populate-from-recurring", params=params)).json()
        assert first["created"] == 1
        assert first["items"][0]["name"] == "Internet"
        assert first["items"][0]["quantity_type"] == "fixed"
        assert Decimal(first["items"][0]["planned_amount"]) == Decimal("45")

        again = (await client.post("/api/v1/budget-items/populate-from-recurring", params=params)).json()
        assert again == {"created": 0, "items": []}

    async def test_item_category_must_share_the_workspace(self, client):
        ws_id, cats = await _setup(client)
        other = await create_workspace(client, "Cabin")
        other_cats = (await client.get(
            "/api/v1/categories/", params={"workspace_id": other["id"]}
        )).json()
        body = {
            "workspace_id": ws_id, "year": 2024, "month": 3, "name": "Groceries",
            "unit_price": "300", "planned_amount": "300", "currency": "USD",
        }

        foreign = other_cats[0]["id"]
        resp = await client.post("/api/v1/budget-items/", json={**body, "category_id": foreign})
        assert resp.status_code == 404

        item = (await client.post(
            "/api/v1/budget-items/", json={**body, "category_id": cats["Food & Dining"]}
        )).json()
        resp = await client.patch(f"/api/v1/budget-items/{item['id']}", json={"category_id": foreign})
        assert resp.status_code == 404

    async def test_item_null_leaves_required_fields_alone(self, client):
        ws_id, cats = await _setup(client)
        resp = await client.post("/api/v1/budget-items/", json={
            "workspace_id": ws_id, "year": 2024, "month": 3, "name": "Groceries",
            "category_id": cats["Food & Dining"],
            "unit_price": "300", "planned_amount": "300", "currency": "USD",
        })
        item = resp.json()

        resp = await client.patch(f"/api/v1/budget-items/{item['id']}", json={
            "planned_amount": None, "is_purchased": None, "category_id": None,
        })
        assert resp.status_code == 200, resp.text
        assert Decimal(resp.json()["planned_amount"]) == Decimal("300")
        assert resp.json()["is_purchased"] is False
        assert resp.json()["category_id"] is None
