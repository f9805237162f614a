"""Unit tests for budget_overview aggregation: pure functions over plain objects."""
import uuid
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from budgetspace.services.budget_overview import (
    actuals_by_budget_item,
    build_overview,
    month_bounds,
    percent_of,
    summarize_transactions,
)


def cat(name):
    return SimpleNamespace(id=uuid.uuid4(), name=name)


def budget(category, planned):
    return SimpleNamespace(category_id=category.id, planned_amount=Decimal(planned))


def txn(kind, amount, category=None, item_id=None):
    return SimpleNamespace(
        type=kind,
        amount=Decimal(amount),
        category_id=category.id if category else None,
        budget_item_id=item_id,
    )


class TestMonthBounds:
    def test_leap_february(self):
        assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_december(self):
        assert month_bounds(2025, 12) == (date(2025, 12, 1), date(2025, 12, 31))


class TestPercentOf:
    def test_rounds_half_up(self):
        assert percent_of(Decimal("1"), Decimal("8")) == 13  # 12.5

    def test_zero_planned(self):
        assert percent_of(Decimal("50"), Decimal("0")) == 0

    def test_over_hundred(self):
        assert percent_of(Decimal("150"), Decimal("100")) == 150


class TestBuildOverview:
    def test_rows_and_summary(self):
        food, rent, fun = cat("Food"), cat("Rent"), cat("Fun")
        result = build_overview(
            [food, rent, fun],
            [budget(food, "400"), budget(rent, "1000")],
            [
                txn("expense", "150", food),
                txn("expense", "350", food),
                txn("expense", "1000", rent),
                txn("expense", "20", fun),
                txn("income", "999", food),
                txn("expense", "75"),
            ],
        )
        rows = {r["category"].name: r for r in result["overview"]}

        assert rows["Food"]["spent"] == Decimal("500")
        assert rows["Food"]["remaining"] == Decimal("-100")
        assert rows["Food"]["percentage"] == 125
        assert rows["Food"]["is_over_budget"] is True

        assert rows["Rent"]["percentage"] == 100
        assert rows["Rent"]["is_over_budget"] is False

        # Spending with nothing planned is never "over budget"
        assert rows["Fun"]["planned"] == Decimal("0")
        assert rows["Fun"]["percentage"] == 0
        assert rows["Fun"]["is_over_budget"] is False

        summary = result["summary"]
        assert summary["total_planned"] == Decimal("1400")
        assert summary["total_spent"] == Decimal("1520")
        assert summary["total_remaining"] == Decimal("-120")
        assert summary["overall_percentage"] == 109

    def test_empty_month(self):
        result = build_overview([], [], [])
        assert result["overview"] == []
        assert result["summary"]["overall_percentage"] == 0


class TestSummaries:
    def test_summarize_transactions(self):
        food, salary = cat("Food"), cat("Salary")
        summary = summarize_transactions([
            txn("income", "3000", salary),
            txn("expense", "120.50", food),
            txn("expense", "30"),
        ])
        assert summary["total_income"] == Decimal("3000")
        assert summary["total_expenses"] == Decimal("150.50")
        assert summary["net_balance"] == Decimal("2849.50")
        assert summary["transaction_count"] == 3
        assert summary["income_by_category"] == {str(salary.id): Decimal("3000")}
        assert summary["expenses_by_category"] == {str(food.id): Decimal("120.50")}

    def test_actuals_net_refunds(self):
        item = uuid.uuid4()
        actual = actuals_by_budget_item([
            txn("expense", "80", item_id=item),
            txn("expense", "40", item_id=item),
            txn("income", "15", item_id=item),
            txn("expense", "999"),
        ])
        assert actual == {item: Decimal("105")}
