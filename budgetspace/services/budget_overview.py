"""Budget-vs-actual aggregation. Pure functions over already-loaded rows."""
import uuid
from calendar import monthrange
from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

_ZERO = Decimal("0")


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """Return (first_day, last_day) of a calendar month."""
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


def percent_of(part: Decimal, whole: Decimal) -> int:
    """Whole-number percentage, half rounded up; 0 when nothing is planned."""
    if whole <= 0:
        return 0
    return int((part / whole * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def spending_by_category(transactions: Iterable[Any]) -> dict[uuid.UUID, Decimal]:
    """Sum expense amounts per category. Uncategorized and income rows are skipped."""
    spent: dict[uuid.UUID, Decimal] = defaultdict(lambda: _ZERO)
    for t in transactions:
        if t.type != "expense" or t.category_id is None:
            continue
        spent[t.category_id] += Decimal(t.amount)
    return dict(spent)


def build_overview(
    categories: Iterable[Any],
    budgets: Iterable[Any],
    transactions: Iterable[Any],
) -> dict:
    """
    Combine a month's categories, budgets and transactions into per-category
    rows plus workspace totals.

    Each row: category, planned, spent, remaining, percentage, is_over_budget.
    """
    planned_by_category = {b.category_id: Decimal(b.planned_amount) for b in budgets}
    spent_by_category = spending_by_category(transactions)

    rows = []
    for cat in categories:
        planned = planned_by_category.get(cat.id, _ZERO)
        spent = spent_by_category.get(cat.id, _ZERO)
        rows.append({
            "category": cat,
            "planned": planned,
            "spent": spent,
            "remaining": planned - spent,
            "percentage": percent_of(spent, planned),
            "is_over_budget": planned > 0 and spent > planned,
        })

    total_planned = sum((r["planned"] for r in rows), _ZERO)
    total_spent = sum((r["spent"] for r in rows), _ZERO)
    return {
        "overview": rows,
        "summary": {
            "total_planned": total_planned,
            "total_spent": total_spent,
            "total_remaining": total_planned - total_spent,
            "overall_percentage": percent_of(total_spent, total_planned),
        },
    }


def summarize_transactions(transactions: Iterable[Any]) -> dict:
    """Monthly income/expense totals with per-category breakdowns keyed by category id."""
    total_income = _ZERO
    total_expenses = _ZERO
    income_by_category: dict[str, Decimal] = defaultdict(lambda: _ZERO)
    expenses_by_category: dict[str, Decimal] = defaultdict(lambda: _ZERO)
    count = 0

    for t in transactions:
        count += 1
        amount = Decimal(t.amount)
        if t.type == "income":
            total_income += amount
            if t.category_id:
                income_by_category[str(t.category_id)] += amount
        else:
            total_expenses += amount
            if t.category_id:
                expenses_by_category[str(t.category_id)] += amount

    return {
        "total_income": total_income,
        "total_expenses": total_expenses,
        "net_balance": total_income - total_expenses,
        "transaction_count": count,
        "income_by_category": dict(income_by_category),
        "expenses_by_category": dict(expenses_by_category),
    }


def actuals_by_budget_item(transactions: Iterable[Any]) -> dict[uuid.UUID, Decimal]:
    """Net spend per linked budget item: expenses add, income (refunds) subtracts."""
    actual: dict[uuid.UUID, Decimal] = defaultdict(lambda: _ZERO)
    for t in transactions:
        if t.budget_item_id is None:
            continue
        amount = Decimal(t.amount)
        actual[t.budget_item_id] += amount if t.type == "expense" else -amount
    return dict(actual)
