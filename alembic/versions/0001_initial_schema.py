"""initial_schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 12:00:00.000000
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", UUID(as_uuid=True), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def _fk(name: str, target: str, nullable: bool = False, ondelete: str | None = None) -> sa.Column:
    return sa.Column(
        name,
        UUID(as_uuid=True),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    # ── users ──────────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean, server_default=sa.text("true"), nullable=False),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ── workspaces ─────────────────────────────────────────────────────────────
    op.create_table(
        "workspaces",
        _id(),
        _fk("created_by", "users.id"),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("currency", sa.String(3), server_default="USD", nullable=False),
        sa.Column("language", sa.String(5), server_default="en", nullable=False),
        _created_at(),
    )

    op.create_table(
        "workspace_members",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        _fk("user_id", "users.id"),
        sa.Column("user_email", sa.String(320), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        _created_at(),
        sa.UniqueConstraint("workspace_id", "user_id"),
    )
    op.create_index("ix_workspace_members_workspace_id", "workspace_members", ["workspace_id"])
    op.create_index("ix_workspace_members_user_id", "workspace_members", ["user_id"])

    op.create_table(
        "workspace_invitations",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), server_default="pending", nullable=False),
        _fk("invited_by", "users.id"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index(
        "ix_workspace_invitations_workspace_id", "workspace_invitations", ["workspace_id"]
    )
    op.create_index("ix_workspace_invitations_email", "workspace_invitations", ["email"])

    # ── budget_categories ──────────────────────────────────────────────────────
    op.create_table(
        "budget_categories",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        _fk("created_by", "users.id"),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("icon", sa.String(50), nullable=True),
        sa.Column("color", sa.String(20), nullable=True),
        sa.Column("is_default", sa.Boolean, server_default=sa.text("false"), nullable=False),
        _created_at(),
    )
    op.create_index("ix_budget_categories_workspace_id", "budget_categories", ["workspace_id"])

    # ── recurring_transactions ─────────────────────────────────────────────────
    op.create_table(
        "recurring_transactions",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        _fk("created_by", "users.id"),
        sa.Column("name", sa.String(100), nullable=False),
        _fk("category_id", "budget_categories.id", nullable=True, ondelete="SET NULL"),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("frequency", sa.String(20), nullable=False),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("next_due_date", sa.Date, nullable=False),
        sa.Column("last_processed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean, server_default=sa.text("true"), nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        _created_at(),
    )
    op.create_index(
        "ix_recurring_transactions_workspace_id", "recurring_transactions", ["workspace_id"]
    )
    op.create_index(
        "ix_recurring_transactions_next_due_date", "recurring_transactions", ["next_due_date"]
    )

    # ── monthly_budgets / budget_items ─────────────────────────────────────────
    op.create_table(
        "monthly_budgets",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        _fk("created_by", "users.id"),
        _fk("category_id", "budget_categories.id"),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column("month", sa.Integer, nullable=False),
        sa.Column("planned_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        _created_at(),
        sa.UniqueConstraint("workspace_id", "category_id", "year", "month"),
    )
    op.create_index("ix_monthly_budgets_workspace_id", "monthly_budgets", ["workspace_id"])
    op.create_index("ix_monthly_budgets_category_id", "monthly_budgets", ["category_id"])

    op.create_table(
        "budget_items",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        _fk("created_by", "users.id"),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column("month", sa.Integer, nullable=False),
        _fk("category_id", "budget_categories.id", nullable=True, ondelete="SET NULL"),
        _fk("recurring_expense_id", "recurring_transactions.id", nullable=True, ondelete="SET NULL"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("quantity_type", sa.String(10), server_default="fixed", nullable=False),
        sa.Column("quantity", sa.Numeric(14, 3), server_default="1", nullable=False),
        sa.Column("unit_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("planned_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("is_purchased", sa.Boolean, server_default=sa.text("false"), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        _created_at(),
    )
    op.create_index("ix_budget_items_workspace_id", "budget_items", ["workspace_id"])

    # ── debts ──────────────────────────────────────────────────────────────────
    op.create_table(
        "debts",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        _fk("created_by", "users.id"),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("person_name", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("due_date", sa.Date, nullable=True),
        sa.Column("is_paid", sa.Boolean, server_default=sa.text("false"), nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        _created_at(),
    )
    op.create_index("ix_debts_workspace_id", "debts", ["workspace_id"])

    # ── transactions ───────────────────────────────────────────────────────────
    op.create_table(
        "transactions",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        _fk("created_by", "users.id"),
        sa.Column("type", sa.String(10), nullable=False),
        _fk("category_id", "budget_categories.id", nullable=True, ondelete="SET NULL"),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("converted_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("exchange_rate", sa.Numeric(18, 8), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("transaction_date", sa.Date, nullable=False),
        _fk("recurring_expense_id", "recurring_transactions.id", nullable=True, ondelete="SET NULL"),
        _fk("debt_id", "debts.id", nullable=True, ondelete="SET NULL"),
        _fk("budget_item_id", "budget_items.id", nullable=True, ondelete="SET NULL"),
        sa.Column("tags", sa.JSON, nullable=True),
        _created_at(),
    )
    op.create_index("ix_transactions_workspace_id", "transactions", ["workspace_id"])
    op.create_index("ix_transactions_category_id", "transactions", ["category_id"])
    op.create_index("ix_transactions_transaction_date", "transactions", ["transaction_date"])

    # ── income_sources ─────────────────────────────────────────────────────────
    op.create_table(
        "income_sources",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        _fk("created_by", "users.id"),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("frequency", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean, server_default=sa.text("true"), nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        _created_at(),
    )
    op.create_index("ix_income_sources_workspace_id", "income_sources", ["workspace_id"])

    # ── user_preferences / exchange_rates ──────────────────────────────────────
    op.create_table(
        "user_preferences",
        _id(),
        _fk("user_id", "users.id"),
        _fk("default_workspace_id", "workspaces.id", nullable=True, ondelete="SET NULL"),
        sa.Column("default_language", sa.String(5), server_default="en", nullable=True),
        sa.Column("default_currency", sa.String(3), server_default="USD", nullable=True),
        sa.Column("theme", sa.String(10), server_default="system", nullable=True),
        sa.Column(
            "notifications_enabled", sa.Boolean, server_default=sa.text("true"), nullable=False
        ),
        sa.Column(
            "email_notifications", sa.Boolean, server_default=sa.text("true"), nullable=False
        ),
        _created_at(),
    )
    op.create_index("ix_user_preferences_user_id", "user_preferences", ["user_id"], unique=True)

    op.create_table(
        "exchange_rates",
        _id(),
        _fk("created_by", "users.id"),
        sa.Column("from_currency", sa.String(3), nullable=False),
        sa.Column("to_currency", sa.String(3), nullable=False),
        sa.Column("rate", sa.Numeric(18, 8), nullable=False),
        sa.Column("fetched_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_exchange_rates_from_currency", "exchange_rates", ["from_currency"])
    op.create_index("ix_exchange_rates_to_currency", "exchange_rates", ["to_currency"])
    op.create_index("ix_exchange_rates_fetched_at", "exchange_rates", ["fetched_at"])


def downgrade() -> None:
    for table in (
        "exchange_rates",
        "user_preferences",
        "income_sources",
        "transactions",
        "debts",
        "budget_items",
        "monthly_budgets",
        "recurring_transactions",
        "budget_categories",
        "workspace_invitations",
        "workspace_members",
        "workspaces",
        "users",
    ):
        op.drop_table(table)
