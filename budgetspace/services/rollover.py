"""
Recurring transaction rollover.

Given "now", every active template of a workspace whose next due date has
arrived produces exactly one ledger transaction (dated at that due date) and
is then advanced one step, or deactivated when its schedule is over.

One step per call: a template overdue by several periods catches up one
period per invocation. Records are handled one at a time and each record's
writes are committed before the next is touched, so a failure part way
through leaves earlier records processed. The failure is raised as
``RolloverAborted`` carrying what was done before it.

Persistence goes through two narrow stores so the loop can run against the
database or against in-memory stores in tests.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Protocol

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from budgetspace.models.recurring import RecurringTransaction
from budgetspace.models.transaction import Transaction
from budgetspace.services.schedule import next_occurrence

logger = logging.getLogger(__name__)


# ─── Contracts ────────────────────────────────────────────────────────────────

@dataclass
class LedgerEntry:
    """A ledger transaction to be created from a template occurrence."""
    workspace_id: uuid.UUID
    created_by: uuid.UUID
    type: str
    amount: Decimal
    currency: str
    category_id: uuid.UUID | None
    description: str
    transaction_date: date
    recurring_expense_id: uuid.UUID


class TemplateStore(Protocol):
    """
    Templates are returned as objects exposing the RecurringTransaction
    attributes (id, name, type, amount, currency, category_id, frequency,
    start_date, end_date, next_due_date).
    """

    async def list_active_due_before(self, workspace_id: uuid.UUID, now: datetime) -> list[Any]: ...

    async def advance(
        self, template_id: uuid.UUID, next_due_date: date, last_processed_date: datetime
    ) -> None: ...

    async def deactivate(self, template_id: uuid.UUID, last_processed_date: datetime) -> None: ...


class LedgerStore(Protocol):
    async def append(self, entry: LedgerEntry) -> Any: ...


# ─── Results ──────────────────────────────────────────────────────────────────

@dataclass
class RolloverOutcome:
    recurring_id: uuid.UUID
    transaction_id: uuid.UUID
    transaction_date: date
    next_due_date: date | None  # None when the template was deactivated
    deactivated: bool


@dataclass
class RolloverResult:
    processed: list[RolloverOutcome] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.processed)


class RolloverAborted(Exception):
    """A record failed to persist; earlier records in the batch stay processed."""

    def __init__(self, failed_id: uuid.UUID, processed: list[RolloverOutcome]):
        self.failed_id = failed_id
        self.processed = processed
        super().__init__(
            f"Rollover stopped at recurring transaction {failed_id} "
            f"after {len(processed)} processed"
        )


# ─── Rollover ─────────────────────────────────────────────────────────────────

def build_entry(template: Any, actor_id: uuid.UUID) -> LedgerEntry:
    """Copy the template's money fields verbatim into a new ledger entry."""
    return LedgerEntry(
        workspace_id=template.workspace_id,
        created_by=actor_id,
        type=template.type,
        amount=template.amount,
        currency=template.currency,
        category_id=template.category_id,
        description=f"Recurring: {template.name}",
        transaction_date=template.next_due_date,
        recurring_expense_id=template.id,
    )


async def process_due(
    workspace_id: uuid.UUID,
    templates: TemplateStore,
    ledger: LedgerStore,
    actor_id: uuid.UUID,
    now: datetime | None = None,
) -> RolloverResult:
    """Materialize one transaction per due template and step each template once."""
    now = now or datetime.now(timezone.utc)
    due = await templates.list_active_due_before(workspace_id, now)
    logger.info("Rollover for workspace %s: %d template(s) due", workspace_id, len(due))

    result = RolloverResult()
    for template in due:
        try:
            outcome = await _process_one(template, templates, ledger, actor_id, now)
        except Exception as exc:
            logger.error(
                "Rollover failed on recurring transaction %s after %d processed: %s",
                template.id, result.count, exc,
            )
            raise RolloverAborted(template.id, result.processed) from exc
        result.processed.append(outcome)

    return result


async def _process_one(
    template: Any,
    templates: TemplateStore,
    ledger: LedgerStore,
    actor_id: uuid.UUID,
    now: datetime,
) -> RolloverOutcome:
    due_date = template.next_due_date
    txn = await ledger.append(build_entry(template, actor_id))

    candidate = next_occurrence(due_date, template.frequency, template.start_date.day)
    ended = candidate is None or (
        template.end_date is not None and candidate > template.end_date
    )

    if ended:
        await templates.deactivate(template.id, now)
        logger.info("Recurring transaction %s deactivated after %s", template.id, due_date)
    else:
        await templates.advance(template.id, candidate, now)
        logger.info("Recurring transaction %s advanced %s -> %s", template.id, due_date, candidate)

    return RolloverOutcome(
        recurring_id=template.id,
        transaction_id=txn.id,
        transaction_date=due_date,
        next_due_date=None if ended else candidate,
        deactivated=ended,
    )


# ─── Database-backed stores ───────────────────────────────────────────────────

class SqlTemplateStore:
    """Template store over recurring_transactions. Each write commits its record."""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def list_active_due_before(
        self, workspace_id: uuid.UUID, now: datetime
    ) -> list[RecurringTransaction]:
        result = await self._db.execute(
            select(RecurringTransaction)
            .where(
                RecurringTransaction.workspace_id == workspace_id,
                RecurringTransaction.is_active == True,  # noqa: E712
                RecurringTransaction.next_due_date <= now.date(),
            )
            .order_by(RecurringTransaction.next_due_date, RecurringTransaction.created_at)
        )
        return list(result.scalars().all())

    async def advance(
        self, template_id: uuid.UUID, next_due_date: date, last_processed_date: datetime
    ) -> None:
        await self._db.execute(
            update(RecurringTransaction)
            .where(RecurringTransaction.id == template_id)
            .values(next_due_date=next_due_date, last_processed_date=last_processed_date)
        )
        await self._db.commit()

    async def deactivate(self, template_id: uuid.UUID, last_processed_date: datetime) -> None:
        await self._db.execute(
            update(RecurringTransaction)
            .where(RecurringTransaction.id == template_id)
            .values(is_active=False, last_processed_date=last_processed_date)
        )
        await self._db.commit()


class SqlLedgerStore:
    """Create-only ledger store. The row is flushed and committed with its template update."""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def append(self, entry: LedgerEntry) -> Transaction:
        txn = Transaction(
            workspace_id=entry.workspace_id,
            created_by=entry.created_by,
            type=entry.type,
            amount=entry.amount,
            currency=entry.currency,
            category_id=entry.category_id,
            description=entry.description,
            transaction_date=entry.transaction_date,
            recurring_expense_id=entry.recurring_expense_id,
        )
        self._db.add(txn)
        await self._db.flush()
        return txn
