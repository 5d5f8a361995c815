"""
Document number generation.

Each (account, kind, calendar month) has its own counter. Reserving the
next value is a single atomic step - either a process lock around an
in-memory dict or one INSERT ... ON CONFLICT DO UPDATE ... RETURNING
statement - so two concurrent callers can never observe the same value.
Counting existing documents and adding one is deliberately not offered.

Design Decisions:
- Abstract store interface so the core stays free of I/O by default
- Post-increment value returned directly by the store
- A uniqueness violation is a bug, surfaced as SequenceConflict and never retried
"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from facturier.domain.errors import SequenceConflict, ValidationFailure
from facturier.domain.models import DocumentKind
from facturier.domain.numbering import format_document_number, period_key
from facturier.infrastructure.database import DocumentCounter

logger = logging.getLogger(__name__)


class CounterStore(ABC):
    """Abstract interface for sequence counter storage."""

    @abstractmethod
    async def next_value(self, account_id: str, kind: DocumentKind, period: str) -> int:
        """Atomically increment the counter and return the new value."""
        pass

    @abstractmethod
    async def current_value(self, account_id: str, kind: DocumentKind, period: str) -> int:
        """Last value handed out, 0 if the counter was never used."""
        pass


class InMemoryCounterStore(CounterStore):
    """
    Process-local counters.

    Suitable for tests and single-process deployments; values are lost
    on restart.
    """

    def __init__(self) -> None:
        self._values: dict[tuple[str, DocumentKind, str], int] = {}
        self._lock = threading.Lock()

    async def next_value(self, account_id: str, kind: DocumentKind, period: str) -> int:
        key = (account_id, kind, period)
        with self._lock:
            value = self._values.get(key, 0) + 1
            self._values[key] = value
        return value

    async def current_value(self, account_id: str, kind: DocumentKind, period: str) -> int:
        with self._lock:
            return self._values.get((account_id, kind, period), 0)


class SqlCounterStore(CounterStore):
    """
    Counters in the document_counters table.

    Works on PostgreSQL and SQLite (3.35+), both of which support
    ON CONFLICT ... DO UPDATE ... RETURNING.
    """

    _INSERTS = {
        "postgresql": pg_insert,
        "sqlite": sqlite_insert,
    }

    def __init__(self, engine: AsyncEngine) -> None:
        dialect = engine.dialect.name
        if dialect not in self._INSERTS:
            raise ValueError(f"Unsupported database dialect for counters: {dialect}")
        self.engine = engine
        self._insert = self._INSERTS[dialect]

    def _increment_statement(self, account_id: str, kind: DocumentKind, period: str):
        now = datetime.now(timezone.utc)
        stmt = self._insert(DocumentCounter).values(
            account_id=account_id,
            kind=kind.value,
            period=period,
            value=1,
            updated_at=now,
        )
        return stmt.on_conflict_do_update(
            index_elements=["account_id", "kind", "period"],
            set_={"value": DocumentCounter.value + 1, "updated_at": now},
        ).returning(DocumentCounter.value)

    async def next_value(self, account_id: str, kind: DocumentKind, period: str) -> int:
        stmt = self._increment_statement(account_id, kind, period)
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(stmt)
                return result.scalar_one()
        except IntegrityError as e:
            logger.error(f"Counter conflict for {account_id}/{kind.value}/{period}: {e}")
            raise SequenceConflict(
                f"Counter for {account_id}/{kind.value}/{period} violated uniqueness"
            ) from e

    async def current_value(self, account_id: str, kind: DocumentKind, period: str) -> int:
        stmt = select(DocumentCounter.value).where(
            DocumentCounter.account_id == account_id,
            DocumentCounter.kind == kind.value,
            DocumentCounter.period == period,
        )
        async with self.engine.connect() as conn:
            value = (await conn.execute(stmt)).scalar_one_or_none()
        return value or 0


class SequenceGenerator:
    """
    Produces document numbers like FACT202410-0001.

    Example:
        generator = SequenceGenerator(InMemoryCounterStore())
        number = await generator.generate("acc_42", DocumentKind.INVOICE)
    """

    def __init__(
        self,
        store: CounterStore,
        tz: str = "UTC",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Args:
            store: Counter storage backend
            tz: Timezone deciding which calendar month "now" falls in
            clock: Time source, datetime.now if None
        """
        self.store = store
        self.tz = ZoneInfo(tz)
        self._clock = clock

    def _now(self) -> datetime:
        now = self._clock() if self._clock else datetime.now(self.tz)
        if now.tzinfo is not None:
            now = now.astimezone(self.tz)
        return now

    async def generate(self, account_id: str, kind: DocumentKind) -> str:
        """
        Reserve the next number for the account and kind in the current month.

        Raises:
            ValidationFailure: If account_id is empty
            SequenceExhausted: If the month already used 9999 numbers
            SequenceConflict: If the store reports a uniqueness violation
        """
        if not account_id or not account_id.strip():
            raise ValidationFailure.single("account_id", "must not be empty")

        now = self._now()
        period = period_key(now.year, now.month)
        value = await self.store.next_value(account_id, kind, period)
        number = format_document_number(kind, now.year, now.month, value)

        logger.info(f"Generated {number} for account {account_id}")
        return number
