"""Adjustment ledger: manual signed corrections per (work event, worker).

Key invariants:
1. At most one adjustment per (work_event_id, worker_id); last writer wins
2. A zero amount deletes the row (tombstone-on-zero); zeros are never stored
3. No history of prior values is retained
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from timeclock_engine.calculators.types import ensure_utc
from timeclock_engine.errors import UpstreamError
from timeclock_engine.models import PaymentAdjustment

logger = logging.getLogger(__name__)

AMOUNT_PRECISION = Decimal("0.01")


@dataclass(frozen=True)
class AdjustmentRecord:
    """A stored (or to-be-stored) adjustment."""

    work_event_id: UUID
    worker_id: UUID
    amount: Decimal
    note: str | None = None
    updated_by: UUID | None = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def key(self) -> tuple[UUID, UUID]:
        return (self.work_event_id, self.worker_id)


@dataclass(frozen=True)
class UpsertResult:
    """Counts from an upsert batch."""

    saved: int = 0
    deleted: int = 0


AdjustmentMap = dict[UUID, dict[UUID, Decimal]]


def normalize_amount(amount: Decimal) -> Decimal:
    """Round an adjustment to cents."""
    return Decimal(amount).quantize(AMOUNT_PRECISION, rounding=ROUND_HALF_UP)


def to_adjustment_map(records: Iterable[AdjustmentRecord]) -> AdjustmentMap:
    result: AdjustmentMap = {}
    for record in records:
        result.setdefault(record.work_event_id, {})[record.worker_id] = record.amount
    return result


class AdjustmentLedger(Protocol):
    """Storage contract for payment adjustments."""

    async def upsert(
        self,
        work_event_id: UUID,
        worker_id: UUID,
        amount: Decimal,
        note: str | None = None,
        updated_by: UUID | None = None,
    ) -> AdjustmentRecord | None:
        """Write the adjustment, or delete it when amount is zero.

        Returns the stored record, or None when the key was tombstoned.
        """
        ...

    async def upsert_many(self, records: Sequence[AdjustmentRecord]) -> UpsertResult:
        """Apply a batch of upserts atomically."""
        ...

    async def fetch_records(self, work_event_ids: Sequence[UUID]) -> list[AdjustmentRecord]:
        ...

    async def fetch(self, work_event_ids: Sequence[UUID]) -> AdjustmentMap:
        """Map of work_event_id -> worker_id -> amount. Absent means zero."""
        ...


class InMemoryAdjustmentLedger:
    """Process-local adjustment ledger."""

    def __init__(self) -> None:
        self._rows: dict[tuple[UUID, UUID], AdjustmentRecord] = {}

    async def upsert(
        self,
        work_event_id: UUID,
        worker_id: UUID,
        amount: Decimal,
        note: str | None = None,
        updated_by: UUID | None = None,
    ) -> AdjustmentRecord | None:
        record = AdjustmentRecord(
            work_event_id=work_event_id,
            worker_id=worker_id,
            amount=normalize_amount(amount),
            note=note,
            updated_by=updated_by,
        )
        return self._apply(record)

    async def upsert_many(self, records: Sequence[AdjustmentRecord]) -> UpsertResult:
        saved = deleted = 0
        for record in records:
            normalized = AdjustmentRecord(
                work_event_id=record.work_event_id,
                worker_id=record.worker_id,
                amount=normalize_amount(record.amount),
                note=record.note,
                updated_by=record.updated_by,
            )
            if self._apply(normalized) is None:
                deleted += 1
            else:
                saved += 1
        return UpsertResult(saved=saved, deleted=deleted)

    async def fetch_records(self, work_event_ids: Sequence[UUID]) -> list[AdjustmentRecord]:
        wanted = set(work_event_ids)
        return [r for r in self._rows.values() if r.work_event_id in wanted]

    async def fetch(self, work_event_ids: Sequence[UUID]) -> AdjustmentMap:
        return to_adjustment_map(await self.fetch_records(work_event_ids))

    def _apply(self, record: AdjustmentRecord) -> AdjustmentRecord | None:
        if record.amount == 0:
            self._rows.pop(record.key, None)
            return None
        self._rows[record.key] = record
        return record


class SqlAdjustmentLedger:
    """Adjustment ledger backed by the payment_adjustment table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def upsert(
        self,
        work_event_id: UUID,
        worker_id: UUID,
        amount: Decimal,
        note: str | None = None,
        updated_by: UUID | None = None,
    ) -> AdjustmentRecord | None:
        record = AdjustmentRecord(
            work_event_id=work_event_id,
            worker_id=worker_id,
            amount=normalize_amount(amount),
            note=note,
            updated_by=updated_by,
        )
        await self._write([record])
        return record if record.amount != 0 else None

    async def upsert_many(self, records: Sequence[AdjustmentRecord]) -> UpsertResult:
        normalized = [
            AdjustmentRecord(
                work_event_id=r.work_event_id,
                worker_id=r.worker_id,
                amount=normalize_amount(r.amount),
                note=r.note,
                updated_by=r.updated_by,
            )
            for r in records
        ]
        await self._write(normalized)
        deleted = sum(1 for r in normalized if r.amount == 0)
        return UpsertResult(saved=len(normalized) - deleted, deleted=deleted)

    async def fetch_records(self, work_event_ids: Sequence[UUID]) -> list[AdjustmentRecord]:
        if not work_event_ids:
            return []
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(PaymentAdjustment).where(
                        PaymentAdjustment.work_event_id.in_(list(work_event_ids))
                    )
                )
                rows = list(result.scalars().all())
        except SQLAlchemyError as exc:
            logger.exception("Failed to fetch adjustments for %d events", len(work_event_ids))
            raise UpstreamError("Adjustment ledger unavailable") from exc

        return [
            AdjustmentRecord(
                work_event_id=row.work_event_id,
                worker_id=row.worker_id,
                amount=normalize_amount(row.amount),
                note=row.note,
                updated_by=row.updated_by,
                updated_at=ensure_utc(row.updated_at),
            )
            for row in rows
        ]

    async def fetch(self, work_event_ids: Sequence[UUID]) -> AdjustmentMap:
        return to_adjustment_map(await self.fetch_records(work_event_ids))

    async def _write(self, records: Sequence[AdjustmentRecord]) -> None:
        try:
            async with self._session_factory() as session:
                insert = self._insert_for(session)
                for record in records:
                    if record.amount == 0:
                        await session.execute(
                            delete(PaymentAdjustment).where(
                                PaymentAdjustment.work_event_id == record.work_event_id,
                                PaymentAdjustment.worker_id == record.worker_id,
                            )
                        )
                        continue

                    stmt = insert(PaymentAdjustment).values(
                        work_event_id=record.work_event_id,
                        worker_id=record.worker_id,
                        amount=record.amount,
                        note=record.note,
                        updated_by=record.updated_by,
                        updated_at=record.updated_at,
                    )
                    stmt = stmt.on_conflict_do_update(
                        index_elements=["work_event_id", "worker_id"],
                        set_={
                            "amount": stmt.excluded.amount,
                            "note": stmt.excluded.note,
                            "updated_by": stmt.excluded.updated_by,
                            "updated_at": stmt.excluded.updated_at,
                        },
                    )
                    await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Failed to write %d adjustments", len(records))
            raise UpstreamError("Adjustment ledger unavailable") from exc

        logger.info("Wrote %d payment adjustments", len(records))

    @staticmethod
    def _insert_for(session: AsyncSession):
        """Dialect-specific INSERT supporting ON CONFLICT DO UPDATE."""
        if session.get_bind().dialect.name == "sqlite":
            return sqlite.insert
        return postgresql.insert
