"""Event payment source: base rates, commissions and tips per worker."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Protocol
from uuid import UUID

from timeclock_engine.calculators.types import EventPayment

EventPaymentMap = dict[UUID, dict[UUID, EventPayment]]


class EventPaymentSource(Protocol):
    """Supplies the per-worker payment figures for work events."""

    async def fetch(self, work_event_ids: Sequence[UUID]) -> EventPaymentMap:
        """Map of work_event_id -> worker_id -> EventPayment."""
        ...


class InMemoryEventPaymentSource:
    """Static event payment figures, keyed by event then worker."""

    def __init__(self, payments: Mapping[UUID, Mapping[UUID, EventPayment]] | None = None):
        self._payments: EventPaymentMap = {
            event_id: dict(workers) for event_id, workers in (payments or {}).items()
        }

    def set(self, work_event_id: UUID, worker_id: UUID, payment: EventPayment) -> None:
        self._payments.setdefault(work_event_id, {})[worker_id] = payment

    async def fetch(self, work_event_ids: Sequence[UUID]) -> EventPaymentMap:
        return {
            event_id: dict(self._payments[event_id])
            for event_id in work_event_ids
            if event_id in self._payments
        }
