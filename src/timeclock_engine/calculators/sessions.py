"""Work session reconstruction from the clock event log."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from uuid import UUID

from timeclock_engine.calculators.types import (
    ClockAction,
    ClockEvent,
    TimeRange,
    WorkInterval,
    duration_to_hours,
)


@dataclass
class Reconstruction:
    """Result of replaying one worker's events."""

    closed: list[WorkInterval] = field(default_factory=list)
    open: WorkInterval | None = None

    @property
    def intervals(self) -> list[WorkInterval]:
        """Closed intervals followed by the trailing open one, if any."""
        if self.open is None:
            return list(self.closed)
        return [*self.closed, self.open]

    @property
    def closed_hours(self) -> Decimal:
        """Total closed time, converted to hours once after summing."""
        total = sum((interval.duration for interval in self.closed), timedelta())
        return duration_to_hours(total)


class SessionReconstructor:
    """Pairs ClockIn/ClockOut events into work intervals.

    Replay rules:
    - ClockIn with no open interval opens one; a ClockIn while open is a
      duplicate and collapses into the existing session
    - ClockOut with an open interval closes and emits it; a ClockOut with
      nothing open is an orphan and is dropped
    - Meal actions do not affect sessions
    - A ClockOut at the same instant as its ClockIn closes the session
      without emitting a zero-length interval

    Malformed history never raises here. Write-side rules live in ClockService.
    """

    @staticmethod
    def reconstruct(
        events: Iterable[ClockEvent],
        window: TimeRange | None = None,
    ) -> Reconstruction:
        """Replay one worker's events, optionally restricted to a window."""
        result = Reconstruction()
        current: ClockEvent | None = None

        for event in sorted(events, key=ClockEvent.sort_key):
            if window is not None and not window.contains(event.timestamp):
                continue

            if event.action == ClockAction.CLOCK_IN:
                if current is None:
                    current = event
            elif event.action == ClockAction.CLOCK_OUT:
                if current is None:
                    continue
                if event.timestamp > current.timestamp:
                    result.closed.append(
                        WorkInterval(
                            worker_id=current.worker_id,
                            started_at=current.timestamp,
                            ended_at=event.timestamp,
                            source_event_ids=(current.event_id, event.event_id),
                            notes=current.notes,
                        )
                    )
                current = None

        if current is not None:
            result.open = WorkInterval(
                worker_id=current.worker_id,
                started_at=current.timestamp,
                ended_at=None,
                source_event_ids=(current.event_id,),
                notes=current.notes,
            )

        return result

    @staticmethod
    def reconstruct_by_worker(
        events: Iterable[ClockEvent],
        window: TimeRange | None = None,
    ) -> dict[UUID, Reconstruction]:
        """Group a mixed event stream by worker and replay each group."""
        grouped: dict[UUID, list[ClockEvent]] = defaultdict(list)
        for event in events:
            grouped[event.worker_id].append(event)
        return {
            worker_id: SessionReconstructor.reconstruct(worker_events, window)
            for worker_id, worker_events in grouped.items()
        }

    @staticmethod
    def is_open(
        last_clock_in: ClockEvent | None,
        last_clock_out: ClockEvent | None,
    ) -> bool:
        """Decide whether a session is open from the latest in/out events.

        Open iff a ClockIn exists and either no ClockOut exists or the latest
        ClockIn sorts after the latest ClockOut by (timestamp, sequence), the
        same order a full replay uses.
        """
        if last_clock_in is None:
            return False
        if last_clock_out is None:
            return True
        return last_clock_in.sort_key() > last_clock_out.sort_key()
