"""Manual payment adjustment model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, Numeric, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from timeclock_engine.models.base import Base, TimestampMixin


class PaymentAdjustment(Base, TimestampMixin):
    """Signed correction to one worker's pay for one work event.

    Zero-valued adjustments are deleted, never stored.
    """

    __tablename__ = "payment_adjustment"

    payment_adjustment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    work_event_id: Mapped[UUID] = mapped_column(nullable=False)
    worker_id: Mapped[UUID] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_by: Mapped[UUID | None] = mapped_column(nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "work_event_id", "worker_id", name="payment_adjustment_event_worker_unique"
        ),
        CheckConstraint("amount <> 0", name="payment_adjustment_nonzero"),
    )
