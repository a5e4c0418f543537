"""Daily usage aggregation model."""
from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import Date, DateTime, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base


class UsageRecord(Base):
    """Stores one aggregated usage snapshot per tenant per calendar day.

    ``active_connections`` is the connection count at aggregation time, not the
    count on ``date``.
    """

    __tablename__ = "usage_records"

    id: Mapped[uuid.UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    date: Mapped[dt.date] = mapped_column(Date, index=True, nullable=False)
    messages_sent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    messages_received: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ai_requests: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    knowledge_base_queries: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    active_connections: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "date", name="uq_usage_records_tenant_date"),
    )

    @property
    def total_messages(self) -> int:
        return self.messages_sent + self.messages_received

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<UsageRecord tenant={self.tenant_id} date={self.date}>"
