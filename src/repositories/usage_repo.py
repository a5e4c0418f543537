"""Repository helpers for daily usage records."""
from __future__ import annotations

import uuid
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import Date, bindparam, select, text
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.usage_record import UsageRecord


# Counts are replaced on conflict, never accumulated.
_UPSERT_DAILY = text(
    """
    INSERT INTO usage_records (
      id, tenant_id, date, messages_sent, messages_received,
      ai_requests, knowledge_base_queries, active_connections
    )
    VALUES (:id, :t, :d, :sent, :received, :ai, :kb, :conn)
    ON CONFLICT (tenant_id, date)
    DO UPDATE SET
      messages_sent = EXCLUDED.messages_sent,
      messages_received = EXCLUDED.messages_received,
      ai_requests = EXCLUDED.ai_requests,
      knowledge_base_queries = EXCLUDED.knowledge_base_queries,
      active_connections = EXCLUDED.active_connections
    """
).bindparams(
    bindparam("id", type_=PGUUID(as_uuid=True)),
    bindparam("t", type_=PGUUID(as_uuid=True)),
    bindparam("d", type_=Date()),
)


class UsageRepo:
    """Provides storage helpers for :class:`UsageRecord`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def upsert_daily(
        self,
        tenant_id: UUID,
        day: date,
        *,
        messages_sent: int,
        messages_received: int,
        ai_requests: int,
        knowledge_base_queries: int,
        active_connections: int,
    ) -> UsageRecord:
        """Insert or overwrite the record for ``(tenant_id, day)`` atomically."""

        await self.session.execute(
            _UPSERT_DAILY,
            {
                "id": uuid.uuid4(),
                "t": tenant_id,
                "d": day,
                "sent": messages_sent,
                "received": messages_received,
                "ai": ai_requests,
                "kb": knowledge_base_queries,
                "conn": active_connections,
            },
        )
        await self.session.flush()

        record = await self.get_for_day(tenant_id, day)
        if record is None:  # pragma: no cover - the upsert guarantees a row
            raise RuntimeError(f"Usage record missing after upsert for {tenant_id} on {day}")
        return record

    async def get_for_day(self, tenant_id: UUID, day: date) -> Optional[UsageRecord]:
        result = await self.session.execute(
            select(UsageRecord)
            .where(UsageRecord.tenant_id == tenant_id, UsageRecord.date == day)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_for_tenant(
        self,
        tenant_id: UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[UsageRecord]:
        """Return records for the tenant, oldest first, bounds inclusive."""

        query = select(UsageRecord).where(UsageRecord.tenant_id == tenant_id)
        if start_date is not None:
            query = query.where(UsageRecord.date >= start_date)
        if end_date is not None:
            query = query.where(UsageRecord.date <= end_date)
        query = query.order_by(UsageRecord.date.asc())

        result = await self.session.execute(query)
        return list(result.scalars().all())
