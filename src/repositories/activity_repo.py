"""Aggregate queries over raw tenant activity (messages, documents, connections)."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.knowledge_base_document import KnowledgeBaseDocument
from src.db.models.message import Message
from src.db.models.whatsapp_connection import WhatsAppConnection


class ActivityRepo:
    """Counting helpers used by usage aggregation and live usage views."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def count_messages(
        self,
        tenant_id: UUID,
        start: datetime,
        end: Optional[datetime] = None,
        *,
        direction: Optional[str] = None,
        bot_only: bool = False,
    ) -> int:
        """Count messages created at or after ``start`` (and at or before ``end``)."""

        query = (
            select(func.count())
            .select_from(Message)
            .where(Message.tenant_id == tenant_id, Message.created_at >= start)
        )
        if end is not None:
            query = query.where(Message.created_at <= end)
        if direction is not None:
            query = query.where(Message.direction == direction)
        if bot_only:
            query = query.where(Message.is_bot_response.is_(True))

        result = await self.session.execute(query)
        return int(result.scalar_one() or 0)

    async def count_processed_documents(
        self, tenant_id: UUID, start: datetime, end: datetime
    ) -> int:
        """Count processed documents whose ``updated_at`` falls inside the window."""

        result = await self.session.execute(
            select(func.count())
            .select_from(KnowledgeBaseDocument)
            .where(
                KnowledgeBaseDocument.tenant_id == tenant_id,
                KnowledgeBaseDocument.is_processed.is_(True),
                KnowledgeBaseDocument.updated_at >= start,
                KnowledgeBaseDocument.updated_at <= end,
            )
        )
        return int(result.scalar_one() or 0)

    async def count_connected(self, tenant_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(WhatsAppConnection)
            .where(
                WhatsAppConnection.tenant_id == tenant_id,
                WhatsAppConnection.connection_status == "connected",
            )
        )
        return int(result.scalar_one() or 0)

    async def total_document_bytes(self, tenant_id: UUID) -> int:
        """Sum of ``file_size`` across every document of the tenant."""

        result = await self.session.execute(
            select(func.coalesce(func.sum(KnowledgeBaseDocument.file_size), 0)).where(
                KnowledgeBaseDocument.tenant_id == tenant_id
            )
        )
        return int(result.scalar_one() or 0)
