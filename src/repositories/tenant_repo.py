"""Repository for tenant records."""
from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.tenant import Tenant


class TenantRepo:
    """Data-access helpers for :class:`Tenant`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, tenant_id: UUID) -> Tenant | None:
        result = await self.session.execute(
            select(Tenant).where(Tenant.id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def list_active_ids(self) -> list[UUID]:
        result = await self.session.execute(
            select(Tenant.id).where(Tenant.is_active.is_(True)).order_by(Tenant.created_at)
        )
        return list(result.scalars().all())
