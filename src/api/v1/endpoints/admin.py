"""Administrative endpoints for scheduled usage aggregation."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db_session
from src.auth.jwt import require_admin
from src.core.config import settings
from src.schemas.usage import RecordDailyUsageBody
from src.services import usage_service


router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/usage/record-daily")
async def record_daily_for_all_tenants(
    body: Optional[RecordDailyUsageBody] = None,
    auth=Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    day = (body.date if body else None) or datetime.now(settings.USAGE_TIMEZONE)
    records = await usage_service.record_daily_usage_for_all_tenants(db, day)
    await db.commit()
    return {
        "status": "ok",
        "date": str(usage_service.to_usage_date(day)),
        "tenants_processed": len(records),
    }
