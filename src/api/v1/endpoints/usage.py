"""Endpoints exposing tenant usage history, live usage and reports."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db_session
from src.auth.jwt import require_auth
from src.core.config import settings
from src.schemas.usage import (
    CurrentUsage,
    RecordDailyUsageBody,
    UsageRecordRead,
    UsageReport,
)
from src.services import usage_service
from src.services.limits import check_rate_limit


router = APIRouter(prefix="/usage", tags=["usage"])


def _check_range(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must not be after end_date",
        )


@router.get("/statistics", response_model=List[UsageRecordRead])
async def usage_statistics(
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    auth=Depends(require_auth),
    db: AsyncSession = Depends(get_db_session),
):
    tenant_id = auth["tenant_id"]
    await check_rate_limit(str(tenant_id))
    _check_range(start_date, end_date)

    records = await usage_service.get_usage_statistics(db, tenant_id, start_date, end_date)
    return [UsageRecordRead.model_validate(record) for record in records]


@router.post("/record-daily", response_model=UsageRecordRead)
async def record_daily(
    body: Optional[RecordDailyUsageBody] = None,
    auth=Depends(require_auth),
    db: AsyncSession = Depends(get_db_session),
):
    tenant_id = auth["tenant_id"]
    await check_rate_limit(str(tenant_id))

    day = (body.date if body else None) or datetime.now(settings.USAGE_TIMEZONE)
    record = await usage_service.record_daily_usage(db, tenant_id, day)
    await db.commit()
    return UsageRecordRead.model_validate(record)


@router.get("/current", response_model=CurrentUsage)
async def current_usage(
    auth=Depends(require_auth), db: AsyncSession = Depends(get_db_session)
):
    tenant_id = auth["tenant_id"]
    await check_rate_limit(str(tenant_id))
    return await usage_service.get_current_usage(db, tenant_id)


@router.get("/quota", response_model=CurrentUsage)
async def quota_check(
    auth=Depends(require_auth), db: AsyncSession = Depends(get_db_session)
):
    tenant_id = auth["tenant_id"]
    await check_rate_limit(str(tenant_id))
    return await usage_service.ensure_within_plan(db, tenant_id)


@router.get("/report", response_model=UsageReport)
async def usage_report(
    start_date: date = Query(...),
    end_date: date = Query(...),
    auth=Depends(require_auth),
    db: AsyncSession = Depends(get_db_session),
):
    tenant_id = auth["tenant_id"]
    await check_rate_limit(str(tenant_id))
    _check_range(start_date, end_date)
    return await usage_service.generate_usage_report(db, tenant_id, start_date, end_date)
