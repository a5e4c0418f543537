"""Usage accounting: daily aggregation, live usage, and historical reports.

Daily records are written by :func:`record_daily_usage` and read back by
:func:`get_usage_statistics` and :func:`generate_usage_report`.
:func:`get_current_usage` bypasses the daily records and counts raw activity so
that it is accurate even when today has not been aggregated yet.
"""
from __future__ import annotations

import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Tuple, Union
from uuid import UUID

from dateutil.relativedelta import relativedelta
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.exceptions import NotFoundError, QuotaExceededError
from src.db.models.usage_record import UsageRecord
from src.repositories.activity_repo import ActivityRepo
from src.repositories.tenant_repo import TenantRepo
from src.repositories.usage_repo import UsageRepo
from src.schemas.usage import (
    CurrentUsage,
    DailyUsageBreakdown,
    UsageReport,
    UsageReportSummary,
)
from src.services.plan_limits import get_plan_limits


logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024

DateLike = Union[date, datetime]


def to_usage_date(value: DateLike) -> date:
    """Reduce a timestamp to its calendar day in the reference time zone.

    Naive datetimes are taken to be in the reference zone already.
    """

    if isinstance(value, datetime):
        tz = settings.USAGE_TIMEZONE
        if value.tzinfo is None:
            value = value.replace(tzinfo=tz)
        return value.astimezone(tz).date()
    return value


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Return the first and last microsecond of ``day`` as UTC instants."""

    tz = settings.USAGE_TIMEZONE
    start = datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)
    # End one microsecond before the next local midnight, taken in UTC, so
    # consecutive days stay contiguous when the offset changes at midnight.
    next_start = datetime.combine(
        day + timedelta(days=1), time.min, tzinfo=tz
    ).astimezone(timezone.utc)
    return start, next_start - timedelta(microseconds=1)


def _round_half_up(numerator: int, denominator: int) -> int:
    return (2 * numerator + denominator) // (2 * denominator)


async def record_daily_usage(
    session: AsyncSession, tenant_id: UUID, day: DateLike
) -> UsageRecord:
    """Aggregate one tenant-day of activity and upsert its usage record.

    Re-running for the same day overwrites the stored counts. The tenant is not
    validated; a tenant without activity gets an all-zero record.
    """

    usage_date = to_usage_date(day)
    start, end = day_bounds(usage_date)

    try:
        activity = ActivityRepo(session)
        messages_sent = await activity.count_messages(
            tenant_id, start, end, direction="outbound"
        )
        messages_received = await activity.count_messages(
            tenant_id, start, end, direction="inbound"
        )
        ai_requests = await activity.count_messages(tenant_id, start, end, bot_only=True)
        # Proxy: processed documents touched that day, not real knowledge-base lookups.
        kb_queries = await activity.count_processed_documents(tenant_id, start, end)
        # Live snapshot, not historical.
        active_connections = await activity.count_connected(tenant_id)

        record = await UsageRepo(session).upsert_daily(
            tenant_id,
            usage_date,
            messages_sent=messages_sent,
            messages_received=messages_received,
            ai_requests=ai_requests,
            knowledge_base_queries=kb_queries,
            active_connections=active_connections,
        )
    except SQLAlchemyError as exc:
        logger.error(f"Failed to record daily usage for tenant {tenant_id} on {usage_date}: {exc}")
        raise

    logger.info(
        f"Recorded usage for tenant {tenant_id} on {usage_date}: "
        f"sent={messages_sent} received={messages_received} ai={ai_requests}"
    )
    return record


async def record_daily_usage_for_all_tenants(
    session: AsyncSession, day: DateLike
) -> List[UsageRecord]:
    """Run :func:`record_daily_usage` for every active tenant."""

    try:
        tenant_ids = await TenantRepo(session).list_active_ids()
    except SQLAlchemyError as exc:
        logger.error(f"Failed to list tenants for daily usage aggregation: {exc}")
        raise

    records = []
    for tenant_id in tenant_ids:
        records.append(await record_daily_usage(session, tenant_id, day))
    logger.info(f"Aggregated daily usage for {len(records)} tenants")
    return records


async def get_usage_statistics(
    session: AsyncSession,
    tenant_id: UUID,
    start_date: Optional[DateLike] = None,
    end_date: Optional[DateLike] = None,
) -> List[UsageRecord]:
    """Return stored daily records, oldest first, with inclusive bounds."""

    try:
        return await UsageRepo(session).list_for_tenant(
            tenant_id,
            to_usage_date(start_date) if start_date is not None else None,
            to_usage_date(end_date) if end_date is not None else None,
        )
    except SQLAlchemyError as exc:
        logger.error(f"Failed to get usage statistics for tenant {tenant_id}: {exc}")
        raise


async def get_current_usage(
    session: AsyncSession, tenant_id: UUID, now: Optional[datetime] = None
) -> CurrentUsage:
    """Compute today's and month-to-date usage from raw activity."""

    tz = settings.USAGE_TIMEZONE
    now = now or datetime.now(tz)
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    start_of_today = datetime.combine(now.astimezone(tz).date(), time.min, tzinfo=tz)
    start_of_month = start_of_today + relativedelta(day=1)
    today_utc = start_of_today.astimezone(timezone.utc)
    month_utc = start_of_month.astimezone(timezone.utc)

    try:
        tenant = await TenantRepo(session).get(tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant not found")
        plan_limits = get_plan_limits(tenant.plan)

        activity = ActivityRepo(session)
        messages_today = await activity.count_messages(tenant_id, today_utc)
        messages_this_month = await activity.count_messages(tenant_id, month_utc)
        ai_requests_today = await activity.count_messages(
            tenant_id, today_utc, bot_only=True
        )
        ai_requests_this_month = await activity.count_messages(
            tenant_id, month_utc, bot_only=True
        )
        total_bytes = await activity.total_document_bytes(tenant_id)
    except SQLAlchemyError as exc:
        logger.error(f"Failed to get current usage for tenant {tenant_id}: {exc}")
        raise

    return CurrentUsage(
        messages_today=messages_today,
        messages_this_month=messages_this_month,
        ai_requests_today=ai_requests_today,
        ai_requests_this_month=ai_requests_this_month,
        # Any stored byte counts as a whole megabyte.
        storage_used_mb=math.ceil(total_bytes / BYTES_PER_MB),
        plan_limits=plan_limits,
    )


async def ensure_within_plan(
    session: AsyncSession, tenant_id: UUID, now: Optional[datetime] = None
) -> CurrentUsage:
    """Raise :class:`QuotaExceededError` once any monthly ceiling is reached."""

    usage = await get_current_usage(session, tenant_id, now=now)
    limits = usage.plan_limits

    if usage.messages_this_month >= limits.max_messages_per_month:
        raise QuotaExceededError("Monthly message cap reached. Upgrade plan.")
    if usage.ai_requests_this_month >= limits.max_ai_requests_per_month:
        raise QuotaExceededError("Monthly AI request cap reached. Upgrade plan.")
    if usage.storage_used_mb > limits.max_storage_mb:
        raise QuotaExceededError("Knowledge base storage limit exceeded. Upgrade plan.")
    return usage


async def generate_usage_report(
    session: AsyncSession,
    tenant_id: UUID,
    start_date: DateLike,
    end_date: DateLike,
) -> UsageReport:
    """Summarise stored daily records between two days, inclusive."""

    try:
        records = await UsageRepo(session).list_for_tenant(
            tenant_id, to_usage_date(start_date), to_usage_date(end_date)
        )
    except SQLAlchemyError as exc:
        logger.error(f"Failed to generate usage report for tenant {tenant_id}: {exc}")
        raise

    summary = UsageReportSummary()
    breakdown: List[DailyUsageBreakdown] = []
    for record in records:
        day_messages = record.total_messages
        summary.total_messages += day_messages
        summary.total_ai_requests += record.ai_requests
        # Strictly greater keeps the earliest day on ties.
        if day_messages > summary.peak_day_messages:
            summary.peak_day_messages = day_messages
            summary.peak_day = record.date
        breakdown.append(
            DailyUsageBreakdown(
                date=record.date,
                messages_sent=record.messages_sent,
                messages_received=record.messages_received,
                ai_requests=record.ai_requests,
            )
        )

    if records:
        summary.avg_daily_messages = _round_half_up(summary.total_messages, len(records))

    return UsageReport(summary=summary, daily_breakdown=breakdown)
