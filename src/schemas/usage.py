"""Pydantic schemas for usage accounting resources."""
from __future__ import annotations

import datetime as dt
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PlanLimits(BaseModel):
    """Monthly quota ceilings of a plan tier."""

    model_config = ConfigDict(frozen=True)

    max_messages_per_month: int = Field(..., ge=0)
    max_ai_requests_per_month: int = Field(..., ge=0)
    max_storage_mb: int = Field(..., ge=0)


class UsageRecordRead(BaseModel):
    """Schema returned when reading a daily usage record."""

    id: UUID = Field(..., description="Record identifier")
    tenant_id: UUID = Field(..., description="Tenant identifier")
    date: dt.date = Field(..., description="Calendar day in the reference time zone")
    messages_sent: int = Field(..., ge=0)
    messages_received: int = Field(..., ge=0)
    ai_requests: int = Field(..., ge=0)
    knowledge_base_queries: int = Field(
        ..., ge=0, description="Processed documents updated that day"
    )
    active_connections: int = Field(
        ..., ge=0, description="Connected numbers when the day was last aggregated"
    )
    created_at: Optional[dt.datetime] = Field(default=None, description="Creation timestamp")

    model_config = ConfigDict(from_attributes=True)


class RecordDailyUsageBody(BaseModel):
    """Payload for triggering a daily aggregation."""

    date: Optional[dt.datetime] = Field(
        default=None, description="Any instant within the day to aggregate; defaults to now"
    )


class CurrentUsage(BaseModel):
    """Live usage compared against the tenant's plan."""

    messages_today: int
    messages_this_month: int
    ai_requests_today: int
    ai_requests_this_month: int
    storage_used_mb: int
    plan_limits: PlanLimits


class DailyUsageBreakdown(BaseModel):
    date: dt.date
    messages_sent: int
    messages_received: int
    ai_requests: int


class UsageReportSummary(BaseModel):
    total_messages: int = 0
    total_ai_requests: int = 0
    avg_daily_messages: int = 0
    peak_day: Optional[dt.date] = None
    peak_day_messages: int = 0


class UsageReport(BaseModel):
    """Summary statistics and per-day breakdown over a date range."""

    summary: UsageReportSummary
    daily_breakdown: List[DailyUsageBreakdown] = Field(default_factory=list)
