from __future__ import annotations

import datetime as dt
from typing import Dict
from uuid import UUID, uuid4

import jwt
import pytest
from fastapi import status
from sqlalchemy import select

from src.core.config import settings
from src.db.models.usage_record import UsageRecord
from src.services.usage_service import BYTES_PER_MB


API_PREFIX = f"{settings.API_PREFIX}/v1"


def build_auth_header(tenant_id: UUID, **claims) -> Dict[str, str]:
    token = jwt.encode(
        {"tenant_id": str(tenant_id), **claims}, settings.JWT_SECRET, algorithm=settings.JWT_ALG
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_record_daily_normalizes_body_date(client, test_db, seed):
    tenant = await seed.tenant()
    connection = await seed.connection(tenant)
    await seed.message(
        tenant,
        connection,
        direction="outbound",
        created_at=dt.datetime(2024, 3, 5, 7, 30, tzinfo=dt.timezone.utc),
    )

    response = await client.post(
        f"{API_PREFIX}/usage/record-daily",
        json={"date": "2024-03-05T14:32:00Z"},
        headers=build_auth_header(tenant.id),
    )

    assert response.status_code == status.HTTP_200_OK, response.text
    body = response.json()
    assert body["date"] == "2024-03-05"
    assert body["tenant_id"] == str(tenant.id)
    assert body["messages_sent"] == 1
    assert body["active_connections"] == 1

    rows = (
        await test_db.execute(select(UsageRecord).where(UsageRecord.tenant_id == tenant.id))
    ).scalars().all()
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_record_daily_without_body_uses_today(client, seed):
    tenant = await seed.tenant()

    response = await client.post(
        f"{API_PREFIX}/usage/record-daily",
        headers=build_auth_header(tenant.id),
    )

    assert response.status_code == status.HTTP_200_OK, response.text
    today = dt.datetime.now(settings.USAGE_TIMEZONE).date()
    assert response.json()["date"] in {str(today), str(today - dt.timedelta(days=1))}


@pytest.mark.asyncio
async def test_statistics_are_scoped_to_token_tenant(client, seed):
    tenant = await seed.tenant()
    other = await seed.tenant()
    await seed.usage_record(tenant, dt.date(2024, 3, 2), sent=3)
    await seed.usage_record(tenant, dt.date(2024, 3, 1), sent=1)
    await seed.usage_record(tenant, dt.date(2024, 3, 9), sent=9)
    await seed.usage_record(other, dt.date(2024, 3, 2), sent=50)

    response = await client.get(
        f"{API_PREFIX}/usage/statistics",
        params={"start_date": "2024-03-01", "end_date": "2024-03-02"},
        headers=build_auth_header(tenant.id),
    )

    assert response.status_code == status.HTTP_200_OK, response.text
    body = response.json()
    assert [row["date"] for row in body] == ["2024-03-01", "2024-03-02"]
    assert [row["messages_sent"] for row in body] == [1, 3]


@pytest.mark.asyncio
async def test_statistics_rejects_inverted_range(client, seed):
    tenant = await seed.tenant()

    response = await client.get(
        f"{API_PREFIX}/usage/statistics",
        params={"start_date": "2024-03-05", "end_date": "2024-03-01"},
        headers=build_auth_header(tenant.id),
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "start_date must not be after end_date"


@pytest.mark.asyncio
async def test_current_usage_endpoint(client, seed):
    tenant = await seed.tenant(plan="premium")
    connection = await seed.connection(tenant)
    now = dt.datetime.now(dt.timezone.utc)
    await seed.message(tenant, connection, direction="inbound", created_at=now)
    await seed.message(
        tenant, connection, direction="outbound", created_at=now, is_bot_response=True
    )
    await seed.document(tenant, file_size=1)

    response = await client.get(
        f"{API_PREFIX}/usage/current", headers=build_auth_header(tenant.id)
    )

    assert response.status_code == status.HTTP_200_OK, response.text
    body = response.json()
    assert body["messages_today"] == 2
    assert body["messages_this_month"] == 2
    assert body["ai_requests_today"] == 1
    assert body["storage_used_mb"] == 1
    assert body["plan_limits"] == {
        "max_messages_per_month": 10_000,
        "max_ai_requests_per_month": 5_000,
        "max_storage_mb": 1_000,
    }


@pytest.mark.asyncio
async def test_current_usage_unknown_tenant_returns_not_found(client, test_db):
    response = await client.get(
        f"{API_PREFIX}/usage/current", headers=build_auth_header(uuid4())
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "Tenant not found"


@pytest.mark.asyncio
async def test_current_usage_unknown_plan_is_server_error(client, seed):
    tenant = await seed.tenant(plan="gold")

    response = await client.get(
        f"{API_PREFIX}/usage/current", headers=build_auth_header(tenant.id)
    )

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json()["message"] == "Unknown plan tier: 'gold'"


@pytest.mark.asyncio
async def test_quota_blocks_when_storage_exceeded(client, seed):
    tenant = await seed.tenant(plan="free")
    await seed.document(tenant, file_size=10 * BYTES_PER_MB + 1)

    response = await client.get(
        f"{API_PREFIX}/usage/quota", headers=build_auth_header(tenant.id)
    )

    assert response.status_code == status.HTTP_402_PAYMENT_REQUIRED
    assert response.json()["message"] == "Knowledge base storage limit exceeded. Upgrade plan."


@pytest.mark.asyncio
async def test_quota_passes_under_limits(client, seed):
    tenant = await seed.tenant(plan="free")
    await seed.document(tenant, file_size=10 * BYTES_PER_MB)

    response = await client.get(
        f"{API_PREFIX}/usage/quota", headers=build_auth_header(tenant.id)
    )

    assert response.status_code == status.HTTP_200_OK, response.text
    assert response.json()["storage_used_mb"] == 10


@pytest.mark.asyncio
async def test_report_endpoint(client, seed):
    tenant = await seed.tenant()
    await seed.usage_record(tenant, dt.date(2024, 3, 1), sent=20, received=15, ai=10)
    await seed.usage_record(tenant, dt.date(2024, 3, 2), sent=30, received=25, ai=15)
    await seed.usage_record(tenant, dt.date(2024, 3, 3), sent=10, received=8, ai=5)

    response = await client.get(
        f"{API_PREFIX}/usage/report",
        params={"start_date": "2024-03-01", "end_date": "2024-03-03"},
        headers=build_auth_header(tenant.id),
    )

    assert response.status_code == status.HTTP_200_OK, response.text
    body = response.json()
    assert body["summary"] == {
        "total_messages": 108,
        "total_ai_requests": 30,
        "avg_daily_messages": 36,
        "peak_day": "2024-03-02",
        "peak_day_messages": 55,
    }
    assert body["daily_breakdown"][0] == {
        "date": "2024-03-01",
        "messages_sent": 20,
        "messages_received": 15,
        "ai_requests": 10,
    }


@pytest.mark.asyncio
async def test_report_requires_both_dates(client, seed):
    tenant = await seed.tenant()

    response = await client.get(
        f"{API_PREFIX}/usage/report",
        params={"start_date": "2024-03-01"},
        headers=build_auth_header(tenant.id),
    )

    assert response.status_code == 422
    assert response.json()["message"] == "Validation error"


@pytest.mark.asyncio
async def test_rate_limit_blocks_second_request_within_window(
    client,
    seed,
    fake_redis,
    monkeypatch,
):
    tenant = await seed.tenant()
    monkeypatch.setattr(settings.limits, "rate_limit_rpm", 1)
    headers = build_auth_header(tenant.id)

    first = await client.get(f"{API_PREFIX}/usage/statistics", headers=headers)
    assert first.status_code == status.HTTP_200_OK

    second = await client.get(f"{API_PREFIX}/usage/statistics", headers=headers)
    assert second.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert second.json()["message"] == "Rate limit exceeded"
    assert list(fake_redis.ttls.values()) == [60]


@pytest.mark.asyncio
async def test_requests_without_bearer_token_are_rejected(client, test_db):
    response = await client.get(
        f"{API_PREFIX}/usage/current", headers={"Authorization": "Basic abc"}
    )

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["message"] == "Missing bearer token"


@pytest.mark.asyncio
async def test_requests_with_forged_token_are_rejected(client, test_db):
    response = await client.get(
        f"{API_PREFIX}/usage/current", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["message"] == "Invalid token"
