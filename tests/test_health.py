"""Liveness, readiness and version endpoints."""

from __future__ import annotations

from datetime import datetime

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "OK"
    assert data["version"] == "2.0.0"
    assert datetime.fromisoformat(data["timestamp"]).tzinfo is not None


@pytest.mark.asyncio
async def test_ready_without_redis(client: AsyncClient) -> None:
    resp = await client.get("/api/ready")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ready", "checks": {"database": "ok", "redis": "not configured"}}


@pytest.mark.asyncio
async def test_version(client: AsyncClient) -> None:
    resp = await client.get("/api/version")
    assert resp.json() == {"version": "2.0.0", "environment": "development"}
