"""Liveness endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from shared.schemas.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()
