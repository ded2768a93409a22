"""V1 API router -- aggregates all v1 endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.marketplace_sync.api.v1 import health, marketplace

router = APIRouter()

router.include_router(health.router)
router.include_router(marketplace.router, prefix="/api/v1")
