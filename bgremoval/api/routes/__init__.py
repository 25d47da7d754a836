"""
API Router Module

- POST /remove-background - upload an image, get it back without background
- GET /metrics - Prometheus scraping
"""

from fastapi import APIRouter

from bgremoval.api.routes.removal import router as removal_router
from bgremoval.api.routes.metrics import router as metrics_router

api_router = APIRouter()

api_router.include_router(removal_router, tags=["removal"])
api_router.include_router(metrics_router, tags=["metrics"])
