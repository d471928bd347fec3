"""
Privacy risk API router
"""

from fastapi import APIRouter
from app.api.v1 import alerts
from app.api.v1 import analysis
from app.api.v1 import cache
from app.api.v1 import clauses
from app.api.v1 import health
from app.api.v1 import history
from app.api.v1 import preferences
from app.api.v1 import sites

api_router = APIRouter(prefix="/api/v1")

# Analysis
api_router.include_router(analysis.router, prefix="/analysis", tags=["analysis"])
api_router.include_router(sites.router, prefix="/sites", tags=["sites"])
api_router.include_router(clauses.router, prefix="/clauses", tags=["clauses"])

# Users
api_router.include_router(preferences.router, prefix="/preferences", tags=["users"])
api_router.include_router(history.router, prefix="/history", tags=["users"])
api_router.include_router(alerts.router, prefix="/alerts", tags=["users"])

# Service
api_router.include_router(cache.router, prefix="/cache", tags=["service"])
api_router.include_router(health.router, prefix="/health", tags=["service"])
