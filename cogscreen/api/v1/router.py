"""API v1 router aggregating all endpoints."""

from fastapi import APIRouter

from cogscreen.api.v1 import assessments, catalog, health, review

api_router = APIRouter()

# Health check
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"],
)

# Question catalog
api_router.include_router(
    catalog.router,
    prefix="/catalog",
    tags=["catalog"],
)

# Intake and reads
api_router.include_router(
    assessments.router,
    prefix="/assessments",
    tags=["assessments"],
)

# Clinical review
api_router.include_router(
    review.router,
    prefix="/assessments",
    tags=["review"],
)
