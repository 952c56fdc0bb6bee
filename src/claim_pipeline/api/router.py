"""Top-level API router composition."""

from fastapi import APIRouter

from claim_pipeline.api.routes import claims_router, health_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(claims_router)

__all__ = ["api_router"]
