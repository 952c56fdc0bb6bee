"""Route modules public API."""

from claim_pipeline.api.routes.claims import router as claims_router
from claim_pipeline.api.routes.health import router as health_router

__all__ = ["claims_router", "health_router"]
