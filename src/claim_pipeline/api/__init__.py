"""HTTP API layer."""

from claim_pipeline.api.router import api_router

__all__ = ["api_router"]
