"""API routes for opsdesk."""

from opsdesk.infrastructure.api.routes.records_router import router as records_router

__all__ = ["records_router"]
