"""API Routes."""

from fastapi import APIRouter, Depends

from api.dependencies import require_api_key

from .health import router as health_router
from .keywords import router as keywords_router

# Create main API router
api_router = APIRouter(dependencies=[Depends(require_api_key)])

# Include route modules
api_router.include_router(health_router, tags=["Health"])
api_router.include_router(keywords_router)
