# =============================================================================
# app/routers/featured.py - Featured Maps Endpoint
# =============================================================================
# Home page showcase. Public and CDN-cacheable.
# =============================================================================

from fastapi import APIRouter, Response

from core.services.map_service import MapService

router = APIRouter()

FEATURED_CACHE_CONTROL = "public, s-maxage=60, stale-while-revalidate=120"


@router.get("/featured-maps")
async def list_featured_maps(response: Response):
    """Maps with a featured order, in that order."""
    response.headers["Cache-Control"] = FEATURED_CACHE_CONTROL
    return [m.to_api() for m in MapService.list_featured()]
