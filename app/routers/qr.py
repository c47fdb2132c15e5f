# =============================================================================
# app/routers/qr.py - QR Code Proxy
# =============================================================================
# Serves QR code images from our own origin so the browser can draw them to
# a canvas (for download) without CORS errors.
# =============================================================================

import logging
from typing import Annotated

import httpx
from fastapi import APIRouter, Query, Response

from app.config import settings
from app.exceptions import UpstreamServiceError, ValidationFailedError

logger = logging.getLogger(__name__)

router = APIRouter()

QR_TIMEOUT_SECONDS = 10
QR_CACHE_CONTROL = "public, max-age=3600"


@router.get("/qr")
async def get_qr_code(
    data: Annotated[str | None, Query(description="Text to encode, usually a map URL")] = None,
    size: Annotated[int, Query(ge=50, le=1000, description="Edge length in pixels")] = 200,
):
    """
    QR code PNG for `data`.

    Raises:
        400: If data is missing
        500: If the QR provider fails
    """
    if not data:
        raise ValidationFailedError("data query param required")

    try:
        async with httpx.AsyncClient(timeout=QR_TIMEOUT_SECONDS) as client:
            upstream = await client.get(
                settings.QR_SERVICE_URL,
                params={"size": f"{size}x{size}", "data": data},
            )
            upstream.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(f"QR generation failed: {e}")
        raise UpstreamServiceError("Failed to generate QR", str(e))

    return Response(
        content=upstream.content,
        media_type=upstream.headers.get("content-type", "image/png"),
        headers={"Cache-Control": QR_CACHE_CONTROL},
    )
