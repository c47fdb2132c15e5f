# =============================================================================
# app/routers/maps.py - Map Endpoints
# =============================================================================
# Map CRUD, the combined page payload, joining as collaborator, background
# uploads, featured placement, node/connection replacement and
# spreadsheet export/import.
#
# Private maps are visible to their admins and collaborators only. Anonymous
# callers can read public maps.
# =============================================================================

import io
import logging
from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, File, Path, Query, Response, UploadFile, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.auth import (
    AuthUser,
    get_current_user,
    get_current_user_optional,
    is_platform_admin_email,
    require_platform_admin,
)
from app.exceptions import MapNotFoundError
from core.models.map import MapConnection, MapNode, SceneMap
from core.services.map_service import MapService
from core.services.node_service import NodeService
from core.services.storage_service import StorageService
from core.services.transfer_service import TransferService

logger = logging.getLogger(__name__)

router = APIRouter()

SlugPath = Annotated[str, Path(min_length=1, description="Map slug")]

PUBLIC_PAGE_CACHE_CONTROL = "public, s-maxage=30, stale-while-revalidate=60"


def _user_id(user: Optional[AuthUser]) -> Optional[str]:
    return user.user_id if user else None


# =============================================================================
# Request Models
# =============================================================================

class BackgroundUploadRequest(BaseModel):
    """Where and what the browser will upload."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    content_type: str = Field(default="", examples=["image/png"])
    map_id: str = Field(default="", examples=["8d7f2c1e-4b4a-4f0e-9d55-0c8d1d3e9a10"])


class JoinRequest(BaseModel):
    """Shared collaborator password."""
    password: str | None = None


class FeatureUpdate(BaseModel):
    """
    Featured placement change.

    Only fields present in the body are written, so `featuredOrder: null`
    un-features a map while an absent `featuredOrder` leaves it alone.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    featured_order: int | None = None
    featured_active: bool | None = None
    clear_feature_request: bool = False


# =============================================================================
# Maps
# =============================================================================

@router.get("")
async def list_maps():
    """All maps, newest first."""
    return [m.to_api() for m in MapService.list_maps()]


@router.post("")
async def save_maps(
    body: SceneMap | list[SceneMap],
    user: AuthUser = Depends(get_current_user),
):
    """
    Create or replace one map or a list of maps.

    Invitation emails go out to addresses newly added to the invited lists.
    Featured placement is only changed for platform admins.
    """
    maps = body if isinstance(body, list) else [body]
    return MapService.save_maps(
        maps,
        user.user_id,
        is_platform_admin=is_platform_admin_email(user.email),
    )


@router.get("/import-template")
async def download_import_template():
    """Excel workbook with the import columns and example rows."""
    export = TransferService.build_template()
    return StreamingResponse(
        io.BytesIO(export.content),
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@router.post("/upload-background")
async def create_background_upload(
    request: BackgroundUploadRequest,
    user: AuthUser = Depends(get_current_user),
):
    """
    Presigned URL for uploading a map background image.

    The browser PUTs the file to `uploadUrl`, then saves `publicUrl` as the
    map's backgroundImageUrl.
    """
    return StorageService.create_background_upload(user.user_id, request.map_id, request.content_type)


@router.get("/{slug}")
async def get_map(
    slug: SlugPath,
    user: Optional[AuthUser] = Depends(get_current_user_optional),
):
    """One map. Private maps are 404 for non-members."""
    return MapService.get_map(slug, _user_id(user)).to_api()


@router.delete("/{slug}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_map(
    slug: SlugPath,
    user: AuthUser = Depends(get_current_user),
):
    """Delete a map with its nodes, connections, preferences and views (admins only)."""
    MapService.delete_map(slug, user.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{slug}/page")
async def get_map_page(
    slug: SlugPath,
    response: Response,
    user: Optional[AuthUser] = Depends(get_current_user_optional),
):
    """
    Map, nodes and connections in a single response.

    Public maps may be cached briefly by CDNs.
    """
    try:
        page, is_public = MapService.get_page(slug, _user_id(user))
    except MapNotFoundError:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"map": None, "nodes": [], "connections": []},
        )

    if is_public:
        response.headers["Cache-Control"] = PUBLIC_PAGE_CACHE_CONTROL
    return page.to_api()


@router.post("/{slug}/view")
async def record_view(
    slug: SlugPath,
    user: Optional[AuthUser] = Depends(get_current_user_optional),
):
    """Remember that the caller opened this map. Always ok."""
    MapService.record_view(slug, _user_id(user))
    return {"ok": True}


@router.post("/{slug}/join")
async def join_map(
    slug: SlugPath,
    request: JoinRequest,
    user: Optional[AuthUser] = Depends(get_current_user_optional),
):
    """Join as collaborator with the map's shared password."""
    return MapService.join_map(slug, _user_id(user), request.password)


@router.patch("/{slug}/feature")
async def update_feature(
    slug: SlugPath,
    request: FeatureUpdate,
    user: AuthUser = Depends(require_platform_admin),
):
    """Set featured order / active flag, optionally clearing the feature request."""
    updates = {
        field: getattr(request, field)
        for field in ("featured_order", "featured_active")
        if field in request.model_fields_set
    }
    logger.info(f"Platform admin {user.user_id} updating feature state of {slug}")
    return MapService.update_feature(slug, updates, request.clear_feature_request)


# =============================================================================
# Nodes and Connections
# =============================================================================

@router.get("/{slug}/nodes")
async def list_nodes(
    slug: SlugPath,
    user: Optional[AuthUser] = Depends(get_current_user_optional),
):
    """Nodes of a map, oldest first."""
    return [n.to_api() for n in NodeService.list_nodes(slug, _user_id(user))]


@router.put("/{slug}/nodes")
async def replace_nodes(
    slug: SlugPath,
    nodes: list[MapNode],
    user: AuthUser = Depends(get_current_user),
):
    """Make the map's nodes exactly this list (admins and collaborators)."""
    return NodeService.replace_nodes(slug, user.user_id, nodes)


@router.get("/{slug}/connections")
async def list_connections(
    slug: SlugPath,
    user: Optional[AuthUser] = Depends(get_current_user_optional),
):
    """Connections of a map, oldest first. Empty for unknown or hidden maps."""
    return [c.to_api() for c in NodeService.list_connections(slug, _user_id(user))]


@router.put("/{slug}/connections")
async def replace_connections(
    slug: SlugPath,
    connections: list[MapConnection],
    user: AuthUser = Depends(get_current_user),
):
    """Make the map's connections exactly this list (admins and collaborators)."""
    return NodeService.replace_connections(slug, user.user_id, connections)


# =============================================================================
# Export / Import
# =============================================================================

@router.get("/{slug}/export")
async def export_map(
    slug: SlugPath,
    format: Annotated[Literal["csv", "xlsx"], Query(description="Output format")] = "csv",
    user: Optional[AuthUser] = Depends(get_current_user_optional),
):
    """Download nodes, regions and connections as CSV or Excel."""
    export = TransferService.export_map(slug, _user_id(user), format)
    return StreamingResponse(
        io.BytesIO(export.content),
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@router.post("/{slug}/import")
async def import_map(
    slug: SlugPath,
    file: Annotated[UploadFile, File(description="Excel workbook to import")],
    dry_run: Annotated[bool, Query(alias="dryRun", description="Report without writing")] = False,
    user: AuthUser = Depends(get_current_user),
):
    """
    Add nodes and connections from an Excel workbook.

    Rows with problems are reported per row; duplicates of existing nodes or
    connections are counted and skipped.
    """
    content = await file.read()
    result = TransferService.import_map(
        slug,
        user.user_id,
        file.filename or "",
        content,
        dry_run=dry_run,
    )
    return result.summary()
