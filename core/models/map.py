# =============================================================================
# core/models/map.py - Map, Node and Connection Schemas
# =============================================================================
# These models define the API contract for map content:
# - SceneMap: One community map with theme, roles and display options
# - MapNode: A person, place, event, community, region or media item
# - MapConnection: A line between two nodes
#
# The API speaks camelCase (aliases); database rows are snake_case. Each
# model owns its row conversion so routes never touch column names.
# =============================================================================

from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class NodeType(str, Enum):
    """Kinds of map elements."""
    EVENT = "EVENT"
    PERSON = "PERSON"
    SPACE = "SPACE"
    COMMUNITY = "COMMUNITY"
    REGION = "REGION"
    MEDIA = "MEDIA"


ALL_NODE_TYPES: list[NodeType] = list(NodeType)


class ItemStatus(str, Enum):
    """
    Moderation state of a node or connection.

    - pending: submitted by the public, waiting for an admin
    - approved: visible to everyone
    """
    PENDING = "pending"
    APPROVED = "approved"


PUBLIC_COLLABORATOR_ID = "Public"


def _row_status(value: Any) -> ItemStatus:
    return ItemStatus.PENDING if value == ItemStatus.PENDING.value else ItemStatus.APPROVED


def _new_id() -> str:
    return str(uuid4())


class CamelModel(BaseModel):
    """Base for API models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_api(self) -> dict[str, Any]:
        """Serialize for JSON responses (camelCase, unset optionals dropped)."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# =============================================================================
# Theme
# =============================================================================

class MapTheme(CamelModel):
    """
    Colors and fonts for one map.

    Unknown keys are kept so clients can add styling without a migration.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    primary_color: str
    secondary_color: str
    accent_color: str
    background_color: str
    font_body: str | None = None
    font_display: str | None = None
    category_colors: dict[str, str] | None = None
    connection_line: dict[str, Any] | None = None
    region_font: str | None = None


DEFAULT_THEME = MapTheme(
    primary_color="#0d9488",
    secondary_color="#f59e0b",
    accent_color="#0ea5e9",
    background_color="#f0fdf4",
)


def _coerce_theme(value: Any) -> Any:
    """Anything that isn't a theme object with primaryColor falls back to None."""
    if isinstance(value, MapTheme):
        return value
    if isinstance(value, dict) and ("primaryColor" in value or "primary_color" in value):
        return value
    return None


# =============================================================================
# Map
# =============================================================================

class SceneMap(CamelModel):
    """
    A single community map.

    Returned by:
    - GET /maps
    - GET /maps/{slug}
    - GET /maps/{slug}/page

    The collaborator password is write-only: clients send
    `collaboratorPassword`, responses only carry `hasCollaboratorPassword`.
    """

    id: str | None = None
    slug: str = Field(..., min_length=1, max_length=200)
    title: str = ""
    description: str = ""
    background_image_url: str | None = None
    theme: MapTheme | None = None
    collaborator_password: str | None = Field(default=None, exclude=True)
    has_collaborator_password: bool = False

    # Roles
    admin_ids: list[str] = Field(default_factory=list)
    collaborator_ids: list[str] = Field(default_factory=list)
    public_view: bool = True

    # Invitations
    invited_admin_emails: list[str] | None = None
    invited_collaborator_emails: list[str] | None = None
    invitation_email_subject_admin: str | None = None
    invitation_email_body_admin: str | None = None
    invitation_email_subject_collaborator: str | None = None
    invitation_email_body_collaborator: str | None = None
    invitation_sender_name: str | None = None

    # Display options
    theme_id: str | None = None
    node_size_scale: float | None = None
    node_label_font_scale: float | None = None
    region_font_scale: float | None = None
    enabled_node_types: list[NodeType] | None = None
    connections_enabled: bool | None = None
    icon: str | None = None
    icon_background: str | None = None
    map_template_id: Literal["scene", "ideas", "network"] | None = None
    element_config: dict[str, Any] | None = None
    element_order: list[str] | None = None
    connection_config: dict[str, Any] | None = None

    # Featured placement
    feature_requested_at: str | None = None
    featured_order: int | None = None
    featured_active: bool | None = None

    @field_validator("theme", mode="before")
    @classmethod
    def _theme_or_none(cls, value: Any) -> Any:
        return _coerce_theme(value)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "SceneMap":
        """Build from a `maps` row. The password hash never leaves the row."""
        element_config = row.get("element_config")
        element_order = None
        if isinstance(element_config, dict):
            element_config = dict(element_config)
            order = element_config.pop("_order", None)
            element_order = order if isinstance(order, list) else None
            element_config = element_config or None
        else:
            element_config = None

        return cls(
            id=row.get("id"),
            slug=row["slug"],
            title=row.get("title") or "",
            description=row.get("description") or "",
            background_image_url=row.get("background_image_url"),
            theme=_coerce_theme(row.get("theme")) or DEFAULT_THEME,
            has_collaborator_password=bool(row.get("collaborator_password_hash")),
            admin_ids=row.get("admin_ids") or [],
            collaborator_ids=row.get("collaborator_ids") or [],
            public_view=row.get("public_view", True) is not False,
            theme_id=row.get("theme_id"),
            invited_admin_emails=row.get("invited_admin_emails"),
            invited_collaborator_emails=row.get("invited_collaborator_emails"),
            invitation_email_subject_admin=row.get("invitation_email_subject_admin"),
            invitation_email_body_admin=row.get("invitation_email_body_admin"),
            invitation_email_subject_collaborator=row.get("invitation_email_subject_collaborator"),
            invitation_email_body_collaborator=row.get("invitation_email_body_collaborator"),
            invitation_sender_name=row.get("invitation_sender_name"),
            node_size_scale=row.get("node_size_scale"),
            node_label_font_scale=row.get("node_label_font_scale"),
            region_font_scale=row.get("region_font_scale"),
            enabled_node_types=row.get("enabled_node_types"),
            connections_enabled=row.get("connections_enabled"),
            icon=row.get("icon"),
            icon_background=row.get("icon_background"),
            map_template_id=row.get("map_template_id"),
            element_config=element_config,
            element_order=element_order,
            connection_config=row.get("connection_config"),
            feature_requested_at=row.get("feature_requested_at"),
            featured_order=row.get("featured_order"),
            featured_active=row.get("featured_active"),
        )

    def to_row(self) -> dict[str, Any]:
        """
        Convert to a `maps` row for upsert.

        collaborator_password_hash is not included; the service decides
        whether to set, keep or clear it.
        """
        element_config = None
        if self.element_config is not None or self.element_order is not None:
            element_config = dict(self.element_config or {})
            if self.element_order:
                element_config["_order"] = self.element_order

        theme = self.theme or DEFAULT_THEME
        return {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "description": self.description,
            "background_image_url": self.background_image_url,
            "theme": theme.model_dump(by_alias=True, exclude_none=True),
            "admin_ids": self.admin_ids,
            "collaborator_ids": self.collaborator_ids,
            "public_view": self.public_view,
            "theme_id": self.theme_id,
            "invited_admin_emails": self.invited_admin_emails,
            "invited_collaborator_emails": self.invited_collaborator_emails,
            "invitation_email_subject_admin": self.invitation_email_subject_admin,
            "invitation_email_body_admin": self.invitation_email_body_admin,
            "invitation_email_subject_collaborator": self.invitation_email_subject_collaborator,
            "invitation_email_body_collaborator": self.invitation_email_body_collaborator,
            "invitation_sender_name": self.invitation_sender_name,
            "node_size_scale": self.node_size_scale,
            "node_label_font_scale": self.node_label_font_scale,
            "region_font_scale": self.region_font_scale,
            "enabled_node_types": [t.value for t in self.enabled_node_types] if self.enabled_node_types else None,
            "connections_enabled": self.connections_enabled,
            "icon": self.icon,
            "icon_background": self.icon_background,
            "map_template_id": self.map_template_id,
            "element_config": element_config,
            "connection_config": self.connection_config,
            "feature_requested_at": self.feature_requested_at,
            "featured_order": self.featured_order,
            "featured_active": self.featured_active,
        }


# =============================================================================
# Nodes and Connections
# =============================================================================

class MapNode(CamelModel):
    """
    One element on a map. Coordinates are percentages of the canvas.

    Example:
        {
            "id": "0f5c...",
            "type": "SPACE",
            "title": "The Tranzac",
            "x": 42.5,
            "y": 61.0,
            "tags": ["music"],
            "primaryTag": "music",
            "collaboratorId": "Public",
            "status": "pending"
        }
    """

    id: str = Field(default_factory=_new_id)
    type: NodeType
    title: str = ""
    description: str = ""
    website: str | None = None
    x: float = Field(default=50, ge=0, le=100)
    y: float = Field(default=50, ge=0, le=100)
    tags: list[str] = Field(default_factory=list)
    primary_tag: str = ""
    collaborator_id: str = ""
    status: ItemStatus = ItemStatus.APPROVED

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "MapNode":
        return cls.model_construct(
            id=row["id"],
            type=NodeType(row["type"]),
            title=row.get("title") or "",
            description=row.get("description") or "",
            website=row.get("website"),
            x=float(row.get("x", 50)),
            y=float(row.get("y", 50)),
            tags=row.get("tags") or [],
            primary_tag=row.get("primary_tag") or "",
            collaborator_id=row.get("collaborator_id") or "",
            status=_row_status(row.get("status")),
        )

    def to_row(self, map_id: str) -> dict[str, Any]:
        return {
            "id": self.id,
            "map_id": map_id,
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "website": self.website,
            "x": self.x,
            "y": self.y,
            "tags": self.tags,
            "primary_tag": self.primary_tag,
            "collaborator_id": self.collaborator_id,
            "status": self.status.value,
        }


class MapConnection(CamelModel):
    """
    A line between two nodes on the same map.

    curveOffsetX/Y place the control point of the curve (0-100); when absent
    the client draws its default curve.
    """

    id: str = Field(default_factory=_new_id)
    from_node_id: str
    to_node_id: str
    description: str = ""
    collaborator_id: str = ""
    status: ItemStatus = ItemStatus.APPROVED
    curve_offset_x: float | None = Field(default=None, ge=0, le=100)
    curve_offset_y: float | None = Field(default=None, ge=0, le=100)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "MapConnection":
        curve_x = row.get("curve_offset_x")
        curve_y = row.get("curve_offset_y")
        return cls.model_construct(
            id=row["id"],
            from_node_id=row["from_node_id"],
            to_node_id=row["to_node_id"],
            description=row.get("description") or "",
            collaborator_id=row.get("collaborator_id") or "",
            status=_row_status(row.get("status")),
            curve_offset_x=float(curve_x) if curve_x is not None else None,
            curve_offset_y=float(curve_y) if curve_y is not None else None,
        )

    def to_row(self, map_id: str) -> dict[str, Any]:
        return {
            "id": self.id,
            "map_id": map_id,
            "from_node_id": self.from_node_id,
            "to_node_id": self.to_node_id,
            "description": self.description,
            "collaborator_id": self.collaborator_id,
            "status": self.status.value,
            "curve_offset_x": self.curve_offset_x,
            "curve_offset_y": self.curve_offset_y,
        }


class MapPage(CamelModel):
    """Map plus its nodes and connections in one response."""
    map: SceneMap | None = None
    nodes: list[MapNode] = Field(default_factory=list)
    connections: list[MapConnection] = Field(default_factory=list)

    def to_api(self) -> dict[str, Any]:
        return {
            "map": self.map.to_api() if self.map else None,
            "nodes": [n.to_api() for n in self.nodes],
            "connections": [c.to_api() for c in self.connections],
        }
