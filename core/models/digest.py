# =============================================================================
# core/models/digest.py - Daily Digest Schemas
# =============================================================================

from pydantic import BaseModel, Field


class DigestMapEntry(BaseModel):
    """
    Pending submissions of one map, as listed in an admin's digest.

    Example:
        DigestMapEntry(
            map_id="...",
            map_title="Toronto Scene",
            map_slug="toronto-scene",
            node_titles=["Open mic", "Zine fair"],
            connection_descriptions=["co-host"],
        )
    """
    map_id: str
    map_title: str
    map_slug: str
    node_titles: list[str] = Field(default_factory=list)
    connection_descriptions: list[str] = Field(default_factory=list)

    @property
    def node_count(self) -> int:
        return len(self.node_titles)

    @property
    def connection_count(self) -> int:
        return len(self.connection_descriptions)

    @property
    def total(self) -> int:
        return self.node_count + self.connection_count


class FeatureRequestEntry(BaseModel):
    """A map that asked to be featured on the home page."""
    map_title: str
    map_slug: str


class DigestResult(BaseModel):
    """Outcome of one digest run."""
    ok: bool = True
    sent: int = 0
    total: int = 0
    message: str | None = None
