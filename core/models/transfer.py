# =============================================================================
# core/models/transfer.py - Spreadsheet Import Schemas
# =============================================================================

from pydantic import Field

from core.models.map import CamelModel, MapConnection, MapNode


class ImportResult(CamelModel):
    """
    Outcome of importing a spreadsheet into a map.

    Rows with errors are skipped and reported; duplicates are counted and
    skipped. With dry_run nothing is written.
    """
    nodes_added: list[MapNode] = Field(default_factory=list)
    connections_added: list[MapConnection] = Field(default_factory=list)
    nodes_duplicate: int = 0
    connections_duplicate: int = 0
    errors: list[str] = Field(default_factory=list)
    dry_run: bool = False

    def summary(self) -> dict:
        return {
            "nodesAdded": len(self.nodes_added),
            "connectionsAdded": len(self.connections_added),
            "nodesDuplicate": self.nodes_duplicate,
            "connectionsDuplicate": self.connections_duplicate,
            "errors": self.errors,
            "dryRun": self.dry_run,
        }
