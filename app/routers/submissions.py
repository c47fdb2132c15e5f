# =============================================================================
# app/routers/submissions.py - Public Submission Endpoints
# =============================================================================
# Anonymous visitors of a public map can suggest nodes and connections.
# Everything submitted here lands as pending in the admins' moderation inbox;
# approval happens through the regular node/connection replacement.
# =============================================================================

from typing import Annotated, Any

from fastapi import APIRouter, Body, Path

from core.services.submission_service import SubmissionService

router = APIRouter()

SlugPath = Annotated[str, Path(min_length=1, description="Map slug")]


@router.post("/{slug}/submissions/nodes")
async def submit_node(
    slug: SlugPath,
    body: Annotated[dict[str, Any], Body(examples=[{
        "type": "EVENT",
        "title": "Friday Jazz Night",
        "x": 42.5,
        "y": 61,
        "website": "example.com/jazz",
        "tags": ["music"],
    }])],
):
    """
    Suggest a node for a public map.

    Returns:
        {"ok": true, "id": "<new node id>"}
    """
    return SubmissionService.submit_node(slug, body)


@router.post("/{slug}/submissions/connections")
async def submit_connection(
    slug: SlugPath,
    body: Annotated[dict[str, Any], Body(examples=[{
        "fromNodeId": "0f3c...",
        "toNodeId": "9a41...",
        "description": "Same organisers",
    }])],
):
    """Suggest a connection between two nodes of a public map."""
    return SubmissionService.submit_connection(slug, body)
