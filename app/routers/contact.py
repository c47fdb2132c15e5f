# =============================================================================
# app/routers/contact.py - Contact Form Endpoint
# =============================================================================

from fastapi import APIRouter
from pydantic import BaseModel, Field

from core.services.contact_service import ContactService

router = APIRouter()


class ContactRequest(BaseModel):
    """Contact form fields. Blank fields are rejected with 400."""
    name: str = ""
    email: str = ""
    subject: str = ""
    body: str = Field(default="", description="Message text")


@router.post("/contact")
async def send_contact_message(request: ContactRequest):
    """Forward a message to the site owner; replies go to the sender."""
    return ContactService.send_message(request.name, request.email, request.subject, request.body)
