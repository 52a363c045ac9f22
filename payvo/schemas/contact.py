"""
Pydantic schemas for contact endpoints.
"""

import uuid

from pydantic import BaseModel, EmailStr, Field

from payvo.config import settings


class ContactCreateRequest(BaseModel):
    """
    Request body for POST /contacts.

    Giving the email of a registered account makes the contact "backed":
    its balance then mirrors that account.
    """
    name: str = Field(min_length=1, max_length=100)
    balance_cents: int = Field(default=0, ge=0, le=settings.MAX_AMOUNT_CENTS)
    phone_number: str | None = None
    email: EmailStr | None = None


class ContactResponse(BaseModel):
    id: uuid.UUID
    name: str
    balance_cents: int
    phone_number: str | None
    email: str | None

    model_config = {"from_attributes": True}
