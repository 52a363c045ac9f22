"""
Pydantic schemas for cross-account money requests.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from payvo.config import settings
from payvo.records import RequestStatus


class MoneyRequestCreate(BaseModel):
    """Request body for POST /requests."""
    to_email: EmailStr
    amount_cents: int = Field(
        gt=0, le=settings.MAX_AMOUNT_CENTS, description="Amount in cents (must be positive)"
    )
    description: str | None = None


class MoneyRequestRespond(BaseModel):
    """Request body for POST /requests/{id}/respond."""
    accept: bool


class MoneyRequestResponse(BaseModel):
    id: uuid.UUID
    from_email: str
    from_name: str
    to_email: str
    to_name: str
    amount_cents: int
    description: str
    date_created: datetime
    status: RequestStatus

    model_config = {"from_attributes": True}


class CleanupResponse(BaseModel):
    removed: int
