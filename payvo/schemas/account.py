"""
Pydantic schemas for account endpoints.

All monetary amounts are integer cents.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from payvo.records import TransactionType


class AccountResponse(BaseModel):
    """The signed-in account's own profile."""
    email: str
    name: str
    phone_number: str
    balance_cents: int
    unique_tag: str
    date_created: datetime
    contact_count: int
    transaction_count: int


class BalanceResponse(BaseModel):
    balance_cents: int
    formatted: str


class TransactionResponse(BaseModel):
    """One ledger event. amount_cents is signed."""
    id: uuid.UUID
    type: TransactionType
    amount_cents: int
    timestamp: datetime
    description: str
    recipient_name: str | None
    sender_name: str | None

    model_config = {"from_attributes": True}


class AccountSearchResult(BaseModel):
    """
    Directory search hit.

    Intentionally excludes balance, phone number and tag; this is only
    enough to address a money request.
    """
    email: str
    name: str

    model_config = {"from_attributes": True}


class AccountDeleteRequest(BaseModel):
    """All three must match one account exactly (email case-insensitively)."""
    email: EmailStr
    phone_number: str = Field(min_length=1)
    unique_tag: str = Field(min_length=6, max_length=6)
