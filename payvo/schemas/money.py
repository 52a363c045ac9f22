"""
Pydantic schemas for direct ledger operations (/money/*).

All monetary amounts are integer cents, positive and at most
MAX_AMOUNT_CENTS. The ledger re-checks both bounds.
"""

from pydantic import BaseModel, Field, field_validator

from payvo.config import settings
from payvo.schemas.account import TransactionResponse


class AmountRequest(BaseModel):
    """Request body for POST /money/deposit and /money/withdraw."""
    amount_cents: int = Field(
        gt=0, le=settings.MAX_AMOUNT_CENTS, description="Amount in cents (must be positive)"
    )
    description: str | None = None


class ContactAmountRequest(BaseModel):
    """Request body for POST /money/send, /money/request and /money/split."""
    contact_name: str = Field(min_length=1)
    amount_cents: int = Field(
        gt=0, le=settings.MAX_AMOUNT_CENTS, description="Amount in cents (must be positive)"
    )
    description: str | None = None


class MultiContactAmountRequest(BaseModel):
    """Request body for POST /money/split/multi and /money/split/collect."""
    contact_names: list[str] = Field(min_length=1)
    total_cents: int = Field(
        gt=0, le=settings.MAX_AMOUNT_CENTS, description="Total in cents, shared by contacts and you"
    )
    description: str | None = None

    @field_validator("contact_names")
    @classmethod
    def names_not_blank(cls, names: list[str]) -> list[str]:
        cleaned = [name.strip() for name in names]
        if any(not name for name in cleaned):
            raise ValueError("Contact names must not be blank")
        return cleaned


class LedgerResultResponse(BaseModel):
    """The acting account's transaction and its balance afterwards."""
    transaction: TransactionResponse
    balance_cents: int
