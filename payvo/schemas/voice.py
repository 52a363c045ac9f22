"""
Pydantic schemas for the voice command endpoints.
"""

import math

from pydantic import BaseModel, Field, field_validator

from payvo.records import CommandStatus
from payvo.services.transaction_guard import PendingTransactionType


class VoiceCommandRequest(BaseModel):
    """One finished utterance from the speech input provider."""
    utterance: str = Field(max_length=500)


class CommandResultResponse(BaseModel):
    message: str
    should_speak: bool
    status: CommandStatus
    balance_cents: int


class PendingTransactionResponse(BaseModel):
    """
    The transaction waiting for confirm/cancel.

    percentage_of_balance is null when the balance was zero or negative.
    """
    type: PendingTransactionType
    contact_name: str
    amount_cents: int
    description: str
    percentage_of_balance: float | None

    model_config = {"from_attributes": True}

    @field_validator("percentage_of_balance", mode="before")
    @classmethod
    def infinite_as_null(cls, value):
        if isinstance(value, float) and math.isinf(value):
            return None
        return value
