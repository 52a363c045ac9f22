"""
In-memory ledger records: Account, Contact, Transaction, PendingRequest.

These pydantic models are the live state the ledger mutates. The ORM rows
in payvo.models are only their persisted form; the account store converts
between the two.

All monetary amounts are integer cents (e.g., $10.50 = 1050). Integer
arithmetic keeps balances exact; dollars exist only at the edges
(utterance parsing and message formatting).

Transaction amounts are signed:
  - deposit, request, collected split:          positive
  - send, paid split share:                     negative
  - withdrawal:                                 positive (amount withdrawn)
"""

import enum
import random
import string
import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_unique_tag(length: int = 6) -> str:
    """
    Generate the short tag a user quotes to delete their account.

    Six characters from A-Z0-9; not a secret, only a guard against
    deleting the wrong record.
    """
    return "".join(random.choices(string.ascii_uppercase + string.digits, k=length))


def format_amount(amount_cents: int) -> str:
    """Render cents the way the app speaks them: 12550 -> "$125.50"."""
    sign = "-" if amount_cents < 0 else ""
    whole, cents = divmod(abs(amount_cents), 100)
    return f"{sign}${whole}.{cents:02d}"


class TransactionType(str, enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    SEND = "send"
    REQUEST = "request"
    SPLIT = "split"
    TRANSFER = "transfer"


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class VoiceSample(BaseModel):
    """
    Characteristics captured alongside a spoken passphrase.

    In the demo these are simulated (random pitch/amplitude when no real
    audio was captured); see payvo.services.biometrics.
    """
    model_config = ConfigDict(frozen=True)

    transcript: str
    pitch: float
    amplitude: float
    duration: float
    has_audio_data: bool = False
    timestamp: datetime = Field(default_factory=_utcnow)


class Transaction(BaseModel):
    """One ledger event. Immutable once appended to a history."""
    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    type: TransactionType
    amount_cents: int
    timestamp: datetime = Field(default_factory=_utcnow)
    description: str
    recipient_name: str | None = None
    sender_name: str | None = None


class Contact(BaseModel):
    """
    A money-movement counterparty in one account's contact list.

    balance_cents is a local mirror. When `email` matches a registered
    Account, that Account is authoritative and the mirror is resynced
    before every use.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str
    balance_cents: int = 0
    phone_number: str | None = None
    email: str | None = None


class Account(BaseModel):
    """
    A registered user: identity plus ledger state.

    The email is the unique key (compared case-insensitively). The voice
    passphrase is stored only as an argon2 hash of its normalized form.
    """
    email: str
    name: str
    phone_number: str
    voice_passphrase_hash: str
    voice_sample: VoiceSample | None = None
    balance_cents: int = 0
    transaction_history: list[Transaction] = Field(default_factory=list)
    contacts: list[Contact] = Field(default_factory=list)
    unique_tag: str = Field(default_factory=generate_unique_tag)
    date_created: datetime = Field(default_factory=_utcnow)

    @property
    def email_key(self) -> str:
        return self.email.lower()


class PendingRequest(BaseModel):
    """A cross-account money request awaiting the recipient's decision."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    from_email: str
    from_name: str
    to_email: str
    to_name: str
    amount_cents: int
    description: str
    date_created: datetime = Field(default_factory=_utcnow)
    status: RequestStatus = RequestStatus.PENDING


class CommandStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    GUIDANCE = "guidance"
    PENDING_CONFIRMATION = "pending_confirmation"
    CANCELLED = "cancelled"
    INFO = "info"


class CommandResult(BaseModel):
    """What a voice command produced: the message and whether to speak it."""
    message: str
    should_speak: bool = True
    status: CommandStatus = CommandStatus.INFO
