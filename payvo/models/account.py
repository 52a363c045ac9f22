"""
Account row — the persisted form of a registered PayVo user.

Each row holds:
  - email_key: lower-cased email, the primary key (emails are unique
    case-insensitively)
  - email: the address as the user typed it
  - the phone number, Fernet-encrypted (it is one of the three details
    that authorize account deletion)
  - the Argon2 hash of the normalized voice passphrase
  - the balance in integer cents
  - position: the account's place in directory order, so search results
    and passphrase login scan accounts in a stable order across restarts

A CHECK constraint enforces that the balance can never be negative. The
ledger checks sufficiency before every debit; the constraint is the last
line of defense if a bug slips through.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, CheckConstraint, DateTime, Integer, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payvo.database import Base


class AccountRow(Base):
    __tablename__ = "accounts"

    __table_args__ = (
        CheckConstraint(
            "balance_cents >= 0",
            name="ck_accounts_non_negative_balance",
        ),
    )

    email_key: Mapped[str] = mapped_column(String(320), primary_key=True)

    email: Mapped[str] = mapped_column(String(320), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Fernet ciphertext of the phone number
    phone_number_encrypted: Mapped[bytes] = mapped_column(
        LargeBinary,
        nullable=False,
    )

    voice_passphrase_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Simulated biometric characteristics captured at registration
    voice_sample: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    balance_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    unique_tag: Mapped[str] = mapped_column(String(6), nullable=False)

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    date_created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    contacts: Mapped[list["ContactRow"]] = relationship(
        back_populates="account",
        order_by="ContactRow.position",
        cascade="all, delete-orphan",
    )
    transactions: Mapped[list["TransactionRow"]] = relationship(
        back_populates="account",
        order_by="TransactionRow.sequence",
        cascade="all, delete-orphan",
    )
