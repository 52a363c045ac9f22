"""
Transaction row — one entry in an account's append-only history.

amount_cents is signed (see payvo.records): sends and paid split shares
are negative, deposits, requests and collected splits positive. The
sequence column preserves append order, which timestamps alone cannot
guarantee for events recorded in the same instant.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payvo.database import Base


class TransactionRow(Base):
    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True)

    account_email_key: Mapped[str] = mapped_column(
        ForeignKey("accounts.email_key", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    # deposit / withdrawal / send / request / split / transfer
    type: Mapped[str] = mapped_column(String(12), nullable=False)

    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    description: Mapped[str] = mapped_column(String(255), nullable=False)

    recipient_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    sender_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    account: Mapped["AccountRow"] = relationship(back_populates="transactions")
