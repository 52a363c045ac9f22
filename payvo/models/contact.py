"""
Contact row — one entry in an account's contact list.

Contacts belong to exactly one account and are deleted with it. The
balance is the local mirror; for contacts backed by a registered account
(matching email) the ledger resyncs it on read, so the stored value may
lag the backing account between writes.

There is no non-negative CHECK here: play-money contacts that are not
backed by an account can be driven below zero by collect-split, which
does not pre-check contact balances.
"""

import uuid

from sqlalchemy import ForeignKey, Integer, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payvo.database import Base


class ContactRow(Base):
    __tablename__ = "contacts"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True)

    account_email_key: Mapped[str] = mapped_column(
        ForeignKey("accounts.email_key", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Insertion order within the owner's list (fuzzy matching is first-hit)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    balance_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    phone_number_encrypted: Mapped[bytes | None] = mapped_column(
        LargeBinary,
        nullable=True,
    )

    email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    account: Mapped["AccountRow"] = relationship(back_populates="contacts")
