"""
Pending request row — a cross-account money request.

Requests reference accounts by email rather than by foreign key: a
request outlives the requester's deletion (the responder can still see
and decline it), and stale requests are pruned by age instead.

Status moves pending -> accepted or pending -> declined exactly once.
"""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from payvo.database import Base


class PendingRequestRow(Base):
    __tablename__ = "pending_requests"

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_pending_requests_positive_amount"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True)

    position: Mapped[int] = mapped_column(Integer, nullable=False)

    from_email: Mapped[str] = mapped_column(String(320), nullable=False)
    from_name: Mapped[str] = mapped_column(String(200), nullable=False)

    to_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    to_name: Mapped[str] = mapped_column(String(200), nullable=False)

    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    description: Mapped[str] = mapped_column(String(255), nullable=False)

    date_created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    # "pending", "accepted" or "declined"
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="pending")
