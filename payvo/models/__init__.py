"""
SQLAlchemy ORM models package.

These rows are the persisted form of the ledger records in payvo.records.
All models are imported here so that Base.metadata knows every table
before the SQL account store calls create_all().
"""

from payvo.models.account import AccountRow  # noqa: F401
from payvo.models.contact import ContactRow  # noqa: F401
from payvo.models.transaction import TransactionRow  # noqa: F401
from payvo.models.pending_request import PendingRequestRow  # noqa: F401
