"""
Account store — durable persistence for the ledger.

The ledger works on in-memory records (payvo.records); the account store
only loads them at startup and is written through after every mutation.
Its interface:

    load()                  -> StoreSnapshot(accounts, pending_requests)
    save_accounts(accounts)    replace the full account list (order matters)
    save_account(account)      upsert one account
    save_pending_requests(rs)  replace the full request list
    clear()                    drop everything

Two implementations:

  - InMemoryAccountStore: keeps deep copies, so tests can inspect exactly
    what was persisted without the ledger's live objects leaking in.
  - SqlAccountStore: SQLAlchemy 2.0 over the ORM rows in payvo.models.
    Phone numbers are Fernet-encrypted at rest; transaction history is
    appended incrementally since it is append-only.

Any failure, including a driver OverflowError on an out-of-range integer,
is raised as StoreError. The directory decides what to do
with it (log and continue).
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone

import structlog
from pydantic import BaseModel, Field
from sqlalchemy import delete, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from payvo.database import Base, SessionLocal
from payvo.exceptions import StoreError
from payvo.models import AccountRow, ContactRow, PendingRequestRow, TransactionRow
from payvo.records import (
    Account,
    Contact,
    PendingRequest,
    RequestStatus,
    Transaction,
    TransactionType,
    VoiceSample,
)
from payvo.security import decrypt_value, encrypt_value

logger = structlog.get_logger(__name__)

# Driver-level bind errors (e.g. an int past 64 bits) are not SQLAlchemyErrors
_STORE_FAILURES = (SQLAlchemyError, OverflowError, ValueError)


class StoreSnapshot(BaseModel):
    """Everything the store holds, in directory order."""
    accounts: list[Account] = Field(default_factory=list)
    pending_requests: list[PendingRequest] = Field(default_factory=list)


class AccountStore(ABC):
    """
    Abstract interface for account persistence.

    Any storage implementation (SQL, in-memory, flat files) must
    implement these methods. All of them raise StoreError on failure.
    """

    @abstractmethod
    def load(self) -> StoreSnapshot:
        """Return every persisted account and money request."""

    @abstractmethod
    def save_accounts(self, accounts: list[Account]) -> None:
        """Persist the full account list, removing accounts not in it."""

    @abstractmethod
    def save_account(self, account: Account) -> None:
        """Insert or update a single account (contacts and history included)."""

    @abstractmethod
    def save_pending_requests(self, requests: list[PendingRequest]) -> None:
        """Persist the full money-request list, removing requests not in it."""

    @abstractmethod
    def clear(self) -> None:
        """Remove all persisted data."""


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------

class InMemoryAccountStore(AccountStore):
    """Process-local store holding deep copies of what was saved."""

    def __init__(self, snapshot: StoreSnapshot | None = None):
        self._accounts: list[Account] = []
        self._requests: list[PendingRequest] = []
        self.save_count = 0
        if snapshot is not None:
            self.save_accounts(snapshot.accounts)
            self.save_pending_requests(snapshot.pending_requests)
            self.save_count = 0

    def load(self) -> StoreSnapshot:
        return StoreSnapshot(
            accounts=[a.model_copy(deep=True) for a in self._accounts],
            pending_requests=[r.model_copy(deep=True) for r in self._requests],
        )

    def save_accounts(self, accounts: list[Account]) -> None:
        self._accounts = [a.model_copy(deep=True) for a in accounts]
        self.save_count += 1

    def save_account(self, account: Account) -> None:
        copy = account.model_copy(deep=True)
        for index, existing in enumerate(self._accounts):
            if existing.email_key == account.email_key:
                self._accounts[index] = copy
                break
        else:
            self._accounts.append(copy)
        self.save_count += 1

    def save_pending_requests(self, requests: list[PendingRequest]) -> None:
        self._requests = [r.model_copy(deep=True) for r in requests]
        self.save_count += 1

    def clear(self) -> None:
        self._accounts = []
        self._requests = []


# ---------------------------------------------------------------------------
# SQL implementation
# ---------------------------------------------------------------------------

def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlAccountStore(AccountStore):
    """
    Relational account store on SQLAlchemy.

    Args:
        engine: Optional engine; when given, tables are created on it and
                a private session factory is used. Defaults to the
                application's SessionLocal.
    """

    def __init__(self, engine: Engine | None = None):
        if engine is not None:
            self._session_factory = sessionmaker(engine, expire_on_commit=False)
            bind = engine
        else:
            self._session_factory = SessionLocal
            bind = SessionLocal.kw["bind"]
        try:
            Base.metadata.create_all(bind)
        except _STORE_FAILURES as exc:
            raise StoreError(f"Could not prepare account store: {exc}") from exc

    # --- reads ---------------------------------------------------------

    def load(self) -> StoreSnapshot:
        try:
            with self._session_factory() as session:
                account_rows = session.scalars(
                    select(AccountRow)
                    .options(
                        selectinload(AccountRow.contacts),
                        selectinload(AccountRow.transactions),
                    )
                    .order_by(AccountRow.position)
                ).all()
                request_rows = session.scalars(
                    select(PendingRequestRow).order_by(PendingRequestRow.position)
                ).all()
                snapshot = StoreSnapshot(
                    accounts=[self._account_from_row(row) for row in account_rows],
                    pending_requests=[self._request_from_row(row) for row in request_rows],
                )
        except _STORE_FAILURES as exc:
            raise StoreError(f"Could not load accounts: {exc}") from exc

        logger.info(
            "store.loaded",
            accounts=len(snapshot.accounts),
            pending_requests=len(snapshot.pending_requests),
        )
        return snapshot

    # --- writes --------------------------------------------------------

    def save_accounts(self, accounts: list[Account]) -> None:
        keys = [account.email_key for account in accounts]
        try:
            with self._session_factory.begin() as session:
                # Bulk deletes bypass ORM cascades, so children go first
                session.execute(
                    delete(TransactionRow).where(TransactionRow.account_email_key.not_in(keys))
                )
                session.execute(
                    delete(ContactRow).where(ContactRow.account_email_key.not_in(keys))
                )
                session.execute(delete(AccountRow).where(AccountRow.email_key.not_in(keys)))
                for position, account in enumerate(accounts):
                    self._upsert_account(session, account, position)
        except _STORE_FAILURES as exc:
            raise StoreError(f"Could not save accounts: {exc}") from exc

    def save_account(self, account: Account) -> None:
        try:
            with self._session_factory.begin() as session:
                self._upsert_account(session, account, position=None)
        except _STORE_FAILURES as exc:
            raise StoreError(f"Could not save account {account.email}: {exc}") from exc

    def save_pending_requests(self, requests: list[PendingRequest]) -> None:
        try:
            with self._session_factory.begin() as session:
                session.execute(delete(PendingRequestRow))
                session.add_all(
                    PendingRequestRow(
                        id=request.id,
                        position=position,
                        from_email=request.from_email,
                        from_name=request.from_name,
                        to_email=request.to_email,
                        to_name=request.to_name,
                        amount_cents=request.amount_cents,
                        description=request.description,
                        date_created=request.date_created,
                        status=request.status.value,
                    )
                    for position, request in enumerate(requests)
                )
        except _STORE_FAILURES as exc:
            raise StoreError(f"Could not save money requests: {exc}") from exc

    def clear(self) -> None:
        try:
            with self._session_factory.begin() as session:
                session.execute(delete(TransactionRow))
                session.execute(delete(ContactRow))
                session.execute(delete(AccountRow))
                session.execute(delete(PendingRequestRow))
        except _STORE_FAILURES as exc:
            raise StoreError(f"Could not clear account store: {exc}") from exc

    # --- row mapping ---------------------------------------------------

    def _upsert_account(self, session: Session, account: Account, position: int | None) -> None:
        row = session.scalars(
            select(AccountRow)
            .options(
                selectinload(AccountRow.contacts),
                selectinload(AccountRow.transactions),
            )
            .where(AccountRow.email_key == account.email_key)
        ).one_or_none()

        if row is None:
            if position is None:
                position = session.scalar(
                    select(func.coalesce(func.max(AccountRow.position) + 1, 0))
                )
            row = AccountRow(
                email_key=account.email_key,
                position=position,
                date_created=account.date_created,
            )
            session.add(row)
        elif position is not None:
            row.position = position

        row.email = account.email
        row.name = account.name
        row.phone_number_encrypted = encrypt_value(account.phone_number)
        row.voice_passphrase_hash = account.voice_passphrase_hash
        row.voice_sample = (
            account.voice_sample.model_dump(mode="json") if account.voice_sample else None
        )
        row.balance_cents = account.balance_cents
        row.unique_tag = account.unique_tag

        # Contacts: update in place by id, drop removed ones, add new ones
        existing = {contact_row.id: contact_row for contact_row in row.contacts}
        kept = []
        for index, contact in enumerate(account.contacts):
            contact_row = existing.pop(contact.id, None)
            if contact_row is None:
                contact_row = ContactRow(id=contact.id)
            contact_row.position = index
            contact_row.name = contact.name
            contact_row.balance_cents = contact.balance_cents
            contact_row.phone_number_encrypted = (
                encrypt_value(contact.phone_number) if contact.phone_number else None
            )
            contact_row.email = contact.email
            kept.append(contact_row)
        row.contacts = kept

        # History is append-only: only rows past the stored length are new
        for sequence in range(len(row.transactions), len(account.transaction_history)):
            txn = account.transaction_history[sequence]
            row.transactions.append(
                TransactionRow(
                    id=txn.id,
                    sequence=sequence,
                    type=txn.type.value,
                    amount_cents=txn.amount_cents,
                    timestamp=txn.timestamp,
                    description=txn.description,
                    recipient_name=txn.recipient_name,
                    sender_name=txn.sender_name,
                )
            )

    @staticmethod
    def _account_from_row(row: AccountRow) -> Account:
        return Account(
            email=row.email,
            name=row.name,
            phone_number=decrypt_value(row.phone_number_encrypted),
            voice_passphrase_hash=row.voice_passphrase_hash,
            voice_sample=VoiceSample.model_validate(row.voice_sample) if row.voice_sample else None,
            balance_cents=row.balance_cents,
            unique_tag=row.unique_tag,
            date_created=_as_utc(row.date_created),
            contacts=[
                Contact(
                    id=contact_row.id,
                    name=contact_row.name,
                    balance_cents=contact_row.balance_cents,
                    phone_number=(
                        decrypt_value(contact_row.phone_number_encrypted)
                        if contact_row.phone_number_encrypted
                        else None
                    ),
                    email=contact_row.email,
                )
                for contact_row in row.contacts
            ],
            transaction_history=[
                Transaction(
                    id=txn_row.id,
                    type=TransactionType(txn_row.type),
                    amount_cents=txn_row.amount_cents,
                    timestamp=_as_utc(txn_row.timestamp),
                    description=txn_row.description,
                    recipient_name=txn_row.recipient_name,
                    sender_name=txn_row.sender_name,
                )
                for txn_row in row.transactions
            ],
        )

    @staticmethod
    def _request_from_row(row: PendingRequestRow) -> PendingRequest:
        return PendingRequest(
            id=row.id,
            from_email=row.from_email,
            from_name=row.from_name,
            to_email=row.to_email,
            to_name=row.to_name,
            amount_cents=row.amount_cents,
            description=row.description,
            date_created=_as_utc(row.date_created),
            status=RequestStatus(row.status),
        )
