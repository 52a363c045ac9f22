"""
Tests for the account stores.

SqlAccountStore runs against in-memory SQLite. These tests verify:
  - Accounts come back with contacts, history and voice sample intact
  - Phone numbers are encrypted at rest
  - History is appended incrementally; removed contacts are dropped
  - save_accounts() keeps directory order and removes missing accounts
  - Money requests persist with their status
  - The non-negative balance constraint and integer overflow surface
    as StoreError
  - InMemoryAccountStore keeps copies, not live objects
"""

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from payvo.database import create_store_engine
from payvo.exceptions import StoreError
from payvo.models import AccountRow
from payvo.records import (
    Account,
    Contact,
    PendingRequest,
    RequestStatus,
    Transaction,
    TransactionType,
    VoiceSample,
)
from payvo.security import decrypt_value, hash_passphrase
from payvo.services.account_store import InMemoryAccountStore, SqlAccountStore


def make_record(email="Sam@Example.com", name="Sam", balance_cents=12_345):
    return Account(
        email=email,
        name=name,
        phone_number="(555) 111-2222",
        voice_passphrase_hash=hash_passphrase("open sesame"),
        balance_cents=balance_cents,
    )


@pytest.fixture
def engine():
    engine = create_store_engine("sqlite://")
    yield engine
    engine.dispose()


@pytest.fixture
def sql_store(engine):
    return SqlAccountStore(engine)


class TestSqlAccountStore:
    def test_round_trip(self, sql_store):
        account = make_record()
        account.voice_sample = VoiceSample(
            transcript="open sesame", pitch=150.0, amplitude=0.5, duration=1.2
        )
        account.contacts = [
            Contact(name="Alice", balance_cents=100_000, phone_number="(555) 123-4567"),
            Contact(name="Bob", email="bob@example.com"),
        ]
        account.transaction_history = [
            Transaction(type=TransactionType.DEPOSIT, amount_cents=500, description="Deposit"),
            Transaction(
                type=TransactionType.SEND,
                amount_cents=-200,
                description="Send to Alice: Lunch",
                recipient_name="Alice",
                sender_name="Sam",
            ),
        ]
        sql_store.save_account(account)

        [loaded] = sql_store.load().accounts
        assert loaded.email == "Sam@Example.com"
        assert loaded.email_key == "sam@example.com"
        assert loaded.phone_number == "(555) 111-2222"
        assert loaded.balance_cents == 12_345
        assert loaded.unique_tag == account.unique_tag
        assert loaded.voice_passphrase_hash == account.voice_passphrase_hash
        assert loaded.voice_sample.pitch == 150.0
        assert loaded.date_created.tzinfo is not None

        assert [(c.id, c.name, c.balance_cents) for c in loaded.contacts] == [
            (c.id, c.name, c.balance_cents) for c in account.contacts
        ]
        assert loaded.contacts[0].phone_number == "(555) 123-4567"
        assert loaded.contacts[1].email == "bob@example.com"

        assert [t.id for t in loaded.transaction_history] == [
            t.id for t in account.transaction_history
        ]
        assert loaded.transaction_history[1].amount_cents == -200
        assert loaded.transaction_history[1].type == TransactionType.SEND
        assert loaded.transaction_history[1].recipient_name == "Alice"

    def test_phone_number_is_encrypted_at_rest(self, engine, sql_store):
        sql_store.save_account(make_record())

        with Session(engine) as session:
            row = session.scalars(select(AccountRow)).one()
        assert b"(555)" not in row.phone_number_encrypted
        assert decrypt_value(row.phone_number_encrypted) == "(555) 111-2222"

    def test_updates_append_history_and_drop_contacts(self, sql_store):
        account = make_record()
        account.contacts = [Contact(name="Alice"), Contact(name="Bob")]
        account.transaction_history = [
            Transaction(type=TransactionType.DEPOSIT, amount_cents=500, description="first")
        ]
        sql_store.save_account(account)

        account.contacts.pop(0)
        account.transaction_history.append(
            Transaction(type=TransactionType.WITHDRAWAL, amount_cents=100, description="second")
        )
        account.balance_cents = 12_245
        sql_store.save_account(account)

        [loaded] = sql_store.load().accounts
        assert [c.name for c in loaded.contacts] == ["Bob"]
        assert [t.description for t in loaded.transaction_history] == ["first", "second"]
        assert loaded.balance_cents == 12_245

    def test_save_accounts_keeps_order_and_removes_missing(self, sql_store):
        first = make_record("first@example.com", "First")
        second = make_record("second@example.com", "Second")
        third = make_record("third@example.com", "Third")
        sql_store.save_accounts([first, second, third])

        sql_store.save_accounts([third, first])

        assert [a.email for a in sql_store.load().accounts] == [
            "third@example.com",
            "first@example.com",
        ]

    def test_new_account_goes_last(self, sql_store):
        sql_store.save_accounts([make_record("first@example.com", "First")])
        sql_store.save_account(make_record("later@example.com", "Later"))

        assert [a.email for a in sql_store.load().accounts] == [
            "first@example.com",
            "later@example.com",
        ]

    def test_pending_requests(self, sql_store):
        requests = [
            PendingRequest(
                from_email="a@example.com",
                from_name="A",
                to_email="b@example.com",
                to_name="B",
                amount_cents=2500,
                description="Pizza",
            ),
            PendingRequest(
                from_email="b@example.com",
                from_name="B",
                to_email="a@example.com",
                to_name="A",
                amount_cents=100,
                description="Coffee",
                status=RequestStatus.DECLINED,
            ),
        ]
        sql_store.save_pending_requests(requests)

        loaded = sql_store.load().pending_requests
        assert [(r.id, r.status) for r in loaded] == [
            (requests[0].id, RequestStatus.PENDING),
            (requests[1].id, RequestStatus.DECLINED),
        ]

        sql_store.save_pending_requests(requests[1:])
        assert [r.description for r in sql_store.load().pending_requests] == ["Coffee"]

    def test_negative_balance_is_rejected(self, sql_store):
        with pytest.raises(StoreError):
            sql_store.save_account(make_record(balance_cents=-1))
        assert sql_store.load().accounts == []

    def test_integer_overflow_is_a_store_error(self, sql_store):
        with pytest.raises(StoreError):
            sql_store.save_account(make_record(balance_cents=2**63))
        assert sql_store.load().accounts == []

    def test_clear(self, sql_store):
        sql_store.save_account(make_record())
        sql_store.clear()
        snapshot = sql_store.load()
        assert snapshot.accounts == []
        assert snapshot.pending_requests == []


class TestInMemoryAccountStore:
    def test_saved_copies_are_detached(self):
        store = InMemoryAccountStore()
        account = make_record()
        store.save_account(account)

        account.balance_cents = 0
        assert store.load().accounts[0].balance_cents == 12_345

    def test_save_account_upserts_by_email(self):
        store = InMemoryAccountStore()
        store.save_account(make_record(balance_cents=1))
        store.save_account(make_record(email="SAM@example.com", balance_cents=2))

        [loaded] = store.load().accounts
        assert loaded.balance_cents == 2
        assert store.save_count == 2
