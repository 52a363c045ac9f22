"""
Tests for the account directory.

These tests verify:
  - Registration: random starting balance, unique tag, duplicate emails
  - Passphrase login: case-insensitive, first match wins, empty balances
    are topped up
  - Search never returns the acting account
  - Verified deletion needs email, phone number and tag together
  - Old money requests are pruned by age
  - Store failures are logged and swallowed
"""

import string
from datetime import datetime, timedelta, timezone

import pytest

from payvo.config import settings
from payvo.database import create_store_engine
from payvo.exceptions import (
    DuplicateEmailError,
    InvalidCredentialsError,
    StoreError,
    VerificationFailedError,
)
from payvo.records import Contact, PendingRequest, RequestStatus
from payvo.services.account_store import InMemoryAccountStore, SqlAccountStore, StoreSnapshot
from payvo.services.directory import (
    SAMPLE_CONTACTS,
    AccountDirectory,
    match_contact,
)
from payvo.services.ledger_service import Ledger


class FailingStore(InMemoryAccountStore):
    """Loads fine, refuses every write."""

    def save_account(self, account):
        raise StoreError("disk full")

    def save_accounts(self, accounts):
        raise StoreError("disk full")

    def save_pending_requests(self, requests):
        raise StoreError("disk full")


class TestRegister:
    def test_register(self, directory, store):
        account = directory.register(
            email="new@example.com",
            name="  New Person ",
            phone_number="(555) 222-3333",
            voice_passphrase="purple rain",
        )
        assert account.name == "New Person"
        low, high = settings.INITIAL_BALANCE_MIN_CENTS, settings.INITIAL_BALANCE_MAX_CENTS
        assert low <= account.balance_cents <= high
        assert len(account.unique_tag) == 6
        assert set(account.unique_tag) <= set(string.ascii_uppercase + string.digits)
        assert account.contacts == []
        assert account.voice_passphrase_hash != "purple rain"
        assert [a.email for a in store.load().accounts] == ["new@example.com"]

    def test_duplicate_email_is_case_insensitive(self, directory, sam):
        with pytest.raises(DuplicateEmailError):
            directory.register(
                email="SAM@example.com",
                name="Other Sam",
                phone_number="1",
                voice_passphrase="x",
            )
        assert len(directory.accounts) == 1

    def test_sample_contacts_are_seeded(self, directory, monkeypatch):
        monkeypatch.setattr(settings, "SEED_SAMPLE_CONTACTS", True)
        account = directory.register(
            email="demo@example.com",
            name="Demo",
            phone_number="1",
            voice_passphrase="demo",
        )
        assert [c.name for c in account.contacts] == [name for name, _, _ in SAMPLE_CONTACTS]
        assert all(100_000 <= c.balance_cents <= 1_500_000 for c in account.contacts)

    def test_loads_existing_snapshot(self, sam):
        store = InMemoryAccountStore(StoreSnapshot(accounts=[sam]))
        directory = AccountDirectory(store)
        assert directory.find_by_email("sam@example.com").name == "Sam Speaker"


class TestAuthenticate:
    def test_passphrase_ignores_case_and_padding(self, directory, sam):
        assert directory.authenticate("  Open Sesame ") is sam

    def test_wrong_passphrase(self, directory, sam):
        with pytest.raises(InvalidCredentialsError):
            directory.authenticate("close sesame")

    def test_first_match_in_directory_order_wins(self, directory, sam, make_account):
        make_account("twin@example.com", "Twin", 5000, passphrase="open sesame")
        assert directory.authenticate("open sesame").email == "sam@example.com"

    def test_empty_balance_is_topped_up(self, directory, sam):
        sam.balance_cents = 0
        directory.authenticate("open sesame")
        assert settings.INITIAL_BALANCE_MIN_CENTS <= sam.balance_cents <= settings.INITIAL_BALANCE_MAX_CENTS

    def test_positive_balance_is_kept(self, directory, sam):
        directory.authenticate("open sesame")
        assert sam.balance_cents == 100_000


class TestLookup:
    def test_find_by_email_and_name(self, directory, sam):
        assert directory.find_by_email("SAM@EXAMPLE.COM") is sam
        assert directory.find_by_name("sam speaker") is sam
        assert directory.find_by_name("sam") is None

    def test_search_excludes_acting_account(self, directory, sam, make_account):
        make_account("alice.w@example.com", "Alice Walker", 0)
        make_account("samantha@example.com", "Samantha", 0)

        assert [a.name for a in directory.search("sam", exclude_email=sam.email)] == ["Samantha"]
        assert [a.name for a in directory.search("WALKER")] == ["Alice Walker"]
        assert [a.name for a in directory.search("alice.w@")] == ["Alice Walker"]

    def test_blank_search_returns_nothing(self, directory, sam):
        assert directory.search("   ") == []

    def test_match_contact_nickname_both_ways(self):
        contacts = [Contact(name="Robert"), Contact(name="Mo")]
        assert match_contact(contacts, "bob").name == "Robert"
        assert match_contact(contacts, "moe").name == "Mo"
        assert match_contact(contacts, "") is None


class TestVerifiedDelete:
    def test_all_three_details_required(self, directory, store, sam):
        with pytest.raises(VerificationFailedError):
            directory.verified_delete(sam.email, sam.phone_number, "XXXXXX")
        with pytest.raises(VerificationFailedError):
            directory.verified_delete(sam.email, "(555) 999-9999", sam.unique_tag)
        assert directory.find_by_email(sam.email) is sam

    def test_delete(self, directory, store, sam, make_account):
        make_account("keep@example.com", "Keeper", 0)

        deleted = directory.verified_delete("SAM@example.com", sam.phone_number, sam.unique_tag)
        assert deleted is sam
        assert directory.find_by_email(sam.email) is None
        assert [a.email for a in store.load().accounts] == ["keep@example.com"]


class TestRequestCleanup:
    @staticmethod
    def _request(description, date_created, status=RequestStatus.PENDING):
        return PendingRequest(
            from_email="a@example.com",
            from_name="A",
            to_email="b@example.com",
            to_name="B",
            amount_cents=100,
            description=description,
            date_created=date_created,
            status=status,
        )

    def test_old_requests_are_removed_whatever_their_status(self, directory, store):
        now = datetime.now(timezone.utc)
        directory.add_request(self._request("old", now - timedelta(days=31), RequestStatus.ACCEPTED))
        directory.add_request(self._request("stale", now - timedelta(days=45)))
        directory.add_request(self._request("fresh", now - timedelta(days=29)))

        assert directory.remove_old_requests(now=now) == 2
        assert [r.description for r in directory.pending_requests] == ["fresh"]
        assert [r.description for r in store.load().pending_requests] == ["fresh"]

    def test_nothing_to_remove(self, directory):
        assert directory.remove_old_requests() == 0


class TestStoreFailures:
    def test_failures_do_not_roll_back(self):
        directory = AccountDirectory(FailingStore())
        account = directory.register(
            email="x@example.com",
            name="X",
            phone_number="1",
            voice_passphrase="x",
        )
        assert directory.find_by_email("x@example.com") is account

        ledger = Ledger(directory, account.email)
        before = ledger.get_balance()
        ledger.deposit(500)
        assert ledger.get_balance() == before + 500

    def test_sql_integer_overflow_does_not_escape(self):
        engine = create_store_engine("sqlite://")
        directory = AccountDirectory(SqlAccountStore(engine))
        account = directory.register(
            email="big@example.com",
            name="Big",
            phone_number="1",
            voice_passphrase="big",
        )
        account.balance_cents = 2**63 - 100

        Ledger(directory, account.email).deposit(1_000)

        assert account.balance_cents == 2**63 + 900
        engine.dispose()
