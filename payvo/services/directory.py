"""
Account directory — every known account and money request, in one place.

The directory replaces an app-wide mutable singleton: one instance is
created at startup (see payvo.main) and injected wherever it is needed.
It owns:

  - the ordered list of accounts (directory order = registration order)
  - the ordered list of cross-account money requests
  - a re-entrant lock that serializes every read-check-write on them
  - write-through persistence to an AccountStore

Concurrency:
  Two voice sessions may mirror money into the same account (a send to a
  contact backed by a real account). Every ledger operation therefore
  runs under `directory.lock`, making the sufficiency check and the
  balance update one critical section across both accounts.

Persistence failures:
  persist_*() never raise. A StoreError is logged and the in-memory state
  stays the source of truth for the running process; an already-applied
  mutation is never rolled back because a save failed.
"""

import random
import threading
import uuid
from datetime import datetime, timedelta, timezone

import structlog

from payvo.config import settings
from payvo.exceptions import (
    AccountNotFoundError,
    DuplicateEmailError,
    InvalidCredentialsError,
    StoreError,
    VerificationFailedError,
)
from payvo.records import Account, Contact, PendingRequest, VoiceSample
from payvo.security import hash_passphrase, verify_passphrase
from payvo.services.account_store import AccountStore
from payvo.services.biometrics import ToleranceVoiceComparator, VoiceSampleComparator

logger = structlog.get_logger(__name__)


# Nickname pairs accepted as the same person, in either direction
NICKNAMES: tuple[tuple[str, str], ...] = (
    ("mo", "moe"),
    ("john", "jon"),
    ("mike", "michael"),
    ("bob", "robert"),
    ("alex", "alexander"),
    ("chris", "christopher"),
)

# Demo contacts given to every new account when SEED_SAMPLE_CONTACTS is on
SAMPLE_CONTACTS: tuple[tuple[str, str, str], ...] = (
    ("Alice Johnson", "(555) 123-4567", "alice.johnson@email.com"),
    ("Bob Smith", "(555) 234-5678", "bob.smith@email.com"),
    ("Carol Davis", "(555) 345-6789", "carol.davis@email.com"),
    ("David Wilson", "(555) 456-7890", "david.wilson@email.com"),
    ("Emma Brown", "(555) 567-8901", "emma.brown@email.com"),
    ("Frank Miller", "(555) 678-9012", "frank.miller@email.com"),
    ("Grace Lee", "(555) 789-0123", "grace.lee@email.com"),
    ("Henry Taylor", "(555) 890-1234", "henry.taylor@email.com"),
    ("Ivy Chen", "(555) 901-2345", "ivy.chen@email.com"),
    ("Jack Anderson", "(555) 012-3456", "jack.anderson@email.com"),
)
SAMPLE_CONTACT_BALANCE_CENTS = (100_000, 1_500_000)


def _is_nickname_pair(a: str, b: str) -> bool:
    return any((a == x and b == y) or (a == y and b == x) for x, y in NICKNAMES)


def match_contact(contacts: list[Contact], name: str) -> Contact | None:
    """
    Resolve a spoken name against a contact list.

    1. Exact case-insensitive match.
    2. Otherwise the first contact (insertion order) where one name
       contains the other, or the pair is in the nickname table.

    Returns None when nothing matches.
    """
    wanted = name.strip().lower()
    if not wanted:
        return None

    for contact in contacts:
        if contact.name.lower() == wanted:
            return contact

    for contact in contacts:
        candidate = contact.name.lower()
        if candidate in wanted or wanted in candidate or _is_nickname_pair(candidate, wanted):
            return contact

    return None


class AccountDirectory:
    """
    All registered accounts plus pending money requests.

    Args:
        store: Where accounts and requests are loaded from and written to.
        comparator: Voice sample comparator used for the supplementary
                    biometric score at login.
    """

    def __init__(
        self,
        store: AccountStore,
        comparator: VoiceSampleComparator | None = None,
    ):
        self.store = store
        self.comparator = comparator or ToleranceVoiceComparator()
        self.lock = threading.RLock()

        snapshot = store.load()
        self._accounts: list[Account] = snapshot.accounts
        self._requests: list[PendingRequest] = snapshot.pending_requests

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def accounts(self) -> list[Account]:
        with self.lock:
            return list(self._accounts)

    @property
    def pending_requests(self) -> list[PendingRequest]:
        with self.lock:
            return list(self._requests)

    def find_by_email(self, email: str) -> Account | None:
        key = email.strip().lower()
        with self.lock:
            return next((a for a in self._accounts if a.email_key == key), None)

    def find_by_name(self, name: str) -> Account | None:
        wanted = name.strip().lower()
        with self.lock:
            return next((a for a in self._accounts if a.name.lower() == wanted), None)

    def require_account(self, email: str) -> Account:
        account = self.find_by_email(email)
        if account is None:
            raise AccountNotFoundError(email)
        return account

    def search(self, query: str, exclude_email: str | None = None) -> list[Account]:
        """
        Case-insensitive substring search over names and emails.

        The acting account (exclude_email) is never returned. A blank
        query returns nothing rather than everything.
        """
        needle = query.strip().lower()
        if not needle:
            return []
        excluded = exclude_email.lower() if exclude_email else None
        with self.lock:
            return [
                account
                for account in self._accounts
                if account.email_key != excluded
                and (needle in account.name.lower() or needle in account.email_key)
            ]

    def sync_contact(self, contact: Contact) -> Account | None:
        """
        Reconcile a contact's mirror balance with its backing account.

        Returns the backing account, or None for play-money contacts.
        """
        if not contact.email:
            return None
        backing = self.find_by_email(contact.email)
        if backing is not None:
            contact.balance_cents = backing.balance_cents
        return backing

    # ------------------------------------------------------------------
    # Registration, login, deletion
    # ------------------------------------------------------------------

    def register(
        self,
        email: str,
        name: str,
        phone_number: str,
        voice_passphrase: str,
        voice_sample: VoiceSample | None = None,
    ) -> Account:
        """
        Create an account with a random starting balance and a fresh tag.

        Raises:
            DuplicateEmailError: If the email is already registered.
        """
        passphrase_hash = hash_passphrase(voice_passphrase)
        with self.lock:
            if self.find_by_email(email) is not None:
                raise DuplicateEmailError(email)

            account = Account(
                email=email.strip(),
                name=name.strip(),
                phone_number=phone_number,
                voice_passphrase_hash=passphrase_hash,
                voice_sample=voice_sample,
                balance_cents=self.random_initial_balance(),
            )
            if settings.SEED_SAMPLE_CONTACTS:
                account.contacts = self._sample_contacts()

            self._accounts.append(account)
            self.persist_account(account)

        logger.info(
            "directory.registered",
            email=account.email,
            balance_cents=account.balance_cents,
            contacts=len(account.contacts),
        )
        return account

    def authenticate(self, voice_passphrase: str) -> Account:
        """
        Log in by passphrase: the first account (directory order) whose
        stored passphrase matches the transcript wins.

        Accounts found with a non-positive balance are given a fresh
        random balance.

        Raises:
            InvalidCredentialsError: If no account matches.
        """
        # Argon2 runs outside the lock; only the top-up is a write
        candidates = self.accounts
        for account in candidates:
            if not verify_passphrase(voice_passphrase, account.voice_passphrase_hash):
                continue
            with self.lock:
                if all(account is not other for other in self._accounts):
                    continue
                if account.balance_cents <= 0:
                    account.balance_cents = self.random_initial_balance()
                    self.persist_account(account)
                    logger.info(
                        "directory.balance_reissued",
                        email=account.email,
                        balance_cents=account.balance_cents,
                    )
            logger.info("directory.login", email=account.email)
            return account

        logger.info("directory.login_failed", accounts_checked=len(candidates))
        raise InvalidCredentialsError()

    def voice_match_confidence(self, account: Account, sample: VoiceSample) -> float | None:
        """Supplementary biometric score; None when either side has no sample."""
        if account.voice_sample is None:
            return None
        return self.comparator.confidence(account.voice_sample, sample)

    def verified_delete(self, email: str, phone_number: str, unique_tag: str) -> Account:
        """
        Delete the account matching email (case-insensitive), phone number
        (exact) and unique tag (exact). No partial matches.

        Raises:
            VerificationFailedError: If no single account matches all three.
        """
        key = email.strip().lower()
        with self.lock:
            target = next(
                (
                    a
                    for a in self._accounts
                    if a.email_key == key
                    and a.phone_number == phone_number
                    and a.unique_tag == unique_tag
                ),
                None,
            )
            if target is None:
                logger.info("directory.delete_rejected", email=email)
                raise VerificationFailedError()

            self._accounts.remove(target)
            self.persist_accounts()

        logger.info("directory.deleted", email=target.email)
        return target

    # ------------------------------------------------------------------
    # Money requests
    # ------------------------------------------------------------------

    def add_request(self, request: PendingRequest) -> None:
        with self.lock:
            self._requests.append(request)
            self.persist_requests()

    def find_request(self, request_id: uuid.UUID) -> PendingRequest | None:
        with self.lock:
            return next((r for r in self._requests if r.id == request_id), None)

    def remove_old_requests(self, now: datetime | None = None) -> int:
        """
        Drop requests created more than REQUEST_RETENTION_DAYS ago,
        whatever their status. Returns how many were removed.
        """
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(
            days=settings.REQUEST_RETENTION_DAYS
        )
        with self.lock:
            before = len(self._requests)
            self._requests = [r for r in self._requests if r.date_created >= cutoff]
            removed = before - len(self._requests)
            self.persist_requests()

        logger.info("directory.requests_pruned", removed=removed)
        return removed

    # ------------------------------------------------------------------
    # Persistence hand-off
    # ------------------------------------------------------------------

    def persist_account(self, account: Account) -> None:
        try:
            self.store.save_account(account)
        except StoreError:
            logger.error("store.save_account_failed", email=account.email, exc_info=True)

    def persist_accounts(self) -> None:
        try:
            self.store.save_accounts(self._accounts)
        except StoreError:
            logger.error("store.save_accounts_failed", exc_info=True)

    def persist_requests(self) -> None:
        try:
            self.store.save_pending_requests(self._requests)
        except StoreError:
            logger.error("store.save_requests_failed", exc_info=True)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def random_initial_balance() -> int:
        return random.randint(settings.INITIAL_BALANCE_MIN_CENTS, settings.INITIAL_BALANCE_MAX_CENTS)

    @staticmethod
    def _sample_contacts() -> list[Contact]:
        low, high = SAMPLE_CONTACT_BALANCE_CENTS
        return [
            Contact(
                name=name,
                balance_cents=random.randint(low, high),
                phone_number=phone,
                email=email,
            )
            for name, phone, email in SAMPLE_CONTACTS
        ]
