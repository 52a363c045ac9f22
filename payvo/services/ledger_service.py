"""
Ledger service — the money-moving business logic for one acting account.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It handles:
  - Deposits and withdrawals on the acting account
  - Sends, requests and splits against contacts
  - Multi-contact splits (paying a share, or collecting shares)
  - Cross-account money requests (create, accept, decline)
  - Balance enforcement (no account ever goes negative)

Atomicity:
  Every operation runs inside the directory lock and follows the same
  shape: validate the amount, resolve every counterparty, check that every
  paying party can cover its share, and only then mutate. A failed check
  raises before anything has changed, so no operation leaves a partial
  state behind.

Backed contacts:
  A Contact whose email matches a registered Account is "backed". Its
  balance field is only a mirror: it is resynced from the Account before
  every use, and every balance change applied to it is applied to the
  Account as well, with a transaction in that Account's history. Both legs
  happen in _move_contact(), inside the same critical section as the
  acting account's leg.

  Charges are aggregated per paying party before the sufficiency check.
  Two contacts backed by the same account (or a contact backed by the
  acting account itself) are checked against their combined share.

  request_from_contact() is the exception: it debits the contact mirror
  only and never touches the backing account. Other operations keep
  that asymmetry intact; see DESIGN.md.

Amounts:
  Integer cents throughout. Shares are floor-divided: a 1 cent remainder
  of an odd split stays with the acting account.
"""

import uuid

import structlog

from payvo.config import settings
from payvo.exceptions import (
    AccountNotFoundError,
    ContactNotFoundError,
    DuplicateContactError,
    InsufficientFundsError,
    InvalidAmountError,
    RequestAlreadyResolvedError,
    RequestNotFoundError,
    UnauthorizedAccessError,
)
from payvo.records import (
    Account,
    Contact,
    PendingRequest,
    RequestStatus,
    Transaction,
    TransactionType,
    format_amount,
)
from payvo.services.directory import AccountDirectory, match_contact

logger = structlog.get_logger(__name__)


def _require_positive(amount_cents: int) -> None:
    if amount_cents <= 0:
        raise InvalidAmountError(amount_cents)
    if amount_cents > settings.MAX_AMOUNT_CENTS:
        raise InvalidAmountError(amount_cents, settings.MAX_AMOUNT_CENTS)


class _Charges:
    """Per-party running total of what each paying side must cover."""

    def __init__(self):
        self._entries: dict[tuple[str, str], list] = {}

    def add_account(self, account: Account, amount_cents: int) -> None:
        self._add(("account", account.email_key), account.name, account.balance_cents, amount_cents)

    def add_contact(self, contact: Contact, backing: Account | None, amount_cents: int) -> None:
        if backing is not None:
            self.add_account(backing, amount_cents)
        else:
            self._add(("contact", str(contact.id)), contact.name, contact.balance_cents, amount_cents)

    def _add(self, key: tuple[str, str], label: str, available: int, amount_cents: int) -> None:
        entry = self._entries.setdefault(key, [label, available, 0])
        entry[2] += amount_cents

    def verify(self) -> None:
        for label, available, required in self._entries.values():
            if available < required:
                raise InsufficientFundsError(label, required, available)


class Ledger:
    """
    Ledger operations on behalf of one account.

    Args:
        directory: The shared account directory (owns the lock and store).
        email: The acting account's email.
    """

    def __init__(self, directory: AccountDirectory, email: str):
        self.directory = directory
        self.email = email

    @property
    def account(self) -> Account:
        return self.directory.require_account(self.email)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_balance(self) -> int:
        return self.account.balance_cents

    def get_transaction_history(self) -> list[Transaction]:
        return list(self.account.transaction_history)

    def get_contacts(self) -> list[Contact]:
        """Contacts in insertion order, backed mirrors resynced."""
        with self.directory.lock:
            contacts = self.account.contacts
            for contact in contacts:
                self.directory.sync_contact(contact)
            return list(contacts)

    def find_contact(self, name: str) -> Contact | None:
        with self.directory.lock:
            contact = match_contact(self.account.contacts, name)
            if contact is not None:
                self.directory.sync_contact(contact)
            return contact

    # ------------------------------------------------------------------
    # Contact list
    # ------------------------------------------------------------------

    def add_contact(self, contact: Contact) -> Contact:
        """
        Append a contact. Names are unique per account, case-insensitively.

        Raises:
            DuplicateContactError: If a contact with that name already exists.
        """
        with self.directory.lock:
            account = self.account
            wanted = contact.name.strip().lower()
            if any(existing.name.lower() == wanted for existing in account.contacts):
                raise DuplicateContactError(contact.name)

            account.contacts.append(contact)
            self.directory.sync_contact(contact)
            self.directory.persist_account(account)

        logger.info("ledger.contact_added", email=account.email, contact=contact.name)
        return contact

    def delete_contact(self, contact_id: uuid.UUID) -> None:
        with self.directory.lock:
            account = self.account
            contact = next((c for c in account.contacts if c.id == contact_id), None)
            if contact is None:
                raise ContactNotFoundError(str(contact_id))
            account.contacts.remove(contact)
            self.directory.persist_account(account)

        logger.info("ledger.contact_deleted", email=account.email, contact=contact.name)

    # ------------------------------------------------------------------
    # Own balance
    # ------------------------------------------------------------------

    def deposit(self, amount_cents: int, description: str = "Deposit") -> Transaction:
        _require_positive(amount_cents)
        with self.directory.lock:
            account = self.account
            txn = self._post(account, amount_cents, TransactionType.DEPOSIT, amount_cents, description)
            self._commit(account)

        logger.info("ledger.deposit", email=account.email, amount_cents=amount_cents)
        return txn

    def withdraw(self, amount_cents: int, description: str = "Withdrawal") -> Transaction:
        """
        Withdraw from the acting account.

        The withdrawal transaction records the positive amount withdrawn.
        """
        _require_positive(amount_cents)
        with self.directory.lock:
            account = self.account
            if account.balance_cents < amount_cents:
                raise InsufficientFundsError(account.name, amount_cents, account.balance_cents)

            txn = self._post(
                account, -amount_cents, TransactionType.WITHDRAWAL, amount_cents, description
            )
            self._commit(account)

        logger.info("ledger.withdraw", email=account.email, amount_cents=amount_cents)
        return txn

    # ------------------------------------------------------------------
    # Single contact
    # ------------------------------------------------------------------

    def send_to_contact(self, name: str, amount_cents: int, description: str = "Send") -> Transaction:
        """
        Pay a contact from the acting account.

        The contact mirror is credited; a backed contact's account gets a
        deposit naming the sender.

        Raises:
            InvalidAmountError, ContactNotFoundError, InsufficientFundsError
        """
        _require_positive(amount_cents)
        with self.directory.lock:
            account = self.account
            contact, backing = self._resolve(account, name)

            charges = _Charges()
            charges.add_account(account, amount_cents)
            charges.verify()

            txn = self._post(
                account,
                -amount_cents,
                TransactionType.SEND,
                -amount_cents,
                f"Send to {contact.name}: {description}",
                recipient_name=contact.name,
                sender_name=account.name,
            )
            touched = [account]
            self._move_contact(
                account,
                contact,
                backing,
                amount_cents,
                TransactionType.DEPOSIT,
                f"Received from {account.name}: {description}",
                touched,
            )
            self._commit(*touched)

        logger.info(
            "ledger.send",
            email=account.email,
            contact=contact.name,
            amount_cents=amount_cents,
            backed=backing is not None,
        )
        return txn

    def request_from_contact(
        self, name: str, amount_cents: int, description: str = "Request"
    ) -> Transaction:
        """
        Take money from a contact into the acting account.

        Only the contact mirror is debited, never a backing account.

        Raises:
            InvalidAmountError, ContactNotFoundError, InsufficientFundsError
        """
        _require_positive(amount_cents)
        with self.directory.lock:
            account = self.account
            contact, backing = self._resolve(account, name)

            charges = _Charges()
            charges.add_contact(contact, backing, amount_cents)
            charges.verify()

            txn = self._post(
                account,
                amount_cents,
                TransactionType.REQUEST,
                amount_cents,
                f"Request from {contact.name}: {description}",
                recipient_name=account.name,
                sender_name=contact.name,
            )
            contact.balance_cents -= amount_cents
            self._commit(account)

        logger.info(
            "ledger.request",
            email=account.email,
            contact=contact.name,
            amount_cents=amount_cents,
        )
        return txn

    def split_with_contact(self, name: str, amount_cents: int, description: str = "Split") -> Transaction:
        """
        Split an amount evenly with one contact; each side pays half.

        Raises:
            InvalidAmountError, ContactNotFoundError, InsufficientFundsError
        """
        _require_positive(amount_cents)
        half = amount_cents // 2
        _require_positive(half)

        with self.directory.lock:
            account = self.account
            contact, backing = self._resolve(account, name)

            charges = _Charges()
            charges.add_account(account, half)
            charges.add_contact(contact, backing, half)
            charges.verify()

            txn = self._post(
                account,
                -half,
                TransactionType.SPLIT,
                -half,
                f"Split with {contact.name}: {description}",
                recipient_name=contact.name,
                sender_name=account.name,
            )
            touched = [account]
            self._move_contact(
                account,
                contact,
                backing,
                -half,
                TransactionType.SPLIT,
                f"Split with {account.name}: {description}",
                touched,
            )
            self._commit(*touched)

        logger.info(
            "ledger.split",
            email=account.email,
            contact=contact.name,
            amount_cents=amount_cents,
            share_cents=half,
        )
        return txn

    # ------------------------------------------------------------------
    # Multiple contacts
    # ------------------------------------------------------------------

    def split_between_multiple_contacts(
        self, names: list[str], total_cents: int, description: str = "Multi-Split"
    ) -> Transaction:
        """
        Everyone (the acting account included) pays total / (len(names) + 1).

        Every name must resolve and every party must cover its share
        before anyone is charged.

        Raises:
            InvalidAmountError, ContactNotFoundError, InsufficientFundsError
        """
        _require_positive(total_cents)
        if not names:
            raise ContactNotFoundError("no contacts given")
        per_person = total_cents // (len(names) + 1)
        _require_positive(per_person)

        with self.directory.lock:
            account = self.account
            resolved = [self._resolve(account, name) for name in names]

            charges = _Charges()
            charges.add_account(account, per_person)
            for contact, backing in resolved:
                charges.add_contact(contact, backing, per_person)
            charges.verify()

            joined = ", ".join(names)
            txn = self._post(
                account,
                -per_person,
                TransactionType.SPLIT,
                -per_person,
                f"Split {format_amount(total_cents)} with {joined}: {description}",
                recipient_name=joined,
                sender_name=account.name,
            )
            touched = [account]
            for contact, backing in resolved:
                self._move_contact(
                    account,
                    contact,
                    backing,
                    -per_person,
                    TransactionType.SPLIT,
                    f"Split with {account.name}: {description}",
                    touched,
                )
            self._commit(*touched)

        logger.info(
            "ledger.multi_split",
            email=account.email,
            contacts=len(names),
            total_cents=total_cents,
            share_cents=per_person,
        )
        return txn

    def collect_split_from_multiple_contacts(
        self, names: list[str], total_cents: int, description: str = "Collect Split"
    ) -> Transaction:
        """
        Collect total / (len(names) + 1) from each contact into the acting account.

        Play-money contact mirrors are not checked for sufficiency and may
        go negative. Backed contacts still cannot push their account below
        zero.

        Raises:
            InvalidAmountError, ContactNotFoundError, InsufficientFundsError
        """
        _require_positive(total_cents)
        if not names:
            raise ContactNotFoundError("no contacts given")
        per_person = total_cents // (len(names) + 1)
        _require_positive(per_person)

        with self.directory.lock:
            account = self.account
            resolved = [self._resolve(account, name) for name in names]

            charges = _Charges()
            for contact, backing in resolved:
                if backing is not None:
                    charges.add_account(backing, per_person)
            charges.verify()

            collected = per_person * len(names)
            joined = ", ".join(names)
            txn = self._post(
                account,
                collected,
                TransactionType.SPLIT,
                collected,
                f"Collect split with {joined}: {description}",
                recipient_name=account.name,
                sender_name=joined,
            )
            touched = [account]
            for contact, backing in resolved:
                self._move_contact(
                    account,
                    contact,
                    backing,
                    -per_person,
                    TransactionType.SPLIT,
                    f"Split payment to {account.name}: {description}",
                    touched,
                )
            self._commit(*touched)

        logger.info(
            "ledger.collect_split",
            email=account.email,
            contacts=len(names),
            collected_cents=collected,
        )
        return txn

    # ------------------------------------------------------------------
    # Cross-account money requests
    # ------------------------------------------------------------------

    def send_money_request(
        self, to_email: str, amount_cents: int, description: str = "Money Request"
    ) -> PendingRequest:
        """
        Ask another registered account for money. Nothing moves until
        the recipient accepts.

        Raises:
            InvalidAmountError: If the amount is not positive.
            AccountNotFoundError: If no account has that email.
            UnauthorizedAccessError: If the target is the acting account.
        """
        _require_positive(amount_cents)
        with self.directory.lock:
            account = self.account
            target = self.directory.find_by_email(to_email)
            if target is None:
                raise AccountNotFoundError(to_email)
            if target.email_key == account.email_key:
                raise UnauthorizedAccessError("You cannot request money from yourself")

            request = PendingRequest(
                from_email=account.email,
                from_name=account.name,
                to_email=target.email,
                to_name=target.name,
                amount_cents=amount_cents,
                description=description,
            )
            self.directory.add_request(request)

        logger.info(
            "ledger.money_request_sent",
            request_id=str(request.id),
            from_email=account.email,
            to_email=target.email,
            amount_cents=amount_cents,
        )
        return request

    def respond_to_money_request(self, request_id: uuid.UUID, accept: bool) -> PendingRequest:
        """
        Accept or decline a pending request addressed to the acting account.

        Accepting moves the amount from the acting account to the
        requester; the status flips in the same critical section. A
        request is resolved exactly once.

        Raises:
            RequestNotFoundError: Unknown request id.
            UnauthorizedAccessError: The request is addressed to someone else.
            RequestAlreadyResolvedError: The request is no longer pending.
            AccountNotFoundError: The requester has since been deleted.
            InsufficientFundsError: The acting account cannot cover it.
        """
        with self.directory.lock:
            account = self.account
            request = self.directory.find_request(request_id)
            if request is None:
                raise RequestNotFoundError(request_id)
            if request.to_email.lower() != account.email_key:
                raise UnauthorizedAccessError("This money request is not addressed to you")
            if request.status != RequestStatus.PENDING:
                raise RequestAlreadyResolvedError(request_id, request.status.value)

            touched = [account]
            if accept:
                requester = self.directory.find_by_email(request.from_email)
                if requester is None:
                    raise AccountNotFoundError(request.from_email)

                charges = _Charges()
                charges.add_account(account, request.amount_cents)
                charges.verify()

                self._post(
                    account,
                    -request.amount_cents,
                    TransactionType.SEND,
                    -request.amount_cents,
                    f"Sent to {request.from_name} (request accepted)",
                    recipient_name=request.from_name,
                    sender_name=account.name,
                )
                self._post(
                    requester,
                    request.amount_cents,
                    TransactionType.DEPOSIT,
                    request.amount_cents,
                    f"Received from {request.to_name} (request fulfilled)",
                    recipient_name=requester.name,
                    sender_name=request.to_name,
                )
                touched.append(requester)

            request.status = RequestStatus.ACCEPTED if accept else RequestStatus.DECLINED
            self.directory.persist_requests()
            if accept:
                self._commit(*touched)

        logger.info(
            "ledger.money_request_resolved",
            request_id=str(request.id),
            status=request.status.value,
            amount_cents=request.amount_cents,
        )
        return request

    def incoming_requests(self) -> list[PendingRequest]:
        """Pending requests addressed to the acting account."""
        key = self.email.lower()
        return [
            r
            for r in self.directory.pending_requests
            if r.to_email.lower() == key and r.status == RequestStatus.PENDING
        ]

    def sent_requests(self) -> list[PendingRequest]:
        """Every request the acting account has sent, any status."""
        key = self.email.lower()
        return [r for r in self.directory.pending_requests if r.from_email.lower() == key]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(self, account: Account, name: str) -> tuple[Contact, Account | None]:
        contact = match_contact(account.contacts, name)
        if contact is None:
            raise ContactNotFoundError(name)
        backing = self.directory.sync_contact(contact)
        return contact, backing

    @staticmethod
    def _post(
        account: Account,
        balance_change: int,
        txn_type: TransactionType,
        amount_cents: int,
        description: str,
        recipient_name: str | None = None,
        sender_name: str | None = None,
    ) -> Transaction:
        txn = Transaction(
            type=txn_type,
            amount_cents=amount_cents,
            description=description,
            recipient_name=recipient_name,
            sender_name=sender_name,
        )
        account.balance_cents += balance_change
        account.transaction_history.append(txn)
        return txn

    def _move_contact(
        self,
        acting: Account,
        contact: Contact,
        backing: Account | None,
        change_cents: int,
        txn_type: TransactionType,
        description: str,
        touched: list[Account],
    ) -> None:
        """Apply a balance change to a contact mirror and its backing account."""
        if backing is None:
            contact.balance_cents += change_cents
            return

        self._post(
            backing,
            change_cents,
            txn_type,
            change_cents,
            description,
            recipient_name=None if change_cents > 0 else acting.name,
            sender_name=acting.name if change_cents > 0 else None,
        )
        contact.balance_cents = backing.balance_cents
        if all(backing is not other for other in touched):
            touched.append(backing)

    def _commit(self, *accounts: Account) -> None:
        for account in accounts:
            self.directory.persist_account(account)
