"""
Voice command session — one signed-in user's utterance-to-ledger chain.

    SpeechInputProvider -> interpret() -> TransactionGuard -> Ledger

Each call to process() is one bounded, synchronous computation that
always returns a CommandResult. Business-rule failures raised by the
ledger (unknown contact, insufficient funds, bad amount) become spoken
failure messages here; they never escape to the caller.

While the guard holds a staged transaction the session answers every
new utterance with a pending_confirmation result, until confirm() or
cancel() resolves it. A per-session lock makes the check-then-stage in
process() and the run-once in confirm() atomic when requests for the
same account arrive on different threads.

SessionRegistry keeps at most one session per account email. Closing a
session (logout, account deletion) cancels anything it has staged.
"""

import threading
from typing import Callable

import structlog

from payvo.config import settings
from payvo.exceptions import PayVoError
from payvo.records import CommandResult, CommandStatus, format_amount
from payvo.services.command_interpreter import Intent, IntentKind, dollars_to_cents, interpret
from payvo.services.directory import AccountDirectory
from payvo.services.ledger_service import Ledger
from payvo.services.speech import Narrator, NullNarrator, SpeechInputProvider
from payvo.services.transaction_guard import (
    PendingTransaction,
    PendingTransactionType,
    TransactionGuard,
    warning_message,
)

logger = structlog.get_logger(__name__)


SPLIT_EXAMPLE = "For example: 'split 100 dollars with Alice' or 'split 150 between Alice, Bob, Carol'"
REQUEST_EXAMPLE = "For example: 'request 50 dollars from Eric'"

HELP_MESSAGE = (
    "Available commands: check balance, split amount with contact, send amount to contact, "
    "request amount from contact (or database user), show transactions, show contacts, help"
)
UNKNOWN_MESSAGE = (
    "Command not recognized. Try: check balance, split with contact, send to contact, "
    "or request from contact"
)
PENDING_MESSAGE = "Transaction pending confirmation..."
AWAITING_MESSAGE = "Please confirm or cancel the pending transaction first."


def _guidance(message: str) -> CommandResult:
    return CommandResult(message=message, status=CommandStatus.GUIDANCE)


def _success(message: str) -> CommandResult:
    return CommandResult(message=message, status=CommandStatus.SUCCESS)


def _failure(message: str) -> CommandResult:
    return CommandResult(message=message, status=CommandStatus.FAILURE)


class VoiceCommandSession:
    """
    Interprets and executes voice commands for one account.

    Args:
        directory: The shared account directory.
        email: The signed-in account's email.
        narrator: Receives every result with should_speak set, plus
                  confirmation warnings. Defaults to a no-op.
        guard: The confirmation guard; a fresh one by default.
    """

    def __init__(
        self,
        directory: AccountDirectory,
        email: str,
        narrator: Narrator | None = None,
        guard: TransactionGuard | None = None,
    ):
        self.directory = directory
        self.email = email
        self.ledger = Ledger(directory, email)
        self.narrator = narrator or NullNarrator()
        self.guard = guard or TransactionGuard()
        # One utterance or confirm/cancel at a time per session
        self._lock = threading.RLock()
        self._handlers: dict[IntentKind, Callable[[Intent], CommandResult]] = {
            IntentKind.BALANCE: self._balance,
            IntentKind.SPLIT: self._split,
            IntentKind.REQUEST: self._request,
            IntentKind.SEND: self._send,
            IntentKind.HISTORY: self._history,
            IntentKind.CONTACTS: self._contacts,
            IntentKind.HELP: self._help,
            IntentKind.UNKNOWN: self._unknown,
        }

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def process(self, utterance: str) -> CommandResult:
        with self._lock:
            return self._process(utterance)

    def _process(self, utterance: str) -> CommandResult:
        if self.guard.pending is not None:
            return CommandResult(
                message=AWAITING_MESSAGE,
                status=CommandStatus.PENDING_CONFIRMATION,
            )

        intent = interpret(utterance)
        if intent.kind == IntentKind.EMPTY:
            return CommandResult(message="", should_speak=False, status=CommandStatus.INFO)

        logger.info("voice.command_received", email=self.email, kind=intent.kind.value)
        result = self._handlers[intent.kind](intent)
        logger.info(
            "voice.command_processed",
            email=self.email,
            kind=intent.kind.value,
            status=result.status.value,
        )
        return self._announce(result)

    @property
    def pending(self) -> PendingTransaction | None:
        with self._lock:
            return self.guard.pending

    def listen_and_process(self, provider: SpeechInputProvider) -> CommandResult:
        return self.process(provider.listen())

    def confirm(self) -> CommandResult:
        with self._lock:
            return self._announce(self.guard.confirm(self.ledger))

    def cancel(self) -> CommandResult:
        with self._lock:
            return self._announce(self.guard.cancel())

    def close(self) -> None:
        """End the session; a staged transaction is cancelled silently."""
        with self._lock:
            if self.guard.pending is not None:
                self.guard.cancel()

    # ------------------------------------------------------------------
    # Intent handlers
    # ------------------------------------------------------------------

    def _balance(self, intent: Intent) -> CommandResult:
        balance = self.ledger.get_balance()
        return CommandResult(message=f"Your current balance is {format_amount(balance)}")

    def _split(self, intent: Intent) -> CommandResult:
        if intent.amount is None:
            return _guidance(f"Please specify an amount to split. {SPLIT_EXAMPLE}")
        amount_cents = dollars_to_cents(intent.amount)

        names = [name for name in intent.contact_names if name.lower() != "me"]
        if len(names) > 1:
            return self._split_between(names, amount_cents)

        name = names[0] if names else intent.contact_name
        if not name:
            return _guidance(f"Please specify contact names. {SPLIT_EXAMPLE}")

        def execute() -> CommandResult:
            try:
                self.ledger.split_with_contact(name, amount_cents, "Voice Split")
            except PayVoError as exc:
                self._log_failure("split", exc)
                return _failure(
                    f"Failed to split with {name}. Please check the contact name and your balance."
                )
            return _success(f"Successfully split {format_amount(amount_cents)} with {name}")

        return self._guarded(PendingTransactionType.SPLIT, name, amount_cents, "Voice Split", execute)

    def _split_between(self, names: list[str], amount_cents: int) -> CommandResult:
        joined = ", ".join(names)
        try:
            self.ledger.split_between_multiple_contacts(names, amount_cents, "Voice Split Between")
        except PayVoError as exc:
            self._log_failure("multi_split", exc)
            return _failure(
                f"Failed to split between {joined}. Please check the contact names and their balances."
            )
        per_person = amount_cents // (len(names) + 1)
        return _success(
            f"Successfully split {format_amount(amount_cents)} between {joined} and you. "
            f"Each person pays {format_amount(per_person)}"
        )

    def _request(self, intent: Intent) -> CommandResult:
        if intent.amount is None:
            return _guidance(f"Please specify an amount to request. {REQUEST_EXAMPLE}")
        if not intent.contact_name:
            return _guidance(f"Please specify a contact name. {REQUEST_EXAMPLE}")

        amount_cents = dollars_to_cents(intent.amount)
        name = intent.contact_name

        user = self.directory.find_by_name(name)
        if user is not None and user.email_key != self.email.lower():
            return self._request_from_user(user.name, user.email, amount_cents)

        def execute() -> CommandResult:
            try:
                self.ledger.request_from_contact(name, amount_cents, "Voice Request")
            except PayVoError as exc:
                self._log_failure("request", exc)
                return _failure(
                    f"Failed to request from {name}. Please check the contact name and their balance."
                )
            return _success(f"Successfully requested {format_amount(amount_cents)} from {name}")

        return self._guarded(PendingTransactionType.REQUEST, name, amount_cents, "Voice Request", execute)

    def _request_from_user(self, user_name: str, user_email: str, amount_cents: int) -> CommandResult:
        def execute() -> CommandResult:
            try:
                self.ledger.send_money_request(user_email, amount_cents, "Voice Request")
            except PayVoError as exc:
                self._log_failure("money_request", exc)
                return _failure(f"Failed to send money request to {user_name}. Please try again.")
            return _success(
                f"Money request sent to {user_name}. They will receive a notification "
                "to accept or decline your request."
            )

        return self._guarded(
            PendingTransactionType.REQUEST_FROM_USER, user_name, amount_cents, "Voice Request", execute
        )

    def _send(self, intent: Intent) -> CommandResult:
        name = intent.contact_name
        if not name:
            return _guidance(
                "Please specify a contact name. For example: "
                "'send 25 dollars to Ms' or 'send money to John'"
            )

        if intent.amount is None:
            amount_cents = settings.DEFAULT_SEND_AMOUNT_CENTS
            description = "Voice Send (Default Amount)"
            suffix = " (default amount)"
        else:
            amount_cents = dollars_to_cents(intent.amount)
            description = "Voice Send"
            suffix = ""

        def execute() -> CommandResult:
            try:
                self.ledger.send_to_contact(name, amount_cents, description)
            except PayVoError as exc:
                self._log_failure("send", exc)
                return _failure(
                    f"Failed to send to {name}. Please check the contact name and your balance."
                )
            return _success(f"Successfully sent {format_amount(amount_cents)} to {name}{suffix}")

        return self._guarded(PendingTransactionType.SEND, name, amount_cents, description, execute)

    def _history(self, intent: Intent) -> CommandResult:
        count = len(self.ledger.get_transaction_history())
        if count == 0:
            return CommandResult(message="No transactions found.")
        return CommandResult(
            message=f"You have {count} transactions. Check the transaction history page for details."
        )

    def _contacts(self, intent: Intent) -> CommandResult:
        count = len(self.ledger.get_contacts())
        if count == 0:
            return CommandResult(message="No contacts found. Add contacts in the contacts page.")
        return CommandResult(message=f"You have {count} contacts. Check the contacts page for details.")

    def _help(self, intent: Intent) -> CommandResult:
        return CommandResult(message=HELP_MESSAGE)

    def _unknown(self, intent: Intent) -> CommandResult:
        return _guidance(UNKNOWN_MESSAGE)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _guarded(
        self,
        txn_type: PendingTransactionType,
        name: str,
        amount_cents: int,
        description: str,
        execute: Callable[[], CommandResult],
    ) -> CommandResult:
        staged = self.guard.check(
            txn_type, name, amount_cents, description, self.ledger.get_balance()
        )
        if staged is None:
            return execute()

        self.narrator.speak(warning_message(staged))
        return CommandResult(
            message=PENDING_MESSAGE,
            should_speak=False,
            status=CommandStatus.PENDING_CONFIRMATION,
        )

    def _announce(self, result: CommandResult) -> CommandResult:
        if result.should_speak:
            self.narrator.speak(result.message)
        return result

    def _log_failure(self, operation: str, exc: PayVoError) -> None:
        logger.info(
            "voice.command_failed",
            email=self.email,
            operation=operation,
            error_type=exc.error_type,
            detail=exc.detail,
        )


class SessionRegistry:
    """
    At most one VoiceCommandSession per account email.

    Args:
        directory: The shared account directory handed to each session.
        narrator_factory: Builds the narrator for a new session.
    """

    def __init__(
        self,
        directory: AccountDirectory,
        narrator_factory: Callable[[], Narrator] = NullNarrator,
    ):
        self.directory = directory
        self.narrator_factory = narrator_factory
        self._sessions: dict[str, VoiceCommandSession] = {}
        self._lock = threading.Lock()

    def get(self, email: str) -> VoiceCommandSession:
        """Return the account's session, opening one if needed."""
        key = email.lower()
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                session = VoiceCommandSession(self.directory, email, narrator=self.narrator_factory())
                self._sessions[key] = session
                logger.info("voice.session_opened", email=email)
            return session

    def close(self, email: str) -> bool:
        with self._lock:
            session = self._sessions.pop(email.lower(), None)
        if session is None:
            return False
        session.close()
        logger.info("voice.session_closed", email=email)
        return True

    def __len__(self) -> int:
        return len(self._sessions)
