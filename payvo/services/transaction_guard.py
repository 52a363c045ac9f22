"""
Transaction guard — large transactions wait for an explicit confirmation.

A voice-initiated send, split or request whose amount is more than
CONFIRMATION_THRESHOLD_PERCENT (15%) of the acting account's balance is
not executed. It is staged as a PendingTransaction instead, and the
session tells the user how large it is. Nothing touches the ledger until
confirm() re-dispatches it; cancel() drops it.

States:
    idle  --check() over threshold-->  awaiting confirmation
    awaiting confirmation  --confirm() / cancel()-->  idle

At most one transaction is staged at a time. confirm() clears it whether
the ledger call succeeds or fails, so a staged transaction runs at most
once.
"""

import enum
import math

import structlog
from pydantic import BaseModel

from payvo.config import settings
from payvo.exceptions import AccountNotFoundError, PayVoError
from payvo.records import CommandResult, CommandStatus
from payvo.services.ledger_service import Ledger

logger = structlog.get_logger(__name__)

CONFIRMED_MESSAGE = "Transaction confirmed and completed successfully."
CONFIRM_FAILED_MESSAGE = "Transaction failed. Please check the contact name and balances."
CANCELLED_MESSAGE = "Transaction cancelled."


class PendingTransactionType(str, enum.Enum):
    SEND = "send"
    SPLIT = "split"
    REQUEST = "request"
    REQUEST_FROM_USER = "request_from_user"


class PendingTransaction(BaseModel):
    type: PendingTransactionType
    contact_name: str
    amount_cents: int
    description: str
    percentage_of_balance: float


def percentage_of_balance(amount_cents: int, balance_cents: int) -> float:
    """amount as a percentage of balance; infinite when the balance is not positive."""
    if balance_cents <= 0:
        return math.inf
    return amount_cents * 100 / balance_cents


def warning_message(pending: PendingTransaction) -> str:
    if math.isinf(pending.percentage_of_balance):
        return "Warning: Your balance is empty. Do you want to proceed?"
    return (
        f"Warning: This transaction is {pending.percentage_of_balance:.1f}% "
        "of your balance. Do you want to proceed?"
    )


class TransactionGuard:
    """
    Holds at most one staged transaction for a voice session.

    Args:
        threshold_percent: Percentage of balance above which a transaction
                           must be confirmed. Defaults to the configured value.
    """

    def __init__(self, threshold_percent: float | None = None):
        self.threshold_percent = (
            settings.CONFIRMATION_THRESHOLD_PERCENT if threshold_percent is None else threshold_percent
        )
        self._pending: PendingTransaction | None = None

    @property
    def pending(self) -> PendingTransaction | None:
        return self._pending

    def check(
        self,
        txn_type: PendingTransactionType,
        contact_name: str,
        amount_cents: int,
        description: str,
        balance_cents: int,
    ) -> PendingTransaction | None:
        """
        Decide whether a transaction may run now.

        Returns None to proceed, or the staged PendingTransaction when the
        amount is over the threshold.
        """
        percentage = percentage_of_balance(amount_cents, balance_cents)
        if percentage <= self.threshold_percent:
            return None

        self._pending = PendingTransaction(
            type=txn_type,
            contact_name=contact_name,
            amount_cents=amount_cents,
            description=description,
            percentage_of_balance=percentage,
        )
        logger.info(
            "guard.intercepted",
            type=txn_type.value,
            amount_cents=amount_cents,
            percentage=None if math.isinf(percentage) else round(percentage, 1),
        )
        return self._pending

    def confirm(self, ledger: Ledger) -> CommandResult:
        """Run the staged transaction once, then clear it."""
        pending = self._pending
        if pending is None:
            return CommandResult(
                message="There is no transaction waiting for confirmation.",
                should_speak=False,
                status=CommandStatus.INFO,
            )

        try:
            self._dispatch(ledger, pending)
        except PayVoError as exc:
            logger.info(
                "guard.confirm_failed",
                type=pending.type.value,
                error_type=exc.error_type,
                detail=exc.detail,
            )
            return CommandResult(message=CONFIRM_FAILED_MESSAGE, status=CommandStatus.FAILURE)
        finally:
            self._pending = None

        logger.info("guard.confirmed", type=pending.type.value, amount_cents=pending.amount_cents)
        return CommandResult(message=CONFIRMED_MESSAGE, status=CommandStatus.SUCCESS)

    def cancel(self) -> CommandResult:
        if self._pending is not None:
            logger.info("guard.cancelled", type=self._pending.type.value)
        self._pending = None
        return CommandResult(message=CANCELLED_MESSAGE, status=CommandStatus.CANCELLED)

    @staticmethod
    def _dispatch(ledger: Ledger, pending: PendingTransaction) -> None:
        if pending.type == PendingTransactionType.SEND:
            ledger.send_to_contact(pending.contact_name, pending.amount_cents, pending.description)
        elif pending.type == PendingTransactionType.SPLIT:
            ledger.split_with_contact(pending.contact_name, pending.amount_cents, pending.description)
        elif pending.type == PendingTransactionType.REQUEST:
            ledger.request_from_contact(pending.contact_name, pending.amount_cents, pending.description)
        else:
            target = ledger.directory.find_by_name(pending.contact_name)
            if target is None:
                raise AccountNotFoundError(pending.contact_name)
            ledger.send_money_request(target.email, pending.amount_cents, pending.description)
