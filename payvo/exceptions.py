"""
Custom exception classes and FastAPI exception handlers.

The ledger and directory raise domain-specific errors (like
InsufficientFundsError) without importing HTTP concepts. Two layers
translate them:

  - The voice command session turns them into spoken failure messages,
    so an utterance never raises for a business-rule violation.
  - The HTTP layer maps them to status codes via register_exception_handlers().

Exception hierarchy:
    PayVoError (base)
    ├── InvalidAmountError           — zero/negative amounts
    ├── InsufficientFundsError       — a party lacks the required balance
    ├── AccountNotFoundError         — no account with that email/name
    ├── ContactNotFoundError         — contact name does not resolve
    ├── DuplicateContactError        — contact name already in the list
    ├── RequestNotFoundError         — unknown money request id
    ├── RequestAlreadyResolvedError  — money request already accepted/declined
    ├── UnauthorizedAccessError      — acting on someone else's request
    ├── DuplicateEmailError          — registering an email twice
    ├── InvalidCredentialsError      — passphrase did not match any account
    ├── VerificationFailedError      — deletion details did not all match
    └── StoreError                   — the account store could not persist
"""

import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class PayVoError(Exception):
    """Base exception for all PayVo domain errors."""

    error_type = "payvo_error"
    status_code = 400

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class InvalidAmountError(PayVoError):
    """Raised when an amount is zero, negative or over the per-operation limit."""

    error_type = "invalid_amount"
    status_code = 422

    def __init__(self, amount_cents: int, limit_cents: int | None = None):
        self.amount_cents = amount_cents
        if limit_cents is None:
            super().__init__(f"Amount must be positive, got {amount_cents} cents")
        else:
            super().__init__(f"Amount must not exceed {limit_cents} cents, got {amount_cents} cents")


class InsufficientFundsError(PayVoError):
    """
    Raised when a party to a ledger operation cannot cover its share.

    Attributes:
        party: Name or email of the account/contact that lacks funds.
        requested_cents: The amount that party would have paid.
        available_cents: That party's balance at check time.
    """

    error_type = "insufficient_funds"
    status_code = 422

    def __init__(self, party: str, requested_cents: int, available_cents: int):
        self.party = party
        self.requested_cents = requested_cents
        self.available_cents = available_cents
        super().__init__(
            f"Insufficient funds for {party}: requested {requested_cents} cents, "
            f"available {available_cents} cents"
        )


class AccountNotFoundError(PayVoError):
    """Raised when no account matches an email or name."""

    error_type = "account_not_found"
    status_code = 404

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Account {key} not found")


class ContactNotFoundError(PayVoError):
    """Raised when a contact name does not resolve, even fuzzily."""

    error_type = "contact_not_found"
    status_code = 404

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Contact {name} not found")


class DuplicateContactError(PayVoError):
    """Raised when adding a contact whose name is already in the list."""

    error_type = "duplicate_contact"
    status_code = 409

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Contact {name} already exists")


class RequestNotFoundError(PayVoError):
    """Raised when a money request id is unknown."""

    error_type = "request_not_found"
    status_code = 404

    def __init__(self, request_id: uuid.UUID):
        self.request_id = request_id
        super().__init__(f"Money request {request_id} not found")


class RequestAlreadyResolvedError(PayVoError):
    """Raised when responding to a request that is no longer pending."""

    error_type = "request_already_resolved"
    status_code = 409

    def __init__(self, request_id: uuid.UUID, status: str):
        self.request_id = request_id
        self.status = status
        super().__init__(f"Money request {request_id} is already {status}")


class UnauthorizedAccessError(PayVoError):
    """Raised when an account acts on a resource addressed to someone else."""

    error_type = "unauthorized_access"
    status_code = 403

    def __init__(self, detail: str = "You do not have access to this resource"):
        super().__init__(detail)


class DuplicateEmailError(PayVoError):
    """Raised when attempting to register with an email that's already in use."""

    error_type = "duplicate_email"
    status_code = 409

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")


class InvalidCredentialsError(PayVoError):
    """Raised when a voice passphrase matches no account."""

    error_type = "invalid_credentials"
    status_code = 401

    def __init__(self):
        super().__init__("Voice passphrase not recognized")


class VerificationFailedError(PayVoError):
    """Raised when email, phone number and tag do not all match one account."""

    error_type = "verification_failed"
    status_code = 404

    def __init__(self):
        super().__init__("No account matches all verification details")


class StoreError(PayVoError):
    """
    Raised by an AccountStore when it cannot load or persist records.

    The directory logs and swallows these on save: the in-memory ledger
    stays the source of truth for the running process.
    """

    error_type = "store_error"
    status_code = 503


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Every domain error becomes {"detail": ..., "error_type": ...} with the
    status code declared on its class. InsufficientFundsError also reports
    the requested and available amounts.

    This is called once during app startup in main.py.
    """

    @app.exception_handler(InsufficientFundsError)
    async def insufficient_funds_handler(
        request: Request, exc: InsufficientFundsError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "error_type": exc.error_type,
                "requested_cents": exc.requested_cents,
                "available_cents": exc.available_cents,
            },
        )

    @app.exception_handler(InvalidCredentialsError)
    async def invalid_credentials_handler(
        request: Request, exc: InvalidCredentialsError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error_type": exc.error_type},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(PayVoError)
    async def payvo_error_handler(request: Request, exc: PayVoError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error_type": exc.error_type},
        )
