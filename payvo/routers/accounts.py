"""
Accounts router — the signed-in account's profile, balance and history,
directory search, and verified deletion.

Endpoints:
  GET  /accounts/me               — Profile and balance
  GET  /accounts/me/balance       — Balance only
  GET  /accounts/me/transactions  — Transaction history, oldest first
  GET  /accounts/search?q=        — Find other accounts by name or email
  POST /accounts/delete           — Delete an account (public; needs
                                    email, phone number and unique tag)
"""

from fastapi import APIRouter, Depends, Query, status

from payvo.dependencies import get_current_account, get_directory, get_session_registry
from payvo.records import Account, format_amount
from payvo.schemas.account import (
    AccountDeleteRequest,
    AccountResponse,
    AccountSearchResult,
    BalanceResponse,
    TransactionResponse,
)
from payvo.services.directory import AccountDirectory
from payvo.services.voice_session import SessionRegistry

router = APIRouter()


@router.get("/me", response_model=AccountResponse, summary="Get your account")
def get_me(account: Account = Depends(get_current_account)):
    return AccountResponse(
        email=account.email,
        name=account.name,
        phone_number=account.phone_number,
        balance_cents=account.balance_cents,
        unique_tag=account.unique_tag,
        date_created=account.date_created,
        contact_count=len(account.contacts),
        transaction_count=len(account.transaction_history),
    )


@router.get("/me/balance", response_model=BalanceResponse, summary="Check your balance")
def get_balance(account: Account = Depends(get_current_account)):
    return BalanceResponse(
        balance_cents=account.balance_cents,
        formatted=format_amount(account.balance_cents),
    )


@router.get(
    "/me/transactions",
    response_model=list[TransactionResponse],
    summary="List your transactions",
)
def list_transactions(account: Account = Depends(get_current_account)):
    """Full history in the order it happened; amounts are signed cents."""
    return list(account.transaction_history)


@router.get(
    "/search",
    response_model=list[AccountSearchResult],
    summary="Search other accounts",
)
def search_accounts(
    q: str = Query(min_length=1, max_length=100),
    account: Account = Depends(get_current_account),
    directory: AccountDirectory = Depends(get_directory),
):
    """Case-insensitive substring match on name or email. Your own account is never listed."""
    return directory.search(q, exclude_email=account.email)


@router.post(
    "/delete",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an account",
)
def delete_account(
    request: AccountDeleteRequest,
    directory: AccountDirectory = Depends(get_directory),
    registry: SessionRegistry = Depends(get_session_registry),
):
    """
    Delete the account whose email, phone number and unique tag all match.

    Returns 404 without saying which detail was wrong. Any open voice
    session for the account is closed.
    """
    deleted = directory.verified_delete(request.email, request.phone_number, request.unique_tag)
    registry.close(deleted.email)
