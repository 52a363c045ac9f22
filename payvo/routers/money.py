"""
Money router — direct ledger operations without the voice layer.

Endpoints (all return the acting account's transaction and new balance):
  POST /money/deposit        — Add funds
  POST /money/withdraw       — Remove funds
  POST /money/send           — Pay a contact
  POST /money/request        — Take funds from a contact
  POST /money/split          — Split an amount 50/50 with a contact
  POST /money/split/multi    — Split a total between you and several contacts
  POST /money/split/collect  — Collect everyone's share of a total you paid

No confirmation threshold applies here; that guard belongs to voice
commands. Insufficient funds is a 422 carrying requested and available
cents.
"""

from fastapi import APIRouter, Depends

from payvo.dependencies import get_ledger
from payvo.records import Transaction
from payvo.schemas.money import (
    AmountRequest,
    ContactAmountRequest,
    LedgerResultResponse,
    MultiContactAmountRequest,
)
from payvo.services.ledger_service import Ledger

router = APIRouter()


def _result(ledger: Ledger, txn: Transaction) -> LedgerResultResponse:
    return LedgerResultResponse(transaction=txn, balance_cents=ledger.get_balance())


@router.post("/deposit", response_model=LedgerResultResponse, summary="Deposit funds")
def deposit(request: AmountRequest, ledger: Ledger = Depends(get_ledger)):
    txn = ledger.deposit(request.amount_cents, request.description or "Deposit")
    return _result(ledger, txn)


@router.post("/withdraw", response_model=LedgerResultResponse, summary="Withdraw funds")
def withdraw(request: AmountRequest, ledger: Ledger = Depends(get_ledger)):
    txn = ledger.withdraw(request.amount_cents, request.description or "Withdrawal")
    return _result(ledger, txn)


@router.post("/send", response_model=LedgerResultResponse, summary="Send money to a contact")
def send(request: ContactAmountRequest, ledger: Ledger = Depends(get_ledger)):
    txn = ledger.send_to_contact(
        request.contact_name, request.amount_cents, request.description or "Send"
    )
    return _result(ledger, txn)


@router.post("/request", response_model=LedgerResultResponse, summary="Request money from a contact")
def request_money(request: ContactAmountRequest, ledger: Ledger = Depends(get_ledger)):
    txn = ledger.request_from_contact(
        request.contact_name, request.amount_cents, request.description or "Request"
    )
    return _result(ledger, txn)


@router.post("/split", response_model=LedgerResultResponse, summary="Split with a contact")
def split(request: ContactAmountRequest, ledger: Ledger = Depends(get_ledger)):
    txn = ledger.split_with_contact(
        request.contact_name, request.amount_cents, request.description or "Split"
    )
    return _result(ledger, txn)


@router.post(
    "/split/multi",
    response_model=LedgerResultResponse,
    summary="Split a total between you and several contacts",
)
def split_multi(request: MultiContactAmountRequest, ledger: Ledger = Depends(get_ledger)):
    txn = ledger.split_between_multiple_contacts(
        request.contact_names, request.total_cents, request.description or "Multi-Split"
    )
    return _result(ledger, txn)


@router.post(
    "/split/collect",
    response_model=LedgerResultResponse,
    summary="Collect split shares from several contacts",
)
def split_collect(request: MultiContactAmountRequest, ledger: Ledger = Depends(get_ledger)):
    txn = ledger.collect_split_from_multiple_contacts(
        request.contact_names, request.total_cents, request.description or "Collect Split"
    )
    return _result(ledger, txn)
