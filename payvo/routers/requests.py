"""
Money requests router — asking another registered account for money.

Endpoints:
  POST /requests                  — Send a money request
  GET  /requests                  — Requests you have sent (any status)
  GET  /requests/incoming         — Pending requests addressed to you
  POST /requests/{id}/respond     — Accept or decline one
  POST /requests/cleanup          — Drop requests older than the retention window

A request is resolved exactly once. Accepting moves the money from you
to the requester; a second response is a 409.
"""

import uuid

from fastapi import APIRouter, Depends, status

from payvo.dependencies import get_current_account, get_directory, get_ledger
from payvo.schemas.request import (
    CleanupResponse,
    MoneyRequestCreate,
    MoneyRequestRespond,
    MoneyRequestResponse,
)
from payvo.services.directory import AccountDirectory
from payvo.services.ledger_service import Ledger

router = APIRouter()


@router.post(
    "",
    response_model=MoneyRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request money from another account",
)
def create_request(request: MoneyRequestCreate, ledger: Ledger = Depends(get_ledger)):
    return ledger.send_money_request(
        request.to_email, request.amount_cents, request.description or "Money Request"
    )


@router.get("", response_model=list[MoneyRequestResponse], summary="List requests you sent")
def list_sent(ledger: Ledger = Depends(get_ledger)):
    return ledger.sent_requests()


@router.get(
    "/incoming",
    response_model=list[MoneyRequestResponse],
    summary="List pending requests addressed to you",
)
def list_incoming(ledger: Ledger = Depends(get_ledger)):
    return ledger.incoming_requests()


@router.post(
    "/{request_id}/respond",
    response_model=MoneyRequestResponse,
    summary="Accept or decline a request",
)
def respond(
    request_id: uuid.UUID,
    request: MoneyRequestRespond,
    ledger: Ledger = Depends(get_ledger),
):
    return ledger.respond_to_money_request(request_id, request.accept)


@router.post(
    "/cleanup",
    response_model=CleanupResponse,
    dependencies=[Depends(get_current_account)],
    summary="Prune old requests",
)
def cleanup(
    directory: AccountDirectory = Depends(get_directory),
):
    return CleanupResponse(removed=directory.remove_old_requests())
