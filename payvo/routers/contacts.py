"""
Contacts router — the signed-in account's contact list.

Endpoints:
  GET    /contacts               — List contacts (backed balances resynced)
  POST   /contacts               — Add a contact
  DELETE /contacts/{contact_id}  — Remove a contact
"""

import uuid

from fastapi import APIRouter, Depends, status

from payvo.dependencies import get_ledger
from payvo.records import Contact
from payvo.schemas.contact import ContactCreateRequest, ContactResponse
from payvo.services.ledger_service import Ledger

router = APIRouter()


@router.get("", response_model=list[ContactResponse], summary="List your contacts")
def list_contacts(ledger: Ledger = Depends(get_ledger)):
    return ledger.get_contacts()


@router.post(
    "",
    response_model=ContactResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a contact",
)
def add_contact(
    request: ContactCreateRequest,
    ledger: Ledger = Depends(get_ledger),
):
    """
    Add a contact. Names must be unique in your list (409 otherwise).

    If the email belongs to a registered account the contact's balance
    follows that account and money sent to it really moves.
    """
    contact = Contact(
        name=request.name.strip(),
        balance_cents=request.balance_cents,
        phone_number=request.phone_number,
        email=request.email,
    )
    return ledger.add_contact(contact)


@router.delete(
    "/{contact_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a contact",
)
def delete_contact(
    contact_id: uuid.UUID,
    ledger: Ledger = Depends(get_ledger),
):
    ledger.delete_contact(contact_id)
