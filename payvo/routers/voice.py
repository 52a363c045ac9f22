"""
Voice router — spoken commands for the signed-in account.

Endpoints:
  POST /voice/commands  — Interpret and execute one utterance
  GET  /voice/pending   — The transaction awaiting confirmation, or null
  POST /voice/confirm   — Execute the staged transaction
  POST /voice/cancel    — Drop the staged transaction

Every response is a CommandResult (message, should_speak, status) plus the
balance afterwards. Business-rule failures come back as status "failure"
with HTTP 200; the utterance was handled, it just did not move money.
"""

from fastapi import APIRouter, Depends

from payvo.dependencies import get_voice_session
from payvo.records import CommandResult
from payvo.schemas.voice import (
    CommandResultResponse,
    PendingTransactionResponse,
    VoiceCommandRequest,
)
from payvo.services.voice_session import VoiceCommandSession

router = APIRouter()


def _response(session: VoiceCommandSession, result: CommandResult) -> CommandResultResponse:
    return CommandResultResponse(
        message=result.message,
        should_speak=result.should_speak,
        status=result.status,
        balance_cents=session.ledger.get_balance(),
    )


@router.post("/commands", response_model=CommandResultResponse, summary="Run a voice command")
def run_command(
    request: VoiceCommandRequest,
    session: VoiceCommandSession = Depends(get_voice_session),
):
    """
    Interpret one utterance, e.g. "send 50 dollars to Alice" or
    "split 150 between Alice, Bob and Carol".

    Transactions over 15% of your balance return status
    "pending_confirmation" and wait for /voice/confirm or /voice/cancel.
    """
    return _response(session, session.process(request.utterance))


@router.get(
    "/pending",
    response_model=PendingTransactionResponse | None,
    summary="Show the transaction awaiting confirmation",
)
def get_pending(session: VoiceCommandSession = Depends(get_voice_session)):
    pending = session.pending
    if pending is None:
        return None
    return PendingTransactionResponse.model_validate(pending)


@router.post("/confirm", response_model=CommandResultResponse, summary="Confirm the staged transaction")
def confirm(session: VoiceCommandSession = Depends(get_voice_session)):
    return _response(session, session.confirm())


@router.post("/cancel", response_model=CommandResultResponse, summary="Cancel the staged transaction")
def cancel(session: VoiceCommandSession = Depends(get_voice_session)):
    return _response(session, session.cancel())
