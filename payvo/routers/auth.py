"""
Authentication router — voice signup and voice login.

These are the only public endpoints besides verified account deletion
and /health. Everything else requires a valid JWT.

Endpoints:
  POST /auth/signup  — Register an account and get a token
  POST /auth/login   — Log in with a spoken passphrase and get a token

Security audit notes:
  - Passphrase transcripts exist only in memory during the request; they
    are hashed before reaching the account store and never logged.
  - JWT tokens appear only in response bodies.
"""

from fastapi import APIRouter, Depends, status

from payvo.dependencies import get_directory
from payvo.schemas.auth import LoginResponse, SignupResponse, VoiceLoginRequest, VoiceSignupRequest
from payvo.services import auth_service
from payvo.services.directory import AccountDirectory

router = APIRouter()


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
)
def signup(
    request: VoiceSignupRequest,
    directory: AccountDirectory = Depends(get_directory),
):
    """
    Register with a spoken passphrase.

    The account starts with a random balance between $1000 and $1500 and
    the demo contact list. The response carries the account's unique tag,
    which is required later to delete the account.

    - **email**: Valid email, not already registered (409 otherwise)
    - **voice_passphrase**: Transcript of the passphrase; case and
      surrounding whitespace are ignored at login
    - **voice_sample**: Optional enrolled characteristics for the
      supplementary biometric score
    """
    account, token = auth_service.signup(
        directory,
        email=request.email,
        name=request.name,
        phone_number=request.phone_number,
        voice_passphrase=request.voice_passphrase,
        voice_sample=request.voice_sample,
    )
    return SignupResponse(
        email=account.email,
        name=account.name,
        unique_tag=account.unique_tag,
        balance_cents=account.balance_cents,
        token=token,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log in with a spoken passphrase",
)
def login(
    request: VoiceLoginRequest,
    directory: AccountDirectory = Depends(get_directory),
):
    """
    Authenticate by passphrase text.

    Use the returned token on every other request:

        Authorization: Bearer <token>
    """
    account, token, confidence = auth_service.login(
        directory,
        voice_passphrase=request.voice_passphrase,
        voice_sample=request.voice_sample,
    )
    return LoginResponse(
        email=account.email,
        name=account.name,
        token=token,
        voice_match_confidence=confidence,
        biometric_match=auth_service.is_biometric_match(confidence),
    )
