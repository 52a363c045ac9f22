"""
Pydantic schemas for authentication endpoints (voice signup and login).

FastAPI validates incoming bodies against these before any handler runs;
a missing or malformed field is a 422.
"""

from pydantic import BaseModel, EmailStr, Field

from payvo.records import VoiceSample


class VoiceSignupRequest(BaseModel):
    """Request body for POST /auth/signup."""
    email: EmailStr
    name: str = Field(min_length=1, max_length=100)
    phone_number: str = Field(min_length=1, max_length=32)
    voice_passphrase: str = Field(min_length=1, description="Transcript of the spoken passphrase")
    voice_sample: VoiceSample | None = None


class VoiceLoginRequest(BaseModel):
    """Request body for POST /auth/login."""
    voice_passphrase: str = Field(min_length=1)
    voice_sample: VoiceSample | None = None


class SignupResponse(BaseModel):
    """
    Response body for a successful signup.

    unique_tag is shown once here; it is needed later to delete the account.
    """
    email: str
    name: str
    unique_tag: str
    balance_cents: int
    token: str
    token_type: str = "bearer"


class LoginResponse(BaseModel):
    """
    Response body for a successful voice login.

    voice_match_confidence is null when no sample was sent or none is
    enrolled. It is informational; the passphrase alone decides login.
    """
    email: str
    name: str
    token: str
    token_type: str = "bearer"
    voice_match_confidence: float | None = None
    biometric_match: bool = False
