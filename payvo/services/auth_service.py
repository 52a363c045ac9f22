"""
Authentication service — voice signup and voice login.

Business logic only; the auth router translates results into HTTP
responses.

Signup flow:
  1. Reject the email if it is already registered
  2. Hash the normalized voice passphrase with Argon2id
  3. Create the account with a random starting balance and demo contacts
  4. Return a JWT so the user is immediately logged in

Login flow:
  1. Compare the spoken passphrase against every account, in directory
     order; the first match wins
  2. If a voice sample came with the request, score it against the
     enrolled sample (supplementary signal only, never decides login)
  3. Return a JWT

Security notes:
  - Passphrases are hashed before storage and never logged
  - A failed login reports the same error whatever the reason
  - JWT "sub" is the account email; tokens are stateless
"""

import structlog

from payvo.records import Account, VoiceSample
from payvo.security import create_access_token
from payvo.services.biometrics import BIOMETRIC_MATCH_CONFIDENCE
from payvo.services.directory import AccountDirectory

logger = structlog.get_logger(__name__)


def signup(
    directory: AccountDirectory,
    email: str,
    name: str,
    phone_number: str,
    voice_passphrase: str,
    voice_sample: VoiceSample | None = None,
) -> tuple[Account, str]:
    """
    Register a new account.

    Returns:
        Tuple of (Account, JWT token string).

    Raises:
        DuplicateEmailError: If the email is already registered.
    """
    account = directory.register(
        email=email,
        name=name,
        phone_number=phone_number,
        voice_passphrase=voice_passphrase,
        voice_sample=voice_sample,
    )
    token = create_access_token(account.email)
    return account, token


def login(
    directory: AccountDirectory,
    voice_passphrase: str,
    voice_sample: VoiceSample | None = None,
) -> tuple[Account, str, float | None]:
    """
    Authenticate by spoken passphrase.

    Returns:
        Tuple of (Account, JWT token string, voice match confidence or None).

    Raises:
        InvalidCredentialsError: If no account's passphrase matches.
    """
    account = directory.authenticate(voice_passphrase)

    confidence = None
    if voice_sample is not None:
        confidence = directory.voice_match_confidence(account, voice_sample)
        logger.info(
            "auth.voice_sample_scored",
            email=account.email,
            confidence=confidence,
            biometric_match=is_biometric_match(confidence),
        )

    token = create_access_token(account.email)
    return account, token, confidence


def is_biometric_match(confidence: float | None) -> bool:
    return confidence is not None and confidence > BIOMETRIC_MATCH_CONFIDENCE
