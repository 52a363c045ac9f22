"""
Security utilities: passphrase hashing, JWT tokens, and Fernet encryption.

Three concerns are handled here:

1. VOICE PASSPHRASE HASHING (Argon2)
   - The spoken passphrase is normalized (lower-cased, trimmed) and then
     hashed, so "Open Sesame " and "open sesame" verify identically
   - Only the hash is kept in the ledger and the account store
   - passlib's CryptContext handles hashing and constant-time verification

2. JWT TOKENS
   - After voice login, the client receives a signed JWT whose "sub" is
     the account email
   - Signed with SECRET_KEY using HS256, expires after
     ACCESS_TOKEN_EXPIRE_MINUTES

3. FERNET ENCRYPTION
   - Phone numbers are encrypted before the SQL account store writes them
   - Fernet provides authenticated encryption, so tampered rows fail to load
"""

from datetime import datetime, timedelta, timezone

from cryptography.fernet import Fernet
from jose import jwt
from passlib.context import CryptContext

from payvo.config import settings


# ---------------------------------------------------------------------------
# 1. Voice passphrase hashing (Argon2)
# ---------------------------------------------------------------------------

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def normalize_passphrase(passphrase: str) -> str:
    """Lower-case and trim a transcript so comparison ignores case and padding."""
    return passphrase.strip().lower()


def hash_passphrase(passphrase: str) -> str:
    """
    Hash a voice passphrase using Argon2id.

    Args:
        passphrase: The transcript of the spoken passphrase.

    Returns:
        An Argon2 hash string of the normalized passphrase.
    """
    return pwd_context.hash(normalize_passphrase(passphrase))


def verify_passphrase(passphrase: str, hashed_passphrase: str) -> bool:
    """
    Verify a spoken passphrase against a stored Argon2 hash.

    Returns:
        True if the normalized transcript matches, False otherwise.
    """
    return pwd_context.verify(normalize_passphrase(passphrase), hashed_passphrase)


# ---------------------------------------------------------------------------
# 2. JWT Tokens
# ---------------------------------------------------------------------------


def create_access_token(email: str, lifetime: timedelta | None = None) -> str:
    """Sign a bearer token naming the account by email."""
    issued = datetime.now(timezone.utc)
    lifetime = lifetime or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": email, "iat": issued, "exp": issued + lifetime}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Verify a bearer token and return its claims.

    Raises:
        JWTError: Bad signature, malformed token, or past its "exp".
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


# ---------------------------------------------------------------------------
# 3. Fernet Encryption (phone numbers at rest)
# ---------------------------------------------------------------------------

_fernet = Fernet(settings.FIELD_ENCRYPTION_KEY.encode())


def encrypt_value(plaintext: str) -> bytes:
    """Encrypt a phone number for a LargeBinary column."""
    return _fernet.encrypt(plaintext.encode())


def decrypt_value(ciphertext: bytes) -> str:
    """
    Recover a phone number written by encrypt_value().

    Raises:
        cryptography.fernet.InvalidToken: The row was altered or
            FIELD_ENCRYPTION_KEY has changed since it was written.
    """
    return _fernet.decrypt(ciphertext).decode()
