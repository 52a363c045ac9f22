"""
FastAPI dependencies for the shared ledger state and authentication.

There is no module-level ledger singleton. main.py builds one
AccountDirectory and one SessionRegistry in the app lifespan and parks
them on app.state; every handler reaches them through this chain:

  get_directory (app.state -> AccountDirectory)
      └── get_current_account (JWT -> Account)
              ├── get_ledger (Account -> Ledger)
              └── get_voice_session (Account -> VoiceCommandSession)

These dependencies and every route handler are plain functions. Argon2,
the ledger and the sync store all block, so FastAPI runs them in its
threadpool; the directory lock serializes the writers.

Tests swap the directory by assigning app.state.directory, or override
get_directory with app.dependency_overrides.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from payvo.records import Account
from payvo.security import decode_access_token
from payvo.services.directory import AccountDirectory
from payvo.services.ledger_service import Ledger
from payvo.services.voice_session import SessionRegistry, VoiceCommandSession


# Reads "Authorization: Bearer <token>"; tokenUrl is what Swagger UI shows
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_directory(request: Request) -> AccountDirectory:
    return request.app.state.directory


def get_session_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_current_account(
    token: str = Depends(oauth2_scheme),
    directory: AccountDirectory = Depends(get_directory),
) -> Account:
    """
    Extract and validate the JWT, then return the account it names.

    Raises:
        HTTPException 401: If the token is invalid or the account no
                           longer exists (e.g., it was deleted).
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
    except JWTError:
        raise credentials_exception

    email: str | None = payload.get("sub")
    if email is None:
        raise credentials_exception

    account = directory.find_by_email(email)
    if account is None:
        raise credentials_exception

    return account


def get_ledger(
    account: Account = Depends(get_current_account),
    directory: AccountDirectory = Depends(get_directory),
) -> Ledger:
    return Ledger(directory, account.email)


def get_voice_session(
    account: Account = Depends(get_current_account),
    registry: SessionRegistry = Depends(get_session_registry),
) -> VoiceCommandSession:
    return registry.get(account.email)
