"""
Test fixtures for the PayVo test suite.

This module provides shared fixtures used across all test files:

  - store / directory: a fresh AccountDirectory over an InMemoryAccountStore
  - make_account: registers an account with a pinned balance and contacts
  - sam / ledger: an acting account ($1000.00) with three play-money
    contacts (Alice $1000.00, Bob $1000.00, Moe $500.00) and its Ledger
  - client: async HTTP test client wired to the test directory
  - authenticated_client / second_client: clients signed up through the
    real /auth/signup endpoint

Key design decisions:
  - The environment is prepared before payvo is imported: a throwaway JWT
    secret, a freshly generated Fernet key, an in-memory database URL and
    no demo contacts, so balances in tests are deterministic.
  - httpx's ASGITransport does not run the app lifespan, so the client
    fixture puts the test directory and session registry on app.state
    itself. The application code reads them exactly as in production.
"""

import os

from cryptography.fernet import Fernet

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("FIELD_ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["SEED_SAMPLE_CONTACTS"] = "false"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from payvo.main import app  # noqa: E402
from payvo.records import Account, Contact  # noqa: E402
from payvo.services.account_store import InMemoryAccountStore  # noqa: E402
from payvo.services.directory import AccountDirectory  # noqa: E402
from payvo.services.ledger_service import Ledger  # noqa: E402
from payvo.services.voice_session import SessionRegistry  # noqa: E402


def add_account(
    directory: AccountDirectory,
    email: str,
    name: str,
    balance_cents: int,
    contacts: tuple[Contact, ...] = (),
    passphrase: str | None = None,
    phone_number: str = "(555) 000-0000",
) -> Account:
    """Register an account, then pin its balance and contacts."""
    account = directory.register(
        email=email,
        name=name,
        phone_number=phone_number,
        voice_passphrase=passphrase or f"{name} says hello",
    )
    account.balance_cents = balance_cents
    account.contacts.extend(contacts)
    return account


@pytest.fixture
def store():
    return InMemoryAccountStore()


@pytest.fixture
def directory(store):
    return AccountDirectory(store)


@pytest.fixture
def make_account(directory):
    """Factory: make_account(email, name, balance_cents, contacts=(), ...)."""

    def factory(email, name, balance_cents, **kwargs):
        return add_account(directory, email, name, balance_cents, **kwargs)

    return factory


@pytest.fixture
def sam(directory):
    """The acting account: $1000.00 and three play-money contacts."""
    return add_account(
        directory,
        "sam@example.com",
        "Sam Speaker",
        100_000,
        contacts=(
            Contact(name="Alice", balance_cents=100_000),
            Contact(name="Bob", balance_cents=100_000),
            Contact(name="Moe", balance_cents=50_000),
        ),
        passphrase="open sesame",
    )


@pytest.fixture
def ledger(directory, sam):
    return Ledger(directory, sam.email)


@pytest_asyncio.fixture
async def client(directory):
    """Async HTTP test client with the test directory on app.state."""
    app.state.directory = directory
    app.state.sessions = SessionRegistry(directory)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


async def _signup(ac: AsyncClient, email: str, name: str, passphrase: str) -> dict:
    response = await ac.post(
        "/auth/signup",
        json={
            "email": email,
            "name": name,
            "phone_number": "(555) 123-4567",
            "voice_passphrase": passphrase,
        },
    )
    assert response.status_code == 201, f"Signup failed: {response.text}"
    body = response.json()
    ac.headers["Authorization"] = f"Bearer {body['token']}"
    return body


@pytest_asyncio.fixture
async def authenticated_client(client):
    """Client signed up as testuser@example.com (passphrase "blue river")."""
    await _signup(client, "testuser@example.com", "Test User", "blue river")
    return client


@pytest_asyncio.fixture
async def second_client(client):
    """
    A second signed-up account on its own client.

    Use alongside authenticated_client for cross-account tests.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        await _signup(ac, "second@example.com", "Second User", "green forest")
        yield ac
