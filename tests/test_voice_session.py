"""
Tests for the voice command session (utterance -> guard -> ledger).

These tests verify:
  - Every utterance comes back as a CommandResult, never an exception
  - Large single-counterparty transactions wait for confirm/cancel and
    the warning is spoken
  - New utterances are refused while a transaction is staged
  - Multi-contact splits run directly with the floor-divided share
  - Guidance for missing amounts or names
  - Requests go to a registered user when the name matches one
  - The session registry keeps one session per account
"""

import pytest

from payvo.records import CommandStatus, TransactionType
from payvo.services.speech import StaticSpeechInput
from payvo.services.voice_session import (
    AWAITING_MESSAGE,
    HELP_MESSAGE,
    PENDING_MESSAGE,
    UNKNOWN_MESSAGE,
    SessionRegistry,
    VoiceCommandSession,
)


class RecordingNarrator:
    def __init__(self):
        self.spoken: list[str] = []

    def speak(self, text: str) -> None:
        self.spoken.append(text)


@pytest.fixture
def narrator():
    return RecordingNarrator()


@pytest.fixture
def session(directory, sam, narrator):
    return VoiceCommandSession(directory, sam.email, narrator=narrator)


class TestQueries:
    def test_balance(self, session, narrator):
        result = session.process("What's my balance?")
        assert result.message == "Your current balance is $1000.00"
        assert result.should_speak is True
        assert narrator.spoken == ["Your current balance is $1000.00"]

    def test_history(self, session):
        assert session.process("show my history").message == "No transactions found."
        session.ledger.deposit(1000)
        assert session.process("show my history").message == (
            "You have 1 transactions. Check the transaction history page for details."
        )

    def test_contacts(self, session):
        assert session.process("list contacts").message == (
            "You have 3 contacts. Check the contacts page for details."
        )

    def test_help_and_unknown(self, session):
        assert session.process("help").message == HELP_MESSAGE
        unknown = session.process("sing me a song")
        assert unknown.status == CommandStatus.GUIDANCE
        assert unknown.message == UNKNOWN_MESSAGE

    def test_empty_utterance_is_silent(self, session, narrator):
        result = session.process("   ")
        assert result.should_speak is False
        assert result.message == ""
        assert narrator.spoken == []


class TestSend:
    def test_small_send_runs_immediately(self, session):
        result = session.process("send 50 to alice")
        assert result.status == CommandStatus.SUCCESS
        assert result.message == "Successfully sent $50.00 to alice"
        assert session.ledger.get_balance() == 95_000

    def test_large_send_waits_for_confirmation(self, session, narrator):
        result = session.process("send 200 to alice")
        assert result.status == CommandStatus.PENDING_CONFIRMATION
        assert result.message == PENDING_MESSAGE
        assert result.should_speak is False
        assert narrator.spoken == [
            "Warning: This transaction is 20.0% of your balance. Do you want to proceed?"
        ]
        assert session.guard.pending.percentage_of_balance == 20.0
        assert session.ledger.get_balance() == 100_000

        confirmed = session.confirm()
        assert confirmed.status == CommandStatus.SUCCESS
        assert session.ledger.get_balance() == 80_000
        assert session.ledger.find_contact("Alice").balance_cents == 120_000

    def test_new_commands_refused_while_pending(self, session):
        session.process("send 200 to alice")

        refused = session.process("what's my balance")
        assert refused.status == CommandStatus.PENDING_CONFIRMATION
        assert refused.message == AWAITING_MESSAGE

        session.cancel()
        assert session.process("what's my balance").message == "Your current balance is $1000.00"

    def test_cancel_leaves_balance(self, session, narrator):
        session.process("send 200 to alice")
        result = session.cancel()
        assert result.status == CommandStatus.CANCELLED
        assert result.message == "Transaction cancelled."
        assert narrator.spoken[-1] == "Transaction cancelled."
        assert session.ledger.get_balance() == 100_000
        assert session.guard.pending is None

    def test_confirm_fails_if_balance_dropped(self, session, sam):
        session.process("send 200 to alice")
        sam.balance_cents = 10_000

        result = session.confirm()
        assert result.status == CommandStatus.FAILURE
        assert sam.balance_cents == 10_000
        assert session.guard.pending is None

    def test_empty_balance_always_asks(self, session, sam, narrator):
        sam.balance_cents = 0
        result = session.process("send 1 to alice")
        assert result.status == CommandStatus.PENDING_CONFIRMATION
        assert narrator.spoken == ["Warning: Your balance is empty. Do you want to proceed?"]

    def test_default_amount(self, session):
        result = session.process("send money to bob")
        assert result.message == "Successfully sent $25.00 to bob (default amount)"
        [txn] = session.ledger.get_transaction_history()
        assert txn.amount_cents == -2500
        assert txn.description == "Send to Bob: Voice Send (Default Amount)"

    def test_missing_name(self, session):
        result = session.process("send 20")
        assert result.status == CommandStatus.GUIDANCE
        assert result.message.startswith("Please specify a contact name.")

    def test_unknown_contact_is_a_spoken_failure(self, session, narrator):
        result = session.process("send 50 to zed")
        assert result.status == CommandStatus.FAILURE
        assert result.message == (
            "Failed to send to zed. Please check the contact name and your balance."
        )
        assert narrator.spoken == [result.message]


class TestSplit:
    def test_single_contact_split(self, session):
        result = session.process("split 100 dollars with alice")
        assert result.message == "Successfully split $100.00 with Alice"
        assert session.ledger.get_balance() == 95_000
        assert session.ledger.find_contact("Alice").balance_cents == 95_000

    def test_me_is_not_a_split_party(self, session):
        result = session.process("split 100 with me and alice")
        assert result.message == "Successfully split $100.00 with Alice"

    def test_one_named_contact_is_a_guarded_single_split(self, session):
        result = session.process("split 400 with me and alice")
        assert result.status == CommandStatus.PENDING_CONFIRMATION
        assert session.guard.pending.type.value == "split"
        assert session.guard.pending.contact_name == "Alice"
        assert session.ledger.get_balance() == 100_000

    def test_multi_split_runs_without_confirmation(self, session, sam):
        sam.balance_cents = 30_000
        session.ledger.find_contact("Alice").balance_cents = 30_000
        session.ledger.find_contact("Bob").balance_cents = 30_000

        result = session.process("split 100 dollars between Alice and Bob")

        assert result.status == CommandStatus.SUCCESS
        assert "$100.00" in result.message
        assert result.message == (
            "Successfully split $100.00 between Alice, Bob and you. Each person pays $33.33"
        )
        assert session.guard.pending is None
        assert sam.balance_cents == 26_667
        assert session.ledger.find_contact("Alice").balance_cents == 26_667
        assert session.ledger.find_contact("Bob").balance_cents == 26_667
        [txn] = session.ledger.get_transaction_history()
        assert txn.type == TransactionType.SPLIT

    def test_multi_split_failure(self, session):
        result = session.process("split 3000 between alice and moe")
        assert result.status == CommandStatus.FAILURE
        assert result.message == (
            "Failed to split between Alice, Moe. Please check the contact names and their balances."
        )
        assert session.ledger.get_balance() == 100_000

    def test_missing_amount(self, session):
        result = session.process("split with alice")
        assert result.status == CommandStatus.GUIDANCE
        assert result.message.startswith("Please specify an amount to split.")

    def test_missing_names(self, session):
        result = session.process("split 100")
        assert result.status == CommandStatus.GUIDANCE
        assert result.message.startswith("Please specify contact names.")


class TestRequest:
    def test_request_from_contact(self, session):
        result = session.process("request 50 from bob")
        assert result.message == "Successfully requested $50.00 from bob"
        assert session.ledger.get_balance() == 105_000
        assert session.ledger.find_contact("Bob").balance_cents == 95_000

    def test_request_from_registered_user(self, session, directory, make_account):
        make_account("eric@example.com", "Eric", 50_000)

        result = session.process("request 20 from eric")
        assert result.status == CommandStatus.SUCCESS
        assert result.message == (
            "Money request sent to Eric. They will receive a notification "
            "to accept or decline your request."
        )
        [request] = directory.pending_requests
        assert request.to_email == "eric@example.com"
        assert request.amount_cents == 2000
        assert session.ledger.get_balance() == 100_000

    def test_large_request_from_user_is_staged(self, session, directory, make_account):
        make_account("eric@example.com", "Eric", 50_000)

        result = session.process("request 200 from eric")
        assert result.status == CommandStatus.PENDING_CONFIRMATION
        assert directory.pending_requests == []

        session.confirm()
        assert len(directory.pending_requests) == 1

    def test_missing_amount_and_name(self, session):
        no_amount = session.process("request money from bob")
        assert no_amount.message.startswith("Please specify an amount to request.")
        no_name = session.process("request 50")
        assert no_name.message.startswith("Please specify a contact name.")


class TestSpeechInput:
    def test_listen_and_process(self, session):
        provider = StaticSpeechInput(["check balance"])
        result = session.listen_and_process(provider)
        assert result.message == "Your current balance is $1000.00"

        # Nothing left to hear
        assert session.listen_and_process(provider).should_speak is False


class TestSessionRegistry:
    def test_one_session_per_account(self, directory, sam):
        registry = SessionRegistry(directory)
        first = registry.get(sam.email)
        assert registry.get("SAM@EXAMPLE.COM") is first
        assert len(registry) == 1

    def test_close_cancels_staged_transaction(self, directory, sam):
        registry = SessionRegistry(directory)
        session = registry.get(sam.email)
        session.process("send 200 to alice")

        assert registry.close(sam.email) is True
        assert session.guard.pending is None
        assert sam.balance_cents == 100_000
        assert len(registry) == 0
        assert registry.get(sam.email) is not session

    def test_close_unknown(self, directory):
        assert SessionRegistry(directory).close("nobody@example.com") is False
