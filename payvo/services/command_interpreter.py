"""
Command interpreter — turns one utterance into an Intent.

Pure functions, no ledger access. Classification is an ordered rule table:
the first rule with a trigger phrase contained in the lower-cased,
trimmed utterance wins. Priority matters ("check balance and send"
is a balance query):

    balance   "balance", "check balance", "how much"
    split     "split"
    request   "request", "ask for"
    send      "send", "give", "pay"
    history   "transaction", "history"
    contacts  "contacts", "contact"
    help      "help"
    unknown   anything else

Amounts:
  extract_amount() checks a table of number words first (multi-word
  phrases and longer words ahead of the words they contain), then
  numeric patterns. It returns Decimal dollars; the session converts
  to cents with dollars_to_cents().

  Number words only match as whole words, so "money" and "tony" do not
  read as "one".

Names:
  extract_contact_name() tries an ordered list of patterns and returns
  the first non-empty capture, lower-cased as spoken.
  extract_contact_names() handles "split X between A, B and C" and
  "split [X] with A and B", returning title-cased names.
"""

import enum
import re
from decimal import ROUND_HALF_UP, Decimal

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)


class IntentKind(str, enum.Enum):
    EMPTY = "empty"
    BALANCE = "balance"
    SPLIT = "split"
    REQUEST = "request"
    SEND = "send"
    HISTORY = "history"
    CONTACTS = "contacts"
    HELP = "help"
    UNKNOWN = "unknown"


class Intent(BaseModel):
    """A classified utterance and the parameters pulled out of it."""
    kind: IntentKind
    text: str = ""
    amount: Decimal | None = None
    contact_name: str | None = None
    contact_names: list[str] = Field(default_factory=list)


# Checked in order; the first trigger contained in the utterance decides.
INTENT_RULES: tuple[tuple[IntentKind, tuple[str, ...]], ...] = (
    (IntentKind.BALANCE, ("balance", "check balance", "how much")),
    (IntentKind.SPLIT, ("split",)),
    (IntentKind.REQUEST, ("request", "ask for")),
    (IntentKind.SEND, ("send", "give", "pay")),
    (IntentKind.HISTORY, ("transaction", "history")),
    (IntentKind.CONTACTS, ("contacts", "contact")),
    (IntentKind.HELP, ("help",)),
)

# Longer phrases before the words they contain ("one hundred" before "one")
WORD_AMOUNTS: tuple[tuple[str, int], ...] = (
    ("five thousand", 5000),
    ("two thousand", 2000),
    ("one thousand", 1000),
    ("thousand", 1000),
    ("five hundred", 500),
    ("three hundred", 300),
    ("two hundred", 200),
    ("one hundred", 100),
    ("hundred", 100),
    ("seventy", 70),
    ("twenty", 20),
    ("thirty", 30),
    ("eighty", 80),
    ("ninety", 90),
    ("forty", 40),
    ("fifty", 50),
    ("sixty", 60),
    ("three", 3),
    ("seven", 7),
    ("eight", 8),
    ("four", 4),
    ("five", 5),
    ("nine", 9),
    ("ten", 10),
    ("one", 1),
    ("two", 2),
    ("six", 6),
)

_WORD_AMOUNT_PATTERNS = tuple(
    (re.compile(rf"\b{re.escape(word)}\b"), value) for word, value in WORD_AMOUNTS
)

AMOUNT_PATTERNS = (
    re.compile(r"\$?(\d+(?:\.\d{1,2})?)", re.IGNORECASE),
    re.compile(r"(\d+)\s*dollars?", re.IGNORECASE),
    re.compile(r"(\d+)\s*bucks?", re.IGNORECASE),
)

_AMOUNT = r"\$?\d+(?:\.\d{1,2})?"
_UNIT = r"(?:(?:dollars?|bucks?)\s+)?"

CONTACT_NAME_PATTERNS = (
    # request $100 from eric
    re.compile(rf"(?:request|ask for)\s+{_AMOUNT}\s+{_UNIT}from\s+([a-zA-Z]+)", re.IGNORECASE),
    # send money from me to ms / send to john
    re.compile(r"(?:send|give|pay)\s+(?:money\s+)?(?:from\s+me\s+)?to\s+([a-zA-Z]+)", re.IGNORECASE),
    # split with ms / request from john
    re.compile(r"(?:split\s+with|request\s+from)\s+([a-zA-Z]+)", re.IGNORECASE),
    # send $100 to ms / send 25 dollars to ms
    re.compile(rf"(?:send|give|pay)\s+{_AMOUNT}\s+{_UNIT}(?:to\s+)?([a-zA-Z]+)", re.IGNORECASE),
    # send to john smith
    re.compile(
        r"(?:send|give|pay)\s+(?:money\s+)?(?:from\s+me\s+)?to\s+([a-zA-Z]+(?:\s+[a-zA-Z]+)?)",
        re.IGNORECASE,
    ),
    # split with john smith
    re.compile(r"(?:split\s+with|request\s+from)\s+([a-zA-Z]+(?:\s+[a-zA-Z]+)?)", re.IGNORECASE),
    re.compile(r"(?:with|to|from)\s+([a-zA-Z]+(?:\s+[a-zA-Z]+)?)", re.IGNORECASE),
    re.compile(r"([a-zA-Z]+(?:\s+[a-zA-Z]+)?)\s+(?:here|speaking|balance)", re.IGNORECASE),
)

MULTI_CONTACT_PATTERNS = (
    # split $150 between alice, bob and carol
    re.compile(rf"split\s+{_AMOUNT}\s+{_UNIT}between\s+(.+)", re.IGNORECASE),
    # split [$100] with alice and bob
    re.compile(rf"split\s+(?:{_AMOUNT}\s+{_UNIT})?with\s+(.+)", re.IGNORECASE),
)

_NAME_SEPARATORS = re.compile(r",| and ")


def extract_amount(text: str) -> Decimal | None:
    """
    Pull a dollar amount out of an utterance.

    >>> extract_amount("fifty dollars")
    Decimal('50')
    >>> extract_amount("$125.50")
    Decimal('125.50')
    >>> extract_amount("no numbers here") is None
    True
    """
    lowered = text.lower()
    for pattern, value in _WORD_AMOUNT_PATTERNS:
        if pattern.search(lowered):
            return Decimal(value)

    for pattern in AMOUNT_PATTERNS:
        match = pattern.search(lowered)
        if match:
            return Decimal(match.group(1))

    return None


def dollars_to_cents(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def extract_contact_name(text: str) -> str | None:
    lowered = text.lower()
    for pattern in CONTACT_NAME_PATTERNS:
        match = pattern.search(lowered)
        if match:
            name = match.group(1).strip()
            if name:
                return name
    return None


def extract_contact_names(text: str) -> list[str]:
    """
    Names listed after "split X between" or "split [X] with".

    The list is split on commas and " and ". "me" is kept; callers
    drop it.
    """
    lowered = text.lower()
    for pattern in MULTI_CONTACT_PATTERNS:
        match = pattern.search(lowered)
        if match:
            parts = _NAME_SEPARATORS.split(match.group(1).strip())
            return [part.strip().title() for part in parts if part.strip()]
    return []


def classify(text: str) -> IntentKind:
    normalized = text.strip().lower()
    if not normalized:
        return IntentKind.EMPTY
    for kind, triggers in INTENT_RULES:
        if any(trigger in normalized for trigger in triggers):
            return kind
    return IntentKind.UNKNOWN


def interpret(utterance: str) -> Intent:
    """Classify an utterance and extract what its intent needs."""
    text = utterance.strip().lower()
    kind = classify(text)

    if kind == IntentKind.SPLIT:
        intent = Intent(
            kind=kind,
            text=text,
            amount=extract_amount(text),
            contact_names=extract_contact_names(text),
            contact_name=extract_contact_name(text),
        )
    elif kind in (IntentKind.REQUEST, IntentKind.SEND):
        intent = Intent(
            kind=kind,
            text=text,
            amount=extract_amount(text),
            contact_name=extract_contact_name(text),
        )
    else:
        intent = Intent(kind=kind, text=text)

    logger.debug(
        "interpreter.classified",
        kind=intent.kind.value,
        amount=str(intent.amount) if intent.amount is not None else None,
        contact=intent.contact_name,
        contacts=intent.contact_names,
    )
    return intent
