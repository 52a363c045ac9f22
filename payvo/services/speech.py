"""
Speech input and narration collaborators.

Speech-to-text and text-to-speech live outside the ledger. The voice
command session only needs:

  - a SpeechInputProvider that hands back one finished utterance per
    call (an empty string means nothing usable was heard; the provider
    logs its own error), and
  - an optional Narrator that receives text to speak. The session decides
    whether a result should be spoken and never waits for playback.
"""

from collections import deque
from typing import Iterable, Protocol

import structlog

logger = structlog.get_logger(__name__)


class SpeechInputProvider(Protocol):
    def listen(self) -> str: ...


class Narrator(Protocol):
    def speak(self, text: str) -> None: ...


class StaticSpeechInput:
    """Yields scripted utterances in order, then empty strings."""

    def __init__(self, utterances: Iterable[str]):
        self._queue = deque(utterances)

    def listen(self) -> str:
        if not self._queue:
            logger.warning("speech.no_input")
            return ""
        return self._queue.popleft()


class NullNarrator:
    def speak(self, text: str) -> None:
        pass


class LoggingNarrator:
    """Narrator for headless deployments: spoken lines go to the log."""

    def speak(self, text: str) -> None:
        logger.info("narrator.speak", text=text)
