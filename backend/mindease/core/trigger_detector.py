"""
Trigger Detector - decides whether a user message asks about earlier sessions.
"""

from typing import FrozenSet, Iterable, Optional

DEFAULT_RECALL_PHRASES: FrozenSet[str] = frozenset({
    "what did we talk",
    "previous session",
    "past conversations",
    "previous conversations",
    "past session",
    "what was our last session about",
    "last session",
    "last time we talked",
})


class TriggerDetector:
    """
    Case-insensitive containment check against a set of recall phrases.

    There is no negation handling: "I don't want to talk about the past
    session" still asks for history.
    """

    def __init__(self, phrases: Optional[Iterable[str]] = None, extra_phrases: Iterable[str] = ()):
        base = DEFAULT_RECALL_PHRASES if phrases is None else phrases
        self.phrases: FrozenSet[str] = frozenset(
            p.strip().lower() for p in (*base, *extra_phrases) if p and p.strip()
        )

    def should_include_history(self, message: str) -> bool:
        if not message:
            return False
        lowered = message.lower()
        return any(phrase in lowered for phrase in self.phrases)
