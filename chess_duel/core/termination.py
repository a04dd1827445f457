"""
Side-channel termination detection.

UCI has no way for an engine to announce checkmate or stalemate in its
``bestmove`` reply. Some harnesses agree on a trailing marker character on
the move token instead; the match loop asks a detector to interpret the token
so the convention can be swapped or switched off.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from .models import Config, Termination


class TerminationDetector(ABC):
    """Interprets a move token for game-ending cues."""

    @abstractmethod
    def classify(self, token: str) -> Optional[Termination]:
        """
        Return CHECKMATE (mover wins), STALEMATE (draw) or None to continue.
        """


class SuffixTerminationDetector(TerminationDetector):
    """Trailing-character convention: ``#`` for mate, ``=`` for stalemate."""

    def __init__(self, checkmate_suffix: str = "#", stalemate_suffix: str = "="):
        self.checkmate_suffix = checkmate_suffix
        self.stalemate_suffix = stalemate_suffix

    def classify(self, token: str) -> Optional[Termination]:
        if self.checkmate_suffix and token.endswith(self.checkmate_suffix):
            return Termination.CHECKMATE
        if self.stalemate_suffix and token.endswith(self.stalemate_suffix):
            return Termination.STALEMATE
        return None


class NullTerminationDetector(TerminationDetector):
    """Ignores move tokens; games end only by forfeit, resignation or draw rules."""

    def classify(self, token: str) -> Optional[Termination]:
        return None


def create_termination_detector(config: Config) -> TerminationDetector:
    """Build the detector named by ``config.termination``."""
    if config.termination == "suffix":
        return SuffixTerminationDetector(config.checkmate_suffix, config.stalemate_suffix)
    if config.termination == "none":
        return NullTerminationDetector()
    raise ValueError(f"Unknown termination detector '{config.termination}'")
