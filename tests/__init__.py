"""
Test package for chess-duel.

This package contains unit tests for all components of chess-duel, including
engine process management, the match loop, calibration and the CLI.
"""

# Import test modules for easier discovery
from . import test_engine
from . import test_match

__all__ = [
    "test_engine",
    "test_match",
]
