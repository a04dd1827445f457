"""
chess-duel - Run matches between UCI chess engines and estimate their strength.

This package spawns UCI engines as subprocesses, plays games between them (or
against a person at the terminal), and calibrates an engine's rating against
Stockfish at several skill levels.
"""

__version__ = "0.3.0"
__license__ = "MIT"

# Core imports
from .core.models import Config, EngineSpec, MatchResult, CalibrationResult
from .core.engine import EngineProcess, EngineError
from .core.match import MatchLoop
from .core.calibration import Calibrator
from .cli import main

__all__ = [
    "Config",
    "EngineSpec",
    "MatchResult",
    "CalibrationResult",
    "EngineProcess",
    "EngineError",
    "MatchLoop",
    "Calibrator",
    "main",
]
