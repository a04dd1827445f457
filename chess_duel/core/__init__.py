"""
Core package for chess-duel.

This package contains the engine process management, the match loop, the
calibration procedure and the data models and sinks they share.
"""

from .models import (
    EngineSpec,
    MatchPreset,
    PlayerMatchPreset,
    MatchResult,
    MatchSummary,
    CalibrationSample,
    CalibrationResult,
    CalibrationSettings,
    Config,
    load_config,
)

from .engine import (
    EngineProcess,
    EngineError,
    scan_engines,
    autodetect_stockfish,
    get_friendly_stockfish_hint,
)

from .context import MatchContext
from .match import MatchLoop
from .human import HumanMatch
from .calibration import Calibrator

__all__ = [
    # Data models
    "EngineSpec",
    "MatchPreset",
    "PlayerMatchPreset",
    "MatchResult",
    "MatchSummary",
    "CalibrationSample",
    "CalibrationResult",
    "CalibrationSettings",
    "Config",
    "load_config",

    # Engine components
    "EngineProcess",
    "EngineError",
    "scan_engines",
    "autodetect_stockfish",
    "get_friendly_stockfish_hint",

    # Match components
    "MatchContext",
    "MatchLoop",
    "HumanMatch",
    "Calibrator",
]
