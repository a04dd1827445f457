"""
Core data models for chess-duel.

This module defines the data structures shared by the engine, match and
calibration layers: engine specifications, match presets, results,
calibration samples and the global configuration.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Dict, Any, Union


DEFAULT_CONFIG_PATH = Path(".config") / "zduel.toml"


@dataclass(frozen=True)
class EngineSpec:
    """A UCI engine executable and the name it is displayed under."""

    name: str
    path: str

    def __post_init__(self):
        if not self.name:
            raise ValueError("Engine name cannot be empty")
        if not self.path:
            raise ValueError("Engine path cannot be empty")

    def __str__(self) -> str:
        return f"{self.name} ({self.path})"


@dataclass(frozen=True)
class MatchPreset:
    """Time control and length of an engine-vs-engine match."""

    name: str
    description: str
    move_time_ms: int
    game_count: int = 1


MATCH_PRESETS: List[MatchPreset] = [
    MatchPreset("Blitz", "Quick games with 1 second per move", 1000),
    MatchPreset("Rapid", "Medium-paced games with 5 seconds per move", 5000),
    MatchPreset("Classical", "Slow games with 15 seconds per move for deep analysis", 15000),
    MatchPreset("Tournament", "Best of 3 rapid games", 5000, game_count=3),
]


@dataclass(frozen=True)
class PlayerMatchPreset:
    """Engine thinking time for a human-vs-engine game."""

    name: str
    description: str
    engine_time_ms: int


PLAYER_MATCH_PRESETS: List[PlayerMatchPreset] = [
    PlayerMatchPreset("Casual", "Engine uses 1 second per move - good for casual games", 1000),
    PlayerMatchPreset("Tournament", "Engine uses 5 seconds per move - challenging but fair", 5000),
    PlayerMatchPreset("Master", "Engine uses 15 seconds per move - prepare to be crushed!", 15000),
]


def get_preset(name: str, presets: Optional[List[Any]] = None) -> Any:
    """Look up a preset by case-insensitive name."""
    for preset in presets if presets is not None else MATCH_PRESETS:
        if preset.name.lower() == name.lower():
            return preset
    raise ValueError(f"Unknown preset '{name}'")


class Outcome(str, Enum):
    """Game outcome from white's point of view."""
    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"


class DrawReason(str, Enum):
    STALEMATE = "stalemate"
    REPETITION = "threefold repetition"
    MOVE_LIMIT = "move limit"


class Termination(str, Enum):
    """How a game ended."""
    CHECKMATE = "checkmate"
    FORFEIT = "forfeit"
    RESIGNATION = "resignation"
    STALEMATE = "stalemate"
    REPETITION = "threefold repetition"
    MOVE_LIMIT = "move limit"


@dataclass
class MatchResult:
    """Result of one completed game."""

    outcome: Outcome
    termination: Termination
    white: str
    black: str
    moves: List[str] = field(default_factory=list)
    draw_reason: Optional[DrawReason] = None

    @property
    def ply_count(self) -> int:
        """Number of half-moves played."""
        return len(self.moves)

    @property
    def is_draw(self) -> bool:
        return self.outcome is Outcome.DRAW

    @property
    def winner(self) -> Optional[str]:
        """Name of the winning side, None for a draw."""
        if self.outcome is Outcome.WIN:
            return self.white
        if self.outcome is Outcome.LOSS:
            return self.black
        return None

    @property
    def pgn_result(self) -> str:
        """Result in PGN notation ("1-0", "0-1", "1/2-1/2")."""
        return {
            Outcome.WIN: "1-0",
            Outcome.LOSS: "0-1",
            Outcome.DRAW: "1/2-1/2",
        }[self.outcome]


@dataclass
class MatchSummary:
    """Running tally of a multi-game match between the same two engines."""

    white: str
    black: str
    white_wins: int = 0
    black_wins: int = 0
    draws: int = 0
    results: List[MatchResult] = field(default_factory=list)

    @property
    def games_played(self) -> int:
        return len(self.results)

    @property
    def winner(self) -> Optional[str]:
        """Name of the match winner, or None when the match is tied."""
        if self.white_wins > self.black_wins:
            return self.white
        if self.black_wins > self.white_wins:
            return self.black
        return None

    def add_result(self, result: MatchResult) -> None:
        """Add a game result and update the tally."""
        self.results.append(result)
        if result.outcome is Outcome.WIN:
            self.white_wins += 1
        elif result.outcome is Outcome.LOSS:
            self.black_wins += 1
        else:
            self.draws += 1


@dataclass
class CalibrationSample:
    """Outcome of the games played against one reference difficulty level."""

    level: int
    assumed_rating: int
    wins: int = 0
    draws: int = 0
    games_played: int = 0

    @property
    def losses(self) -> int:
        return self.games_played - self.wins - self.draws

    @property
    def score(self) -> float:
        """Points scored per game (0.0 to 1.0)."""
        if self.games_played == 0:
            return 0.0
        return (self.wins + 0.5 * self.draws) / self.games_played

    def add_result(self, result: MatchResult, candidate_is_white: bool = True) -> None:
        """Count a game in which the candidate played the given color."""
        self.games_played += 1
        if result.is_draw:
            self.draws += 1
        elif (result.outcome is Outcome.WIN) == candidate_is_white:
            self.wins += 1


@dataclass
class CalibrationResult:
    """Final rating estimate for a calibrated engine."""

    engine: EngineSpec
    estimated_rating: float
    confidence: float
    samples: List[CalibrationSample] = field(default_factory=list)

    @property
    def total_games(self) -> int:
        return sum(sample.games_played for sample in self.samples)

    def __str__(self) -> str:
        return f"{self.engine.name}: {round(self.estimated_rating)} ±{round(self.confidence)} Elo"


@dataclass
class CalibrationSettings:
    """Settings for a calibration run against the reference engine."""

    games_per_level: int = 4
    move_time_ms: int = 1000
    levels: List[int] = field(default_factory=lambda: [0, 5, 10, 15, 20])
    level_ratings: List[int] = field(default_factory=lambda: [1350, 1850, 2350, 2850, 3350])
    confidence_k: float = 200.0
    reference_name: str = "stockfish"

    def __post_init__(self):
        if len(self.levels) != len(self.level_ratings):
            raise ValueError("Each calibration level needs exactly one assumed rating")
        if not self.levels:
            raise ValueError("At least one calibration level is required")
        if self.games_per_level < 1:
            raise ValueError("games_per_level must be at least 1")
        if self.move_time_ms < 1:
            raise ValueError("move_time_ms must be at least 1")

    @property
    def total_games(self) -> int:
        return self.games_per_level * len(self.levels)


@dataclass
class Config:
    """Configuration settings for chess-duel."""

    # Engine discovery and process handling
    engines_dir: str = "engines"
    spawn_grace_s: float = 0.1
    handshake_timeout_s: float = 5.0
    hash_mb: int = 128
    multipv: int = 1

    # Game settings
    move_time_ms: int = 1000
    max_plies: int = 100
    termination: str = "suffix"  # "suffix" or "none"
    checkmate_suffix: str = "#"
    stalemate_suffix: str = "="

    # Output settings
    logs_dir: str = "logs"
    log_protocol: bool = True
    history_path: str = ".config/zduel_history.db"

    # UI settings
    white_color: str = "blue"
    black_color: str = "red"

    calibration: CalibrationSettings = field(default_factory=CalibrationSettings)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        data = {
            field.name: getattr(self, field.name)
            for field in self.__dataclass_fields__.values()
        }
        data["calibration"] = dict(vars(self.calibration))
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Config:
        """Create config from dictionary."""
        values = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        calibration = values.get("calibration")
        if isinstance(calibration, dict):
            values["calibration"] = CalibrationSettings(**{
                k: v for k, v in calibration.items()
                if k in CalibrationSettings.__dataclass_fields__
            })
        return cls(**values)


def load_config(path: Optional[Union[str, Path]] = None) -> Config:
    """
    Load configuration from a TOML file.

    The file may contain an ``[engine_colors]`` table (``engineOne`` and
    ``engineTwo`` or ``white`` and ``black``), a ``[match]`` table with any
    top-level Config field, and a ``[calibration]`` table. A missing file
    yields the defaults.

    Args:
        path: TOML file to read (defaults to .config/zduel.toml)

    Returns:
        Loaded configuration
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        return Config()

    with open(config_path, "rb") as f:
        raw = tomllib.load(f)

    data: Dict[str, Any] = dict(raw.get("match", {}))

    colors = raw.get("engine_colors", {})
    white = colors.get("white", colors.get("engineOne"))
    black = colors.get("black", colors.get("engineTwo"))
    if white:
        data["white_color"] = white
    if black:
        data["black_color"] = black

    if "calibration" in raw:
        data["calibration"] = raw["calibration"]

    return Config.from_dict(data)
