"""
Persistent match statistics for chess-duel.

Results are aggregated per ordered (white, black) engine pair in a small
SQLite database so repeated matches between the same engines accumulate.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from .models import MatchResult, Outcome

logger = logging.getLogger(__name__)


@dataclass
class PairRecord:
    """Aggregated results of one engine playing white against another."""

    white: str
    black: str
    white_wins: int = 0
    draws: int = 0
    black_wins: int = 0
    last_played: Optional[datetime] = None

    @property
    def total_games(self) -> int:
        return self.white_wins + self.draws + self.black_wins

    @property
    def white_score(self) -> float:
        """White's points per game (0.0 to 1.0)."""
        if self.total_games == 0:
            return 0.0
        return (self.white_wins + 0.5 * self.draws) / self.total_games


class MatchHistory:
    """SQLite store of win/draw/loss counters keyed by engine pair."""

    def __init__(self, db_path: Union[str, Path]):
        """Initialize the history database."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        with sqlite3.connect(self.db_path) as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS pair_results (
                    white TEXT NOT NULL,
                    black TEXT NOT NULL,
                    white_wins INTEGER NOT NULL DEFAULT 0,
                    draws INTEGER NOT NULL DEFAULT 0,
                    black_wins INTEGER NOT NULL DEFAULT 0,
                    last_played TEXT,
                    PRIMARY KEY (white, black)
                );
            """)

    def record(self, result: MatchResult) -> None:
        """Add one game result to the counters of its engine pair."""
        column = {
            Outcome.WIN: "white_wins",
            Outcome.DRAW: "draws",
            Outcome.LOSS: "black_wins",
        }[result.outcome]

        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                "INSERT OR IGNORE INTO pair_results (white, black) VALUES (?, ?)",
                (result.white, result.black),
            )
            conn.execute(
                f"UPDATE pair_results SET {column} = {column} + 1, last_played = ? "
                "WHERE white = ? AND black = ?",
                (datetime.now().isoformat(timespec="seconds"), result.white, result.black),
            )
        logger.debug(f"Recorded {result.pgn_result} for {result.white} vs {result.black}")

    def get(self, white: str, black: str) -> PairRecord:
        """Counters for one ordered pair (zeros if never played)."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(
                "SELECT * FROM pair_results WHERE white = ? AND black = ?",
                (white, black),
            ).fetchone()
        return self._to_record(row) if row else PairRecord(white=white, black=black)

    def all(self) -> List[PairRecord]:
        """Every stored pair, most recently played first."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                "SELECT * FROM pair_results ORDER BY last_played DESC"
            ).fetchall()
        return [self._to_record(row) for row in rows]

    @staticmethod
    def _to_record(row: sqlite3.Row) -> PairRecord:
        return PairRecord(
            white=row["white"],
            black=row["black"],
            white_wins=row["white_wins"],
            draws=row["draws"],
            black_wins=row["black_wins"],
            last_played=datetime.fromisoformat(row["last_played"]) if row["last_played"] else None,
        )
