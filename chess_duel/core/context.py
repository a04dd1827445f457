"""
Explicit context passed through the match and calibration layers.

Instead of process-wide output singletons, every component receives the sinks
it writes to: the console, the board renderer, the protocol traffic log and
the results history.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from rich.console import Console

from .history import MatchHistory
from .models import Config
from .protocol_log import ProtocolLog
from ..ui.board import BoardRenderer, NullRenderer


@dataclass
class MatchContext:
    """Sinks and settings shared by one run of the tool."""

    config: Config = field(default_factory=Config)
    console: Console = field(default_factory=Console)
    renderer: BoardRenderer = field(default_factory=NullRenderer)
    protocol_log: Optional[ProtocolLog] = None
    history: Optional[MatchHistory] = None

    @classmethod
    def quiet(cls, config: Optional[Config] = None) -> MatchContext:
        """Context that renders nothing, logs no traffic and stores no results."""
        return cls(
            config=config or Config(),
            console=Console(quiet=True),
            renderer=NullRenderer(),
        )
