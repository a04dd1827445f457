"""
Human-vs-engine play.

A person takes one side of a MatchLoop game and types coordinate moves at the
terminal. The engine side follows the normal match rules.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Callable, Optional, Sequence

import chess

from .context import MatchContext
from .engine import EngineProcess
from .match import MatchLoop, RESIGN_TOKEN
from .models import EngineSpec

logger = logging.getLogger(__name__)

MOVE_PATTERN = re.compile(r"^[a-h][1-8][a-h][1-8][qrbn]?$")


def is_valid_move(text: str) -> bool:
    """True for a coordinate move such as ``e2e4`` or ``e7e8q``, or the resign token."""
    return text == RESIGN_TOKEN or MOVE_PATTERN.match(text) is not None


class HumanPlayer:
    """
    The person at the keyboard, seen by the match loop as one more side.

    It has no process, so the lifecycle methods do nothing.
    """

    initialized = True

    def __init__(self, name: str = "Player", input_func: Optional[Callable[[str], str]] = None):
        self.name = name
        self.input_func = input_func or input

    async def start(self) -> None:
        pass

    async def handshake(self) -> None:
        pass

    async def new_game(self) -> None:
        pass

    async def shutdown(self) -> None:
        pass

    async def ask_move(self, ply: int, retry_message: Callable[[str], None]) -> str:
        """
        Prompt until a well-formed move or the resign token is entered.

        Args:
            ply: Number of the ply being asked for (1-based)
            retry_message: Called with a hint whenever the input is rejected

        Returns:
            The entered move token
        """
        while True:
            raw = await asyncio.to_thread(self.input_func, f"Move {ply} ({RESIGN_TOKEN} to resign): ")
            text = raw.strip().lower()
            if is_valid_move(text):
                return text
            retry_message(f"Invalid move '{raw.strip()}'. Use coordinates like e2e4 or e7e8q.")


class HumanMatch(MatchLoop):
    """Match loop where one side is a HumanPlayer."""

    def __init__(
        self,
        human: HumanPlayer,
        engine: EngineProcess,
        human_color: chess.Color = chess.WHITE,
        context: Optional[MatchContext] = None,
        move_time_ms: Optional[int] = None,
    ):
        """
        Initialize the human match.

        Args:
            human: The person playing
            engine: Engine opponent
            human_color: Side the person plays
            context: Sinks and configuration for this run
            move_time_ms: Engine thinking time per move
        """
        white, black = (human, engine) if human_color == chess.WHITE else (engine, human)
        super().__init__(white, black, context, move_time_ms=move_time_ms)
        self.human = human
        self.engine = engine

    @classmethod
    def from_engine_spec(
        cls,
        engine: EngineSpec,
        context: MatchContext,
        human_color: chess.Color = chess.WHITE,
        move_time_ms: Optional[int] = None,
        input_func: Optional[Callable[[str], str]] = None,
    ) -> HumanMatch:
        """Create a match against a fresh process for ``engine``."""
        human = HumanPlayer(input_func=input_func or context.console.input)
        process = EngineProcess(engine, context.config, context.protocol_log)
        return cls(human, process, human_color, context, move_time_ms=move_time_ms)

    async def _request_move(self, mover, moves: Sequence[str]) -> str:
        if mover is self.human:
            token = await self.human.ask_move(len(moves) + 1, self._reject)
            logger.debug(f"Human entered {token}")
            return token
        return await super()._request_move(mover, moves)

    def _reject(self, message: str) -> None:
        self.context.console.print(f"[red]{message}[/red]")
