"""
Match orchestration between two UCI engines.

This module drives complete games: it asks the side to move for its
``bestmove``, mirrors the placement for the display and repetition counting,
applies the termination rules and produces a MatchResult. It never checks move
legality; engine replies are trusted.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import List, Optional, Sequence

from .board import PlacementBoard, RepetitionTracker
from .context import MatchContext
from .engine import EngineProcess, ProcessTerminated
from .models import (
    DrawReason,
    EngineSpec,
    MatchPreset,
    MatchResult,
    MatchSummary,
    Outcome,
    Termination,
)
from .termination import TerminationDetector, create_termination_detector
from ..ui.reports import render_match_summary

logger = logging.getLogger(__name__)

BESTMOVE = "bestmove"
NO_MOVE = "(none)"
RESIGN_TOKEN = "0000"
REPETITION_LIMIT = 3


def format_moves(moves: Sequence[str]) -> str:
    """Move tokens separated by single spaces (empty history gives "")."""
    return " ".join(moves)


def position_command(moves: Sequence[str]) -> str:
    """UCI position command for the start position plus ``moves``."""
    if not moves:
        return "position startpos"
    return f"position startpos moves {format_moves(moves)}"


def parse_bestmove(line: str) -> Optional[str]:
    """
    Extract the move token from a ``bestmove`` line.

    Returns:
        The move token, NO_MOVE when the engine has no move to offer, or None
        if the line is not a bestmove reply
    """
    if not line.startswith(BESTMOVE):
        return None
    if NO_MOVE in line:
        return NO_MOVE
    fields = line.split()
    if len(fields) < 2 or fields[0] != BESTMOVE:
        return NO_MOVE
    return fields[1]


class MatchLoop:
    """
    Plays games between a white and a black engine.

    The loop owns both engine processes: ``start`` spawns them, ``close`` shuts
    them down. The same processes are reused for every game, reset with
    ``ucinewgame`` between games.
    """

    def __init__(
        self,
        white: EngineProcess,
        black: EngineProcess,
        context: Optional[MatchContext] = None,
        move_time_ms: Optional[int] = None,
        detector: Optional[TerminationDetector] = None,
    ):
        """
        Initialize the match loop.

        Args:
            white: Engine playing white (the reference side for results)
            black: Engine playing black
            context: Sinks and configuration for this run
            move_time_ms: Thinking time per move (defaults to config.move_time_ms)
            detector: Termination cue detector (defaults to config.termination)
        """
        self.white = white
        self.black = black
        self.context = context or MatchContext.quiet()
        self.config = self.context.config
        self.move_time_ms = move_time_ms or self.config.move_time_ms
        self.max_plies = self.config.max_plies
        self.detector = detector or create_termination_detector(self.config)
        self.games_played = 0

    @classmethod
    def from_specs(
        cls,
        white: EngineSpec,
        black: EngineSpec,
        context: MatchContext,
        move_time_ms: Optional[int] = None,
    ) -> MatchLoop:
        """Create a loop with fresh engine processes for two engine specs."""
        return cls(
            EngineProcess(white, context.config, context.protocol_log),
            EngineProcess(black, context.config, context.protocol_log),
            context,
            move_time_ms=move_time_ms,
        )

    async def start(self) -> None:
        """Open the protocol log and spawn both engines."""
        if self.context.protocol_log:
            self.context.protocol_log.start(self.white.name, self.black.name)
        await self.white.start()
        await self.black.start()

    async def initialize(self) -> None:
        """Handshake with whichever engine has not completed it yet."""
        for engine in (self.white, self.black):
            if not engine.initialized:
                await engine.handshake()

    async def close(self) -> None:
        """Shut down both engines and close the protocol log. Never raises."""
        await self.white.shutdown()
        await self.black.shutdown()
        if self.context.protocol_log:
            self.context.protocol_log.close()

    async def play_game(self) -> MatchResult:
        """
        Play one game from the start position.

        Returns:
            Result from white's point of view

        Raises:
            EngineError: If either engine fails; the game is abandoned
        """
        await self._prepare_game()

        board = PlacementBoard()
        repetitions = RepetitionTracker()
        moves: List[str] = []
        sides = (self.white, self.black)
        mover_index = 0
        renderer = self.context.renderer
        renderer.start_game(self.white.name, self.black.name, board.snapshot())

        logger.info(f"Starting game: {self.white.name} (White) vs {self.black.name} (Black), "
                    f"{self.move_time_ms}ms per move")

        try:
            while True:
                mover = sides[mover_index]
                opponent = sides[1 - mover_index]

                token = await self._request_move(mover, moves)

                if token == NO_MOVE:
                    result = self._win(opponent, Termination.FORFEIT, moves)
                    logger.info(f"{mover.name} has no move and forfeits")
                    break
                if token == RESIGN_TOKEN:
                    result = self._win(opponent, Termination.RESIGNATION, moves)
                    logger.info(f"{mover.name} resigns")
                    break

                moves.append(token)
                board.apply(token)
                renderer.update_move(token, mover.name, len(moves), board.snapshot())
                logger.debug(f"Ply {len(moves)}: {mover.name} played {token}")

                cue = self.detector.classify(token)
                if cue is Termination.CHECKMATE:
                    result = self._win(mover, Termination.CHECKMATE, moves)
                    break
                if cue is Termination.STALEMATE:
                    result = self._draw(DrawReason.STALEMATE, Termination.STALEMATE, moves)
                    break

                if repetitions.record(board.position_key()) >= REPETITION_LIMIT:
                    result = self._draw(DrawReason.REPETITION, Termination.REPETITION, moves)
                    break

                mover_index = 1 - mover_index
                if len(moves) >= self.max_plies:
                    result = self._draw(DrawReason.MOVE_LIMIT, Termination.MOVE_LIMIT, moves)
                    break
        except BaseException:
            renderer.abort()
            raise

        self.games_played += 1
        renderer.finish_game(result)
        self._store(result)

        logger.info(f"Game completed: {result.pgn_result} ({result.termination.value}) "
                    f"in {result.ply_count} plies")
        return result

    async def play_preset(self, preset: MatchPreset) -> MatchSummary:
        """
        Play every game of a preset with the same two processes.

        Returns:
            Tally of the match after all games
        """
        self.move_time_ms = preset.move_time_ms
        summary = MatchSummary(white=self.white.name, black=self.black.name)
        console = self.context.console

        for game_number in range(1, preset.game_count + 1):
            if preset.game_count > 1:
                console.print(f"\n[bold]Game {game_number} of {preset.game_count}[/bold]")
            summary.add_result(await self.play_game())
            console.print(render_match_summary(summary, self.config))

        return summary

    async def _prepare_game(self) -> None:
        for engine in (self.white, self.black):
            if engine.initialized:
                await engine.new_game()
            else:
                await engine.handshake()

    async def _request_move(self, mover: EngineProcess, moves: Sequence[str]) -> str:
        """
        Send the position and a go command, then wait for ``bestmove``.

        The read has no timeout: a silent engine stalls the match.
        """
        await mover.send_line(position_command(moves))
        await mover.send_line(f"go movetime {self.move_time_ms}")

        while True:
            line = await mover.read_line()
            if line is None:
                raise ProcessTerminated(f"Engine {mover.name} closed its output before answering bestmove")
            token = parse_bestmove(line)
            if token is not None:
                return token

    def _win(self, winner: EngineProcess, termination: Termination, moves: List[str]) -> MatchResult:
        outcome = Outcome.WIN if winner is self.white else Outcome.LOSS
        return MatchResult(
            outcome=outcome,
            termination=termination,
            white=self.white.name,
            black=self.black.name,
            moves=list(moves),
        )

    def _draw(self, reason: DrawReason, termination: Termination, moves: List[str]) -> MatchResult:
        return MatchResult(
            outcome=Outcome.DRAW,
            termination=termination,
            white=self.white.name,
            black=self.black.name,
            moves=list(moves),
            draw_reason=reason,
        )

    def _store(self, result: MatchResult) -> None:
        history = self.context.history
        if history is None:
            return
        try:
            history.record(result)
        except (sqlite3.Error, OSError) as e:
            logger.warning(f"Failed to store match result: {e}")

    async def __aenter__(self):
        try:
            await self.start()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
