"""
Terminal chess board rendering for engine matches.

The match loop reports every applied move to a renderer together with a
snapshot of the piece placement. ``MatchDisplay`` draws the board and the move
list with rich; ``NullRenderer`` discards everything.
"""

from __future__ import annotations

import logging
from abc import ABC
from typing import List, Optional, Tuple, TYPE_CHECKING

import chess
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.box import ROUNDED

if TYPE_CHECKING:
    from ..core.models import Config, MatchResult

logger = logging.getLogger(__name__)


class BoardRenderer(ABC):
    """Receives match progress; nothing it returns is used by the match."""

    def start_game(self, white: str, black: str, placement: chess.BaseBoard) -> None:
        pass

    def update_move(self, token: str, player: str, ply: int, placement: chess.BaseBoard) -> None:
        pass

    def finish_game(self, result: MatchResult) -> None:
        pass

    def abort(self) -> None:
        """Called instead of finish_game when a game is abandoned."""
        pass


class NullRenderer(BoardRenderer):
    """Renderer that draws nothing."""
    pass


class MatchDisplay(BoardRenderer):
    """
    Rich board and move-list display.

    With ``live=True`` the display redraws in place for the duration of a game;
    otherwise the board is printed after every move, which keeps it usable
    alongside interactive prompts.
    """

    LIGHT_SQUARE = "grey70"
    DARK_SQUARE = "grey39"
    HIGHLIGHT_SQUARE = "dark_olive_green3"

    def __init__(
        self,
        console: Optional[Console] = None,
        config: Optional[Config] = None,
        live: bool = True,
        refresh_rate: int = 8,
    ):
        """
        Initialize the display.

        Args:
            console: Rich console to draw on (creates new if None)
            config: Configuration providing the piece colors
            live: Redraw in place instead of printing after each move
            refresh_rate: Live refresh rate in Hz
        """
        self.console = console or Console()
        self.white_style = f"bold {config.white_color}" if config else "bold blue"
        self.black_style = f"bold {config.black_color}" if config else "bold red"
        self.live = live
        self.refresh_rate = refresh_rate
        self._live: Optional[Live] = None
        self._white = "White"
        self._black = "Black"
        self._moves: List[Tuple[str, str]] = []
        self._placement = chess.BaseBoard()
        self._last_move: Optional[str] = None

    def start_game(self, white: str, black: str, placement: chess.BaseBoard) -> None:
        self._white = white
        self._black = black
        self._moves = []
        self._placement = placement
        self._last_move = None

        if self.live:
            self._live = Live(
                self._render(),
                console=self.console,
                refresh_per_second=self.refresh_rate,
                transient=False,
            )
            self._live.start()
        else:
            self.console.print(self._render())

    def update_move(self, token: str, player: str, ply: int, placement: chess.BaseBoard) -> None:
        self._moves.append((token, player))
        self._placement = placement
        self._last_move = token

        if self._live is not None:
            self._live.update(self._render())
        else:
            self.console.print(self._render())

    def finish_game(self, result: MatchResult) -> None:
        self._stop_live()
        self.console.print(render_result_line(result, self.white_style, self.black_style))

    def abort(self) -> None:
        self._stop_live()

    def _stop_live(self) -> None:
        if self._live is None:
            return
        try:
            self._live.update(self._render())
            self._live.stop()
        except Exception as e:
            logger.warning(f"Error stopping live display: {e}")
        finally:
            self._live = None

    def _render(self) -> Table:
        layout = Table.grid(padding=(0, 2))
        layout.add_column()
        layout.add_column()
        layout.add_row(
            render_board(self._placement, self._last_move, self.white_style, self.black_style),
            self._render_move_list(),
        )
        return layout

    def _render_move_list(self, max_rows: int = 16) -> Panel:
        table = Table(box=None, show_header=True, header_style="bold", padding=(0, 1))
        table.add_column("#", style="dim", justify="right")
        table.add_column(self._white, style=self.white_style)
        table.add_column(self._black, style=self.black_style)

        pairs = [
            (index // 2 + 1, self._moves[index][0], self._moves[index + 1][0] if index + 1 < len(self._moves) else "")
            for index in range(0, len(self._moves), 2)
        ]
        for number, white_move, black_move in pairs[-max_rows:]:
            table.add_row(str(number), white_move, black_move)

        return Panel(table, title="Moves", border_style="cyan", box=ROUNDED)


def render_board(
    placement: chess.BaseBoard,
    last_move: Optional[str] = None,
    white_style: str = "bold blue",
    black_style: str = "bold red",
) -> Panel:
    """
    Render a piece placement as a rich panel with file and rank labels.

    Args:
        placement: Board to draw
        last_move: Move token whose squares are highlighted
        white_style: Style for white pieces
        black_style: Style for black pieces
    """
    highlighted = set()
    if last_move:
        try:
            highlighted = {chess.parse_square(last_move[0:2]), chess.parse_square(last_move[2:4])}
        except ValueError:
            pass

    table = Table.grid(padding=0)
    table.add_column(justify="center", width=2)
    for _ in range(8):
        table.add_column(justify="center", width=3)

    for rank in range(7, -1, -1):
        row: List[Text] = [Text(str(rank + 1), style="dim white")]
        for file in range(8):
            square = chess.square(file, rank)
            piece = placement.piece_at(square)
            if square in highlighted:
                background = MatchDisplay.HIGHLIGHT_SQUARE
            elif (file + rank) % 2 == 1:
                background = MatchDisplay.LIGHT_SQUARE
            else:
                background = MatchDisplay.DARK_SQUARE

            if piece:
                style = white_style if piece.color == chess.WHITE else black_style
                row.append(Text(f" {piece.symbol()} ", style=f"{style} on {background}"))
            else:
                row.append(Text("   ", style=f"on {background}"))
        table.add_row(*row)

    table.add_row(Text(""), *[Text(letter, style="dim white") for letter in "abcdefgh"])
    return Panel(table, border_style="cyan", box=ROUNDED, padding=(0, 1))


def render_result_line(result: MatchResult, white_style: str = "bold blue", black_style: str = "bold red") -> Text:
    """One-line description of how a game ended."""
    text = Text("Game Over! ", style="bold")
    winner = result.winner
    if winner is not None:
        style = white_style if winner == result.white else black_style
        text.append(winner, style=style)
        text.append(f" wins by {result.termination.value}! ({result.ply_count} plies)")
    elif result.draw_reason is not None:
        text.append(f"Draw by {result.draw_reason.value}!", style="yellow")
    else:
        text.append("Draw!", style="yellow")
    return text

