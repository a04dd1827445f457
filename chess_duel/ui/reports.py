"""
Rich tables and panels for match, calibration and history reports.
"""

from __future__ import annotations

from typing import List, Optional, TYPE_CHECKING

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from ..core.history import PairRecord
    from ..core.models import CalibrationResult, Config, EngineSpec, MatchSummary


def render_match_summary(summary: MatchSummary, config: Optional[Config] = None) -> Panel:
    """
    Render the running tally of a match.

    Args:
        summary: Match tally so far
        config: Configuration providing the engine colors

    Returns:
        Panel with one row per engine and the current leader
    """
    white_style = f"bold {config.white_color}" if config else "bold blue"
    black_style = f"bold {config.black_color}" if config else "bold red"

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Engine", no_wrap=True)
    table.add_column("Color", justify="center")
    table.add_column("Wins", style="green", justify="right")
    table.add_column("Draws", style="yellow", justify="right")
    table.add_column("Losses", style="red", justify="right")

    table.add_row(Text(summary.white, style=white_style), "White",
                  str(summary.white_wins), str(summary.draws), str(summary.black_wins))
    table.add_row(Text(summary.black, style=black_style), "Black",
                  str(summary.black_wins), str(summary.draws), str(summary.white_wins))

    leader = summary.winner
    if leader is None:
        status = Text("Match tied", style="yellow")
    else:
        status = Text(f"{leader} leads", style="bold green")

    return Panel(
        Group(table, status),
        title=f"Match Summary ({summary.games_played} game{'s' if summary.games_played != 1 else ''})",
        border_style="green",
        padding=(0, 1),
    )


def render_calibration_result(result: CalibrationResult) -> Panel:
    """Render per-level scores and the final estimate."""
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Skill Level", justify="right")
    table.add_column("Assumed Elo", justify="right")
    table.add_column("Record", justify="center")
    table.add_column("Score", style="yellow", justify="right")

    for sample in result.samples:
        table.add_row(
            str(sample.level),
            str(sample.assumed_rating),
            f"{sample.wins}W-{sample.draws}D-{sample.losses}L",
            f"{sample.score:.0%}",
        )

    return Panel(
        Group(table, Text(str(result), style="bold green")),
        title="Calibration Results",
        border_style="green",
        padding=(1, 2),
    )


def render_engine_table(engines: List[EngineSpec]) -> Table:
    """Numbered list of available engines."""
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Engine", style="cyan", no_wrap=True)
    table.add_column("Path", style="dim")
    for index, spec in enumerate(engines, start=1):
        table.add_row(str(index), spec.name, spec.path)
    return table


def render_history_table(records: List[PairRecord]) -> Table:
    """Stored results per engine pair."""
    table = Table(show_header=True, header_style="bold cyan", title="Match History")
    table.add_column("White", style="cyan", no_wrap=True)
    table.add_column("Black", style="cyan", no_wrap=True)
    table.add_column("Record", justify="center")
    table.add_column("White Score", style="yellow", justify="right")
    table.add_column("Last Played", style="dim")
    for record in records:
        table.add_row(
            record.white,
            record.black,
            f"+{record.white_wins} ={record.draws} -{record.black_wins}",
            f"{record.white_score:.0%}",
            record.last_played.strftime("%Y-%m-%d %H:%M") if record.last_played else "—",
        )
    return table
