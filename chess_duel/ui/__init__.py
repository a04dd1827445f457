"""
UI package for chess-duel.

Rich terminal components: the live board display and the match, calibration
and history reports.
"""

from .board import BoardRenderer, NullRenderer, MatchDisplay, render_board
from .reports import (
    render_match_summary,
    render_calibration_result,
    render_engine_table,
    render_history_table,
)

__all__ = [
    "BoardRenderer",
    "NullRenderer",
    "MatchDisplay",
    "render_board",
    "render_match_summary",
    "render_calibration_result",
    "render_engine_table",
    "render_history_table",
]
