"""
Command-line interface for chess-duel.

This module provides the main entry point: listing engines, running
engine-vs-engine matches, playing against an engine, calibrating an engine's
rating and showing the stored match history.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sqlite3
import sys
from pathlib import Path
from typing import Dict, List, Optional, Type

import chess
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .core.calibration import CalibrationError, Calibrator, InvalidSkillLevel, StockfishNotFound
from .core.context import MatchContext
from .core.engine import (
    EngineError,
    EngineIOError,
    InvalidExecutable,
    ProcessStartFailed,
    ProcessTerminated,
    UciInitFailed,
    scan_engines,
)
from .core.history import MatchHistory
from .core.human import HumanMatch
from .core.match import MatchLoop
from .core.models import (
    MATCH_PRESETS,
    PLAYER_MATCH_PRESETS,
    CalibrationSample,
    Config,
    EngineSpec,
    get_preset,
    load_config,
)
from .core.protocol_log import ProtocolLog
from .ui.board import MatchDisplay, NullRenderer
from .ui.reports import render_calibration_result, render_engine_table, render_history_table


def setup_logging(verbose: bool = False) -> None:
    """Setup logging that doesn't interfere with the live board display."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if verbose:
        root_logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
        root_logger.setLevel(logging.DEBUG)
    else:
        root_logger.addHandler(logging.NullHandler())
        root_logger.setLevel(logging.INFO)


setup_logging()
logger = logging.getLogger(__name__)

console = Console()


class EngineNotFound(EngineError):
    """No engine matches the name given on the command line."""
    pass


# Looked up along the exception's MRO
ERROR_MESSAGES: Dict[Type[Exception], str] = {
    ProcessStartFailed: "Failed to start the engine process",
    InvalidExecutable: "Engine file cannot be opened",
    ProcessTerminated: "Engine process terminated unexpectedly",
    UciInitFailed: "Engine did not complete the UCI handshake",
    EngineIOError: "Communication with the engine failed",
    InvalidSkillLevel: "Reference engine rejected the skill level",
    StockfishNotFound: "Stockfish not found",
    CalibrationError: "Calibration failed",
    EngineNotFound: "Engine not found",
}


def describe_error(error: Exception) -> str:
    """One-line diagnostic for an error, falling back to its class name."""
    for cls in type(error).__mro__:
        if cls in ERROR_MESSAGES:
            return ERROR_MESSAGES[cls]
    return type(error).__name__


def resolve_engine(name: str, engines: List[EngineSpec]) -> EngineSpec:
    """
    Find an engine by name, index in the engine list, or path.

    Raises:
        EngineNotFound: If nothing matches
    """
    for spec in engines:
        if spec.name.lower() == name.lower():
            return spec

    if name.isdigit() and 1 <= int(name) <= len(engines):
        return engines[int(name) - 1]

    path = Path(name)
    if path.is_file():
        return EngineSpec(name=path.name, path=str(path.resolve()))

    raise EngineNotFound(f"No engine named '{name}'. Run 'chess-duel engines' to list available engines.")


def positive_int(value: str) -> int:
    """argparse type for counts and durations that must be at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: '{value}'")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_context(args: argparse.Namespace, config: Config, live: bool = True) -> MatchContext:
    """Create the console, renderer, protocol log and history sinks for one run."""
    history: Optional[MatchHistory] = None
    try:
        history = MatchHistory(config.history_path)
    except (sqlite3.Error, OSError) as e:
        logger.warning(f"Match history unavailable: {e}")

    return MatchContext(
        config=config,
        console=console,
        renderer=MatchDisplay(console, config, live=live),
        protocol_log=ProtocolLog(config.logs_dir, enabled=config.log_protocol and not args.no_log),
        history=history,
    )


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="chess-duel",
        description="Run matches between UCI chess engines and estimate their strength",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List engines found in ./engines
  %(prog)s engines

  # Blitz match between two engines
  %(prog)s match stockfish komodo --preset blitz

  # Play black against an engine
  %(prog)s play stockfish --color black --difficulty casual

  # Estimate an engine's rating against Stockfish
  %(prog)s calibrate komodo --games 2

Match presets: """ + ", ".join(p.name for p in MATCH_PRESETS) + """
Play difficulties: """ + ", ".join(p.name for p in PLAYER_MATCH_PRESETS),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--engines-dir",
        type=str,
        help="Directory scanned for engine executables (default: engines)",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="TOML configuration file (default: .config/zduel.toml)",
    )
    parser.add_argument(
        "--no-log",
        action="store_true",
        help="Do not write protocol traffic logs",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show debug logging",
    )

    commands = parser.add_subparsers(dest="command")

    commands.add_parser("engines", help="List available engines")

    match_parser = commands.add_parser("match", help="Run a match between two engines")
    match_parser.add_argument("white", help="Engine playing white (name, list number or path)")
    match_parser.add_argument("black", help="Engine playing black (name, list number or path)")
    match_parser.add_argument(
        "--preset",
        type=str,
        default="Blitz",
        help="Time control preset (default: %(default)s)",
    )
    match_parser.add_argument(
        "--no-live",
        action="store_true",
        help="Print the board after each move instead of redrawing it",
    )

    play_parser = commands.add_parser("play", help="Play against an engine")
    play_parser.add_argument("engine", help="Engine to play against")
    play_parser.add_argument(
        "--color",
        choices=["white", "black"],
        default="white",
        help="Your color (default: %(default)s)",
    )
    play_parser.add_argument(
        "--difficulty",
        type=str,
        default="Casual",
        help="Engine thinking time preset (default: %(default)s)",
    )

    calibrate_parser = commands.add_parser("calibrate", help="Estimate an engine's rating")
    calibrate_parser.add_argument("engine", help="Engine to calibrate")
    calibrate_parser.add_argument(
        "--games",
        type=positive_int,
        help="Games per skill level (default: 4)",
    )
    calibrate_parser.add_argument(
        "--move-time",
        type=positive_int,
        help="Milliseconds per move (default: 1000)",
    )

    commands.add_parser("history", help="Show stored match results")

    return parser


def cmd_engines(config: Config) -> int:
    engines = scan_engines(config.engines_dir)
    if not engines:
        console.print(f"[yellow]No engines found in {config.engines_dir}/[/yellow]")
        return 0
    console.print(render_engine_table(engines))
    return 0


async def cmd_match(args: argparse.Namespace, config: Config) -> int:
    engines = scan_engines(config.engines_dir)
    white = resolve_engine(args.white, engines)
    black = resolve_engine(args.black, engines)
    preset = get_preset(args.preset, MATCH_PRESETS)

    console.print(f"[bold]{preset.name}[/bold]: {preset.description}")
    context = build_context(args, config, live=not args.no_live)

    async with MatchLoop.from_specs(white, black, context, move_time_ms=preset.move_time_ms) as loop:
        summary = await loop.play_preset(preset)

    if summary.winner:
        console.print(f"\n[bold green]{summary.winner} wins the match![/bold green]")
    else:
        console.print("\n[bold yellow]The match is drawn.[/bold yellow]")
    return 0


async def cmd_play(args: argparse.Namespace, config: Config) -> int:
    engines = scan_engines(config.engines_dir)
    engine = resolve_engine(args.engine, engines)
    preset = get_preset(args.difficulty, PLAYER_MATCH_PRESETS)
    color = chess.WHITE if args.color == "white" else chess.BLACK

    console.print(f"[bold]{preset.name}[/bold]: {preset.description}")
    console.print("Enter moves like [cyan]e2e4[/cyan] or [cyan]e7e8q[/cyan]; [cyan]0000[/cyan] resigns.")

    context = build_context(args, config, live=False)
    async with HumanMatch.from_engine_spec(
        engine, context, human_color=color, move_time_ms=preset.engine_time_ms
    ) as match:
        await match.play_game()
    return 0


async def cmd_calibrate(args: argparse.Namespace, config: Config) -> int:
    engines = scan_engines(config.engines_dir)
    candidate = resolve_engine(args.engine, engines)

    overrides = {}
    if args.games is not None:
        overrides["games_per_level"] = args.games
    if args.move_time is not None:
        overrides["move_time_ms"] = args.move_time
    settings = dataclasses.replace(config.calibration, **overrides)

    context = build_context(args, config)
    context.renderer = NullRenderer()

    def report_level(sample: CalibrationSample) -> None:
        console.print(
            f"  Level {sample.level:>2} ({sample.assumed_rating}): "
            f"{sample.wins}W-{sample.draws}D-{sample.losses}L"
        )

    calibrator = Calibrator(engines, context, settings, on_level_complete=report_level)
    console.print(f"Calibrating [bold]{candidate.name}[/bold] "
                  f"({settings.total_games} games at {settings.move_time_ms}ms per move)")
    with console.status("Playing calibration games..."):
        result = await calibrator.calibrate(candidate)

    console.print(render_calibration_result(result))
    return 0


def cmd_history(config: Config) -> int:
    records = MatchHistory(config.history_path).all()
    if not records:
        console.print("[yellow]No matches recorded yet[/yellow]")
        return 0
    console.print(render_history_table(records))
    return 0


async def main_async(args: argparse.Namespace) -> int:
    """Main async entry point."""
    try:
        config = load_config(args.config)
        if args.engines_dir:
            config.engines_dir = args.engines_dir

        if args.command == "match":
            return await cmd_match(args, config)
        if args.command == "play":
            return await cmd_play(args, config)
        if args.command == "calibrate":
            return await cmd_calibrate(args, config)
        if args.command == "history":
            return cmd_history(config)
        return cmd_engines(config)

    except EngineError as e:
        console.print(f"\n[bold red]{describe_error(e)}[/bold red]")
        console.print(f"[dim]{e}[/dim]")
        logger.debug("Command failed", exc_info=True)
        return 1
    except ValueError as e:
        console.print(f"\n[bold red]Error: {e}[/bold red]")
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        return asyncio.run(main_async(args))
    except KeyboardInterrupt:
        console.print("\n[bold yellow]Interrupted by user[/bold yellow]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
