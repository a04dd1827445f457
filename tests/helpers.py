"""
Shared fixtures for the test suite.

``ScriptedEngine`` stands in for an EngineProcess inside the match loop without
spawning anything. ``write_fake_engine`` creates a small executable UCI engine
for tests that exercise the real subprocess handling.
"""

import os
import stat
import sys
from pathlib import Path
from typing import List, Optional, Sequence

FAKE_ENGINE_TEMPLATE = '''#!{python}
import sys

MOVES = {moves!r}
BEHAVIOR = {behavior!r}

if BEHAVIOR == "crash":
    sys.exit(3)

turn = 0
while True:
    raw = sys.stdin.readline()
    if not raw:
        break
    command = raw.strip()
    if command == "uci":
        print("id name {name}")
        print("id author chess-duel tests")
        if BEHAVIOR != "silent":
            print("uciok")
    elif command == "isready":
        print("readyok")
    elif command.startswith("setoption name Skill Level") and BEHAVIOR == "no_skill":
        print("No such option: Skill Level")
    elif command.startswith("go"):
        print("info depth 1 score cp 13")
        if turn < len(MOVES):
            print("bestmove " + MOVES[turn])
        else:
            print("bestmove (none)")
        turn += 1
    elif command == "quit" and BEHAVIOR != "ignore_quit":
        break
    sys.stdout.flush()
'''


def write_fake_engine(
    directory: Path,
    name: str = "fake",
    moves: Sequence[str] = (),
    behavior: str = "normal",
) -> Path:
    """
    Write an executable fake UCI engine.

    Args:
        directory: Where to create the script
        name: File name and reported ``id name``
        moves: Moves answered to successive ``go`` commands, then ``(none)``
        behavior: "normal", "crash", "silent", "no_skill" or "ignore_quit"

    Returns:
        Path of the executable
    """
    path = Path(directory) / name
    path.write_text(FAKE_ENGINE_TEMPLATE.format(
        python=sys.executable,
        moves=list(moves),
        behavior=behavior,
        name=name,
    ))
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class ScriptedEngine:
    """
    In-memory engine answering ``go`` with a fixed list of moves.

    A ``None`` entry in the move list closes the output instead of answering.
    Once the list runs out the engine answers ``bestmove (none)``.
    """

    def __init__(self, name: str, moves: Sequence[Optional[str]] = ()):
        self.name = name
        self.moves: List[Optional[str]] = list(moves)
        self.sent: List[str] = []
        self.initialized = False
        self.handshakes = 0
        self.new_games = 0
        self.started = False
        self.shutdowns = 0
        self._pending: List[str] = []

    async def start(self) -> None:
        self.started = True

    async def handshake(self) -> None:
        self.handshakes += 1
        self.initialized = True

    async def new_game(self) -> None:
        self.new_games += 1

    async def send_line(self, text: str) -> None:
        self.sent.append(text)
        if text.startswith("go"):
            move = self.moves.pop(0) if self.moves else "(none)"
            if move is not None:
                self._pending.extend(["info depth 5 score cp 20", f"bestmove {move} ponder a7a6"])

    async def read_line(self) -> Optional[str]:
        if self._pending:
            return self._pending.pop(0)
        return None

    async def shutdown(self) -> None:
        self.shutdowns += 1

    def position_commands(self) -> List[str]:
        return [line for line in self.sent if line.startswith("position")]
