"""
UCI engine process management for chess-duel.

This module owns the external engine subprocesses: spawning them, the UCI
handshake, line-oriented command/response exchange and a graceful-then-forceful
shutdown. It also discovers engine executables on disk.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import Optional, Dict, List, Union

from .models import Config, EngineSpec
from .protocol_log import ProtocolLog

logger = logging.getLogger(__name__)

# Shutdown timings (seconds)
QUIT_GRACE_S = 0.1
TERMINATE_GRACE_S = 0.05
EXIT_POLL_ATTEMPTS = 10
EXIT_POLL_INTERVAL_S = 0.01


class EngineError(Exception):
    """Base class for engine-related errors."""
    pass


class ProcessStartFailed(EngineError):
    """The engine executable could not be spawned."""
    pass


class InvalidExecutable(EngineError):
    """The engine path cannot be opened."""
    pass


class ProcessTerminated(EngineError):
    """The engine process exited while it was still needed."""
    pass


class UciInitFailed(EngineError):
    """The engine did not complete the UCI handshake in time."""
    pass


class EngineIOError(EngineError):
    """Reading from or writing to the engine pipes failed."""
    pass


class EngineProcess:
    """
    One running UCI engine and its pipes.

    The process is spawned by ``start`` and torn down by ``shutdown``; in
    between, commands are exchanged one line at a time. ``initialized`` turns
    true once the handshake completes and never reverts.
    """

    def __init__(
        self,
        spec: EngineSpec,
        config: Optional[Config] = None,
        protocol_log: Optional[ProtocolLog] = None,
    ):
        """
        Initialize the engine process handle.

        Args:
            spec: Engine name and executable path
            config: Global configuration (handshake timeout, hash size, ...)
            protocol_log: Optional sink receiving every protocol line
        """
        self.spec = spec
        self.config = config or Config()
        self.protocol_log = protocol_log
        self.engine_id: Dict[str, str] = {}
        self._process: Optional[asyncio.subprocess.Process] = None
        self._initialized = False

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def path(self) -> str:
        return self.spec.path

    @property
    def pid(self) -> Optional[int]:
        """Process id of the running engine, if started."""
        return self._process.pid if self._process else None

    @property
    def initialized(self) -> bool:
        """True once the UCI handshake has completed."""
        return self._initialized

    @property
    def is_running(self) -> bool:
        """True if the process was started and has not exited."""
        return self._process is not None and self._process.returncode is None

    async def start(self) -> None:
        """
        Spawn the engine with stdin, stdout and stderr attached to pipes.

        Raises:
            InvalidExecutable: If the path cannot be opened
            ProcessStartFailed: If the process cannot be spawned
            ProcessTerminated: If the process exits right after spawning
        """
        if self._process is not None:
            return

        try:
            with open(self.path, "rb"):
                pass
        except OSError as e:
            raise InvalidExecutable(f"Cannot open engine file {self.path}: {e}") from e

        try:
            self._process = await asyncio.create_subprocess_exec(
                self.path,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProcessStartFailed(f"Failed to spawn engine {self.name} at {self.path}: {e}") from e

        if await self._wait_exit(self.config.spawn_grace_s):
            returncode = self._process.returncode
            self._process = None
            raise ProcessTerminated(
                f"Engine {self.name} terminated immediately with status {returncode}"
            )

        logger.info(f"Started engine {self.name} (pid {self.pid})")

    async def send_line(self, text: str) -> None:
        """
        Write one newline-terminated command to the engine.

        Raises:
            ProcessTerminated: If the process already exited
            EngineIOError: If the write fails
        """
        process = self._require_process()
        if process.returncode is not None:
            raise ProcessTerminated(
                f"Engine {self.name} terminated with status {process.returncode}"
            )

        if self.protocol_log:
            self.protocol_log.log(self.name, True, text)

        try:
            process.stdin.write(f"{text}\n".encode())
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise ProcessTerminated(f"Engine {self.name} closed its input: {e}") from e
        except OSError as e:
            raise EngineIOError(f"Failed to send '{text}' to engine {self.name}: {e}") from e

    async def read_line(self) -> Optional[str]:
        """
        Read one line from the engine, waiting as long as it takes.

        Returns:
            The line without its line terminator, or None once the stream closed

        Raises:
            EngineIOError: If reading fails
        """
        process = self._require_process()
        try:
            raw = await process.stdout.readline()
        except (OSError, ValueError) as e:
            raise EngineIOError(f"Error reading from engine {self.name}: {e}") from e

        if not raw:
            return None

        line = raw.decode(errors="replace").rstrip()
        if self.protocol_log:
            self.protocol_log.log(self.name, False, line)
        return line

    async def wait_for(self, expected: str, timeout: Optional[float] = None) -> List[str]:
        """
        Read lines until one equals ``expected``, within a deadline.

        Args:
            expected: Exact line to wait for
            timeout: Deadline in seconds (defaults to config.handshake_timeout_s)

        Returns:
            Lines received before the expected one

        Raises:
            UciInitFailed: On deadline expiry or end of stream
        """
        if timeout is None:
            timeout = self.config.handshake_timeout_s
        seen: List[str] = []

        async def read_until_expected() -> List[str]:
            while True:
                line = await self.read_line()
                if line is None:
                    raise UciInitFailed(
                        f"Engine {self.name} closed its output while waiting for '{expected}'"
                    )
                if line == expected:
                    return seen
                seen.append(line)

        try:
            return await asyncio.wait_for(read_until_expected(), timeout)
        except asyncio.TimeoutError as e:
            raise UciInitFailed(
                f"Engine {self.name} did not answer '{expected}' within {timeout:.1f}s"
            ) from e

    async def handshake(self) -> None:
        """
        Run the UCI handshake and apply the fixed engine configuration.

        Raises:
            UciInitFailed: If uciok or readyok does not arrive in time
        """
        await self.send_line("uci")
        for line in await self.wait_for("uciok"):
            if line.startswith("id name "):
                self.engine_id["name"] = line[8:].strip()
            elif line.startswith("id author "):
                self.engine_id["author"] = line[10:].strip()

        await self.send_line("isready")
        await self.wait_for("readyok")

        await self.set_option("Hash", self.config.hash_mb)
        await self.set_option("MultiPV", self.config.multipv)
        await self.send_line("ucinewgame")

        self._initialized = True
        logger.info(f"Engine {self.name} initialized ({self.engine_id.get('name', 'unknown id')})")

    async def set_option(self, name: str, value: Union[str, int]) -> None:
        await self.send_line(f"setoption name {name} value {value}")

    async def new_game(self) -> None:
        """Reset the engine for a new game and wait until it is ready."""
        await self.send_line("ucinewgame")
        await self.send_line("isready")
        await self.wait_for("readyok")

    async def shutdown(self) -> None:
        """
        Stop the engine: quit, then terminate, then kill.

        Best-effort; never raises.
        """
        process = self._process
        if process is None:
            return

        try:
            if process.returncode is None:
                if self._initialized:
                    try:
                        await self.send_line("quit")
                    except EngineError as e:
                        logger.debug(f"Could not send quit to {self.name}: {e}")

                    if not await self._wait_exit(QUIT_GRACE_S):
                        process.terminate()
                        if not await self._wait_exit(TERMINATE_GRACE_S):
                            process.kill()
                else:
                    process.kill()
        except ProcessLookupError:
            pass
        except Exception as e:
            logger.warning(f"Error stopping engine {self.name}: {e}")

        # Pipes close in reverse order of opening: stdin here, stdout and stderr
        # by the subprocess transport once the child has exited and drained them.
        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()

        for _ in range(EXIT_POLL_ATTEMPTS):
            if await self._wait_exit(EXIT_POLL_INTERVAL_S):
                break
        else:
            logger.warning(f"Engine {self.name} (pid {process.pid}) did not exit after shutdown")

        self._process = None
        logger.info(f"Engine {self.name} stopped")

    async def _wait_exit(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds for the process to exit."""
        if self._process is None:
            return True
        try:
            await asyncio.wait_for(self._process.wait(), timeout)
            return True
        except asyncio.TimeoutError:
            return False

    def _require_process(self) -> asyncio.subprocess.Process:
        if self._process is None:
            raise ProcessTerminated(f"Engine {self.name} is not running")
        return self._process

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.shutdown()

    def __repr__(self) -> str:
        return f"EngineProcess({self.name!r}, pid={self.pid}, initialized={self._initialized})"


def scan_engines(engines_dir: Union[str, Path] = "engines") -> List[EngineSpec]:
    """
    List the engine executables found in a directory tree.

    Every regular file becomes an engine named after its file name.

    Args:
        engines_dir: Directory to scan

    Returns:
        Engines sorted by name (empty if the directory does not exist)
    """
    root = Path(engines_dir)
    if not root.is_dir():
        logger.info(f"Engines directory {root} not found")
        return []

    engines = [
        EngineSpec(name=path.name, path=str(path.resolve()))
        for path in root.rglob("*")
        if path.is_file()
    ]
    engines.sort(key=lambda spec: spec.name.lower())
    logger.info(f"Found {len(engines)} engine(s) in {root}")
    return engines


def find_reference_engine(engines: List[EngineSpec], name: str = "stockfish") -> Optional[EngineSpec]:
    """
    Locate the reference engine by name.

    Scanned engines whose name contains ``name`` (case-insensitive) come first;
    otherwise Stockfish is auto-detected on the system.
    """
    for spec in engines:
        if name.lower() in spec.name.lower():
            return spec

    if name.lower() == "stockfish":
        detected = autodetect_stockfish()
        if detected:
            return EngineSpec(name=Path(detected).name, path=detected)
    return None


def autodetect_stockfish(cli_path: Optional[str] = None) -> Optional[str]:
    """
    Auto-detect Stockfish installation path.

    Search order:
    1. Explicit path argument
    2. STOCKFISH_PATH environment variable
    3. System PATH lookup
    4. Common installation directories

    Returns:
        Path to Stockfish executable if found, None otherwise
    """
    if cli_path and Path(cli_path).exists():
        return cli_path

    env_path = os.getenv("STOCKFISH_PATH")
    if env_path and Path(env_path).exists():
        return env_path

    which_path = shutil.which("stockfish")
    if which_path:
        return which_path

    common_paths = [
        "/usr/local/bin/stockfish",
        "/usr/bin/stockfish",
        "/usr/games/stockfish",
        "/opt/homebrew/bin/stockfish",
        "C:/Program Files/Stockfish/stockfish.exe",
    ]
    for path in common_paths:
        if Path(path).exists():
            return path

    return None


def get_friendly_stockfish_hint() -> str:
    """
    Get a user-friendly message about how to make Stockfish available.

    Returns:
        Formatted installation instructions
    """
    return (
        "Stockfish not found. Install it or copy it into the engines directory:\n"
        "• macOS:    brew install stockfish\n"
        "• Ubuntu:   sudo apt-get install stockfish\n"
        "• Windows:  choco install stockfish\n"
        "• Manual:   Download from https://stockfishchess.org/\n"
        "\nOr set environment variable: export STOCKFISH_PATH=/path/to/stockfish"
    )
