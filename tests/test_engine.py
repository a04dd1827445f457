"""
Unit tests for engine process management.

Tests the EngineProcess class against small fake UCI engines, plus the engine
discovery helpers.
"""

import asyncio
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock, patch

from chess_duel.core.engine import (
    EngineProcess,
    InvalidExecutable,
    ProcessStartFailed,
    ProcessTerminated,
    UciInitFailed,
    autodetect_stockfish,
    find_reference_engine,
    get_friendly_stockfish_hint,
    scan_engines,
)
from chess_duel.core.models import Config, EngineSpec

from .helpers import pid_alive, write_fake_engine


class EngineProcessTests(unittest.IsolatedAsyncioTestCase):
    """Test EngineProcess against fake engine executables."""

    def setUp(self):
        """Set up test fixtures."""
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)
        self.config = Config(handshake_timeout_s=1.0)

    def tearDown(self):
        self.tmp.cleanup()

    def make_engine(self, **kwargs) -> EngineProcess:
        path = write_fake_engine(self.dir, **kwargs)
        return EngineProcess(EngineSpec(name=path.name, path=str(path)), self.config)

    def test_engine_initialization(self):
        """Test a new handle is not running and not initialized."""
        engine = EngineProcess(EngineSpec("fake", "/fake/engine"), self.config)
        self.assertEqual(engine.name, "fake")
        self.assertEqual(engine.path, "/fake/engine")
        self.assertFalse(engine.is_running)
        self.assertFalse(engine.initialized)
        self.assertIsNone(engine.pid)

    async def test_start_missing_file(self):
        """Test a path that cannot be opened."""
        engine = EngineProcess(EngineSpec("ghost", str(self.dir / "missing")), self.config)
        with self.assertRaises(InvalidExecutable):
            await engine.start()
        self.assertFalse(engine.is_running)

    async def test_start_not_executable(self):
        """Test a readable file that cannot be executed."""
        path = self.dir / "notes.txt"
        path.write_text("not an engine\n")
        engine = EngineProcess(EngineSpec("notes", str(path)), self.config)
        with self.assertRaises(ProcessStartFailed):
            await engine.start()

    async def test_start_process_exits_immediately(self):
        """Test an engine that exits during the spawn grace period."""
        engine = self.make_engine(name="crasher", behavior="crash")
        with self.assertRaises(ProcessTerminated) as context:
            await engine.start()
        self.assertIn("terminated immediately", str(context.exception))
        self.assertFalse(engine.is_running)

    async def test_handshake(self):
        """Test the UCI handshake marks the engine initialized."""
        async with self.make_engine(name="alpha") as engine:
            self.assertTrue(engine.is_running)
            self.assertFalse(engine.initialized)

            await engine.handshake()

            self.assertTrue(engine.initialized)
            self.assertEqual(engine.engine_id["name"], "alpha")
            self.assertEqual(engine.engine_id["author"], "chess-duel tests")

        self.assertFalse(engine.is_running)
        self.assertTrue(engine.initialized)

    async def test_handshake_timeout(self):
        """Test an engine that never answers uciok."""
        self.config.handshake_timeout_s = 0.3
        async with self.make_engine(name="mute", behavior="silent") as engine:
            with self.assertRaises(UciInitFailed) as context:
                await engine.handshake()
            self.assertIn("uciok", str(context.exception))
            self.assertFalse(engine.initialized)

    async def test_new_game_and_move_exchange(self):
        """Test position/go exchange after a reset."""
        async with self.make_engine(name="mover", moves=["e2e4"]) as engine:
            await engine.handshake()
            await engine.new_game()
            await engine.send_line("position startpos")
            await engine.send_line("go movetime 10")

            lines = []
            while True:
                line = await engine.read_line()
                lines.append(line)
                if line.startswith("bestmove"):
                    break

            self.assertEqual(lines[-1], "bestmove e2e4")
            self.assertTrue(lines[0].startswith("info"))

    async def test_read_line_at_end_of_stream(self):
        """Test read_line returns None once the engine closed its output."""
        async with self.make_engine(name="quitter") as engine:
            await engine.handshake()
            await engine.send_line("quit")
            self.assertIsNone(await engine.read_line())

    async def test_send_after_exit(self):
        """Test sending to an exited process raises ProcessTerminated."""
        async with self.make_engine(name="leaver") as engine:
            await engine.handshake()
            await engine.send_line("quit")
            await engine._process.wait()

            with self.assertRaises(ProcessTerminated):
                await engine.send_line("isready")

    async def test_send_before_start(self):
        """Test commands require a started process."""
        engine = EngineProcess(EngineSpec("idle", "/fake/engine"), self.config)
        with self.assertRaises(ProcessTerminated):
            await engine.send_line("uci")
        with self.assertRaises(ProcessTerminated):
            await engine.read_line()

    async def test_shutdown_escalates_when_quit_ignored(self):
        """Test shutdown terminates an engine that ignores quit."""
        engine = self.make_engine(name="stubborn", behavior="ignore_quit")
        await engine.start()
        await engine.handshake()
        pid = engine.pid

        await engine.shutdown()

        self.assertFalse(engine.is_running)
        self.assertIsNone(engine.pid)
        self.assertFalse(pid_alive(pid))

    async def test_shutdown_uninitialized_engine(self):
        """Test an engine without handshake is killed directly."""
        engine = self.make_engine(name="fresh")
        await engine.start()
        pid = engine.pid

        await engine.shutdown()

        self.assertFalse(engine.is_running)
        self.assertFalse(pid_alive(pid))

    async def test_shutdown_closes_pipes(self):
        """Test stdin is closed and stdout reaches end of stream after shutdown."""
        engine = self.make_engine(name="piped")
        await engine.start()
        process = engine._process

        await engine.shutdown()

        self.assertTrue(process.stdin.is_closing())
        self.assertEqual(await asyncio.wait_for(process.stdout.read(), 1.0), b"")
        self.assertIsNotNone(process.returncode)

    async def test_shutdown_is_idempotent(self):
        """Test shutdown on a stopped or never-started engine does nothing."""
        engine = self.make_engine(name="twice")
        await engine.shutdown()
        await engine.start()
        await engine.shutdown()
        await engine.shutdown()
        self.assertFalse(engine.is_running)

    async def test_protocol_log_receives_traffic(self):
        """Test outbound and inbound lines are mirrored to the protocol log."""
        protocol_log = Mock()
        path = write_fake_engine(self.dir, name="chatty")
        engine = EngineProcess(EngineSpec("chatty", str(path)), self.config, protocol_log)

        async with engine:
            await engine.handshake()

        protocol_log.log.assert_any_call("chatty", True, "uci")
        protocol_log.log.assert_any_call("chatty", False, "uciok")
        protocol_log.log.assert_any_call("chatty", True, "setoption name Hash value 128")
        protocol_log.log.assert_any_call("chatty", True, "setoption name MultiPV value 1")
        protocol_log.log.assert_any_call("chatty", True, "quit")


class EngineDiscoveryTests(unittest.TestCase):
    """Test engine scanning and Stockfish detection."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def test_scan_engines(self):
        """Test every regular file is listed, sorted by name."""
        (self.dir / "Stockfish").write_text("")
        (self.dir / "komodo").write_text("")
        (self.dir / "nested").mkdir()
        (self.dir / "nested" / "berserk").write_text("")

        engines = scan_engines(self.dir)

        self.assertEqual([spec.name for spec in engines], ["berserk", "komodo", "Stockfish"])
        self.assertTrue(all(Path(spec.path).is_absolute() for spec in engines))

    def test_scan_missing_directory(self):
        """Test a missing engines directory yields no engines."""
        self.assertEqual(scan_engines(self.dir / "absent"), [])

    def test_find_reference_engine_by_name(self):
        """Test case-insensitive substring match on engine names."""
        engines = [EngineSpec("komodo", "/e/komodo"), EngineSpec("Stockfish-16", "/e/sf16")]
        reference = find_reference_engine(engines)
        self.assertEqual(reference.path, "/e/sf16")

    @patch('chess_duel.core.engine.autodetect_stockfish')
    def test_find_reference_engine_autodetect(self, mock_autodetect):
        """Test falling back to the system Stockfish."""
        mock_autodetect.return_value = "/usr/games/stockfish"
        reference = find_reference_engine([EngineSpec("komodo", "/e/komodo")])
        self.assertEqual(reference, EngineSpec("stockfish", "/usr/games/stockfish"))

    @patch('chess_duel.core.engine.autodetect_stockfish')
    def test_find_reference_engine_missing(self, mock_autodetect):
        """Test no reference engine anywhere."""
        mock_autodetect.return_value = None
        self.assertIsNone(find_reference_engine([EngineSpec("komodo", "/e/komodo")]))

    def test_find_other_reference_name_skips_autodetect(self):
        """Test only Stockfish is auto-detected."""
        with patch('chess_duel.core.engine.autodetect_stockfish') as mock_autodetect:
            self.assertIsNone(find_reference_engine([], name="komodo"))
            mock_autodetect.assert_not_called()

    def test_autodetect_with_explicit_path(self):
        """Test autodetection with an explicit path."""
        path = self.dir / "stockfish"
        path.write_text("")
        self.assertEqual(autodetect_stockfish(str(path)), str(path))

    @patch.dict(os.environ, {"STOCKFISH_PATH": "/env/stockfish"})
    @patch('chess_duel.core.engine.Path.exists')
    def test_autodetect_with_env_var(self, mock_exists):
        """Test autodetection using the environment variable."""
        mock_exists.return_value = True
        self.assertEqual(autodetect_stockfish(), "/env/stockfish")

    @patch.dict(os.environ, {}, clear=True)
    @patch('chess_duel.core.engine.shutil.which')
    @patch('chess_duel.core.engine.Path.exists')
    def test_autodetect_not_found(self, mock_exists, mock_which):
        """Test autodetection when Stockfish is not installed."""
        mock_exists.return_value = False
        mock_which.return_value = None
        self.assertIsNone(autodetect_stockfish())

    def test_friendly_hint(self):
        """Test the installation hint mentions the usual sources."""
        hint = get_friendly_stockfish_hint()
        self.assertIn("brew install stockfish", hint)
        self.assertIn("STOCKFISH_PATH", hint)


if __name__ == "__main__":
    unittest.main()
