"""
Tests for the protocol traffic log.
"""

import tempfile
import unittest
from pathlib import Path

from chess_duel.core.protocol_log import ProtocolLog, sanitize_filename


class ProtocolLogTests(unittest.TestCase):
    """Test log file creation and line format."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.logs_dir = Path(self.tmp.name) / "logs"

    def tearDown(self):
        self.tmp.cleanup()

    def test_sanitize_filename(self):
        """Test unsafe characters are replaced."""
        self.assertEqual(sanitize_filename("Stockfish 16.1"), "Stockfish_16_1")
        self.assertEqual(sanitize_filename("lc0-v0_31"), "lc0-v0_31")

    def test_start_writes_header(self):
        """Test the file name and header."""
        with ProtocolLog(self.logs_dir) as protocol_log:
            path = protocol_log.start("Stockfish 16", "komodo")
            self.assertTrue(protocol_log.is_open)

        self.assertRegex(path.name, r"^zduel_Stockfish_16_vs_komodo_\d{8}_\d{6}\.log$")
        text = path.read_text()
        self.assertTrue(text.startswith("=== zduel Engine Match Log ===\n"))
        self.assertIn("White: Stockfish 16", text)
        self.assertIn("Black: komodo", text)

    def test_log_lines(self):
        """Test outbound and inbound markers."""
        protocol_log = ProtocolLog(self.logs_dir)
        path = protocol_log.start("alpha", "beta")
        protocol_log.log("alpha", True, "go movetime 1000")
        protocol_log.log("alpha", False, "bestmove e2e4")
        protocol_log.close()
        self.assertFalse(protocol_log.is_open)

        lines = path.read_text().splitlines()
        self.assertRegex(lines[-2], r"^\[\d{8}_\d{6}\] >>> alpha: go movetime 1000$")
        self.assertRegex(lines[-1], r"^\[\d{8}_\d{6}\] <<< alpha: bestmove e2e4$")

    def test_disabled(self):
        """Test a disabled log writes nothing."""
        protocol_log = ProtocolLog(self.logs_dir, enabled=False)
        self.assertIsNone(protocol_log.start("alpha", "beta"))
        protocol_log.log("alpha", True, "uci")
        self.assertFalse(self.logs_dir.exists())

    def test_log_before_start(self):
        """Test logging before start is a no-op."""
        protocol_log = ProtocolLog(self.logs_dir)
        protocol_log.log("alpha", True, "uci")
        self.assertFalse(protocol_log.is_open)

    def test_unwritable_directory(self):
        """Test failure to open the log is reported, not raised."""
        blocker = Path(self.tmp.name) / "blocker"
        blocker.write_text("")
        protocol_log = ProtocolLog(blocker / "logs")
        with self.assertLogs("chess_duel.core.protocol_log", level="WARNING"):
            self.assertIsNone(protocol_log.start("alpha", "beta"))
        self.assertFalse(protocol_log.is_open)


if __name__ == "__main__":
    unittest.main()
