"""
Per-match log of raw UCI traffic.

Every line sent to or received from an engine is appended to a log file under
the logs directory. The log is write-only: failures to write are reported
through the application logger and never interrupt a match.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO, Union

logger = logging.getLogger(__name__)

OUTBOUND_MARK = ">>>"
INBOUND_MARK = "<<<"


def sanitize_filename(name: str) -> str:
    """Replace anything but letters, digits, dash and underscore with ``_``."""
    return re.sub(r"[^A-Za-z0-9_-]", "_", name)


def _timestamp() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


class ProtocolLog:
    """
    File sink for engine protocol traffic.

    Until ``start`` is called the log is disabled and ``log`` is a no-op.
    """

    def __init__(self, logs_dir: Union[str, Path] = "logs", enabled: bool = True):
        self.logs_dir = Path(logs_dir)
        self.enabled = enabled
        self.path: Optional[Path] = None
        self._file: Optional[TextIO] = None

    @property
    def is_open(self) -> bool:
        return self._file is not None

    def start(self, white_name: str, black_name: str) -> Optional[Path]:
        """
        Open a new log file for a match and write its header.

        Returns:
            Path of the log file, or None when logging is disabled or failed
        """
        if not self.enabled:
            return None

        self.close()
        timestamp = _timestamp()
        try:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            self.path = self.logs_dir / (
                f"zduel_{sanitize_filename(white_name)}_vs_{sanitize_filename(black_name)}_{timestamp}.log"
            )
            self._file = open(self.path, "a", encoding="utf-8")
            self._file.write(
                "=== zduel Engine Match Log ===\n"
                f"Date: {timestamp}\n"
                f"White: {white_name}\n"
                f"Black: {black_name}\n\n"
            )
            self._file.flush()
        except OSError as e:
            logger.warning(f"Failed to open protocol log: {e}")
            self._file = None
            return None

        return self.path

    def log(self, participant: str, is_outbound: bool, line: str) -> None:
        """Append one protocol line for ``participant``."""
        if self._file is None:
            return

        direction = OUTBOUND_MARK if is_outbound else INBOUND_MARK
        try:
            self._file.write(f"[{_timestamp()}] {direction} {participant}: {line}\n")
            self._file.flush()
        except OSError as e:
            logger.warning(f"Failed to write protocol log: {e}")

    def close(self) -> None:
        if self._file is not None:
            try:
                self._file.close()
            except OSError as e:
                logger.debug(f"Error closing protocol log: {e}")
            finally:
                self._file = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
