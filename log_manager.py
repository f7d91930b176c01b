"""
Run log management.
Mirrors harness messages and live device output to the console and,
optionally, to a per-run log file organized by date.
"""

import sys
import threading
import time
from pathlib import Path
from typing import Optional

from config import DATE_FORMAT, RUN_LOG_FILE_PATTERN
from utils import now_ts, printable


class RunLog:
    """
    Console and file logger for one harness run.

    Features:
    - Timestamped status lines (log_data)
    - Raw live mirror of device output (log_live)
    - Optional log file logs/DD-MM-YYYY/run-NNN.log, numbered after
      the highest existing run of the day
    """

    def __init__(self, base_dir: Optional[Path] = None, stream=None):
        """
        Initialize run log.

        Args:
            base_dir: Base directory for log files. If None, console only.
            stream: Console stream (defaults to sys.stdout)
        """
        self.base_dir = Path(base_dir) if base_dir else None
        self.stream = stream if stream is not None else sys.stdout
        self.cur_file = None
        self.path = None
        self._lock = threading.Lock()
        # True while the console cursor sits in the middle of a live line
        self._mid_line = False
        if self.base_dir:
            self._open_file()

    def _folder(self) -> Path:
        d = self.base_dir / time.strftime(DATE_FORMAT)
        d.mkdir(parents=True, exist_ok=True)
        return d

    def _next_run_index(self, folder: Path) -> int:
        """Find the highest existing run number and return next index."""
        run_numbers = []
        for f in folder.glob("run-*.log"):
            try:
                run_numbers.append(int(f.stem.replace("run-", "")))
            except ValueError:
                continue
        if run_numbers:
            return max(run_numbers) + 1
        return 1

    def _open_file(self):
        folder = self._folder()
        fname = RUN_LOG_FILE_PATTERN.format(self._next_run_index(folder))
        self.path = folder / fname
        self.cur_file = open(self.path, "a", encoding="utf-8", buffering=1)
        self.log_data(f"Logging to {self.path}")

    def log_data(self, message: str):
        """Write a timestamped status line."""
        line = f"[{now_ts()}] {message}"
        with self._lock:
            if self._mid_line:
                self.stream.write("\n")
                self._mid_line = False
            self.stream.write(f"{line}\n")
            self.stream.flush()
            if self.cur_file:
                self.cur_file.write(f"{line}\n")

    def log_live(self, byte: int):
        """Mirror one byte of device output."""
        ch = printable(byte)
        with self._lock:
            self.stream.write(ch)
            self.stream.flush()
            self._mid_line = ch not in ("\n", "\r")
            if self.cur_file:
                self.cur_file.write(ch)

    def progress(self, char_count: int):
        """Overwrite the current console line with the captured byte count."""
        with self._lock:
            self.stream.write(f"\r{char_count} bytes written.")
            self.stream.flush()
            self._mid_line = True

    def end_line(self):
        with self._lock:
            if self._mid_line:
                self.stream.write("\n")
                self.stream.flush()
                self._mid_line = False

    def close(self):
        """Close the log file."""
        self.end_line()
        if self.cur_file:
            self.cur_file.close()
            self.cur_file = None
