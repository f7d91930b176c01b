"""
Session runner: reads the device output, follows the marker protocol and
writes each captured PUF response into its output sink.
"""

import enum
from typing import Optional

from config import SERIAL_READ_CHUNK_SIZE, FLUSH_INTERVAL, PARAM_SETTLE_DELAY
from feeder import ParameterFeeder, ReadySignal
from markers import Marker, match_marker


class SessionState(enum.Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    TERMINATED = "terminated"


class SessionRunner:
    """
    Drives one device session per call to loop().

    A session lasts from power-up until the device reports FINISHED or
    PANIC. Captured bytes are those strictly between a START marker and
    the following END marker; marker bytes never reach the sink.

    The measurement count persists across sessions.
    """

    def __init__(self, link, config, log, settle_delay: float = PARAM_SETTLE_DELAY):
        """
        Args:
            link: Byte channel with read(n), write(data) and flush()
            config: SessionConfig
            log: RunLog
            settle_delay: Delay used by the parameter feeder
        """
        self.link = link
        self.config = config
        self.log = log
        self.settle_delay = settle_delay
        self.count = 0
        self.sink = None
        self.state = SessionState.IDLE
        self.running = True
        self.char_count = 0
        self._prev: Optional[int] = None
        self._pending: Optional[int] = None
        self._ready = ReadySignal()
        self._feeder: Optional[ParameterFeeder] = None

    def _reset(self, sink):
        self.sink = sink
        self.state = SessionState.IDLE
        self.char_count = 0
        self._prev = None
        self._pending = None
        self._ready = ReadySignal()
        self._feeder = None

    def loop(self, sink) -> bool:
        """
        Run one session, writing captures into `sink`.

        Returns:
            False once the configured measurement limit has been reached,
            True if the run should continue with another power cycle
        """
        self._reset(sink)
        try:
            while self.state is not SessionState.TERMINATED:
                chunk = self.link.read(SERIAL_READ_CHUNK_SIZE)
                if not chunk:
                    continue
                for byte in chunk:
                    self.process_byte(byte)
                    if self.state is SessionState.TERMINATED:
                        break
        finally:
            self._stop_feeder()
            self.sink.finalize()
            self.log.end_line()
        return self.running

    def process_byte(self, byte: int):
        """Handle one byte of device output."""
        if self.state is not SessionState.CAPTURING:
            self.log.log_live(byte)

        marker = match_marker(self._prev, byte)
        # A byte used by a marker cannot start another one
        self._prev = None if marker else byte

        was_capturing = self.state is SessionState.CAPTURING
        if marker is not None:
            self._dispatch(marker)

        if was_capturing and self.state is SessionState.CAPTURING:
            # One byte lag: the byte before END/PANIC is that marker's first byte
            if self._pending is not None:
                self._emit(self._pending)
            self._pending = byte

    def _dispatch(self, marker: Marker):
        if marker is Marker.START:
            self._on_start()
        elif marker is Marker.END:
            self._on_end()
        elif marker is Marker.LOADED:
            self._on_loaded()
        elif marker is Marker.ASK_INPUT:
            self._ready.set()
        elif marker is Marker.FINISHED:
            self._on_finished()
        elif marker is Marker.PANIC:
            self._on_panic()

    def _on_start(self):
        # A request the device already made is still answered before the capture
        if self._feeder is not None:
            self._feeder.drain()
            self._feeder = None
        if self.state is SessionState.CAPTURING:
            return
        self.log.log_data("Capture started.")
        if self.sink.finalized:
            self.log.log_data(f"{self.sink.name} already finalized, capture will be discarded.")
        self.state = SessionState.CAPTURING
        self.char_count = 0
        self._pending = None

    def _on_end(self):
        if self.state is not SessionState.CAPTURING:
            self.log.log_data("END marker outside of a capture, ignored.")
            return
        self.state = SessionState.IDLE
        self._pending = None
        self.count += 1
        self.log.end_line()
        self.log.log_data(f"{self.char_count} bytes in total written.")
        self.sink.finalize()
        if 0 < self.config.max_measures <= self.count:
            self.running = False

    def _on_loaded(self):
        self._stop_feeder()
        self._feeder = ParameterFeeder(
            self.link,
            self.config.params,
            self._ready,
            log=self.log,
            settle_delay=self.settle_delay,
        )
        self._feeder.start()

    def _on_finished(self):
        self.log.log_data("Device finished.")
        self._terminate()

    def _on_panic(self):
        self.log.end_line()
        self.log.log_data(f"Device panic! Aborting after {self.char_count} bytes.")
        self._terminate()
        self.sink.finalize()

    def _terminate(self):
        self._pending = None
        self.state = SessionState.TERMINATED
        self._stop_feeder()

    def _stop_feeder(self):
        if self._feeder is not None:
            self._feeder.stop()
            self._feeder = None

    def _emit(self, byte: int):
        if self.sink.finalized:
            return
        self.sink.write(bytes((byte,)))
        self.char_count += 1
        if self.char_count % FLUSH_INTERVAL == 0:
            self.log.progress(self.char_count)
            self.sink.flush()
