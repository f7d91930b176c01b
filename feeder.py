"""
Parameter feeding: answers the device's input requests with the configured
parameter strings, from a background thread.
"""

import threading
import time
from typing import Sequence

from config import PARAM_SETTLE_DELAY, PARAM_TERMINATOR


class ReadySignal:
    """
    Single-slot "device is ready for input" signal.

    One producer (the session runner) sets it, one consumer (the feeder)
    clears it. Setting it twice before it is consumed leaves a single
    pending request.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._ready = False

    def set(self):
        with self._cond:
            self._ready = True
            self._cond.notify_all()

    def is_set(self) -> bool:
        with self._cond:
            return self._ready

    def wake(self):
        """Wake waiters so they re-check their cancellation event."""
        with self._cond:
            self._cond.notify_all()

    def consume(self, cancel_evt: threading.Event) -> bool:
        """
        Block until the signal is set or cancel_evt is set.

        Returns:
            True if the signal was consumed, False if cancelled
        """
        with self._cond:
            while not self._ready and not cancel_evt.is_set():
                self._cond.wait()
            if cancel_evt.is_set():
                return False
            self._ready = False
            self._cond.notify_all()
            return True

    def wait_consumed(self, done):
        """Block until a pending request is consumed or done() becomes true."""
        with self._cond:
            while self._ready and not done():
                self._cond.wait()


class ParameterFeeder(threading.Thread):
    """
    Thread that sends one parameter per input request.

    Handles:
    - Waiting for the ready signal before each parameter
    - Settling delays around each write
    - Cooperative cancellation (never cancels itself)
    """

    def __init__(
        self,
        link,
        params: Sequence[str],
        ready: ReadySignal,
        log=None,
        settle_delay: float = PARAM_SETTLE_DELAY,
    ):
        """
        Initialize feeder thread.

        Args:
            link: Byte channel with write() and flush()
            params: Parameter strings, sent in order
            ready: Signal set by the runner on each input request
            log: Optional RunLog
            settle_delay: Pause before and after each parameter write
        """
        super().__init__(daemon=True)
        self.link = link
        self.params = list(params)
        self.ready = ready
        self.log = log
        self.settle_delay = settle_delay
        self.cancel_evt = threading.Event()
        self.sent = 0
        self._exited = False

    def cancel(self):
        self.cancel_evt.set()
        self.ready.wake()

    def stop(self):
        """Cancel and wait for the thread to finish."""
        self.cancel()
        if self.is_alive():
            self.join()

    def drain(self):
        """Answer a request that is already pending, then stop."""
        self.ready.wait_consumed(lambda: self._exited)
        self.stop()

    def run(self):
        try:
            self._feed()
        finally:
            self._exited = True
            self.ready.wake()

    def _feed(self):
        for param in self.params:
            if not self.ready.consume(self.cancel_evt):
                return
            time.sleep(self.settle_delay)
            self.link.write(param.encode("utf-8"))
            self.link.flush()
            time.sleep(self.settle_delay)
            self.link.write(PARAM_TERMINATOR)
            self.link.flush()
            self.sent += 1
            if self.log:
                self.log.log_data(f"Sent parameter {self.sent}/{len(self.params)}: {param}")
