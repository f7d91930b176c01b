"""
Output sinks receiving the bytes of one capture.

Every sink supports write/flush/finalize so the runner never needs to know
whether it is writing to disk or to memory.
"""

from pathlib import Path


class SinkClosedError(ValueError):
    """Raised when writing to a sink that has already been finalized."""


class OutputSink:
    """Base class for capture destinations."""

    def __init__(self, name: str):
        self.name = name
        self._finalized = False

    @property
    def finalized(self) -> bool:
        return self._finalized

    def write(self, data: bytes):
        if self._finalized:
            raise SinkClosedError(f"Sink {self.name} already finalized")
        self._write(data)

    def flush(self):
        if not self._finalized:
            self._flush()

    def finalize(self):
        """Flush and close the sink. Safe to call more than once."""
        if self._finalized:
            return
        self._flush()
        self._close()
        self._finalized = True

    def _write(self, data: bytes):
        raise NotImplementedError

    def _flush(self):
        pass

    def _close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.finalize()


class FileSink(OutputSink):
    """Writes the capture to a binary file, truncating any previous content."""

    def __init__(self, path):
        self.path = Path(path)
        super().__init__(str(self.path))
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = open(self.path, "wb")

    def _write(self, data: bytes):
        self._fh.write(data)

    def _flush(self):
        self._fh.flush()

    def _close(self):
        self._fh.close()


class MemorySink(OutputSink):
    """Keeps the capture in memory (used for key generation)."""

    def __init__(self, name: str = "<memory>"):
        super().__init__(name)
        self._buf = bytearray()

    def _write(self, data: bytes):
        self._buf.extend(data)

    def getvalue(self) -> bytes:
        return bytes(self._buf)
