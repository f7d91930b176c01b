"""
Serial link to the device under test.
"""

import serial

from config import SERIAL_TIMEOUT


class SerialLink:
    """
    Duplex byte channel over a serial port.

    Reads poll with a short timeout and return b"" when nothing has
    arrived; the session runner simply polls again.
    """

    def __init__(self, port: str, baud: int, timeout: float = SERIAL_TIMEOUT):
        """
        Open the serial port.

        Args:
            port: Serial device (e.g. /dev/ttyUSB0)
            baud: Baud rate
            timeout: Read timeout in seconds
        """
        self.port = port
        self.baud = baud
        self.ser = serial.Serial(port, baud, timeout=timeout)
        print(f"Connected: {port} @ {baud}", flush=True)

    def read(self, size: int) -> bytes:
        """Return up to `size` bytes, or b"" if none are available yet."""
        # Take whatever is already buffered, at least one byte (bounded by the timeout)
        waiting = self.ser.in_waiting
        return self.ser.read(min(size, waiting) if waiting else 1)

    def write(self, data: bytes):
        self.ser.write(data)

    def flush(self):
        self.ser.flush()

    def close(self):
        if self.ser.is_open:
            self.ser.close()
            print(f"Closed: {self.port}", flush=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
