"""
Configuration constants and settings for the PUF capture harness.
"""

from dataclasses import dataclass, field
from typing import Tuple

# Serial Communication
DEFAULT_BAUD = 115200
SERIAL_TIMEOUT = 0.1  # seconds
SERIAL_READ_CHUNK_SIZE = 1024  # bytes

# Protocol Markers (two bytes each, sent by the device firmware)
START_MARKER = b"\xff\x01"
END_MARKER = b"\xff\x02"
LOADED_MARKER = b"\xff\x03"
ASK_INPUT_MARKER = b"\xff\x04"
FINISHED_MARKER = b"\xff\x05"
PANIC_MARKER = b"\xff\x06"

# Parameter Feeding
PARAM_SETTLE_DELAY = 0.05  # seconds, before and after each parameter write
PARAM_TERMINATOR = b"\r"

# Power Control
DEFAULT_POWER_PIN = 17  # BCM numbering
DEFAULT_POWER_OFF_SECONDS = 2.0

# Capture Output
DEFAULT_OUT_PREFIX = "puf_"
OUTPUT_FILE_PATTERN = "{prefix}{index}.bin"
FLUSH_INTERVAL = 1024  # bytes between progress updates / sink flushes

# File Settings
DATE_FORMAT = "%d-%m-%Y"
TIMESTAMP_FORMAT = "%d-%m-%Y %H:%M:%S"
RUN_LOG_FILE_PATTERN = "run-{:03d}.log"


class ConfigError(ValueError):
    """Raised for invalid settings or input files, before any hardware is touched."""


@dataclass(frozen=True)
class SessionConfig:
    """
    Settings for one harness run. Immutable once built.

    Attributes:
        port: Serial device (e.g. /dev/ttyUSB0)
        baud: Baud rate of the serial link
        power_pin: GPIO line that switches device power
        power_off_seconds: How long power stays cut during a power cycle
        params: Strings fed to the device, one per input request
        max_measures: Stop after this many captures (0 = unbounded)
        out_prefix: Prefix for capture file names
        power_cut_high: True if driving the line high cuts power
    """

    port: str
    baud: int = DEFAULT_BAUD
    power_pin: int = DEFAULT_POWER_PIN
    power_off_seconds: float = DEFAULT_POWER_OFF_SECONDS
    params: Tuple[str, ...] = field(default_factory=tuple)
    max_measures: int = 0
    out_prefix: str = DEFAULT_OUT_PREFIX
    power_cut_high: bool = True

    def __post_init__(self):
        # Accept any iterable of strings but store an immutable tuple
        object.__setattr__(self, "params", tuple(self.params))
        self.validate()

    def validate(self):
        if not self.port:
            raise ConfigError("No serial port given")
        if self.baud <= 0:
            raise ConfigError(f"Invalid baud rate: {self.baud}")
        if self.max_measures < 0:
            raise ConfigError(
                f"Invalid measurement limit {self.max_measures} (use 0 for unbounded)"
            )
        if self.power_off_seconds < 0:
            raise ConfigError(f"Invalid power-off time: {self.power_off_seconds}")
