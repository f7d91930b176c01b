"""
Utility functions for the PUF capture harness.
"""

import time
from typing import Optional

import serial.tools.list_ports

from config import TIMESTAMP_FORMAT, OUTPUT_FILE_PATTERN


def now_ts() -> str:
    """Return current timestamp in DD-MM-YYYY HH:MM:SS format."""
    return time.strftime(TIMESTAMP_FORMAT)


def output_name(prefix: str, index: int) -> str:
    """Return the capture file name for measurement number `index`."""
    return OUTPUT_FILE_PATTERN.format(prefix=prefix, index=index)


def printable(byte: int) -> str:
    """Render one byte for the live console; non-printable bytes become a space."""
    if 32 <= byte <= 126 or byte in (10, 13):
        return chr(byte)
    return " "


def find_serial_port(
    preferred_port: Optional[str],
    vid: Optional[int] = None,
    pid: Optional[int] = None,
    product_hint: Optional[str] = None,
) -> Optional[str]:
    """
    Return the serial port the device is attached to.

    Matching criteria:
      - preferred_port if present
      - else first USB serial adapter matching VID/PID (if given)
        and the optional product substring (case-insensitive)

    Args:
        preferred_port: Specific port to use if provided
        vid: USB Vendor ID to match (None to ignore)
        pid: USB Product ID to match (None to ignore)
        product_hint: Substring in USB product string

    Returns:
        Port name (e.g. '/dev/ttyUSB0') or None if not found
    """
    if preferred_port:
        return preferred_port

    # Prefer USB adapters over on-board UARTs
    ports = sorted(
        serial.tools.list_ports.comports(),
        key=lambda p: (
            not (p.device.startswith("/dev/ttyUSB") or p.device.startswith("/dev/ttyACM")),
            p.device,
        ),
    )
    product_hint = (product_hint or "").lower()

    for p in ports:
        if vid is not None and p.vid != vid:
            continue
        if pid is not None and p.pid != pid:
            continue
        if product_hint and product_hint not in (p.product or "").lower():
            continue
        print(f"Matched port: {p.device} ({p.product or 'unknown product'})", flush=True)
        return p.device

    return None
