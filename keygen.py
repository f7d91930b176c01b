"""
Key generation from a captured PUF response.

The response is text up to the first comma, followed by raw response bytes.
Those bytes form a bit stream (MSB first, bytes in order); a position file
selects which bits make up the key.
"""

from pathlib import Path
from typing import Iterable, List, Sequence

from config import ConfigError, SessionConfig, PARAM_SETTLE_DELAY
from log_manager import RunLog
from measurement import run_once
from power import PowerSwitch
from serial_reader import SerialLink


class KeyExtractionError(ValueError):
    """Raised when the positions do not fit the response or the key length."""


def load_positions(path) -> List[int]:
    """
    Read bit positions from a whitespace-separated file of integers.

    Raises:
        ConfigError: if the file is missing or holds a non-integer entry
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="ascii")
    except FileNotFoundError:
        raise ConfigError(f"Position file not found: {path}") from None
    except UnicodeDecodeError as e:
        raise ConfigError(f"Position file {path} is not ASCII: {e}") from None

    positions = []
    for token in text.split():
        if not token.isdigit():
            raise ConfigError(f"Invalid bit position {token!r} in {path}")
        positions.append(int(token))
    return positions


def extract_key(raw: bytes, positions: Iterable[int], key_size: int) -> str:
    """
    Pick the bits at `positions` from the response and return them as '0'/'1'.

    Stops when key_size bits are collected or positions run out.

    Raises:
        KeyExtractionError: no comma in the response, a position that is
            negative, not strictly ascending or past the end of the response,
            or more positions than key_size
    """
    comma = raw.find(b",")
    if comma < 0:
        raise KeyExtractionError("No ',' separator in captured response")
    payload = raw[comma + 1:]
    n_bits = len(payload) * 8

    key = []
    last = -1
    for pos in positions:
        if len(key) >= key_size:
            raise KeyExtractionError(
                f"More positions than the key length of {key_size} bits"
            )
        if pos < 0:
            raise KeyExtractionError(f"Negative bit position {pos}")
        if pos <= last:
            raise KeyExtractionError(
                f"Bit position {pos} is not strictly ascending (previous {last})"
            )
        if pos >= n_bits:
            raise KeyExtractionError(
                f"Bit position {pos} past end of response ({n_bits} bits)"
            )
        byte_index, bit = divmod(pos, 8)
        key.append("1" if (payload[byte_index] >> (7 - bit)) & 1 else "0")
        last = pos
    return "".join(key)


def _check_key_size(key_size: int):
    if key_size <= 0:
        raise ConfigError(f"Invalid key size: {key_size}")


def generate_key(
    config: SessionConfig,
    link,
    power,
    positions: Sequence[int],
    key_size: int,
    log,
    settle_delay: float = PARAM_SETTLE_DELAY,
) -> str:
    """
    Run one measurement and derive a key of key_size bits from it.

    The key size is checked before the device is touched.
    """
    _check_key_size(key_size)

    raw = run_once(config, link, power, log, settle_delay=settle_delay)
    log.log_data(f"Captured {len(raw)} bytes, extracting {key_size}-bit key.")

    key = extract_key(raw, positions, key_size)
    if len(key) != key_size:
        raise KeyExtractionError(
            f"Only {len(key)} positions available for a {key_size}-bit key"
        )
    return key


def gen_key(
    port: str,
    baud: int,
    power_pin,
    sleep: float,
    params: Sequence[str],
    pos_file,
    key_size: int,
    power_cut_high: bool = True,
    log=None,
) -> str:
    """
    Power-cycle the device on `power_pin`, capture one response over `port`
    and return the key selected by `pos_file`.
    """
    config = SessionConfig(
        port=port,
        baud=baud,
        power_pin=power_pin,
        power_off_seconds=sleep,
        params=params,
        max_measures=1,
        power_cut_high=power_cut_high,
    )
    log = log or RunLog()
    # Fail on bad inputs before opening any hardware
    _check_key_size(key_size)
    positions = load_positions(pos_file)

    with SerialLink(config.port, config.baud) as link, PowerSwitch(
        config.power_pin, cut_high=config.power_cut_high, log=log
    ) as power:
        return generate_key(config, link, power, positions, key_size, log)
