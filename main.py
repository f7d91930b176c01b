#!/usr/bin/env python3
"""
Main entry point for the PUF capture harness.
Power-cycles the device, records PUF responses and derives keys from them.
"""

import argparse
import sys

import serial

from config import (
    ConfigError,
    SessionConfig,
    DEFAULT_BAUD,
    DEFAULT_POWER_PIN,
    DEFAULT_POWER_OFF_SECONDS,
    DEFAULT_OUT_PREFIX,
)
from keygen import KeyExtractionError, gen_key
from log_manager import RunLog
from measurement import run
from utils import find_serial_port


def _resolve_port(args) -> str:
    port = find_serial_port(
        args.port,
        None if args.vid == 0 else args.vid,
        None if args.pid == 0 else args.pid,
        args.product,
    )
    if not port:
        raise ConfigError("No serial port found; pass --port explicitly.")
    return port


def cmd_run(args, log):
    """Capture PUF responses until --max-measures is reached (or forever)."""
    config = SessionConfig(
        port=_resolve_port(args),
        baud=args.baud,
        power_pin=args.power_pin,
        power_off_seconds=args.power_off,
        params=args.param,
        max_measures=args.max_measures,
        out_prefix=args.out_prefix,
        power_cut_high=not args.power_cut_low,
    )
    count = run(config, log)
    log.log_data(f"Done, {count} measurements recorded.")


def cmd_genkey(args, log):
    """Capture one PUF response and print the derived key."""
    key = gen_key(
        _resolve_port(args),
        args.baud,
        args.power_pin,
        args.power_off,
        args.param,
        args.positions,
        args.key_size,
        power_cut_high=not args.power_cut_low,
        log=log,
    )
    print(key, flush=True)


def _add_common_args(parser):
    parser.add_argument(
        "--port",
        help="Serial port (e.g., /dev/ttyUSB0). If omitted, auto-detect.",
    )
    parser.add_argument(
        "--baud",
        type=int,
        default=DEFAULT_BAUD,
        help=f"Baud rate. Default: {DEFAULT_BAUD}",
    )
    parser.add_argument(
        "--vid",
        type=lambda x: int(x, 0),
        default=0,
        help="USB Vendor ID to match during auto-detect (accepts 0x). Use 0 to ignore.",
    )
    parser.add_argument(
        "--pid",
        type=lambda x: int(x, 0),
        default=0,
        help="USB Product ID to match during auto-detect. Use 0 to ignore.",
    )
    parser.add_argument(
        "--product",
        default="",
        help="Substring in USB product string (case-insensitive).",
    )
    parser.add_argument(
        "--power-pin",
        type=int,
        default=DEFAULT_POWER_PIN,
        help=f"GPIO (BCM) line switching device power. Default: {DEFAULT_POWER_PIN}",
    )
    parser.add_argument(
        "--power-cut-low",
        action="store_true",
        help="Power is cut by driving the line low (default: high cuts power).",
    )
    parser.add_argument(
        "--power-off",
        type=float,
        default=DEFAULT_POWER_OFF_SECONDS,
        help=f"Seconds the device stays unpowered per cycle. Default: {DEFAULT_POWER_OFF_SECONDS}",
    )
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        help="Parameter sent on each device input request (repeat, in order).",
    )
    parser.add_argument(
        "--log-dir",
        default=None,
        help="Also write the run log under this directory.",
    )


def main(argv=None):
    """Parse arguments and start the harness."""
    parser = argparse.ArgumentParser(
        description="PUF response capture harness with power cycling over GPIO."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run_parser = sub.add_parser("run", help="Capture PUF responses to files.")
    _add_common_args(run_parser)
    run_parser.add_argument(
        "--max-measures",
        type=int,
        default=0,
        help="Stop after this many captures. Default: 0 (run forever)",
    )
    run_parser.add_argument(
        "--out-prefix",
        default=DEFAULT_OUT_PREFIX,
        help=f"Capture files are named <prefix><n>.bin. Default: {DEFAULT_OUT_PREFIX!r}",
    )
    run_parser.set_defaults(func=cmd_run)

    key_parser = sub.add_parser("genkey", help="Capture one response and print a key.")
    _add_common_args(key_parser)
    key_parser.add_argument(
        "--positions",
        required=True,
        help="File of bit positions (whitespace-separated integers).",
    )
    key_parser.add_argument(
        "--key-size",
        type=int,
        required=True,
        help="Number of key bits.",
    )
    key_parser.set_defaults(func=cmd_genkey)

    args = parser.parse_args(argv)

    log = RunLog(args.log_dir)
    try:
        args.func(args, log)
    except KeyboardInterrupt:
        print("Exiting...", flush=True)
    except (ConfigError, KeyExtractionError, serial.SerialException) as e:
        log.log_data(f"Error: {e}")
        return 1
    finally:
        log.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
