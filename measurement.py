"""
Measurement cycles: power-cycle the device, then run one session against a
fresh output sink, until enough captures have been collected.
"""

from config import PARAM_SETTLE_DELAY
from power import PowerSwitch
from runner import SessionRunner
from serial_reader import SerialLink
from sinks import FileSink, MemorySink
from utils import output_name


def run_forever(config, link, power, log, settle_delay: float = PARAM_SETTLE_DELAY) -> int:
    """
    Repeat measurement cycles until the measurement limit is reached
    (forever if config.max_measures is 0).

    Each capture goes to <out_prefix><count>.bin. A cycle aborted by a
    device panic reuses the same file name on the next attempt.

    Returns:
        Number of completed captures
    """
    runner = SessionRunner(link, config, log, settle_delay=settle_delay)
    running = True
    while running:
        sink = FileSink(output_name(config.out_prefix, runner.count))
        try:
            power.cycle(config.power_off_seconds)
            running = runner.loop(sink)
        finally:
            sink.finalize()
    return runner.count


def run_once(config, link, power, log, settle_delay: float = PARAM_SETTLE_DELAY) -> bytes:
    """
    Power-cycle the device until one capture completes and return its bytes.

    Aborted attempts are discarded; every attempt starts with an empty sink.
    """
    runner = SessionRunner(link, config, log, settle_delay=settle_delay)
    sink = None
    while runner.count == 0:
        sink = MemorySink()
        power.cycle(config.power_off_seconds)
        runner.loop(sink)
    return sink.getvalue()


def run(config, log):
    """Open the serial port and power line from `config` and capture forever."""
    with SerialLink(config.port, config.baud) as link, PowerSwitch(
        config.power_pin, cut_high=config.power_cut_high, log=log
    ) as power:
        return run_forever(config, link, power, log)
