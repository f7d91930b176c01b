"""
Power control of the device under test through a single GPIO line.
"""

import time

from gpiozero import DigitalOutputDevice


class PowerSwitch:
    """
    Cuts and restores device power with one digital output.

    The line polarity depends on the wiring: with cut_high=True driving the
    line high cuts power, otherwise driving it low does.
    """

    def __init__(self, pin, cut_high: bool = True, log=None, pin_factory=None):
        """
        Args:
            pin: GPIO pin (BCM number or gpiozero pin name)
            cut_high: True if a high level cuts device power
            log: Optional RunLog for status messages
            pin_factory: gpiozero pin factory override (tests)
        """
        self.log = log
        # "active" means power is cut; the device starts powered
        self.line = DigitalOutputDevice(
            pin, active_high=cut_high, initial_value=False, pin_factory=pin_factory
        )

    def _say(self, message: str):
        if self.log:
            self.log.log_data(message)

    @property
    def powered(self) -> bool:
        return not self.line.value

    def power_off(self):
        self._say("Cutting off USB Power...")
        self.line.on()

    def power_on(self):
        self._say("Turning on USB Power...")
        self.line.off()

    def cycle(self, off_seconds: float):
        """Cut power for `off_seconds`, then restore it."""
        self.power_off()
        time.sleep(off_seconds)
        self.power_on()

    def close(self):
        self.line.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
