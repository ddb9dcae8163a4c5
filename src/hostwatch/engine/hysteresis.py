"""Edge-triggered hysteresis engine.

Maps a fresh reading and the current monitor state to a new state plus the
notifications for every condition that crossed its threshold this tick.
Nothing is emitted while a condition stays on the same side of its
threshold, and a metric that is unavailable on a tick never changes its
condition.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import structlog

from hostwatch.engine.thresholds import DEFAULT_THRESHOLDS, Thresholds
from hostwatch.models import (
    Condition,
    MonitorState,
    Notification,
    Reading,
    Severity,
    Transition,
)

log = structlog.get_logger()


def fmt_number(value: float) -> str:
    """Render 90.0 as '90' and 86.5 as '86.5'."""
    return f"{value:g}"


@dataclass
class Evaluation:
    """Result of one engine evaluation."""

    state: MonitorState
    notifications: List[Notification] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.notifications)


class HysteresisEngine:
    """State machine deciding which alert transitions happen on a tick.

    Conditions are evaluated in a fixed order (temperature, CPU, power),
    which fixes the order notifications are emitted in when several change
    on the same tick.
    """

    def __init__(self, thresholds: Optional[Thresholds] = None):
        """Initialize the engine.

        Args:
            thresholds: Custom thresholds. Defaults to DEFAULT_THRESHOLDS.
        """
        self._thresholds = thresholds or DEFAULT_THRESHOLDS

    @property
    def thresholds(self) -> Thresholds:
        return self._thresholds

    def evaluate(self, reading: Reading, state: MonitorState) -> Evaluation:
        """Evaluate a reading against the current state.

        The given state is not modified.

        Args:
            reading: Fresh metric reading for this tick
            state: State as of the end of the previous tick

        Returns:
            Evaluation with the new state and any notifications, in order
        """
        notifications: List[Notification] = []

        temp_high, note = self._check_temperature(reading, state.temp_high)
        if note:
            notifications.append(note)

        cpu_high, note = self._check_cpu(reading, state.cpu_high)
        if note:
            notifications.append(note)

        baseline = self._establish_baseline(reading, state.baseline_power)
        power_high, note = self._check_power(reading, state.power_high, baseline)
        if note:
            notifications.append(note)

        new_state = state.model_copy(
            update={
                "temp_high": temp_high,
                "cpu_high": cpu_high,
                "power_high": power_high,
                "baseline_power": baseline,
            }
        )
        return Evaluation(state=new_state, notifications=notifications)

    def _check_temperature(
        self, reading: Reading, active: bool
    ) -> Tuple[bool, Optional[Notification]]:
        temp = reading.temperature_c
        if temp is None:
            return active, None

        threshold = self._thresholds.temperature_c
        if not active and temp > threshold:
            return True, Notification(
                condition=Condition.TEMPERATURE,
                transition=Transition.ENTERED,
                title="HIGH TEMPERATURE",
                body=(
                    f"CPU temperature: **{fmt_number(temp)}°C** "
                    f"(threshold: {fmt_number(threshold)}°C)"
                ),
                severity=Severity.SEVERE,
                value=temp,
                threshold=threshold,
            )
        if active and temp <= threshold:
            return False, Notification(
                condition=Condition.TEMPERATURE,
                transition=Transition.CLEARED,
                title="TEMPERATURE NORMAL",
                body=f"CPU temperature back to normal: {fmt_number(temp)}°C",
                severity=Severity.INFO,
                value=temp,
                threshold=threshold,
            )
        return active, None

    def _check_cpu(
        self, reading: Reading, active: bool
    ) -> Tuple[bool, Optional[Notification]]:
        cpu = reading.cpu_percent
        threshold = self._thresholds.cpu_percent
        if not active and cpu > threshold:
            return True, Notification(
                condition=Condition.CPU,
                transition=Transition.ENTERED,
                title="HIGH CPU",
                body=f"CPU usage: **{cpu}%** (threshold: {threshold}%)",
                severity=Severity.WARNING,
                value=cpu,
                threshold=threshold,
            )
        if active and cpu <= threshold:
            return False, Notification(
                condition=Condition.CPU,
                transition=Transition.CLEARED,
                title="CPU NORMAL",
                body=f"CPU usage back to normal: {cpu}%",
                severity=Severity.INFO,
                value=cpu,
                threshold=threshold,
            )
        return active, None

    def _establish_baseline(
        self, reading: Reading, baseline: Optional[float]
    ) -> Optional[float]:
        """Learn the power baseline from the first usable power reading.

        The baseline is never revised once set, even if the first reading
        was itself a spike.
        """
        if baseline is not None:
            return baseline
        power = reading.power_watts
        if power is None or power <= 0:
            return None
        log.info("baseline_power_set", baseline_watts=power)
        return power

    def _check_power(
        self, reading: Reading, active: bool, baseline: Optional[float]
    ) -> Tuple[bool, Optional[Notification]]:
        power = reading.power_watts
        if power is None or not baseline:
            return active, None

        threshold = self._thresholds.power_increase_percent
        increase = (power - baseline) / baseline * 100
        if not active and increase > threshold:
            return True, Notification(
                condition=Condition.POWER,
                transition=Transition.ENTERED,
                title="HIGH POWER DRAW",
                body=(
                    f"Power draw: **{fmt_number(power)}W** "
                    f"(+{increase:.0f}% from baseline {fmt_number(baseline)}W)"
                ),
                severity=Severity.WARNING,
                value=power,
                threshold=threshold,
            )
        if active and increase <= threshold:
            return False, Notification(
                condition=Condition.POWER,
                transition=Transition.CLEARED,
                title="POWER NORMAL",
                body=f"Power draw back to normal: {fmt_number(power)}W",
                severity=Severity.INFO,
                value=power,
                threshold=threshold,
            )
        return active, None
