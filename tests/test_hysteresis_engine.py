"""Tests for the hysteresis engine."""

from typing import Optional

import pytest

from hostwatch.engine import HysteresisEngine, Thresholds, fmt_number
from hostwatch.models import (
    Condition,
    MemoryUsage,
    MonitorState,
    Reading,
    Severity,
    Transition,
)


def make_reading(
    temp: Optional[float] = 50.0,
    cpu: int = 10,
    power: Optional[float] = None,
) -> Reading:
    """Build a reading with quiet defaults."""
    return Reading(
        temperature_c=temp,
        cpu_percent=cpu,
        memory=MemoryUsage(percent=40, used_mb=3200, total_mb=8000),
        power_watts=power,
    )


@pytest.fixture
def engine() -> HysteresisEngine:
    return HysteresisEngine(Thresholds(temperature_c=85.0, cpu_percent=80, power_increase_percent=30.0))


class TestTemperature:
    """Temperature condition transitions."""

    def test_scenario_enter_hold_clear(self, engine: HysteresisEngine) -> None:
        """90 enters, 86 holds silently, 80 clears."""
        state = MonitorState()

        result = engine.evaluate(make_reading(temp=90), state)
        assert result.state.temp_high is True
        assert len(result.notifications) == 1
        alert = result.notifications[0]
        assert alert.condition == Condition.TEMPERATURE
        assert alert.transition == Transition.ENTERED
        assert "90°C" in alert.body
        assert "85°C" in alert.body

        result = engine.evaluate(make_reading(temp=86), result.state)
        assert result.state.temp_high is True
        assert result.notifications == []

        result = engine.evaluate(make_reading(temp=80), result.state)
        assert result.state.temp_high is False
        assert len(result.notifications) == 1
        cleared = result.notifications[0]
        assert cleared.transition == Transition.CLEARED
        assert "80°C" in cleared.body

    def test_threshold_value_does_not_enter(self, engine: HysteresisEngine) -> None:
        """Exactly 85 is normal."""
        result = engine.evaluate(make_reading(temp=85.0), MonitorState())

        assert result.state.temp_high is False
        assert result.notifications == []

    def test_threshold_value_clears(self, engine: HysteresisEngine) -> None:
        """Exactly 85 clears an active alert."""
        result = engine.evaluate(make_reading(temp=85.0), MonitorState(temp_high=True))

        assert result.state.temp_high is False
        assert result.notifications[0].transition == Transition.CLEARED

    def test_absent_reading_keeps_alert(self, engine: HysteresisEngine) -> None:
        """Missing temperature neither clears nor notifies."""
        result = engine.evaluate(make_reading(temp=None), MonitorState(temp_high=True))

        assert result.state.temp_high is True
        assert result.notifications == []

    def test_absent_reading_does_not_enter(self, engine: HysteresisEngine) -> None:
        result = engine.evaluate(make_reading(temp=None), MonitorState())

        assert result.state.temp_high is False
        assert result.notifications == []

    def test_custom_threshold(self) -> None:
        """Configured threshold is honored and cited."""
        engine = HysteresisEngine(Thresholds(temperature_c=70.0))

        result = engine.evaluate(make_reading(temp=72.5), MonitorState())

        assert result.state.temp_high is True
        assert "72.5°C" in result.notifications[0].body
        assert "70°C" in result.notifications[0].body


class TestCpu:
    """CPU condition transitions."""

    def test_consecutive_high_ticks_alert_once(self, engine: HysteresisEngine) -> None:
        """Edge-triggered: three high ticks produce one notification."""
        state = MonitorState()
        emitted = []
        for cpu in (95, 99, 91):
            result = engine.evaluate(make_reading(cpu=cpu), state)
            emitted.extend(result.notifications)
            state = result.state

        assert len(emitted) == 1
        assert emitted[0].condition == Condition.CPU
        assert emitted[0].severity == Severity.WARNING
        assert "95%" in emitted[0].body
        assert "80%" in emitted[0].body
        assert state.cpu_high is True

    def test_at_threshold_is_normal(self, engine: HysteresisEngine) -> None:
        result = engine.evaluate(make_reading(cpu=80), MonitorState())

        assert result.state.cpu_high is False
        assert result.notifications == []

    def test_clear(self, engine: HysteresisEngine) -> None:
        result = engine.evaluate(make_reading(cpu=40), MonitorState(cpu_high=True))

        assert result.state.cpu_high is False
        assert result.notifications[0].title == "CPU NORMAL"
        assert "40%" in result.notifications[0].body
        assert result.notifications[0].severity == Severity.INFO


class TestPower:
    """Power baseline and relative-increase transitions."""

    def test_scenario_baseline_enter_clear(self, engine: HysteresisEngine) -> None:
        """40W sets baseline, 53W (+32.5%) enters, 50W (+25%) clears."""
        result = engine.evaluate(make_reading(power=40.0), MonitorState())
        assert result.state.baseline_power == 40.0
        assert result.notifications == []

        result = engine.evaluate(make_reading(power=53.0), result.state)
        assert result.state.power_high is True
        assert len(result.notifications) == 1
        alert = result.notifications[0]
        assert alert.condition == Condition.POWER
        assert alert.transition == Transition.ENTERED
        assert "53W" in alert.body
        assert "baseline 40W" in alert.body

        result = engine.evaluate(make_reading(power=50.0), result.state)
        assert result.state.power_high is False
        assert result.notifications[0].transition == Transition.CLEARED
        assert "50W" in result.notifications[0].body

    def test_baseline_logged(
        self, engine: HysteresisEngine, capsys: pytest.CaptureFixture[str]
    ) -> None:
        engine.evaluate(make_reading(power=40.0), MonitorState())

        captured = capsys.readouterr()
        assert "baseline_power_set" in captured.out

    def test_baseline_never_revised(self, engine: HysteresisEngine) -> None:
        """A later, larger reading does not move the baseline."""
        state = engine.evaluate(make_reading(power=40.0), MonitorState()).state
        state = engine.evaluate(make_reading(power=100.0), state).state
        state = engine.evaluate(make_reading(power=20.0), state).state

        assert state.baseline_power == 40.0

    def test_spike_baseline_is_kept(self, engine: HysteresisEngine) -> None:
        """An anomalous first reading still becomes the baseline."""
        state = engine.evaluate(make_reading(power=200.0), MonitorState()).state
        result = engine.evaluate(make_reading(power=60.0), state)

        assert result.state.baseline_power == 200.0
        assert result.notifications == []

    def test_no_baseline_no_transition(self, engine: HysteresisEngine) -> None:
        """Without power readings there is no baseline and no alert."""
        result = engine.evaluate(make_reading(power=None), MonitorState())

        assert result.state.baseline_power is None
        assert result.state.power_high is False

    def test_absent_power_keeps_alert(self, engine: HysteresisEngine) -> None:
        state = MonitorState(power_high=True, baseline_power=40.0)

        result = engine.evaluate(make_reading(power=None), state)

        assert result.state.power_high is True
        assert result.notifications == []

    def test_exactly_threshold_increase_is_normal(self, engine: HysteresisEngine) -> None:
        """+30% exactly does not enter."""
        state = MonitorState(baseline_power=100.0)

        result = engine.evaluate(make_reading(power=130.0), state)

        assert result.state.power_high is False
        assert result.notifications == []

    def test_zero_power_does_not_set_baseline(self, engine: HysteresisEngine) -> None:
        result = engine.evaluate(make_reading(power=0.0), MonitorState())

        assert result.state.baseline_power is None

    def test_zero_baseline_is_ignored(self, engine: HysteresisEngine) -> None:
        """A stored zero baseline cannot express a relative increase."""
        state = MonitorState(baseline_power=0.0)

        result = engine.evaluate(make_reading(power=50.0), state)

        assert result.state.baseline_power == 0.0
        assert result.notifications == []


class TestEvaluation:
    """Cross-condition behavior."""

    def test_notification_order(self, engine: HysteresisEngine) -> None:
        """Temperature, then CPU, then power."""
        state = MonitorState(baseline_power=40.0)

        result = engine.evaluate(make_reading(temp=95, cpu=99, power=80.0), state)

        assert [n.condition for n in result.notifications] == [
            Condition.TEMPERATURE,
            Condition.CPU,
            Condition.POWER,
        ]
        assert result.changed is True

    def test_quiet_reading_with_absent_fields(self, engine: HysteresisEngine) -> None:
        """Absent temperature and power with normal CPU: nothing happens."""
        state = MonitorState(temp_high=True, power_high=True, baseline_power=40.0)

        result = engine.evaluate(make_reading(temp=None, cpu=10, power=None), state)

        assert result.notifications == []
        assert result.state == state

    def test_input_state_not_modified(self, engine: HysteresisEngine) -> None:
        state = MonitorState()

        engine.evaluate(make_reading(temp=99, cpu=99, power=40.0), state)

        assert state == MonitorState()

    def test_colors(self, engine: HysteresisEngine) -> None:
        """Entered alerts use condition colors, clears are green."""
        entered = engine.evaluate(make_reading(temp=99), MonitorState()).notifications[0]
        cleared = engine.evaluate(make_reading(temp=50), MonitorState(temp_high=True)).notifications[0]

        assert entered.color == 0xFF6B6B
        assert cleared.color == 0x51CF66

    def test_default_thresholds(self) -> None:
        engine = HysteresisEngine()

        assert engine.thresholds == Thresholds(85.0, 80, 30.0)


class TestFmtNumber:
    def test_integral_float(self) -> None:
        assert fmt_number(90.0) == "90"

    def test_fraction(self) -> None:
        assert fmt_number(86.5) == "86.5"
