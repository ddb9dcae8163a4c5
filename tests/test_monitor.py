"""Tests for the monitor tick and status paths."""

import json
import threading
from pathlib import Path
from types import SimpleNamespace
from typing import List, Optional
from unittest.mock import MagicMock, patch

import pytest

from hostwatch.engine import HysteresisEngine
from hostwatch.metrics import CpuSampler, HostMetricSource, MetricReadError
from hostwatch.models import MemoryUsage, MonitorState, Notification, Reading
from hostwatch.scheduler import Monitor
from hostwatch.state import StateStore


def make_reading(temp: Optional[float] = 50.0, cpu: int = 10, power: Optional[float] = 40.0) -> Reading:
    return Reading(
        temperature_c=temp,
        cpu_percent=cpu,
        memory=MemoryUsage(percent=30, used_mb=2400, total_mb=8000),
        power_watts=power,
    )


class ScriptedSource:
    """Returns queued readings, raising any queued exception."""

    def __init__(self, *items: object) -> None:
        self.items = list(items)
        self.advances: List[bool] = []

    def read(self, advance: bool = True) -> Reading:
        self.advances.append(advance)
        item = self.items.pop(0)
        if isinstance(item, Exception):
            raise item
        return item  # type: ignore[return-value]


class RecordingNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.notifications: List[Notification] = []
        self.reports: List[Reading] = []
        self.commands: List[str] = []
        self.fail = fail

    def send_alert(self, title: str, body: str, color: int) -> bool:
        return True

    def send_notification(self, notification: Notification) -> bool:
        if self.fail:
            raise RuntimeError("transport exploded")
        self.notifications.append(notification)
        return True

    def send_status_report(self, reading: Reading) -> bool:
        self.reports.append(reading)
        return True

    def send_text(self, text: str) -> bool:
        return True

    def poll_commands(self) -> List[str]:
        commands, self.commands = self.commands, []
        return commands


@pytest.fixture(autouse=True)
def health_file(tmp_path: Path):
    """Keep health writes out of /tmp."""
    path = tmp_path / "health"
    with patch("hostwatch.health.HEALTH_FILE", path):
        yield path


@pytest.fixture
def store(tmp_path: Path) -> StateStore:
    return StateStore(tmp_path / "state.json")


def make_monitor(source: object, notifier: RecordingNotifier, store: StateStore) -> Monitor:
    monitor = Monitor(source=source, notifier=notifier, store=store, engine=HysteresisEngine())  # type: ignore[arg-type]
    monitor.start()
    return monitor


class TestTick:
    """One sampling cycle."""

    def test_tick_evaluates_notifies_and_saves(self, store: StateStore) -> None:
        notifier = RecordingNotifier()
        monitor = make_monitor(ScriptedSource(make_reading(temp=91.0)), notifier, store)

        evaluation = monitor.tick()

        assert evaluation is not None
        assert monitor.state.temp_high is True
        assert monitor.state.baseline_power == 40.0
        assert [n.title for n in notifier.notifications] == ["HIGH TEMPERATURE"]
        assert store.load() == monitor.state

    def test_tick_logs_summary_without_transition(
        self, store: StateStore, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monitor = make_monitor(ScriptedSource(make_reading()), RecordingNotifier(), store)

        monitor.tick()

        out = capsys.readouterr().out
        assert "CPU: 10%" in out

    def test_start_loads_persisted_state(self, store: StateStore) -> None:
        store.save(MonitorState(cpu_high=True, baseline_power=50.0))
        notifier = RecordingNotifier()

        monitor = make_monitor(ScriptedSource(make_reading(cpu=95)), notifier, store)
        monitor.tick()

        # Already alerted before the restart: no repeat
        assert notifier.notifications == []
        assert monitor.state.baseline_power == 50.0

    def test_source_failure_keeps_state(
        self, store: StateStore, health_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        notifier = RecordingNotifier()
        source = ScriptedSource(
            make_reading(cpu=95),
            MetricReadError("sensor gone"),
            make_reading(cpu=20),
        )
        monitor = make_monitor(source, notifier, store)

        monitor.tick()
        before = monitor.state
        assert monitor.tick() is None

        assert monitor.state == before
        assert store.load() == before
        assert "tick_failed" in capsys.readouterr().out
        assert json.loads(health_file.read_text())["status"] == "unhealthy"

        # Loop continues on the next tick
        monitor.tick()
        assert monitor.state.cpu_high is False
        assert [n.title for n in notifier.notifications] == ["HIGH CPU", "CPU NORMAL"]

    def test_notifier_failure_still_saves(
        self, store: StateStore, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monitor = make_monitor(
            ScriptedSource(make_reading(cpu=99)), RecordingNotifier(fail=True), store
        )

        monitor.tick()

        assert store.load().cpu_high is True
        assert "notification_failed" in capsys.readouterr().out

    def test_healthy_after_tick(self, store: StateStore, health_file: Path) -> None:
        monitor = make_monitor(ScriptedSource(make_reading()), RecordingNotifier(), store)

        monitor.tick()

        assert json.loads(health_file.read_text())["status"] == "healthy"

    def test_overlapping_tick_skipped(self, store: StateStore) -> None:
        monitor = make_monitor(ScriptedSource(make_reading()), RecordingNotifier(), store)
        monitor._tick_lock.acquire()
        try:
            assert monitor.tick() is None
        finally:
            monitor._tick_lock.release()

    def test_metric_timeout(self, store: StateStore) -> None:
        release = threading.Event()

        class HangingSource:
            def read(self, advance: bool = True) -> Reading:
                release.wait(5)
                return make_reading()

        monitor = Monitor(
            source=HangingSource(),  # type: ignore[arg-type]
            notifier=RecordingNotifier(),
            store=store,
            metric_timeout=0.05,
        )
        try:
            with pytest.raises(MetricReadError, match="timed out"):
                monitor.read_metrics()
            assert monitor.tick() is None
        finally:
            release.set()
            monitor.close()

    def test_tick_recovers_after_hung_read(self, store: StateStore) -> None:
        """A read stuck past the timeout does not block later ticks."""
        release = threading.Event()
        calls: List[int] = []

        class StallsOnceSource:
            def read(self, advance: bool = True) -> Reading:
                calls.append(1)
                if len(calls) == 1:
                    release.wait(5)
                return make_reading(cpu=95)

        notifier = RecordingNotifier()
        monitor = Monitor(
            source=StallsOnceSource(),  # type: ignore[arg-type]
            notifier=notifier,
            store=store,
            metric_timeout=0.2,
        )
        try:
            assert monitor.tick() is None
            for _ in range(3):
                assert monitor.tick() is not None
            assert len(calls) == 4
            assert [n.title for n in notifier.notifications] == ["HIGH CPU"]
        finally:
            release.set()
            monitor.close()


class TestStatus:
    """On-demand status reports."""

    def test_status_sends_report_without_state_change(self, store: StateStore) -> None:
        notifier = RecordingNotifier()
        monitor = make_monitor(ScriptedSource(make_reading(temp=99, cpu=99)), notifier, store)

        assert monitor.status() is True

        assert len(notifier.reports) == 1
        assert notifier.notifications == []
        assert monitor.state == MonitorState()
        assert not store.state_file.exists()

    def test_status_read_does_not_advance(self, store: StateStore) -> None:
        source = ScriptedSource(make_reading(), make_reading())
        monitor = make_monitor(source, RecordingNotifier(), store)

        monitor.status()
        monitor.tick()

        assert source.advances == [False, True]

    def test_status_between_ticks_keeps_cpu_interval(
        self, store: StateStore, tmp_path: Path
    ) -> None:
        """A status query right before a tick does not hide a CPU spike."""
        cpu_times = [
            SimpleNamespace(user=100.0, idle=100.0),
            SimpleNamespace(user=125.0, idle=104.0),  # status query
            SimpleNamespace(user=125.0, idle=105.0),
        ]
        source = HostMetricSource(
            thermal_zone_path=str(tmp_path / "no-zone"),
            cpu_sampler=CpuSampler(times_func=lambda: cpu_times.pop(0)),
        )
        notifier = RecordingNotifier()
        monitor = make_monitor(source, notifier, store)
        try:
            monitor.tick()
            monitor.status()
            evaluation = monitor.tick()
        finally:
            monitor.close()

        assert evaluation is not None
        assert [n.title for n in evaluation.notifications] == ["HIGH CPU"]
        assert evaluation.notifications[0].value == 84
        assert notifier.reports[0].cpu_percent == 87

    def test_status_command_from_poll(self, store: StateStore) -> None:
        notifier = RecordingNotifier()
        notifier.commands = ["status"]
        monitor = make_monitor(ScriptedSource(make_reading()), notifier, store)

        assert monitor.poll_commands() == 1
        assert len(notifier.reports) == 1

    def test_unknown_command(self, store: StateStore) -> None:
        monitor = make_monitor(ScriptedSource(), RecordingNotifier(), store)

        assert monitor.handle_command("reboot") is False

    def test_status_read_failure(self, store: StateStore) -> None:
        notifier = RecordingNotifier()
        monitor = make_monitor(ScriptedSource(MetricReadError("boom")), notifier, store)

        assert monitor.status() is False
        assert notifier.reports == []

    def test_poll_failure_is_logged(
        self, store: StateStore, capsys: pytest.CaptureFixture[str]
    ) -> None:
        from hostwatch.notify import DeliveryError

        notifier = MagicMock()
        notifier.poll_commands.side_effect = DeliveryError("forbidden", status_code=403)
        monitor = Monitor(source=ScriptedSource(), notifier=notifier, store=store)  # type: ignore[arg-type]

        assert monitor.poll_commands() == 0
        assert "command_poll_failed" in capsys.readouterr().out
