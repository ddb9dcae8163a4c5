"""Sampling tick and on-demand status for one host.

The Monitor is the sole owner of the in-memory MonitorState. Each tick
reads metrics, evaluates them, forwards notifications, persists the new
state and logs a summary. Status queries read fresh metrics and never
touch the state.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Optional

import httpx
import structlog

from hostwatch.engine import Evaluation, HysteresisEngine
from hostwatch.health import HealthStatus, update_health_status
from hostwatch.metrics import MetricReadError, MetricSource
from hostwatch.models import MonitorState, Reading
from hostwatch.notify import STATUS_COMMAND, Notifier, NotifierError
from hostwatch.state import StateStore

log = structlog.get_logger()


class Monitor:
    """Drives MetricSource -> HysteresisEngine -> Notifier -> StateStore."""

    def __init__(
        self,
        source: MetricSource,
        notifier: Notifier,
        store: StateStore,
        engine: Optional[HysteresisEngine] = None,
        metric_timeout: float = 10.0,
    ) -> None:
        """Initialize the monitor.

        Args:
            source: Metric source probed for this host
            notifier: Delivery channel to the recipient
            store: Durable state record
            engine: Hysteresis engine, default thresholds if not given
            metric_timeout: Seconds to wait for a metric reading
        """
        self.source = source
        self.notifier = notifier
        self.store = store
        self.engine = engine or HysteresisEngine()
        self.metric_timeout = metric_timeout
        self._state = MonitorState.initial()
        self._tick_lock = threading.Lock()
        self._executor_lock = threading.Lock()
        self._executor = self._new_executor()

    @staticmethod
    def _new_executor() -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=1, thread_name_prefix="metric-read")

    @property
    def state(self) -> MonitorState:
        return self._state

    def start(self) -> MonitorState:
        """Load the persisted state. Call once before the first tick."""
        self._state = self.store.load()
        log.info(
            "monitor_started",
            temp_high=self._state.temp_high,
            cpu_high=self._state.cpu_high,
            power_high=self._state.power_high,
            baseline_power=self._state.baseline_power,
        )
        return self._state

    def close(self) -> None:
        with self._executor_lock:
            self._executor.shutdown(wait=False)

    def read_metrics(self, advance: bool = True) -> Reading:
        """Take a reading, bounded by metric_timeout.

        A read that times out keeps running in the background; its worker is
        abandoned and later reads get a fresh one.

        Args:
            advance: Passed to the source; False for status queries

        Raises:
            MetricReadError: If the source fails or does not answer in time
        """
        with self._executor_lock:
            executor = self._executor
            future = executor.submit(self.source.read, advance)
        try:
            return future.result(timeout=self.metric_timeout)
        except FuturesTimeoutError:
            future.cancel()
            with self._executor_lock:
                if self._executor is executor:
                    executor.shutdown(wait=False)
                    self._executor = self._new_executor()
            raise MetricReadError(f"Metric read timed out after {self.metric_timeout}s")

    def tick(self) -> Optional[Evaluation]:
        """Run one sampling cycle.

        Never raises. If the reading or evaluation fails, the previous state
        is kept and nothing is persisted.

        Returns:
            The evaluation, or None if the tick failed or was skipped
        """
        if not self._tick_lock.acquire(blocking=False):
            log.warning("tick_skipped", reason="previous tick still running")
            return None
        try:
            return self._run_tick()
        finally:
            self._tick_lock.release()

    def _run_tick(self) -> Optional[Evaluation]:
        try:
            reading = self.read_metrics()
            evaluation = self.engine.evaluate(reading, self._state)
        except Exception as e:
            log.error("tick_failed", error=str(e), error_type=type(e).__name__)
            update_health_status(HealthStatus.UNHEALTHY, {"error": str(e)})
            return None

        self._state = evaluation.state

        for notification in evaluation.notifications:
            try:
                self.notifier.send_notification(notification)
            except Exception as e:
                log.error(
                    "notification_failed",
                    title=notification.title,
                    error=str(e),
                )

        self.store.save(self._state)

        log.info(
            "check",
            summary=reading.summary(),
            temperature_c=reading.temperature_c,
            cpu_percent=reading.cpu_percent,
            memory_percent=reading.memory.percent,
            power_watts=reading.power_watts,
            transitions=len(evaluation.notifications),
        )
        update_health_status(
            HealthStatus.HEALTHY,
            {"last_check": reading.taken_at.isoformat(), "cpu_percent": reading.cpu_percent},
        )
        return evaluation

    def status(self) -> bool:
        """Send a status report built from a fresh reading.

        Bypasses the engine: no thresholds, no state change. The reading
        does not start a new CPU or energy interval, so the next tick still
        measures from the previous tick.

        Returns:
            True if the report was delivered
        """
        try:
            reading = self.read_metrics(advance=False)
        except Exception as e:
            log.error("status_failed", error=str(e))
            return False
        return self.notifier.send_status_report(reading)

    def handle_command(self, command: str) -> bool:
        if command == STATUS_COMMAND:
            return self.status()
        log.warning("unknown_command", command=command)
        return False

    def poll_commands(self) -> int:
        """Fetch and handle inbound commands. Never raises.

        Returns:
            Number of commands handled
        """
        try:
            commands = self.notifier.poll_commands()
        except (NotifierError, httpx.HTTPError, KeyError, ValueError) as e:
            log.warning("command_poll_failed", error=str(e))
            return 0

        for command in commands:
            self.handle_command(command)
        return len(commands)
