"""Interval runner using APScheduler."""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import structlog
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MAX_INSTANCES
from apscheduler.schedulers.blocking import BlockingScheduler

log = structlog.get_logger()

TICK_JOB_ID = "monitor_tick"
COMMAND_JOB_ID = "command_poll"


class SchedulerError(Exception):
    """Raised when scheduler configuration fails."""

    pass


class ScheduledRunner:
    """APScheduler-based service runner.

    Runs the sampling tick on a fixed interval (first run immediately) and,
    optionally, a second job that polls for inbound commands. Each job is
    limited to one running instance, so ticks never overlap.
    """

    def __init__(
        self,
        timezone: str = "UTC",
        misfire_grace_time: Optional[int] = None,
    ) -> None:
        """Initialize scheduler.

        Args:
            timezone: IANA timezone for the scheduler
            misfire_grace_time: Seconds after scheduled time to still run a
                missed job (defaults to one interval)
        """
        self.timezone = timezone
        self.misfire_grace_time = misfire_grace_time
        self._scheduler: Optional[BlockingScheduler] = None

    def _create_scheduler(self) -> BlockingScheduler:
        """Create configured BlockingScheduler."""
        job_defaults: Dict[str, Any] = {
            "coalesce": True,  # Combine missed runs into one
            "max_instances": 1,  # Prevent concurrent runs
        }
        if self.misfire_grace_time is not None:
            job_defaults["misfire_grace_time"] = self.misfire_grace_time
        return BlockingScheduler(
            timezone=self.timezone,
            job_defaults=job_defaults,
        )

    def _add_interval_job(
        self,
        scheduler: BlockingScheduler,
        func: Callable[[], Any],
        seconds: float,
        job_id: str,
        run_immediately: bool = False,
    ) -> None:
        """Add a job that runs every `seconds`.

        Args:
            scheduler: The scheduler to add job to
            func: Function to execute
            seconds: Interval between runs
            job_id: Scheduler job id
            run_immediately: Also run once as soon as the scheduler starts
        """
        if seconds <= 0:
            raise SchedulerError(f"Interval for {job_id} must be positive, got {seconds}")

        kwargs: Dict[str, Any] = {}
        if run_immediately:
            # next_run_time=None would pause the job, so only pass it when set
            kwargs["next_run_time"] = datetime.now(timezone.utc)
        if self.misfire_grace_time is None:
            kwargs["misfire_grace_time"] = max(1, int(seconds))

        scheduler.add_job(func, "interval", seconds=seconds, id=job_id, **kwargs)
        log.info(
            "job_scheduled",
            job_id=job_id,
            interval_seconds=seconds,
            run_immediately=run_immediately,
        )

    def run(
        self,
        tick: Callable[[], Any],
        interval_seconds: float,
        poll: Optional[Callable[[], Any]] = None,
        poll_interval_seconds: Optional[float] = None,
    ) -> None:
        """Start the scheduler and block until shutdown.

        Args:
            tick: Sampling cycle, run immediately and then every interval
            interval_seconds: Sampling interval
            poll: Optional inbound command poller
            poll_interval_seconds: Interval for the poller

        Raises:
            SchedulerError: If an interval is invalid
        """
        if poll is not None and poll_interval_seconds is None:
            raise SchedulerError("poll_interval_seconds is required when poll is given")

        self._scheduler = self._create_scheduler()
        self._add_interval_job(
            self._scheduler, tick, interval_seconds, TICK_JOB_ID, run_immediately=True
        )
        if poll is not None:
            self._add_interval_job(
                self._scheduler, poll, poll_interval_seconds, COMMAND_JOB_ID  # type: ignore[arg-type]
            )

        def on_job_event(event: Any) -> None:
            if event.code == EVENT_JOB_MAX_INSTANCES:
                log.warning("job_skipped", job_id=event.job_id, reason="still running")
            else:
                log.error("job_failed", job_id=event.job_id, error=str(event.exception))

        self._scheduler.add_listener(on_job_event, EVENT_JOB_ERROR | EVENT_JOB_MAX_INSTANCES)

        log.info("scheduler_starting", timezone=self.timezone)
        try:
            self._scheduler.start()
        except KeyboardInterrupt:
            log.info("scheduler_shutdown", reason="keyboard interrupt")

    def shutdown(self, wait: bool = True) -> None:
        """Gracefully shutdown the scheduler."""
        if self._scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            log.info("scheduler_shutdown", reason="explicit shutdown")
