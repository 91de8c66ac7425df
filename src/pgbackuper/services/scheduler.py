"""Cron-driven scan dispatcher for postgres-backuper."""

import threading
from datetime import datetime
from typing import Callable, Optional

from croniter import croniter

from pgbackuper.errors import ScheduleError
from pgbackuper.errors_catalog import actionable_error


class ScheduleService:
    """Runs a job on a cron schedule from a single dispatcher thread.

    The job runs inline on the dispatcher thread, so runs never overlap. Fire
    times missed while a run is in progress are dropped, and the next one is
    computed from the moment the run finished.
    """

    def __init__(
        self,
        logger,
        schedule: str,
        job: Callable[[], object],
        clock: Callable[[], datetime] = datetime.now,
        croniter_cls=croniter,
    ):
        if not croniter_cls.is_valid(schedule):
            raise ScheduleError(actionable_error("invalid_schedule", schedule=schedule))

        self.logger = logger
        self.schedule = schedule
        self.job = job
        self.clock = clock
        self.croniter_cls = croniter_cls
        self._stop_event = threading.Event()
        self._job_running = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def job_in_flight(self) -> bool:
        return self._job_running.is_set()

    def next_fire_time(self, after: datetime) -> datetime:
        return self.croniter_cls(self.schedule, after).get_next(datetime)

    def start(self):
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._dispatch_loop,
            name="backup-scheduler",
            daemon=True,
        )
        self._thread.start()
        self.logger.debug("Scheduler started with schedule %s", self.schedule)

    def stop(self, wait: bool = True, timeout: Optional[float] = None):
        self._stop_event.set()
        if wait and self._thread is not None:
            if self.job_in_flight:
                self.logger.info("Waiting for the running scan to finish...")
            self._thread.join(timeout)

    def _dispatch_loop(self):
        while not self._stop_event.is_set():
            now = self.clock()
            fire_at = self.next_fire_time(now)
            delay = max(0.0, (fire_at - now).total_seconds())
            self.logger.info("Next scan scheduled at %s", fire_at.isoformat(sep=" ", timespec="seconds"))

            if self._stop_event.wait(delay):
                break

            self._run_job()

    def _run_job(self):
        self._job_running.set()
        try:
            self.job()
        except Exception:
            self.logger.exception("Scheduled scan failed")
        finally:
            self._job_running.clear()
