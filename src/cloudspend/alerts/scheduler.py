"""
Task Scheduler
Runs interval and daily wall-clock tasks against an injectable clock,
in the foreground via run_pending or in the background via APScheduler.
"""

import logging
import threading
import time as time_module
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence

from apscheduler.job import Job
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..core.base.budget import Budget
from ..core.config import SchedulerConfig
from ..core.exceptions import SchedulerError
from ..core.monitoring import MetricsCollector
from .monitor import CostMonitor

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass
class ScheduledTask:
    """A recurring job and its bookkeeping"""
    name: str
    func: Callable[[], Any]
    next_run: datetime
    interval: Optional[timedelta] = None
    at: Optional[time] = None
    last_run: Optional[datetime] = None
    run_count: int = 0
    error_count: int = 0
    last_error: Optional[str] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def is_daily(self) -> bool:
        return self.at is not None

    def is_due(self, now: datetime) -> bool:
        return now >= self.next_run

    def advance(self, now: datetime):
        """Move next_run past ``now``, skipping slots that were missed"""
        if self.is_daily:
            self.next_run = next_daily_run(self.at, now + timedelta(microseconds=1))
            return
        while self.next_run <= now:
            self.next_run += self.interval

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "schedule": self.at.strftime("%H:%M") if self.is_daily else f"every {self.interval}",
            "next_run": self.next_run.isoformat(),
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "run_count": self.run_count,
            "error_count": self.error_count,
        }


def next_daily_run(at: time, now: datetime) -> datetime:
    """Next occurrence of wall-clock time ``at`` at or after ``now``"""
    candidate = now.replace(hour=at.hour, minute=at.minute, second=at.second, microsecond=0)
    if candidate < now:
        candidate += timedelta(days=1)
    return candidate


class TaskScheduler:
    """
    Registry of recurring tasks.

    ``run_pending`` runs every due task once and moves it to its next slot,
    so calling it repeatedly within a slot never re-runs a task. ``start``
    hands the same tasks to an APScheduler ``BackgroundScheduler`` with
    interval and cron triggers. Task exceptions are logged and counted,
    never propagated.
    """

    def __init__(self, clock: Optional[Clock] = None, metrics: Optional[MetricsCollector] = None):
        self.clock = clock or datetime.now
        self.metrics = metrics or MetricsCollector()
        self._tasks: Dict[str, ScheduledTask] = {}
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def tasks(self) -> List[ScheduledTask]:
        return list(self._tasks.values())

    def get_task(self, name: str) -> ScheduledTask:
        if name not in self._tasks:
            raise SchedulerError(f"Unknown task: {name}")
        return self._tasks[name]

    def every(self, name: str, interval: timedelta, func: Callable[[], Any],
              run_immediately: bool = False) -> ScheduledTask:
        """Register a task that runs every ``interval``"""
        if interval <= timedelta(0):
            raise SchedulerError(f"Interval for {name} must be positive")
        now = self.clock()
        return self._add(ScheduledTask(
            name=name,
            func=func,
            interval=interval,
            next_run=now if run_immediately else now + interval,
        ))

    def daily_at(self, name: str, at: time, func: Callable[[], Any]) -> ScheduledTask:
        """Register a task that runs once a day at wall-clock time ``at``"""
        return self._add(ScheduledTask(name=name, func=func, at=at, next_run=next_daily_run(at, self.clock())))

    def cancel(self, name: str):
        self._tasks.pop(name, None)

    def _add(self, task: ScheduledTask) -> ScheduledTask:
        if task.name in self._tasks:
            raise SchedulerError(f"Task {task.name} is already scheduled")
        self._tasks[task.name] = task
        logger.info(f"Scheduled task {task.name}, next run at {task.next_run.isoformat()}")
        return task

    def run_pending(self) -> List[str]:
        """Run all due tasks; returns the names of the tasks that ran"""
        now = self.clock()
        ran = []
        for task in list(self._tasks.values()):
            if not task.is_due(now):
                continue
            if self._execute(task, now):
                ran.append(task.name)
        return ran

    def run_task(self, name: str) -> bool:
        """Run a task immediately, outside its schedule"""
        return self._execute(self.get_task(name), self.clock(), reschedule=False)

    def _fire(self, name: str):
        """Trigger callback: the trigger itself defines the slot"""
        task = self._tasks.get(name)
        if task is None:
            return
        self._execute(task, self.clock(), require_due=False)

    def _execute(self, task: ScheduledTask, now: datetime, reschedule: bool = True,
                 require_due: bool = True) -> bool:
        # an invocation already in progress owns this slot
        if not task._lock.acquire(blocking=False):
            logger.debug(f"Task {task.name} is already running, skipping")
            return False

        try:
            if reschedule:
                # another caller may have run this slot since is_due was checked
                if require_due and not task.is_due(now):
                    return False
                task.advance(now)
            started = time_module.perf_counter()
            try:
                task.func()
            except Exception as e:
                task.error_count += 1
                task.last_error = str(e)
                logger.error(f"Scheduled task {task.name} failed: {e}", extra={"task": task.name})
                self.metrics.increment_counter("scheduler.task.failures", tags={"task": task.name})
            finally:
                task.run_count += 1
                task.last_run = now
                self.metrics.increment_counter("scheduler.task.runs", tags={"task": task.name})
                self.metrics.record_histogram("scheduler.task.duration", time_module.perf_counter() - started,
                                              tags={"task": task.name})
        finally:
            task._lock.release()

        return True

    def _trigger_for(self, task: ScheduledTask):
        if task.is_daily:
            return CronTrigger(hour=task.at.hour, minute=task.at.minute, second=task.at.second)
        return IntervalTrigger(seconds=task.interval.total_seconds())

    def start(self, misfire_grace_seconds: int = 60):
        """Hand every registered task to an APScheduler background scheduler"""
        if self.running:
            return

        self._scheduler = BackgroundScheduler()
        now = self.clock()
        for task in self._tasks.values():
            job_options = {}
            if task.is_due(now):
                job_options["next_run_time"] = datetime.now()
            self._scheduler.add_job(
                self._fire,
                trigger=self._trigger_for(task),
                args=[task.name],
                id=task.name,
                coalesce=True,
                max_instances=1,
                misfire_grace_time=misfire_grace_seconds,
                replace_existing=True,
                **job_options,
            )
        self._scheduler.start()
        logger.info(f"Scheduler started with {len(self._tasks)} tasks")

    def stop(self):
        """Shut down the background scheduler, waiting for running jobs"""
        if not self.running:
            return

        self._scheduler.shutdown(wait=True)
        logger.info("Scheduler stopped")

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def jobs(self) -> List[Job]:
        return self._scheduler.get_jobs() if self._scheduler is not None else []


def schedule_cost_monitoring(scheduler: TaskScheduler, monitor: CostMonitor, budgets: Sequence[Budget],
                             config: Optional[SchedulerConfig] = None) -> List[ScheduledTask]:
    """Register the budget check, spike detection and daily summary jobs"""
    config = config or SchedulerConfig()

    tasks = [
        scheduler.every("budget_check", timedelta(minutes=config.budget_check_interval_minutes),
                        lambda: monitor.check_budget_thresholds(budgets)),
        scheduler.every("spike_detection", timedelta(minutes=config.spike_check_interval_minutes),
                        monitor.detect_cost_spikes),
        scheduler.daily_at("daily_summary", config.daily_summary_time,
                           lambda: monitor.send_daily_summary(budgets)),
    ]

    logger.info("Cost monitoring jobs scheduled:")
    logger.info(f"  - Budget checks: every {config.budget_check_interval_minutes} minutes")
    logger.info(f"  - Spike detection: every {config.spike_check_interval_minutes} minutes")
    logger.info(f"  - Daily summary: {config.daily_summary_time.strftime('%H:%M')}")
    return tasks
