"""
Background Job Scheduler - Runs the shop's fixed daily and monthly tasks.

Jobs:
- upcoming_reminders: every day at 09:00, records trial/delivery reminders
- re_engagement: 1st of every month at 10:00, messages inactive clients

Times are server local time.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, Any, Optional, Callable
from dateutil.relativedelta import relativedelta

from services.messaging_service import DEFAULT_SHOP_NAME

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler = None


class FixedTimeSchedule:
    """Wall-clock schedule: daily at hour:minute, or monthly on ``day`` at hour:minute."""

    def __init__(self, hour: int, minute: int = 0, day: Optional[int] = None):
        self.hour = hour
        self.minute = minute
        self.day = day

    def next_run(self, after: datetime) -> datetime:
        """First scheduled time strictly after ``after``."""
        if self.day is None:
            candidate = after.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
            if candidate <= after:
                candidate += relativedelta(days=1)
            return candidate

        candidate = after + relativedelta(day=self.day, hour=self.hour, minute=self.minute,
                                          second=0, microsecond=0)
        if candidate <= after:
            candidate += relativedelta(months=1, day=self.day)
        return candidate

    def describe(self) -> str:
        if self.day is None:
            return f"daily at {self.hour:02d}:{self.minute:02d}"
        return f"monthly on day {self.day} at {self.hour:02d}:{self.minute:02d}"


class BackgroundScheduler:
    """Simple background scheduler for running tasks at fixed times."""

    def __init__(self, poll_seconds: int = 30, clock: Callable[[], datetime] = datetime.now):
        self.jobs: Dict[str, Dict] = {}
        self.running = False
        self.poll_seconds = poll_seconds
        self._clock = clock
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._stop_event = threading.Event()

    def add_job(self, job_id: str, func: Callable, schedule: FixedTimeSchedule, kwargs: Dict = None):
        """
        Add a job to the scheduler.

        Args:
            job_id: Unique identifier for the job
            func: Function to call
            schedule: When to run it
            kwargs: Keyword arguments to pass to the function
        """
        with self._lock:
            self.jobs[job_id] = {
                'func': func,
                'schedule': schedule,
                'kwargs': kwargs or {},
                'last_run': None,
                'next_run': schedule.next_run(self._clock()),
                'run_count': 0,
                'last_error': None,
                'enabled': True
            }
            logger.info(f"Added job '{job_id}' ({schedule.describe()})")

    def remove_job(self, job_id: str):
        """Remove a job from the scheduler."""
        with self._lock:
            if job_id in self.jobs:
                del self.jobs[job_id]
                logger.info(f"Removed job '{job_id}'")

    def enable_job(self, job_id: str):
        """Enable a job."""
        with self._lock:
            if job_id in self.jobs:
                self.jobs[job_id]['enabled'] = True

    def disable_job(self, job_id: str):
        """Disable a job without removing it."""
        with self._lock:
            if job_id in self.jobs:
                self.jobs[job_id]['enabled'] = False

    def get_job_status(self) -> Dict[str, Any]:
        """Get status of all jobs."""
        with self._lock:
            return {
                job_id: {
                    'schedule': job['schedule'].describe(),
                    'last_run': job['last_run'].isoformat() if job['last_run'] else None,
                    'next_run': job['next_run'].isoformat() if job['next_run'] else None,
                    'run_count': job['run_count'],
                    'last_error': job['last_error'],
                    'enabled': job['enabled']
                }
                for job_id, job in self.jobs.items()
            }

    def start(self):
        """Start the scheduler in a background thread."""
        if self.running:
            logger.warning("Scheduler is already running")
            return

        self.running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name='scheduler', daemon=True)
        self._thread.start()
        logger.info("Background scheduler started")

    def stop(self):
        """Stop the scheduler."""
        self.running = False
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
        logger.info("Background scheduler stopped")

    def _execute(self, job_id: str, job: Dict, now: datetime) -> bool:
        try:
            logger.info(f"Running job '{job_id}'")
            job['func'](**job['kwargs'])
            with self._lock:
                job['last_run'] = now
                job['run_count'] += 1
                job['last_error'] = None
            return True
        except Exception as e:
            logger.error(f"Job '{job_id}' failed: {e}", exc_info=True)
            with self._lock:
                job['last_error'] = str(e)
            return False

    def run_pending(self, now: Optional[datetime] = None):
        """Run every enabled job that is due and schedule its next run."""
        now = now or self._clock()
        with self._lock:
            due = [(job_id, job) for job_id, job in self.jobs.items()
                   if job['enabled'] and job['next_run'] and now >= job['next_run']]

        for job_id, job in due:
            self._execute(job_id, job, now)
            with self._lock:
                job['next_run'] = job['schedule'].next_run(now)

    def _run_loop(self):
        """Main scheduler loop."""
        while self.running and not self._stop_event.is_set():
            self.run_pending()
            self._stop_event.wait(timeout=self.poll_seconds)

    def run_job_now(self, job_id: str) -> bool:
        """Manually trigger a job to run immediately."""
        with self._lock:
            if job_id not in self.jobs:
                return False
            job = self.jobs[job_id]

        self._execute(job_id, job, self._clock())
        return True


def get_scheduler() -> BackgroundScheduler:
    """Get or create the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = BackgroundScheduler()
    return _scheduler


# =============================================================================
# SCHEDULED JOBS
# =============================================================================

def upcoming_reminders_job(shop_name: str = DEFAULT_SHOP_NAME):
    """Record trial and delivery reminders for two days from now."""
    from database.connection import get_db_session
    from services.reminder_service import ReminderService

    with get_db_session() as session:
        result = ReminderService(session, shop_name=shop_name).check_upcoming_reminders()
    return result


def re_engagement_job(shop_name: str = DEFAULT_SHOP_NAME):
    """Queue re-engagement messages for inactive clients."""
    from database.connection import get_db_session
    from services.reminder_service import ReminderService

    with get_db_session() as session:
        contacted = ReminderService(session, shop_name=shop_name).run_re_engagement_campaign()
    return contacted


DEFAULT_JOBS = {
    'upcoming_reminders': (upcoming_reminders_job, FixedTimeSchedule(hour=9, minute=0)),
    're_engagement': (re_engagement_job, FixedTimeSchedule(hour=10, minute=0, day=1)),
}


def register_default_jobs(scheduler: BackgroundScheduler, shop_name: str = DEFAULT_SHOP_NAME):
    """Add the reminder jobs; jobs run off the request thread, so settings are passed in."""
    for job_id, (func, schedule) in DEFAULT_JOBS.items():
        scheduler.add_job(job_id, func, schedule, kwargs={'shop_name': shop_name})


def init_scheduler(start: bool = True, shop_name: str = DEFAULT_SHOP_NAME) -> BackgroundScheduler:
    """Initialize the scheduler with the default jobs."""
    scheduler = get_scheduler()
    register_default_jobs(scheduler, shop_name=shop_name)

    if start:
        scheduler.start()
    logger.info("Scheduler initialized with default jobs")

    return scheduler
