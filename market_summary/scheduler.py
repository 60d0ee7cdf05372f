import datetime as dt
import enum
import logging
import os
import time
from typing import Callable, Dict, Optional, Tuple, Union
from zoneinfo import ZoneInfo

from apscheduler.triggers.cron import CronTrigger

from utils.constants import DEFAULT_TIMEZONE, TRIGGER_HOUR, TRIGGER_MINUTE
from utils.helpers import DateHelper
from .data_service import DataService, IngestionResult
from .errors import IngestionFailure, InvalidRangeError

logger = logging.getLogger(__name__)

SCHED_TZ = os.environ.get("SCHED_TZ", DEFAULT_TIMEZONE)

Outcome = Union[IngestionResult, Exception]


class Mode(enum.Enum):
    BACKFILL = "backfill"
    DAILY_WAIT = "daily_wait"


def next_trigger(now: dt.datetime, timezone: str = SCHED_TZ, hour: int = TRIGGER_HOUR,
                 minute: int = TRIGGER_MINUTE) -> dt.datetime:
    """Next hour:minute wall-clock instant in `timezone` at or after the aware datetime `now`."""
    trigger = CronTrigger(hour=hour, minute=minute, timezone=timezone)
    return trigger.get_next_fire_time(None, now)


def _ingest_logged(service: DataService, day: dt.date, context: str) -> Outcome:
    try:
        return service.ingest(day)
    except IngestionFailure as e:
        logger.error(f"{context} failed for {day.isoformat()}: {e}")
        return e
    except Exception as e:
        logger.exception(f"{context} failed unexpectedly for {day.isoformat()}: {e}")
        return e


def backfill(service: DataService, start: dt.date, end: dt.date) -> Dict[dt.date, Outcome]:
    """
    Ingest every calendar date in [start, end], one at a time.
    Per-date failures are logged and the range continues; no retry.
    Raises InvalidRangeError before any download when start > end.
    """
    if start > end:
        raise InvalidRangeError(f"start date {start.isoformat()} is after end date {end.isoformat()}")

    logger.info(f"Starting backfill from {start.isoformat()} to {end.isoformat()}")
    outcomes: Dict[dt.date, Outcome] = {}
    for day in DateHelper.days_between(start, end):
        logger.info(f"Backfilling {day.isoformat()}")
        outcome = _ingest_logged(service, day, "Backfill")
        if isinstance(outcome, IngestionResult):
            logger.info(f"Backfill successful for {day.isoformat()}")
        outcomes[day] = outcome

    succeeded = sum(isinstance(o, IngestionResult) for o in outcomes.values())
    logger.info(f"Backfill completed: {succeeded}/{len(outcomes)} dates ingested")
    return outcomes


class DailyScheduler:
    """
    Two-mode control loop: an optional one-shot Backfill followed by
    DailyWait, which sleeps until the next trigger (23:00 local by default)
    and ingests the current date in the scheduler timezone, forever.
    """

    def __init__(self, service: DataService, timezone: str = SCHED_TZ, hour: int = TRIGGER_HOUR,
                 minute: int = TRIGGER_MINUTE, sleep: Callable[[float], None] = time.sleep,
                 clock: Optional[Callable[[], dt.datetime]] = None):
        self.service = service
        self.timezone = timezone
        self.tz = ZoneInfo(timezone)
        self.hour = hour
        self.minute = minute
        self._sleep = sleep
        self._clock = clock or (lambda: dt.datetime.now(self.tz))

    def now(self) -> dt.datetime:
        return self._clock().astimezone(self.tz)

    def run(self, backfill_range: Optional[Tuple[dt.date, dt.date]] = None, iterations: Optional[int] = None):
        """Run backfill (if a range is given) to completion, then the daily loop.

        `iterations` bounds the number of daily runs; None loops forever.
        """
        mode = Mode.BACKFILL if backfill_range else Mode.DAILY_WAIT
        runs = 0
        while True:
            if mode is Mode.BACKFILL:
                backfill(self.service, *backfill_range)
                mode = Mode.DAILY_WAIT
                continue
            if iterations is not None and runs >= iterations:
                return
            self.run_once()
            runs += 1

    def run_once(self) -> Outcome:
        now = self.now()
        next_run = next_trigger(now, self.timezone, self.hour, self.minute)
        logger.info(f"Next scheduled run at {next_run.isoformat()}")
        self._sleep(max((next_run - now).total_seconds(), 0.0))
        return _ingest_logged(self.service, self.now().date(), "Market data processing")
