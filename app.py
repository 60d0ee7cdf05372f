import datetime as dt
import logging
import sys
from zoneinfo import ZoneInfoNotFoundError

import click
from dotenv import load_dotenv
load_dotenv()  # load .env before modules read their environment defaults


from market_summary import db
from market_summary.data_service import DataService
from market_summary.errors import InvalidDateError, InvalidRangeError
from market_summary.scheduler import SCHED_TZ, DailyScheduler, backfill
from utils.constants import CANONICAL_DATE_FORMAT
from utils.helpers import DateHelper

logger = logging.getLogger(__name__)


def parse_iso_date(value: str) -> dt.date:
    parsed = DateHelper.parse_date_string(value, CANONICAL_DATE_FORMAT)
    if parsed is None:
        raise InvalidDateError(f"invalid date {value!r}, expected YYYY-MM-DD")
    return parsed


def _date_option(ctx, param, value):
    if value is None:
        return None
    try:
        return parse_iso_date(value)
    except InvalidDateError as e:
        raise click.BadParameter(str(e)) from e


@click.command()
@click.option("--db", "db_path", default=db.DB_PATH, show_default=True, help="SQLite database path")
@click.option("--backfill-from", callback=_date_option, help="Backfill data from this date (YYYY-MM-DD)")
@click.option("--backfill-to", callback=_date_option, help="Backfill data up to this date (YYYY-MM-DD), default today")
@click.option("--timezone", default=SCHED_TZ, show_default=True, help="Timezone of the daily 23:00 run")
@click.option("--no-daily", is_flag=True, help="Exit after the backfill instead of entering the daily loop")
@click.option("--log-level", default="INFO", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
def main(db_path, backfill_from, backfill_to, timezone, no_daily, log_level):
    """Download the daily market summary and keep a local SQLite copy."""
    logging.basicConfig(level=log_level.upper(), format="%(asctime)s %(levelname)s - %(name)s - %(message)s")

    backfill_range = None
    if backfill_from is not None:
        backfill_range = (backfill_from, backfill_to or dt.date.today())
    elif backfill_to is not None:
        logger.warning("--backfill-to has no effect without --backfill-from")

    service = DataService(db_path=db_path)
    # built up front so a bad timezone fails at startup, even with --no-daily
    try:
        scheduler = DailyScheduler(service, timezone=timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.error(f"Failed to load timezone {timezone!r}: {e}")
        sys.exit(1)

    try:
        if no_daily:
            if backfill_range:
                backfill(service, *backfill_range)
            else:
                logger.info("Nothing to do: --no-daily given without --backfill-from")
            return
        scheduler.run(backfill_range=backfill_range)
    except InvalidRangeError as e:
        logger.error(f"Invalid date range: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
