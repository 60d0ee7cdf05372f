"""General utility helper functions"""

import datetime as dt
from typing import List, Optional

import pandas as pd

from utils.constants import CANONICAL_DATE_FORMAT


class DateHelper:
    """Helper functions for date operations"""

    @staticmethod
    def parse_date_string(date_str, format_str=CANONICAL_DATE_FORMAT) -> Optional[dt.date]:
        """Parse date string to date object, None when it does not match"""
        if not isinstance(date_str, str):
            return None
        try:
            return dt.datetime.strptime(date_str.strip(), format_str).date()
        except ValueError:
            return None

    @staticmethod
    def to_canonical(date: dt.date) -> str:
        """Format a date as YYYY-MM-DD"""
        return date.strftime(CANONICAL_DATE_FORMAT)

    @staticmethod
    def days_between(start: dt.date, end: dt.date) -> List[dt.date]:
        """Every calendar day in [start, end], empty when start > end"""
        return [ts.date() for ts in pd.date_range(start, end, freq="D")]
