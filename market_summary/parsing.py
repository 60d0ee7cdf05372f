import csv
import datetime as dt
import io
import math
from dataclasses import astuple, dataclass
from typing import Iterator, List, Optional, Tuple, Union

from utils.constants import FIELD_DELIMITER, MIN_FIELDS, SOURCE_DATE_FORMAT
from utils.helpers import DateHelper
from .errors import RowError

SQLITE_MAX_INT = 2 ** 63 - 1


@dataclass(frozen=True)
class MarketRecord:
    """One instrument's summary for one trading date."""

    date: str
    symbol: str
    code: str
    company_name: str
    open: float
    high: float
    low: float
    close: float
    volume: int
    previous_close: float

    def as_row(self) -> tuple:
        # Field order matches utils.constants.RECORD_COLUMNS
        return astuple(self)


def parse_float(text: str) -> float:
    try:
        value = float(text.strip())
    except (ValueError, AttributeError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def parse_int(text: str) -> int:
    try:
        value = int(text.strip())
    except (ValueError, AttributeError):
        return 0
    # SQLite INTEGER is signed 64-bit
    if value < 0 or value > SQLITE_MAX_INT:
        return 0
    return value


def iter_raw_rows(payload: bytes, encoding: str = "utf-8") -> Iterator[Tuple[Union[List[str], RowError], int]]:
    """
    Lazily split a pipe-delimited payload into (fields, line_index) pairs.

    Field count is not checked here. Blank lines are skipped. A line that cannot
    be decoded or tokenized is yielded as (RowError, line_index) so the caller
    can count it and move on to the next line.
    """
    for index, raw_line in enumerate(io.BytesIO(payload), start=1):
        line = raw_line.rstrip(b"\r\n")
        if not line.strip():
            continue
        try:
            text = line.decode(encoding)
        except UnicodeDecodeError as e:
            yield RowError(f"undecodable row: {e}", index), index
            continue
        try:
            fields = next(csv.reader([text], delimiter=FIELD_DELIMITER, strict=True))
        except csv.Error as e:
            yield RowError(f"malformed row: {e}", index), index
            continue
        yield fields, index


def to_record(fields: List[str], batch_date: dt.date, line_index: Optional[int] = None) -> MarketRecord:
    """
    Validate one tokenized row and convert it to a MarketRecord.

    The row's own date (e.g. 01Jan2024) wins over the batch date; an empty date
    field inherits the batch date. Numeric fields that do not parse become 0.
    """
    if len(fields) < MIN_FIELDS:
        raise RowError(f"expected at least {MIN_FIELDS} fields, got {len(fields)}", line_index)

    date_text = fields[0].strip()
    if date_text:
        row_date = DateHelper.parse_date_string(date_text, SOURCE_DATE_FORMAT)
        if row_date is None:
            raise RowError(f"unparsable date {date_text!r}", line_index)
    else:
        row_date = batch_date

    return MarketRecord(
        date=DateHelper.to_canonical(row_date),
        symbol=fields[1].strip(),
        code=fields[2].strip(),
        company_name=fields[3].strip(),
        open=parse_float(fields[4]),
        high=parse_float(fields[5]),
        low=parse_float(fields[6]),
        close=parse_float(fields[7]),
        volume=parse_int(fields[8]),
        previous_close=parse_float(fields[9]),
    )
