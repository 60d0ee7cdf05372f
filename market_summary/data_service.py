import datetime as dt
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Iterator, Optional

from utils.helpers import DateHelper
from .db import init_db, upsert_records
from .downloader import download_and_extract
from .errors import (
    DecodeFailure,
    DecompressError,
    FetchFailure,
    PersistenceError,
    PersistenceFailure,
    RowError,
    TransportError,
)
from .parsing import MarketRecord, iter_raw_rows, to_record

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    date: dt.date
    inserted_count: int
    error_count: int
    file_name: str = ""
    url: str = ""


class DataService:
    """
    Facade for ingesting one day's market summary into the local store.
    - ingest: fetch -> decompress -> ensure schema -> parse + upsert
    Stage errors are re-raised as FetchFailure / DecodeFailure /
    PersistenceFailure carrying the date; row errors are only counted.
    """

    def __init__(self, db_path: Optional[str] = None, session=None):
        self.db_path = db_path
        self.session = session

    def ingest(self, date: dt.date) -> IngestionResult:
        label = DateHelper.to_canonical(date)
        logger.info(f"Processing market data for {label}")

        try:
            payload, file_name, url = download_and_extract(date, session=self.session)
        except TransportError as e:
            raise FetchFailure(date, e) from e
        except DecompressError as e:
            raise DecodeFailure(date, e) from e

        skipped = Counter()
        try:
            init_db(self.db_path)
            inserted, write_errors = upsert_records(self._records(payload, date, skipped), self.db_path)
        except PersistenceError as e:
            raise PersistenceFailure(date, e) from e

        errors = skipped["rows"] + write_errors
        logger.info(f"Data inserted for {label}: records={inserted} errors={errors} file={file_name}")
        return IngestionResult(date, inserted, errors, file_name=file_name, url=url)

    @staticmethod
    def _records(payload: bytes, date: dt.date, skipped: Counter) -> Iterator[MarketRecord]:
        for fields, index in iter_raw_rows(payload):
            if isinstance(fields, RowError):
                skipped["rows"] += 1
                logger.debug(f"Skipping row: {fields}")
                continue
            try:
                yield to_record(fields, date, index)
            except RowError as e:
                skipped["rows"] += 1
                logger.debug(f"Skipping row: {e}")
