import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Optional, Tuple

from utils.constants import DEFAULT_DB_FILE, RECORD_COLUMNS, TABLE_NAME
from .errors import PersistenceError
from .parsing import MarketRecord

logger = logging.getLogger(__name__)

DB_PATH = os.environ.get("MARKET_DB_PATH", DEFAULT_DB_FILE)

UPSERT_SQL = (
    f"INSERT OR REPLACE INTO {TABLE_NAME} ({','.join(RECORD_COLUMNS)}) "
    f"VALUES ({','.join(['?'] * len(RECORD_COLUMNS))})"
)


@contextmanager
def get_conn(db_path: Optional[str] = None):
    """Autocommit-mode connection; transactions are opened explicitly."""
    path = db_path or DB_PATH
    conn = sqlite3.connect(path, isolation_level=None)
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: Optional[str] = None):
    path = db_path or DB_PATH
    try:
        parent = os.path.dirname(path)
        if parent:
            Path(parent).mkdir(parents=True, exist_ok=True)
        with get_conn(path) as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    date TEXT,
                    symbol TEXT,
                    code TEXT,
                    company_name TEXT,
                    open REAL,
                    high REAL,
                    low REAL,
                    close REAL,
                    volume INTEGER,
                    previous_close REAL,
                    UNIQUE(date, symbol)
                )
                """
            )
    except (sqlite3.Error, OSError) as e:
        raise PersistenceError(f"failed creating table in {path}: {e}") from e


def upsert_records(records: Iterable[MarketRecord], db_path: Optional[str] = None) -> Tuple[int, int]:
    """
    Write one batch inside a single transaction with insert-or-replace on
    (date, symbol). Returns (inserted, errors).

    A row whose statement fails is counted and skipped; the transaction carries
    on. If the transaction cannot be opened or committed, or SQLite rolls it
    back on its own after a row failure, PersistenceError is raised and nothing
    from the batch is kept.
    """
    path = db_path or DB_PATH
    inserted = 0
    errors = 0
    try:
        with get_conn(path) as conn:
            try:
                conn.execute("BEGIN")
                cur = conn.cursor()
                for rec in records:
                    try:
                        cur.execute(UPSERT_SQL, rec.as_row())
                    except (sqlite3.Error, OverflowError) as e:
                        if not conn.in_transaction:
                            raise PersistenceError(f"transaction aborted mid-batch at {rec.date} {rec.symbol}: {e}") from e
                        errors += 1
                        logger.debug(f"Row write failed for {rec.date} {rec.symbol}: {e}")
                        continue
                    inserted += 1
                conn.execute("COMMIT")
            finally:
                if conn.in_transaction:
                    conn.rollback()
    except sqlite3.Error as e:
        raise PersistenceError(f"transaction failed for {path}: {e}") from e
    return inserted, errors


def fetch_df(query: str, params: tuple = (), db_path: Optional[str] = None):
    import pandas as pd
    with get_conn(db_path) as conn:
        return pd.read_sql_query(query, conn, params=params)


def count_rows(date: Optional[str] = None, db_path: Optional[str] = None) -> int:
    with get_conn(db_path) as conn:
        if date is None:
            row = conn.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}").fetchone()
        else:
            row = conn.execute(f"SELECT COUNT(*) FROM {TABLE_NAME} WHERE date=?", (date,)).fetchone()
    return int(row[0])
