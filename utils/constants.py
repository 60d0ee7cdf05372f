"""Application constants and configuration"""

# Remote source
DEFAULT_SUMMARY_URL = "https://dps.psx.com.pk/download/mkt_summary/{date}.Z"
DEFAULT_FETCH_TIMEOUT = 30  # seconds

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0 Safari/537.36"
    ),
    "Accept": "*/*",
}

# Schedule
DEFAULT_TIMEZONE = "Asia/Karachi"
TRIGGER_HOUR = 23
TRIGGER_MINUTE = 0

# Storage
DEFAULT_DB_FILE = "market_data.db"
TABLE_NAME = "market_data"

# Columns written per record, in statement order
RECORD_COLUMNS = [
    "date",
    "symbol",
    "code",
    "company_name",
    "open",
    "high",
    "low",
    "close",
    "volume",
    "previous_close",
]

# Source file layout
FIELD_DELIMITER = "|"
MIN_FIELDS = 10
SOURCE_DATE_FORMAT = "%d%b%Y"  # 01Jan2024
CANONICAL_DATE_FORMAT = "%Y-%m-%d"
