"""Exception types raised by the market summary pipeline."""
import datetime as dt
from typing import Optional


class MarketSummaryError(Exception):
    """Base class for all pipeline errors."""


class TransportError(MarketSummaryError):
    """Network failure or non-success HTTP status while downloading."""


class DecompressError(MarketSummaryError):
    """The downloaded payload could not be turned into file bytes."""


class UnsupportedFormatError(DecompressError):
    pass


class EmptyArchiveError(DecompressError):
    pass


class CorruptPayloadError(DecompressError):
    """Format was recognised but its contents could not be read."""


class RowError(MarketSummaryError):
    """A single input row could not be tokenized, converted or written."""

    def __init__(self, message: str, line_index: Optional[int] = None):
        super().__init__(message)
        self.line_index = line_index

    def __str__(self):
        msg = super().__str__()
        if self.line_index is None:
            return msg
        return f"line {self.line_index}: {msg}"


class PersistenceError(MarketSummaryError):
    """The batch transaction could not be opened or committed."""


class InvalidDateError(MarketSummaryError, ValueError):
    pass


class InvalidRangeError(MarketSummaryError, ValueError):
    pass


class IngestionFailure(MarketSummaryError):
    """Ingestion of one date failed; wraps the stage error."""

    stage = "ingestion"

    def __init__(self, date: dt.date, cause: Exception):
        super().__init__(f"{self.stage} failed for {date.isoformat()}: {cause}")
        self.date = date
        self.cause = cause


class FetchFailure(IngestionFailure):
    stage = "fetch"


class DecodeFailure(IngestionFailure):
    stage = "decode"


class PersistenceFailure(IngestionFailure):
    stage = "persistence"
