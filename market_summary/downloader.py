import datetime as dt
import gzip
import io
import logging
import os
import zipfile
import zlib
from typing import Callable, List, Optional, Tuple

import requests

from utils.constants import DEFAULT_FETCH_TIMEOUT, DEFAULT_HEADERS, DEFAULT_SUMMARY_URL
from utils.helpers import DateHelper
from .errors import CorruptPayloadError, EmptyArchiveError, TransportError, UnsupportedFormatError

logger = logging.getLogger(__name__)

MARKET_SUMMARY_URL = os.environ.get("MARKET_SUMMARY_URL", DEFAULT_SUMMARY_URL)
FETCH_TIMEOUT = float(os.environ.get("FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT))

# RFC 1952 header flags
_FEXTRA = 0x04
_FNAME = 0x08

Decoded = Tuple[bytes, str]


def build_url(date: dt.date, template: Optional[str] = None) -> str:
    return (template or MARKET_SUMMARY_URL).format(date=DateHelper.to_canonical(date))


def fetch_market_summary(date: dt.date, session=None, timeout: float = FETCH_TIMEOUT) -> Tuple[bytes, str]:
    """
    Download the raw summary file for `date`.
    Returns (raw_bytes, url). Raises TransportError on any network failure
    or a status other than 200. No retry is attempted.
    """
    url = build_url(date)
    logger.info(f"Downloading {url}")
    http = session or requests
    try:
        resp = http.get(url, headers=DEFAULT_HEADERS, timeout=timeout)
    except requests.RequestException as e:
        raise TransportError(f"download failed: {e}") from e
    if resp.status_code != 200:
        raise TransportError(f"unexpected status: {resp.status_code} {resp.reason or ''}".rstrip())
    return resp.content, url


def _try_zip(raw: bytes, date: dt.date) -> Optional[Decoded]:
    try:
        archive = zipfile.ZipFile(io.BytesIO(raw))
    except (zipfile.BadZipFile, OSError, ValueError):
        return None
    with archive:
        entries = archive.infolist()
        if not entries:
            raise EmptyArchiveError("no files found in zip")
        first = entries[0]
        try:
            data = archive.read(first)
        except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError, RuntimeError) as e:
            raise CorruptPayloadError(f"failed reading zip entry {first.filename}: {e}") from e
    return data, first.filename


def _gzip_member_name(raw: bytes) -> Optional[str]:
    """Return the FNAME of the first gzip member, "" if absent, None if not gzip."""
    if len(raw) < 10 or raw[:2] != b"\x1f\x8b" or raw[2] != 8:
        return None
    flags = raw[3]
    pos = 10
    if flags & _FEXTRA:
        xlen = int.from_bytes(raw[pos:pos + 2], "little")
        pos += 2 + xlen
    if not flags & _FNAME:
        return ""
    end = raw.find(b"\x00", pos)
    if end == -1:
        return None
    return raw[pos:end].decode("latin-1")


def _try_gzip(raw: bytes, date: dt.date) -> Optional[Decoded]:
    name = _gzip_member_name(raw)
    if name is None:
        return None
    try:
        data = gzip.decompress(raw)
    except (OSError, EOFError, zlib.error) as e:
        raise CorruptPayloadError(f"failed reading gzip stream: {e}") from e
    return data, name or f"{DateHelper.to_canonical(date)}_decompressed"


# Tried in order, first decoder that recognises the payload wins.
DECODERS: List[Tuple[str, Callable[[bytes, dt.date], Optional[Decoded]]]] = [
    ("zip", _try_zip),
    ("gzip", _try_gzip),
]


def decompress(raw: bytes, date: dt.date) -> Decoded:
    """
    Return (payload_bytes, inner_name) for a downloaded blob whose framing is
    not known in advance. A ZIP archive yields its first entry; a GZIP stream
    yields its full contents. Anything else raises UnsupportedFormatError.
    """
    for fmt, decoder in DECODERS:
        result = decoder(raw, date)
        if result is not None:
            logger.info(f"Detected {fmt} payload for {DateHelper.to_canonical(date)}: {result[1]} ({len(result[0])} bytes)")
            return result
    raise UnsupportedFormatError(f"payload of {len(raw)} bytes is neither valid ZIP nor GZIP format")


def download_and_extract(date: dt.date, session=None) -> Tuple[bytes, str, str]:
    """Fetch and decompress the summary for `date`. Returns (payload, inner_name, url)."""
    raw, url = fetch_market_summary(date, session=session)
    logger.info(f"Downloaded {len(raw)} bytes from {url}")
    payload, name = decompress(raw, date)
    return payload, name, url
