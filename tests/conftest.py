import gzip
import io
import os
import sys
import zipfile

import pytest

# Ensure workspace root is on sys.path so market_summary and utils import as packages
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

SAMPLE_PAYLOAD = (
    b"01Jan2024|AAA|001|Acme Corp|10|12|9|11|1000|9.5\n"
    b"01Jan2024|BBB|002|Beta Industries|20.5|21|19.75|20|250|20.25\n"
)


def zip_bytes(entries):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries:
            zf.writestr(name, data)
    return buf.getvalue()


def gzip_bytes(data, name=None):
    if name is None:
        return gzip.compress(data)
    buf = io.BytesIO()
    with gzip.GzipFile(filename=name, mode="wb", fileobj=buf, mtime=0) as gz:
        gz.write(data)
    return buf.getvalue()


class FakeResponse:
    def __init__(self, content=b"", status_code=200, reason="OK"):
        self.content = content
        self.status_code = status_code
        self.reason = reason


class FakeSession:
    """Stands in for requests: maps URL substrings to responses or exceptions."""

    def __init__(self, routes=None, default=None):
        self.routes = routes or {}
        self.default = default or FakeResponse(status_code=404, reason="Not Found")
        self.calls = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append((url, timeout))
        for key, outcome in self.routes.items():
            if key in url:
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
        return self.default


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "market_data.db")
