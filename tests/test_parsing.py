import datetime as dt

import pytest

from market_summary.errors import RowError
from market_summary.parsing import MarketRecord, iter_raw_rows, parse_float, parse_int, to_record

BATCH_DATE = dt.date(2024, 1, 3)


def test_iter_raw_rows_skips_blank_lines_and_keeps_line_numbers():
    payload = b"a|b\r\n\n  \nc|d|e\n"
    rows = list(iter_raw_rows(payload))
    assert rows == [(["a", "b"], 1), (["c", "d", "e"], 4)]


def test_undecodable_line_does_not_stop_parsing():
    payload = b"ok|1\n\xff\xfe|bad\nok|2\n"
    rows = list(iter_raw_rows(payload))
    assert rows[0] == (["ok", "1"], 1)
    assert isinstance(rows[1][0], RowError)
    assert rows[1][1] == 2
    assert rows[2] == (["ok", "2"], 3)


def test_malformed_quoting_is_a_row_error():
    rows = list(iter_raw_rows(b'x|"unterminated\ny|z\n'))
    assert isinstance(rows[0][0], RowError)
    assert rows[1] == (["y", "z"], 2)


def test_to_record_full_row():
    fields = "01Jan2024|AAA|001|Acme Corp|10|12|9|11|1000|9.5".split("|")
    rec = to_record(fields, BATCH_DATE)
    assert rec == MarketRecord("2024-01-01", "AAA", "001", "Acme Corp", 10.0, 12.0, 9.0, 11.0, 1000, 9.5)


def test_to_record_trims_and_ignores_extra_fields():
    fields = "02JAN2024| BBB | 7 |  Beta  |1|2|3|4| 5 |6|extra|more".split("|")
    rec = to_record(fields, BATCH_DATE)
    assert (rec.date, rec.symbol, rec.code, rec.company_name, rec.volume) == ("2024-01-02", "BBB", "7", "Beta", 5)


def test_too_few_fields():
    with pytest.raises(RowError) as exc:
        to_record(["01Jan2024", "AAA", "001"], BATCH_DATE, line_index=7)
    assert exc.value.line_index == 7
    assert "line 7" in str(exc.value)


def test_bad_numeric_fields_default_to_zero():
    fields = "01Jan2024|AAA|001|Acme Corp|n/a||9|11|1,000|nan".split("|")
    rec = to_record(fields, BATCH_DATE)
    assert rec.symbol == "AAA"
    assert rec.company_name == "Acme Corp"
    assert (rec.open, rec.high, rec.low, rec.close) == (0.0, 0.0, 9.0, 11.0)
    assert rec.volume == 0
    assert rec.previous_close == 0.0


def test_empty_date_inherits_batch_date():
    rec = to_record("|AAA|001|Acme|1|1|1|1|1|1".split("|"), BATCH_DATE)
    assert rec.date == "2024-01-03"


def test_unparsable_date_is_a_row_error():
    with pytest.raises(RowError):
        to_record("2024-01-01|AAA|001|Acme|1|1|1|1|1|1".split("|"), BATCH_DATE)


def test_parse_helpers():
    assert parse_float(" 12.5 ") == 12.5
    assert parse_float("inf") == 0.0
    assert parse_int("42") == 42
    assert parse_int("12.5") == 0
    assert parse_int("-3") == 0


def test_volume_beyond_sqlite_integer_range_is_zero():
    assert parse_int("9223372036854775807") == 2 ** 63 - 1
    assert parse_int("99999999999999999999") == 0
    fields = "01Jan2024|AAA|001|Acme Corp|10|12|9|11|99999999999999999999|9.5".split("|")
    rec = to_record(fields, BATCH_DATE)
    assert rec.volume == 0
    assert rec.symbol == "AAA"
