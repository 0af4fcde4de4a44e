from datetime import time

import pytest

from dataflow.errors import SessionStartError, SourceError
from dataflow.ingestion.source import CsvTradeSource, find_session_start, parse_session_time
from tests.helpers.market import at, row


def test_find_session_start_uses_first_trade_date(trades_file):
    path = trades_file([
        row("AAPL", 100, "05:00:00"),
        row("AAPL", 101, "08:00:00", "2024-03-05"),
    ])

    assert find_session_start(path, time(7)) == at("07:00:00")


def test_find_session_start_errors(tmp_path, trades_file):
    with pytest.raises(SourceError):
        find_session_start(tmp_path / "missing.csv", time(7))

    with pytest.raises(SessionStartError):
        find_session_start(trades_file([], name="empty.csv"), time(7))

    with pytest.raises(SessionStartError):
        find_session_start(trades_file([["AAPL", "1", "0", "garbage"]], name="bad.csv"), time(7))


def test_source_skips_blank_lines(tmp_path):
    path = tmp_path / "trades.csv"
    path.write_text("AAPL,1,0,2024-03-04 08:00:00.000000\n\nMSFT,2,0,2024-03-04 08:00:01.000000\n")

    with CsvTradeSource(path) as source:
        rows = list(source)

    assert [r[0] for r in rows] == ["AAPL", "MSFT"]


def test_source_must_be_open(tmp_path):
    with pytest.raises(RuntimeError):
        list(CsvTradeSource(tmp_path / "trades.csv"))


def test_parse_session_time():
    assert parse_session_time("07:00:00.000000") == time(7)
    with pytest.raises(SessionStartError):
        parse_session_time("seven")
