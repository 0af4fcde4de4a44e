from datetime import timedelta

import pytest

from dataflow.errors import ParseError
from schemas.market_data import Candle, Trade, format_price
from schemas.session import SessionWindow
from tests.helpers.market import at, row, session


def test_trade_from_row_parses_fields():
    trade = Trade.from_row(["AAPL", "101.25", "ignored", "2024-03-04 07:00:01.500000"])

    assert trade.ticker == "AAPL"
    assert trade.price == 101.25
    assert trade.timestamp == at("07:00:01.500000")
    assert trade.timestamp.tzinfo is not None


@pytest.mark.parametrize(
    "bad_row",
    [
        ["AAPL", "abc", "0", "2024-03-04 07:00:01.000000"],
        ["AAPL", "100", "0", "2024-03-04T07:00:01"],
        ["AAPL", "100", "0"],
        ["", "100", "0", "2024-03-04 07:00:01.000000"],
    ],
)
def test_trade_from_row_rejects_malformed_rows(bad_row):
    with pytest.raises(ParseError):
        Trade.from_row(bad_row)


def test_trade_is_immutable():
    trade = Trade.from_row(row("AAPL", 100, "07:00:01"))
    with pytest.raises(AttributeError):
        trade.price = 1.0


def test_candle_csv_row_format():
    candle = Candle(
        ticker="AAPL",
        timestamp=at("07:05:00"),
        timeframe=5,
        open=100.0,
        high=105.5,
        low=99.0,
        close=102.0,
    )

    assert candle.to_csv_row() == ["AAPL", "2024-03-04T07:05:00Z", "100", "105.5", "99", "102"]
    assert candle.key == ("AAPL", 5, at("07:05:00"))


def test_format_price_keeps_precision():
    assert format_price(100.0) == "100"
    assert format_price(0.1) == "0.1"
    assert format_price(123.456789) == "123.456789"


def test_session_window_boundaries_are_exclusive():
    window = session()

    assert window.end == at("03:00:00", "2024-03-05")
    assert not window.contains(at("07:00:00"))
    assert window.contains(at("07:00:00.000001"))
    assert not window.contains(window.end)


def test_session_window_advances_whole_days():
    window = session()

    assert window.advance_to(at("02:00:00", "2024-03-05")) == 0
    assert window.advance_to(at("08:00:00", "2024-03-05")) == 1
    assert window.start == at("07:00:00", "2024-03-05")

    assert window.advance_to(at("08:00:00", "2024-03-08")) == 3
    assert window.start == at("07:00:00", "2024-03-08")


def test_session_window_rejects_bad_length():
    with pytest.raises(ValueError):
        SessionWindow(start=at("07:00:00"), length=timedelta(0))
    with pytest.raises(ValueError):
        SessionWindow(start=at("07:00:00"), length=timedelta(hours=25))
