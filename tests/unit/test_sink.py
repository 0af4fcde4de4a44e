import os

import pytest

from schemas.market_data import Candle
from dataflow.persistence.sink import CsvCandleSink
from tests.helpers.market import at


def _candle(close):
    return Candle(ticker="AAPL", timestamp=at("07:00:00"), timeframe=5,
                  open=100.0, high=110.0, low=90.0, close=close)


def test_sink_writes_rows_in_order(tmp_path):
    sink = CsvCandleSink(tmp_path / "candles_5m.csv", 5)
    sink.open()

    assert sink.write(_candle(101.0))
    assert sink.write(_candle(102.5))
    sink.close()

    assert (tmp_path / "candles_5m.csv").read_text().splitlines() == [
        "AAPL,2024-03-04T07:00:00Z,100,110,90,101",
        "AAPL,2024-03-04T07:00:00Z,100,110,90,102.5",
    ]
    assert sink.candles_written == 2
    assert sink.write_errors == 0


@pytest.mark.skipif(not os.path.exists("/dev/full"), reason="needs /dev/full")
def test_sink_counts_each_failed_write(caplog):
    sink = CsvCandleSink("/dev/full", 5)
    sink.open()

    results = [sink.write(_candle(price)) for price in (101.0, 102.0, 103.0)]
    sink.close()

    assert results == [False, False, False]
    assert sink.write_errors == 3
    assert sink.candles_written == 0
    assert "Unable to write in file /dev/full" in caplog.text


def test_sink_write_requires_open(tmp_path):
    with pytest.raises(RuntimeError):
        CsvCandleSink(tmp_path / "candles_5m.csv", 5).write(_candle(1.0))
