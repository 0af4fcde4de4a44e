"""
Market Data Types

Core market data types flowing through the candle pipeline.
Trades are parsed from CSV rows; candles are rendered back to CSV rows.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from dataflow.errors import ParseError

TRADE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"
CANDLE_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

TICKER_COLUMN = 0
PRICE_COLUMN = 1
TIMESTAMP_COLUMN = 3


def parse_timestamp(value: str) -> datetime:
    """Parse a trade timestamp (``YYYY-MM-DD HH:MM:SS.ffffff``) as UTC"""
    try:
        parsed = datetime.strptime(value.strip(), TRADE_TIME_FORMAT)
    except (AttributeError, ValueError) as e:
        raise ParseError(f"Invalid timestamp {value!r}: {e}", raw_data=value)
    return parsed.replace(tzinfo=timezone.utc)


def parse_price(value: str) -> float:
    """Parse a decimal price string"""
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Invalid price {value!r}: {e}", raw_data=value)


def format_price(value: float) -> str:
    """Render a price in its shortest form, without a trailing ``.0``"""
    text = repr(float(value))
    if text.endswith(".0"):
        return text[:-2]
    return text


@dataclass(frozen=True)
class Trade:
    """Single trade tick from the input feed"""
    ticker: str
    price: float
    timestamp: datetime

    @classmethod
    def from_row(cls, row: Sequence[str]) -> "Trade":
        """
        Create Trade from a CSV row.

        Column 0 is the ticker, column 1 the price, column 3 the timestamp.
        Column 2 carries nothing used for aggregation.

        Raises:
            ParseError: If the row is short or a field is malformed
        """
        if len(row) <= TIMESTAMP_COLUMN:
            raise ParseError(
                f"Expected at least {TIMESTAMP_COLUMN + 1} columns, got {len(row)}",
                raw_data=",".join(row),
            )

        ticker = row[TICKER_COLUMN].strip()
        if not ticker:
            raise ParseError("Empty ticker", raw_data=",".join(row))

        return cls(
            ticker=ticker,
            price=parse_price(row[PRICE_COLUMN]),
            timestamp=parse_timestamp(row[TIMESTAMP_COLUMN]),
        )


@dataclass(frozen=True)
class Candle:
    """OHLC candle for one ticker and one time bucket"""
    ticker: str
    timestamp: datetime  # bucket start
    timeframe: int  # bucket width in minutes
    open: float
    high: float
    low: float
    close: float
    tick_count: int = 0  # Number of trades that formed this candle

    @property
    def key(self) -> tuple:
        """Identity of the candle: (ticker, timeframe, bucket start)"""
        return (self.ticker, self.timeframe, self.timestamp)

    def to_csv_row(self) -> list[str]:
        """Render as ``ticker,timestamp,open,high,low,close``"""
        return [
            self.ticker,
            self.timestamp.astimezone(timezone.utc).strftime(CANDLE_TIME_FORMAT),
            format_price(self.open),
            format_price(self.high),
            format_price(self.low),
            format_price(self.close),
        ]
