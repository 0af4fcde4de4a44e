"""
CSV Trade Source

Opens the trade file and yields raw CSV rows. Also discovers the first
session start from the calendar date of the first trade.
"""

import csv
import logging
from datetime import datetime, time, timezone
from pathlib import Path
from typing import Iterator, List, Optional, TextIO, Union

from dataflow.errors import ParseError, SessionStartError, SourceError
from schemas.market_data import TIMESTAMP_COLUMN, parse_timestamp

logger = logging.getLogger(__name__)

SESSION_TIME_FORMAT = "%H:%M:%S.%f"


def parse_session_time(value: str) -> time:
    """Parse a session start-of-day such as ``07:00:00.000000``"""
    try:
        return datetime.strptime(value, SESSION_TIME_FORMAT).time()
    except ValueError as e:
        raise SessionStartError(f"Invalid session start time {value!r}: {e}")


def find_session_start(path: Union[str, Path], session_start: time) -> datetime:
    """
    Find the first session start from the first trade in the file.

    Args:
        path: Trade CSV path
        session_start: Session start-of-day

    Returns:
        UTC datetime combining the first trade's date with ``session_start``

    Raises:
        SourceError: If the file cannot be opened
        SessionStartError: If the file is empty or the first timestamp is invalid
    """
    with CsvTradeSource(path) as source:
        first: Optional[List[str]] = next(iter(source), None)

    if first is None:
        raise SessionStartError(f"No trades in {path}", context={"path": str(path)})

    if len(first) <= TIMESTAMP_COLUMN:
        raise SessionStartError(
            f"First row of {path} has no timestamp column", context={"row": first}
        )

    try:
        first_ts = parse_timestamp(first[TIMESTAMP_COLUMN])
    except ParseError as e:
        raise SessionStartError(f"Unable to determine session start: {e}")

    start = datetime.combine(first_ts.date(), session_start, tzinfo=timezone.utc)
    logger.info(f"Session start determined from first trade: {start.isoformat()}")
    return start


class CsvTradeSource:
    """
    Reads raw trade rows from a CSV file.

    Example usage:
        with CsvTradeSource("trades.csv") as source:
            for row in source:
                trade = Trade.from_row(row)
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._file: Optional[TextIO] = None

    def open(self) -> None:
        """Open the input file"""
        if self._file is not None:
            return

        try:
            self._file = open(self.path, newline="")
        except OSError as e:
            raise SourceError(f"Unable to open file {self.path}: {e}", path=str(self.path))

        logger.debug(f"Opened trade source {self.path}")

    def close(self) -> None:
        """Close the input file"""
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "CsvTradeSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[List[str]]:
        if self._file is None:
            raise RuntimeError(f"Trade source {self.path} is not open")

        for row in csv.reader(self._file):
            if not row:
                continue
            yield row
