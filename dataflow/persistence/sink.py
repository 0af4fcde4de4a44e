"""
CSV Candle Sink

Drains one aggregator's candle stream and appends each candle as a CSV row
to the output file for that granularity:

    ticker,YYYY-MM-DDTHH:MM:SSZ,open,high,low,close

One sink per granularity; each sink owns its file handle exclusively.
"""

import csv
import logging
from pathlib import Path
from typing import Optional, TextIO, Union

from dataflow.adapters.channel import RendezvousChannel
from dataflow.errors import PipelineCancelled, SinkError
from schemas.market_data import Candle

logger = logging.getLogger(__name__)


class CsvCandleSink:
    """
    Persists candles of one granularity to a CSV file.

    Features:
    - Rows written in emission order
    - Per-row write failures are logged and counted, later rows still tried
    - File always closed on stream end or cancellation
    """

    def __init__(self, path: Union[str, Path], minutes: int):
        self.path = Path(path)
        self.minutes = minutes

        self._file: Optional[TextIO] = None
        self._writer = None

        # Metrics
        self._candles_written = 0
        self._write_errors = 0

    @property
    def candles_written(self) -> int:
        return self._candles_written

    @property
    def write_errors(self) -> int:
        return self._write_errors

    def open(self) -> None:
        """Create (or truncate) the output file"""
        if self._file is not None:
            return

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.path, "w", newline="")
        except OSError as e:
            raise SinkError(f"Unable to create file {self.path}: {e}", path=str(self.path))

        self._writer = csv.writer(self._file, lineterminator="\n")
        logger.debug(f"Opened {self.minutes}m sink {self.path}")

    def close(self) -> None:
        """Close the output file"""
        if self._file is not None:
            try:
                self._file.close()
            except OSError as e:
                logger.error(f"Failed to close {self.path}: {e}")
            self._file = None
            self._writer = None

    def write(self, candle: Candle) -> bool:
        """Append one candle. Returns False if the write failed."""
        if self._writer is None:
            raise RuntimeError(f"Sink {self.path} is not open")

        try:
            self._writer.writerow(candle.to_csv_row())
            self._file.flush()
        except OSError as e:
            self._write_errors += 1
            logger.error(f"Unable to write in file {self.path}: {e}")
            return False

        self._candles_written += 1
        return True

    async def run(self, source: RendezvousChannel[Candle]) -> None:
        """Drain ``source`` until it closes or the token fires"""
        self.open()
        logger.info(f"Starting {self.minutes}m sink -> {self.path}")

        try:
            async for candle in source:
                self.write(candle)
        except PipelineCancelled as e:
            logger.info(f"{self.minutes}m sink cancelled ({e})")
        finally:
            self.close()
            logger.info(
                f"{self.minutes}m sink stopped. "
                f"Total written: {self._candles_written} candles, {self._write_errors} write errors"
            )
