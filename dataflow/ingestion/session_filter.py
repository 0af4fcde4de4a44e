"""
Session Window Filter

First pipeline stage. Reads raw rows from the trade source, parses them,
keeps only trades strictly inside the current session window and sends
them downstream. The window rolls forward in whole days when a trade
arrives past its end.
"""

import asyncio
import csv
import logging
from typing import Iterable, List, Optional

from dataflow.adapters.channel import RendezvousChannel
from dataflow.errors import ParseError, PipelineCancelled
from schemas.market_data import Trade
from schemas.session import SessionWindow

logger = logging.getLogger(__name__)

# Rows read between cooperative yields and cancel checks
YIELD_EVERY = 1000


class SessionWindowFilter:
    """Admits trades inside the daily session window"""

    def __init__(
        self,
        rows: Iterable[List[str]],
        window: SessionWindow,
        output: RendezvousChannel[Trade],
        start_gate: Optional[asyncio.Event] = None,
    ):
        self.rows = rows
        self.window = window
        self.output = output
        self.start_gate = start_gate

        # Metrics
        self.rows_read = 0
        self.trades_forwarded = 0
        self.trades_dropped = 0
        self.parse_errors = 0
        self.days_advanced = 0

    def _admit(self, trade: Trade) -> bool:
        days = self.window.advance_to(trade.timestamp)
        if days:
            self.days_advanced += days
            logger.info(
                f"Session window advanced {days} day(s) to "
                f"{self.window.start.isoformat()} - {self.window.end.isoformat()}"
            )
        return self.window.contains(trade.timestamp)

    async def run(self) -> None:
        """Run the filter until the source is exhausted or the token fires"""
        if self.start_gate is not None:
            await self.start_gate.wait()

        logger.info(
            f"Session filter started: window {self.window.start.isoformat()} - "
            f"{self.window.end.isoformat()}"
        )

        try:
            await self._pump()
        except PipelineCancelled as e:
            logger.info(f"Session filter stopped: {e}")
        except csv.Error as e:
            logger.error(f"Unable to read line {self.rows_read + 1}: {e}")
        finally:
            self.output.close()
            logger.info(
                f"Session filter finished: {self.rows_read} rows, "
                f"{self.trades_forwarded} forwarded, {self.trades_dropped} dropped, "
                f"{self.parse_errors} parse errors"
            )

    async def _pump(self) -> None:
        for row in self.rows:
            self.rows_read += 1
            if self.rows_read % YIELD_EVERY == 0:
                self.output.token.raise_if_cancelled()
                await asyncio.sleep(0)

            try:
                trade = Trade.from_row(row)
            except ParseError as e:
                self.parse_errors += 1
                logger.warning(f"Skipping row {self.rows_read}: {e}")
                continue

            if not self._admit(trade):
                self.trades_dropped += 1
                continue

            await self.output.send(trade)
            self.trades_forwarded += 1
