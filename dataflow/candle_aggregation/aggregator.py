"""
Candle Aggregator

Buckets a filtered trade stream by (ticker, time bucket) for a single
granularity and emits one completed candle per ticker when a bucket closes
or the stream ends.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict

from dataflow.adapters.channel import RendezvousChannel
from dataflow.errors import PipelineCancelled
from schemas.market_data import Candle, Trade
from schemas.session import SessionWindow

logger = logging.getLogger(__name__)


class CandleBuilder:
    """Builds a candle from incoming trades"""

    def __init__(self, ticker: str, timeframe: int, start_time: datetime, price: float):
        self.ticker = ticker
        self.timeframe = timeframe
        self.start_time = start_time
        self.open = price
        self.high = price
        self.low = price
        self.close = price
        self.tick_count = 1

    def add_trade(self, trade: Trade) -> None:
        """Add a trade to this candle"""
        price = trade.price
        self.high = max(self.high, price)
        self.low = min(self.low, price)
        self.close = price
        self.tick_count += 1

    def build(self) -> Candle:
        """Build the final Candle object"""
        return Candle(
            ticker=self.ticker,
            timestamp=self.start_time,
            timeframe=self.timeframe,
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            tick_count=self.tick_count,
        )


class CandleAggregator:
    """
    Aggregates trades into candles of one granularity.

    Buckets are aligned to the session start. A trade past the current
    bucket end closes the bucket; a trade past the current session end
    closes the session and realigns buckets to the next session start.
    All open builders are flushed together in both cases.

    Each aggregator owns its builders and clock exclusively and is driven
    by a single task, so no locking is needed.
    """

    def __init__(
        self,
        minutes: int,
        session: SessionWindow,
        source: RendezvousChannel[Trade],
        output: RendezvousChannel[Candle],
    ):
        if minutes <= 0:
            raise ValueError(f"Granularity must be positive, got {minutes}")

        self.minutes = minutes
        self.width = timedelta(minutes=minutes)
        self.session = SessionWindow(start=session.start, length=session.length)
        self.source = source
        self.output = output

        self.bucket_start = self.session.start
        self._builders: Dict[str, CandleBuilder] = {}

        # Metrics
        self.trades_consumed = 0
        self.candles_emitted = 0
        self.candles_discarded = 0

    @property
    def bucket_end(self) -> datetime:
        return self.bucket_start + self.width

    async def _flush(self) -> None:
        """Emit every open builder, removing each once it was handed off"""
        while self._builders:
            ticker = next(iter(self._builders))
            candle = self._builders[ticker].build()
            await self.output.send(candle)
            del self._builders[ticker]
            self.candles_emitted += 1
            logger.debug(
                f"Emitted candle: {candle.ticker} {self.minutes}m "
                f"{candle.timestamp.isoformat()} O={candle.open} H={candle.high} "
                f"L={candle.low} C={candle.close} ticks={candle.tick_count}"
            )

    async def _roll_session(self, timestamp: datetime) -> None:
        if timestamp <= self.session.end:
            return

        await self._flush()
        days = self.session.advance_to(timestamp)
        self.bucket_start = self.session.start
        logger.debug(
            f"{self.minutes}m aggregator rolled session by {days} day(s) "
            f"to {self.session.start.isoformat()}"
        )

    async def _roll_bucket(self, timestamp: datetime) -> None:
        if timestamp <= self.bucket_end:
            return

        await self._flush()
        steps = -((self.bucket_end - timestamp) // self.width)
        self.bucket_start += steps * self.width

    async def add_trade(self, trade: Trade) -> None:
        """Apply one trade, flushing closed buckets first"""
        await self._roll_session(trade.timestamp)
        await self._roll_bucket(trade.timestamp)

        builder = self._builders.get(trade.ticker)
        if builder is None:
            self._builders[trade.ticker] = CandleBuilder(
                trade.ticker, self.minutes, self.bucket_start, trade.price
            )
        else:
            builder.add_trade(trade)

        self.trades_consumed += 1

    async def run(self) -> None:
        """Consume the source until it closes or the token fires"""
        logger.info(f"Starting candle aggregator for {self.minutes}m")

        try:
            async for trade in self.source:
                await self.add_trade(trade)

            # Stream ended: flush what is left
            await self._flush()
        except PipelineCancelled as e:
            self.candles_discarded += len(self._builders)
            self._builders = {}
            logger.info(f"{self.minutes}m aggregator cancelled ({e})")
        finally:
            self.output.close()
            logger.info(
                f"Candle aggregator {self.minutes}m stopped: "
                f"{self.trades_consumed} trades, {self.candles_emitted} candles, "
                f"{self.candles_discarded} discarded"
            )
