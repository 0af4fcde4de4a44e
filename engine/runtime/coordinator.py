"""
Pipeline Coordinator

Wires the session filter, fanout, one aggregator per granularity and one
sink per granularity into a running pipeline, bounds the run with a global
deadline and reports completion once every sink has finished.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from dataflow.adapters.channel import CancelToken, RendezvousChannel
from dataflow.candle_aggregation.aggregator import CandleAggregator
from dataflow.ingestion.session_filter import SessionWindowFilter
from dataflow.ingestion.source import CsvTradeSource, find_session_start, parse_session_time
from dataflow.persistence.sink import CsvCandleSink
from dataflow.routing.fanout import Fanout
from engine.config.loader import PipelineConfig
from schemas.session import SessionWindow

logger = logging.getLogger(__name__)

SinkFactory = Callable[[Path, int], CsvCandleSink]


@dataclass
class PipelineResult:
    """Outcome of one pipeline run"""
    session_start: datetime
    cancelled: bool
    cancel_reason: Optional[str]
    rows_read: int
    trades_forwarded: int
    trades_dropped: int
    parse_errors: int
    outputs: Dict[int, Path] = field(default_factory=dict)
    candles_emitted: Dict[int, int] = field(default_factory=dict)
    candles_discarded: Dict[int, int] = field(default_factory=dict)
    candles_written: Dict[int, int] = field(default_factory=dict)
    write_errors: Dict[int, int] = field(default_factory=dict)


class PipelineCoordinator:
    """
    Coordinates one run of the candle pipeline.

    The coordinator:
    1. Opens the input and determines the first session start (fatal on failure)
    2. Creates one sink per granularity (fatal if an output cannot be created)
    3. Builds the channel graph: filter -> fanout -> aggregator[g] -> sink[g]
    4. Starts every consumer, then opens the start gate for the filter
    5. Fires the shared cancel token when the deadline expires
    6. Waits for every stage to finish and returns a PipelineResult

    Example usage:
        config = ConfigLoader().load(input_path="trades.csv")
        coordinator = PipelineCoordinator(config)
        coordinator.setup()

        result = await coordinator.run()
    """

    def __init__(self, config: PipelineConfig, sink_factory: Optional[SinkFactory] = None):
        """
        Initialize coordinator.

        Args:
            config: Validated pipeline configuration
            sink_factory: Builds the sink for (path, minutes); CsvCandleSink by default
        """
        self.config = config
        self.sink_factory = sink_factory or CsvCandleSink

        self.token = CancelToken()
        self.start_gate = asyncio.Event()

        self.source: Optional[CsvTradeSource] = None
        self.session: Optional[SessionWindow] = None
        self.filter: Optional[SessionWindowFilter] = None
        self.fanout: Optional[Fanout] = None
        self.aggregators: Dict[int, CandleAggregator] = {}
        self.sinks: Dict[int, CsvCandleSink] = {}
        self._candle_channels: Dict[int, RendezvousChannel] = {}

        self._result: Optional[PipelineResult] = None

    @property
    def granularities(self) -> List[int]:
        return list(self.config.granularities)

    def setup(self) -> None:
        """
        Open the input and outputs and construct every stage.

        Raises:
            SourceError: If the input cannot be opened
            SessionStartError: If the session start cannot be determined
            SinkError: If an output file cannot be created
        """
        if self.filter is not None:
            return

        logger.info(f"Setting up pipeline for {self.config.input_path}...")

        source = CsvTradeSource(self.config.input_path)
        source.open()

        try:
            start = find_session_start(
                self.config.input_path, parse_session_time(self.config.session_start)
            )
            self.session = SessionWindow(
                start=start, length=timedelta(hours=self.config.session_hours)
            )

            for minutes in self.granularities:
                sink = self.sink_factory(self.config.output_path(minutes), minutes)
                sink.open()
                self.sinks[minutes] = sink
        except Exception:
            source.close()
            for sink in self.sinks.values():
                sink.close()
            self.sinks = {}
            raise

        self.source = source

        filtered = RendezvousChannel("filtered", self.token)
        branches = []

        for minutes in self.granularities:
            branch = RendezvousChannel(f"trades-{minutes}m", self.token)
            candles = RendezvousChannel(f"candles-{minutes}m", self.token)
            branches.append(branch)
            self._candle_channels[minutes] = candles
            self.aggregators[minutes] = CandleAggregator(minutes, self.session, branch, candles)

        self.fanout = Fanout(filtered, branches)
        self.filter = SessionWindowFilter(
            rows=source,
            window=SessionWindow(start=self.session.start, length=self.session.length),
            output=filtered,
            start_gate=self.start_gate,
        )

        logger.info(
            f"Pipeline initialized: session {self.session.start.isoformat()} "
            f"+{self.config.session_hours}h, granularities {self.granularities}"
        )

    def _watch(self, task: asyncio.Task) -> None:
        """Fire the cancel token if a stage fails, so the others unblock"""
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Stage {task.get_name()} failed: {exc}", exc_info=exc)
            self.token.cancel(f"stage {task.get_name()} failed")

    async def run(self) -> PipelineResult:
        """
        Run the pipeline to completion or until the deadline.

        Returns:
            PipelineResult, produced exactly once

        Raises:
            RuntimeError: If called twice
            Exception: The first unexpected stage failure, after all stages ended
        """
        if self._result is not None:
            raise RuntimeError("Pipeline already ran")

        self.setup()

        loop = asyncio.get_running_loop()
        deadline = loop.call_later(
            self.config.deadline_seconds,
            self.token.cancel,
            f"deadline of {self.config.deadline_seconds}s exceeded",
        )

        tasks = []
        try:
            # Consumers first, producer last
            for minutes in self.granularities:
                tasks.append(asyncio.create_task(
                    self.sinks[minutes].run(self._candle_channels[minutes]),
                    name=f"sink-{minutes}m",
                ))
                tasks.append(asyncio.create_task(
                    self.aggregators[minutes].run(), name=f"aggregator-{minutes}m"
                ))
            tasks.append(asyncio.create_task(self.fanout.run(), name="fanout"))
            tasks.append(asyncio.create_task(self.filter.run(), name="session-filter"))

            for task in tasks:
                task.add_done_callback(self._watch)

            logger.info(f"Started {len(tasks)} stages, opening start gate")
            self.start_gate.set()

            outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            deadline.cancel()
            for task in tasks:
                if not task.done():
                    task.cancel()
            self.source.close()

        failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]

        self._result = self._build_result()
        logger.info(
            f"Pipeline finished ({'cancelled: ' + self.token.reason if self.token.cancelled else 'completed'}): "
            f"{self._result.trades_forwarded} trades forwarded, "
            f"candles written {self._result.candles_written}"
        )

        if failures:
            raise failures[0]

        return self._result

    def _build_result(self) -> PipelineResult:
        return PipelineResult(
            session_start=self.session.start,
            cancelled=self.token.cancelled,
            cancel_reason=self.token.reason,
            rows_read=self.filter.rows_read,
            trades_forwarded=self.filter.trades_forwarded,
            trades_dropped=self.filter.trades_dropped,
            parse_errors=self.filter.parse_errors,
            outputs={m: sink.path for m, sink in self.sinks.items()},
            candles_emitted={m: agg.candles_emitted for m, agg in self.aggregators.items()},
            candles_discarded={m: agg.candles_discarded for m, agg in self.aggregators.items()},
            candles_written={m: sink.candles_written for m, sink in self.sinks.items()},
            write_errors={m: sink.write_errors for m, sink in self.sinks.items()},
        )

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get coordinator metrics.

        Returns:
            Dictionary with pipeline statistics
        """
        return {
            "input": self.config.input_path,
            "granularities": self.granularities,
            "session_start": self.session.start.isoformat() if self.session else None,
            "cancelled": self.token.cancelled,
            "rows_read": self.filter.rows_read if self.filter else 0,
            "trades_forwarded": self.filter.trades_forwarded if self.filter else 0,
            "fanout_delivered": self.fanout.items_delivered if self.fanout else 0,
            "aggregators": {
                m: {
                    "trades": agg.trades_consumed,
                    "emitted": agg.candles_emitted,
                    "discarded": agg.candles_discarded,
                }
                for m, agg in self.aggregators.items()
            },
            "sinks": {m: sink.candles_written for m, sink in self.sinks.items()},
        }
