"""
Candle Aggregation

Aggregates the filtered trade stream into OHLC candles, one aggregator
per granularity (5m, 30m, 240m by default).
"""

from dataflow.candle_aggregation.aggregator import CandleAggregator, CandleBuilder

__all__ = ["CandleAggregator", "CandleBuilder"]
