"""
Persistence

Candle sinks, one per granularity.
"""

from dataflow.persistence.sink import CsvCandleSink

__all__ = ["CsvCandleSink"]
