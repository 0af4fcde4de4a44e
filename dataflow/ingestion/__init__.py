"""
Ingestion

Trade source and session window filtering.
"""

from dataflow.ingestion.session_filter import SessionWindowFilter
from dataflow.ingestion.source import CsvTradeSource, find_session_start

__all__ = ["CsvTradeSource", "SessionWindowFilter", "find_session_start"]
