"""
Dataflow Layer

Streaming stages of the candle pipeline. Contains:
- ingestion: CSV trade source and session window filter
- routing: fanout to the per-granularity branches
- candle_aggregation: trade to candle aggregation
- persistence: CSV candle sinks
- adapters: rendezvous channels and cancel token
"""
