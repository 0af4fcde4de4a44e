"""
Engine Layer

Configuration and runtime coordination of the candle pipeline.
"""
