"""
Pipeline Schemas

Trade, candle and session window types shared by every stage.
"""

from schemas.market_data import Candle, Trade
from schemas.session import SessionWindow

__all__ = ["Candle", "SessionWindow", "Trade"]
