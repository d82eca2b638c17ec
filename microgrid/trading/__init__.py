"""Power pool trading: pricing, order book, trades and accounting."""

from microgrid.trading.engine import TradingEngine
from microgrid.trading.errors import (
    InsufficientReserveError,
    InvalidAmountError,
    TradeRejected,
    UnknownOfferError,
    UnknownRequestError,
)
from microgrid.trading.ledger import TransactionLedger, summarize
from microgrid.trading.market import OfferFactory
from microgrid.trading.pricing import PriceSchedule

__all__ = [
    "InsufficientReserveError",
    "InvalidAmountError",
    "OfferFactory",
    "PriceSchedule",
    "TradeRejected",
    "TradingEngine",
    "TransactionLedger",
    "UnknownOfferError",
    "UnknownRequestError",
    "summarize",
]
