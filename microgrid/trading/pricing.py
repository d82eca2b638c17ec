"""Time-of-use and fixed pricing for the power pool."""

import logging
from datetime import datetime
from typing import Optional

from microgrid.config import PricingConfig
from microgrid.models import PRICING_MODES

logger = logging.getLogger(__name__)


class PriceSchedule:
    """
    Buy and sell prices for both pricing modes.

    Buy prices are what the pool pays sellers; sell prices are what it
    charges buyers. The two sides are independent: the spread between them
    is the pool's margin.
    """

    def __init__(self, config: Optional[PricingConfig] = None) -> None:
        self.config = config or PricingConfig()
        cfg = self.config

        if not 0 <= cfg.peak_start_hour < cfg.peak_end_hour <= 24:
            raise ValueError("peak window must satisfy: 0 <= start < end <= 24")

        spreads = {
            "peak": cfg.sell_peak_price - cfg.buy_peak_price,
            "off_peak": cfg.sell_off_peak_price - cfg.buy_off_peak_price,
            "fixed": cfg.sell_fixed_price - cfg.buy_fixed_price,
        }
        negative = [name for name, spread in spreads.items() if spread < 0]
        if negative:
            if cfg.enforce_spread:
                raise ValueError(
                    f"sell price must not be below buy price for: {', '.join(negative)}"
                )
            logger.warning("Negative pool spread configured for: %s", ", ".join(negative))

    def is_peak(self, at: Optional[datetime] = None) -> bool:
        hour = (at or datetime.now()).hour
        return self.config.peak_start_hour <= hour < self.config.peak_end_hour

    def get_price_period(self, at: Optional[datetime] = None) -> str:
        """Name of the TOU period in effect: ``peak`` or ``off_peak``."""
        return "peak" if self.is_peak(at) else "off_peak"

    def _check_mode(self, mode: str) -> None:
        if mode not in PRICING_MODES:
            raise ValueError(f"mode must be one of {PRICING_MODES}, got {mode!r}")

    def get_buy_price(self, mode: str, at: Optional[datetime] = None) -> float:
        """Price the pool pays per kWh when acquiring energy."""
        self._check_mode(mode)
        if mode == "fixed":
            return self.config.buy_fixed_price
        return self.config.buy_peak_price if self.is_peak(at) else self.config.buy_off_peak_price

    def get_sell_price(self, mode: str, at: Optional[datetime] = None) -> float:
        """Price the pool charges per kWh when dispensing energy."""
        self._check_mode(mode)
        if mode == "fixed":
            return self.config.sell_fixed_price
        return self.config.sell_peak_price if self.is_peak(at) else self.config.sell_off_peak_price
