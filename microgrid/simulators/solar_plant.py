"""Central solar plant simulator with a time-of-day production curve."""

from datetime import datetime
from typing import Optional

from microgrid.config import PlantConfig
from microgrid.models import PlantState
from .base import BaseSimulator


class SolarPlantSimulator(BaseSimulator):
    """
    Simulates the community's central solar plant.

    Models:
    - Parabolic production curve peaking at the configured hour
    - Battery charge/discharge by hour bucket
    - Sellable surplus above the battery reserve threshold
    """

    def __init__(
        self,
        plant: PlantState,
        config: Optional[PlantConfig] = None,
        seed: Optional[int] = None,
    ) -> None:
        """
        Initialize the plant simulator.

        Args:
            plant: Plant state updated in place
            config: Plant configuration
            seed: Random seed for reproducibility
        """
        super().__init__(seed)
        self.config = config or PlantConfig()

        if self.config.battery_capacity_kwh <= 0:
            raise ValueError("battery_capacity_kwh must be positive")
        if not 0 <= self.config.reserve_threshold_percent <= 100:
            raise ValueError("reserve_threshold_percent must be in the range [0, 100]")
        if not 0 <= self.config.min_battery_level < self.config.max_battery_level <= 100:
            raise ValueError("battery levels must satisfy: 0 <= min < max <= 100")

        self.plant = plant

    def _production_factor(self, hour: int) -> float:
        """Time factor: 1.0 at the peak hour, 0 at and beyond the daylight edges."""
        cfg = self.config
        if not cfg.daylight_start_hour <= hour <= cfg.daylight_end_hour:
            return 0.0
        half_day = (cfg.daylight_end_hour - cfg.daylight_start_hour) / 2
        deviation = abs(hour - cfg.peak_hour)
        return max(0.0, 1 - deviation / half_day)

    def _battery_delta(self, hour: int) -> float:
        """Per-refresh battery change in percentage points for the hour bucket."""
        if hour < 6:
            change = -0.5  # Slow discharge pre-dawn
        elif hour < 12:
            change = 1.0  # Morning charge
        elif hour < 18:
            change = 1.5  # Midday charge
        else:
            change = -1.0  # Evening discharge
        return change * self.config.battery_rate_scale

    def generate(self, timestamp: datetime) -> float:
        """
        Generate plant production for the given timestamp.

        Args:
            timestamp: The timestamp for which to generate data

        Returns:
            Production in kW
        """
        factor = self._production_factor(timestamp.hour)
        if factor <= 0:
            return 0.0
        return self._jitter(self.config.peak_output_kw * factor, self.config.jitter_percent)

    def step(self, timestamp: datetime) -> PlantState:
        """Advance production and battery level to ``timestamp``."""
        self.plant.current_production_kw = self.generate(timestamp)
        self.plant.battery_level = self._clamp(
            self.plant.battery_level + self._battery_delta(timestamp.hour),
            self.config.min_battery_level,
            self.config.max_battery_level,
        )
        return self.plant

    def get_surplus(self) -> float:
        """Battery energy above the reserve threshold, available for sale (kWh)."""
        excess_percent = self.plant.battery_level - self.config.reserve_threshold_percent
        return max(0.0, excess_percent / 100 * self.plant.battery_capacity_kwh)

    def hourly_profile(self) -> list[dict]:
        """Expected production and irradiance for each hour of the day."""
        profile = []
        for hour in range(24):
            factor = self._production_factor(hour)
            production = self.config.peak_output_kw * factor * self._random.uniform(0.9, 1.0)
            profile.append({
                "hour": hour,
                "production_kw": round(production, 2),
                "irradiance_w_m2": round(1000 * factor, 1),
            })
        return profile

    def daily_output_kwh(self, timestamp: datetime) -> float:
        """Cumulative output so far today (estimate)."""
        return 320 + timestamp.hour * 5

    def co2_saved_kg(self, timestamp: datetime) -> float:
        return self.daily_output_kwh(timestamp) * self.config.co2_kg_per_kwh
