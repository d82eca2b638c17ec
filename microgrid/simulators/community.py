"""Household, EV fleet and plant state generation plus live refresh."""

from datetime import datetime, timedelta
from typing import Optional

import numpy as np

from microgrid.config import CommunityConfig, PlantConfig
from microgrid.models import (
    Appliance,
    ConsumptionHistory,
    ElectricVehicle,
    HistoryPoint,
    Household,
    PlantState,
)
from microgrid.state import AppState
from .base import BaseSimulator

# Monthly production of one 400 W panel: 0.4 kW * 4.5 h * 30 days * 0.8
PRODUCTION_PER_PANEL_KWH = 43.2
PANEL_KW = 0.4

# (name, min kW, max kW, priority)
APPLIANCE_TYPES = [
    ("Air Conditioner", 0.8, 1.5, 2),
    ("Refrigerator", 0.08, 0.15, 1),
    ("Washing Machine", 0.3, 0.5, 3),
    ("TV", 0.05, 0.15, 3),
    ("Electric Stove", 1.0, 2.0, 2),
    ("Water Heater", 2.5, 3.5, 2),
    ("Lights/Others", 0.1, 0.3, 1),
]

EV_MODELS = [
    "Nissan Leaf",
    "BYD Atto 3",
    "MG ZS EV",
    "MG EP",
    "Tesla Model 3",
    "Hyundai Kona Electric",
    "Neta V",
]

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

EV_CHARGE_STEP_PERCENT = 0.5


def hourly_multiplier(hour: int) -> float:
    """Time-of-day consumption multiplier."""
    if 6 <= hour <= 9:
        return 0.8  # Morning peak
    if 18 <= hour <= 22:
        return 1.0  # Evening peak
    if 10 <= hour <= 17:
        return 0.5  # Daytime
    return 0.2  # Night


class CommunityGenerator(BaseSimulator):
    """
    Generates a synthetic community at cold start.

    Produces households with appliances and consumption history, an EV
    fleet and the initial central plant state.
    """

    def __init__(
        self,
        config: Optional[CommunityConfig] = None,
        plant_config: Optional[PlantConfig] = None,
        seed: Optional[int] = None,
    ) -> None:
        super().__init__(seed)
        self.config = config or CommunityConfig()
        self.plant_config = plant_config or PlantConfig()

        if self.config.house_count <= 0:
            raise ValueError("house_count must be positive")
        if not 0 < self.config.min_panels <= self.config.max_panels:
            raise ValueError("panel range must satisfy: 0 < min_panels <= max_panels")
        if not 0 <= self.config.min_evs <= self.config.max_evs:
            raise ValueError("EV range must satisfy: 0 <= min_evs <= max_evs")

        self._rng = self._numpy_rng()

    def _generate_appliances(self) -> list[Appliance]:
        return [
            Appliance(
                id=index + 1,
                name=name,
                power_kw=self._random_in_range(low, high),
                is_on=self._chance(0.7),
                priority=priority,
            )
            for index, (name, low, high, priority) in enumerate(APPLIANCE_TYPES)
        ]

    def _generate_history(self, timestamp: datetime) -> ConsumptionHistory:
        """Build 24h, 30d and 12mo series ending at ``timestamp``."""
        hours = [timestamp - timedelta(hours=i) for i in range(23, -1, -1)]
        multipliers = np.array([hourly_multiplier(h.hour) for h in hours])
        hourly_values = np.round(self._rng.uniform(0.2, 2.5, size=24) * multipliers, 3)

        days = [timestamp - timedelta(days=i) for i in range(29, -1, -1)]
        daily_values = np.round(self._rng.uniform(2.5, 7.0, size=30), 2)

        monthly_values = np.round(self._rng.uniform(80, 200, size=12), 2)
        months = [MONTH_NAMES[(timestamp.month - 1 - i) % 12] for i in range(11, -1, -1)]

        return ConsumptionHistory(
            hourly=[HistoryPoint(h.isoformat(), float(v)) for h, v in zip(hours, hourly_values)],
            daily=[HistoryPoint(d.isoformat(), float(v)) for d, v in zip(days, daily_values)],
            monthly=[HistoryPoint(m, float(v)) for m, v in zip(months, monthly_values)],
        )

    def _size_solar(self, monthly_consumption: float) -> int:
        """Panels needed to cover 40-80% of monthly consumption."""
        target = monthly_consumption * self._random.uniform(0.4, 0.8)
        panels = round(target / PRODUCTION_PER_PANEL_KWH)
        return int(self._clamp(panels, self.config.min_panels, self.config.max_panels))

    def generate_houses(self, timestamp: datetime) -> list[Household]:
        cfg = self.config
        houses = []
        for index in range(cfg.house_count):
            monthly = self._random_in_range(
                cfg.min_monthly_consumption_kwh, cfg.max_monthly_consumption_kwh
            )
            panels = 0
            battery_capacity = 0.0
            battery_level = 0.0
            if self._chance(cfg.solar_probability):
                panels = self._size_solar(monthly)
                solar_kw = panels * PANEL_KW
                battery_capacity = self._random_in_range(solar_kw * 2, solar_kw * 3)
                battery_level = self._random_in_range(20, 100)

            houses.append(Household(
                id=index + 1,
                name=f"House No. {cfg.first_house_number + index}",
                residents=self._random.randint(2, 6),
                current_consumption_kw=self._random_in_range(0.5, 5.0),
                daily_consumption_kwh=round(monthly / 30, 2),
                monthly_consumption_kwh=monthly,
                solar_panels=panels,
                battery_capacity_kwh=battery_capacity,
                battery_level=battery_level,
                appliances=self._generate_appliances(),
                history=self._generate_history(timestamp),
            ))

        self._assign_scenarios(houses)
        return houses

    def _assign_scenarios(self, houses: list[Household]) -> None:
        """Flag a few houses with solar problems and blackouts for demonstration."""
        solar_houses = [h for h in houses if h.has_solar]
        count = min(self.config.solar_problem_houses, len(solar_houses))
        for house in self._random.sample(solar_houses, count):
            house.solar_problem = True

        count = min(self.config.blackout_houses, len(houses))
        for house in self._random.sample(houses, count):
            house.blackout = True

    def generate_evs(self, houses: list[Household]) -> list[ElectricVehicle]:
        count = self._random.randint(self.config.min_evs, self.config.max_evs)
        evs = []
        for index in range(count):
            is_charging = self._chance(0.5)
            owner = self._random.choice(houses)
            evs.append(ElectricVehicle(
                id=index + 1,
                name=f"EV-{index + 1:03d}",
                model=self._random.choice(EV_MODELS),
                house_id=owner.id,
                owner=owner.name,
                battery_capacity_kwh=self._random_in_range(40, 75),
                current_charge=self._random_in_range(20, 95),
                is_charging=is_charging,
                charging_power_kw=self._random_in_range(3, 7) if is_charging else 0.0,
            ))
        return evs

    def generate_plant(self) -> PlantState:
        return PlantState(
            total_capacity_kw=self.plant_config.total_capacity_kw,
            current_production_kw=self._random_in_range(40, 95),
            battery_capacity_kwh=self.plant_config.battery_capacity_kwh,
            battery_level=self._random_in_range(60, 95),
            daily_production_kwh=self._random_in_range(400, 600),
            monthly_production_kwh=self._random_in_range(12000, 18000),
        )

    def generate(self, timestamp: datetime) -> AppState:
        """
        Generate a fresh community for the given timestamp.

        Args:
            timestamp: Current time; history series end here

        Returns:
            AppState without a trading book
        """
        houses = self.generate_houses(timestamp)
        return AppState(
            houses=houses,
            evs=self.generate_evs(houses),
            plant=self.generate_plant(),
        )


class CommunitySimulator(BaseSimulator):
    """
    Refreshes live household and EV values.

    Models:
    - Current consumption random walk (+/-10% per refresh)
    - Occasional appliance switching
    - EV charging toward 100%
    """

    def __init__(
        self,
        state: AppState,
        min_consumption_kw: float = 0.1,
        max_consumption_kw: float = 15.0,
        seed: Optional[int] = None,
    ) -> None:
        super().__init__(seed)
        self.state = state
        self.min_consumption_kw = min_consumption_kw
        self.max_consumption_kw = max_consumption_kw

    def generate(self, timestamp: datetime) -> dict[int, float]:
        """
        Generate the next current consumption for every house.

        Returns:
            Mapping of house id to consumption in kW
        """
        return {
            house.id: self._clamp(
                self._jitter(house.current_consumption_kw, 10),
                self.min_consumption_kw,
                self.max_consumption_kw,
            )
            for house in self.state.houses
        }

    def step(self, timestamp: datetime) -> None:
        """Apply one refresh to houses, appliances and EVs."""
        consumption = self.generate(timestamp)
        for house in self.state.houses:
            house.current_consumption_kw = consumption[house.id]
            for appliance in house.appliances:
                if self._chance(0.05):
                    appliance.is_on = not appliance.is_on

        for ev in self.state.evs:
            if ev.is_charging and ev.current_charge < 100:
                ev.current_charge = min(100.0, ev.current_charge + EV_CHARGE_STEP_PERCENT)
