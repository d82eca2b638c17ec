"""
Household energy analysis.

Consumption classification, solar sizing, outage backup estimates,
load-shedding plans, monthly cost comparisons, EV fleet charging
statistics and community-wide consumption totals.
"""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from microgrid.config import CommunityConfig, MarketConfig
from microgrid.models import Household
from microgrid.state import AppState


INSTALL_COST_PER_KW = 50_000.0
HOURS_PER_DAY = 24


@dataclass
class SolarRequirement:
    capacity_kw: float
    panels: int
    estimated_cost: float


@dataclass
class BackupEstimate:
    """Battery runtime during an outage. ``hours`` is ``inf`` when solar covers the load."""

    solar_kw: float
    net_consumption_kw: float
    hours: float


@dataclass
class SheddingStep:
    step: int
    appliance: str
    power_kw: float
    total_saved_kw: float
    extended_hours: float


@dataclass
class FleetStats:
    """Charging snapshot of the EV fleet."""

    total: int
    charging: int
    charging_power_kw: float
    estimated_daily_cost: float


@dataclass
class CostComparison:
    current_cost: float = 0.0
    cost_with_solar: float = 0.0
    savings: float = 0.0
    solar_production_kwh: float = 0.0
    has_solar: bool = False
    recommended_panels: int = 0


def consumption_status(consumption_kw: float) -> str:
    """Classify instantaneous consumption as ``low``, ``medium`` or ``high``."""
    if consumption_kw < 4:
        return "low"
    if consumption_kw < 7:
        return "medium"
    return "high"


def monthly_solar_production(panels: int, config: Optional[MarketConfig] = None) -> float:
    cfg = config or MarketConfig()
    return panels * cfg.panel_kw * cfg.peak_sun_hours * cfg.days_per_month * cfg.system_efficiency


def solar_requirement(daily_consumption_kwh: float, config: Optional[MarketConfig] = None) -> SolarRequirement:
    """
    Size a solar system that covers a daily load.

    Args:
        daily_consumption_kwh: Daily energy use to cover
        config: Market configuration supplying panel and irradiance figures

    Returns:
        Required capacity, panel count and installation cost estimate
    """
    cfg = config or MarketConfig()
    capacity = daily_consumption_kwh / (cfg.peak_sun_hours * cfg.system_efficiency)
    panels = math.ceil(round(capacity / cfg.panel_kw, 9))
    return SolarRequirement(
        capacity_kw=round(capacity, 2),
        panels=max(0, panels),
        estimated_cost=round(capacity * INSTALL_COST_PER_KW),
    )


def backup_duration(solar_kw: float, battery_kwh: float, consumption_kw: float) -> BackupEstimate:
    """Hours the battery sustains the load not covered by solar."""
    net = consumption_kw - solar_kw
    if net <= 0:
        return BackupEstimate(solar_kw=solar_kw, net_consumption_kw=0.0, hours=math.inf)
    if battery_kwh <= 0:
        return BackupEstimate(solar_kw=solar_kw, net_consumption_kw=net, hours=0.0)
    return BackupEstimate(solar_kw=solar_kw, net_consumption_kw=net, hours=battery_kwh / net)


def load_shedding_plan(state: AppState, house_id: int) -> list[SheddingStep]:
    """
    Order in which running appliances should be switched off.

    Appliances with the highest priority number are shed first. Each step
    reports the cumulative power saved and the extended battery runtime.
    """
    house = state.get_house(house_id)
    if house is None:
        return []

    running = sorted(
        (a for a in house.appliances if a.is_on),
        key=lambda a: a.priority,
        reverse=True,
    )

    plan = []
    saved = 0.0
    for index, appliance in enumerate(running, start=1):
        saved += appliance.power_kw
        remaining = house.current_consumption_kw - saved
        extended = house.battery_capacity_kwh / remaining if remaining > 0 else math.inf
        plan.append(SheddingStep(
            step=index,
            appliance=appliance.name,
            power_kw=appliance.power_kw,
            total_saved_kw=saved,
            extended_hours=extended,
        ))
    return plan


def _resolve_rate(rate: Optional[float]) -> float:
    return CommunityConfig().electricity_rate if rate is None else rate


def current_monthly_cost(state: AppState, house_id: int, rate: Optional[float] = None) -> float:
    """Monthly grid cost without any solar offset."""
    house = state.get_house(house_id)
    if house is None:
        return 0.0
    return house.monthly_consumption_kwh * _resolve_rate(rate)


def _compare(
    house: Household,
    panels: int,
    rate: Optional[float],
    config: Optional[MarketConfig],
) -> CostComparison:
    rate = _resolve_rate(rate)
    production = monthly_solar_production(panels, config)
    remaining = max(0.0, house.monthly_consumption_kwh - production)
    current = house.monthly_consumption_kwh * rate
    with_solar = remaining * rate
    return CostComparison(
        current_cost=current,
        cost_with_solar=with_solar,
        savings=current - with_solar,
        solar_production_kwh=production,
        has_solar=house.has_solar,
    )


def solar_monthly_cost(
    state: AppState,
    house_id: int,
    rate: Optional[float] = None,
    config: Optional[MarketConfig] = None,
) -> CostComparison:
    """Monthly cost with the household's installed panels."""
    house = state.get_house(house_id)
    if house is None:
        return CostComparison()
    return _compare(house, house.solar_panels, rate, config)


def potential_savings(
    state: AppState,
    house_id: int,
    rate: Optional[float] = None,
    config: Optional[MarketConfig] = None,
) -> CostComparison:
    """
    Actual savings for solar households, projected savings otherwise.

    Households without panels are sized with :func:`solar_requirement`
    from their daily consumption.
    """
    house = state.get_house(house_id)
    if house is None:
        return CostComparison()
    if house.has_solar:
        return _compare(house, house.solar_panels, rate, config)

    panels = solar_requirement(house.daily_consumption_kwh, config).panels
    result = _compare(house, panels, rate, config)
    result.recommended_panels = panels
    return result


def savings_percentage(
    state: AppState,
    house_id: int,
    rate: Optional[float] = None,
    config: Optional[MarketConfig] = None,
) -> float:
    """Savings as a percentage of the current cost, rounded to one decimal."""
    comparison = potential_savings(state, house_id, rate, config)
    if comparison.current_cost == 0:
        return 0.0
    return round(comparison.savings / comparison.current_cost * 100, 1)


def ev_fleet_stats(state: AppState, rate: Optional[float] = None) -> FleetStats:
    """
    Count charging EVs and estimate what a day of charging would cost.

    The daily cost assumes the current total charging power is drawn for
    a full day at ``rate``.
    """
    charging = [ev for ev in state.evs if ev.is_charging]
    power = sum(ev.charging_power_kw for ev in charging)
    return FleetStats(
        total=len(state.evs),
        charging=len(charging),
        charging_power_kw=power,
        estimated_daily_cost=power * HOURS_PER_DAY * _resolve_rate(rate),
    )


def community_consumption(state: AppState, period: str) -> pd.Series:
    """
    Total community consumption per history slot.

    Series are aligned by position; a house with a shorter series adds
    nothing to the slots it lacks. Slots are labelled from the longest
    series.

    Args:
        state: Application state
        period: ``hourly``, ``daily`` or ``monthly``

    Returns:
        Series named ``consumption_kwh`` indexed by slot label

    Raises:
        ValueError: If ``period`` is unknown
    """
    if period not in ("hourly", "daily", "monthly"):
        raise ValueError(f"Unknown history period: {period!r}")
    series = [house.history.series(period) for house in state.houses]
    if not any(series):
        return pd.Series(dtype=float, name="consumption_kwh")

    frame = pd.DataFrame({
        house.id: pd.Series([p.consumption for p in points], dtype=float)
        for house, points in zip(state.houses, series)
    })
    totals = frame.fillna(0.0).sum(axis=1)
    totals.index = pd.Index([p.label for p in max(series, key=len)], name="label")
    totals.name = "consumption_kwh"
    return totals


def community_average_daily_kwh(state: AppState) -> float:
    """Mean daily consumption across all households."""
    if not state.houses:
        return 0.0
    return float(np.mean([h.daily_consumption_kwh for h in state.houses]))
