"""Configuration management for the micro-grid simulator."""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional


def _default_company_catalog() -> list[dict]:
    return [
        {"name": "SolarTech Co., Ltd.", "amount": 500, "description": "Solar farm provider"},
        {"name": "GreenPower Corp.", "amount": 750, "description": "Renewable energy"},
        {"name": "EcoEnergy Thailand", "amount": 300, "description": "Clean energy solutions"},
        {"name": "Bangkok Solar Ltd.", "amount": 1000, "description": "Large scale solar"},
    ]


def _default_market_companies() -> list[dict]:
    return [
        {"name": "SolarTech Co., Ltd.", "amount": 500},
        {"name": "GreenPower Corp.", "amount": 750},
        {"name": "EcoEnergy Thailand", "amount": 300},
        {"name": "Siam Solar", "amount": 450},
        {"name": "Clean Watts", "amount": 600},
    ]


@dataclass
class PricingConfig:
    """Pool pricing configuration (THB/kWh).

    Buy prices are paid by the pool to sellers, sell prices are charged by
    the pool to buyers. TOU peak runs from ``peak_start_hour`` (inclusive)
    to ``peak_end_hour`` (exclusive).
    """

    buy_peak_price: float = 4.5
    buy_off_peak_price: float = 2.6
    buy_fixed_price: float = 4.0
    sell_peak_price: float = 5.8
    sell_off_peak_price: float = 3.2
    sell_fixed_price: float = 4.5
    peak_start_hour: int = 9
    peak_end_hour: int = 22
    enforce_spread: bool = False


@dataclass
class MarketConfig:
    """Trading market configuration."""

    pool_id: str = "pool"
    pool_name: str = "Gearlaxy Pool"

    # Initial market synthesis
    panel_kw: float = 0.4
    peak_sun_hours: float = 4.5
    days_per_month: int = 30
    system_efficiency: float = 0.8
    min_house_surplus_kwh: float = 10.0
    buyer_consumption_threshold_kwh: float = 400.0
    request_share_min: float = 0.3
    request_share_max: float = 0.7
    initial_companies: list = field(default_factory=_default_company_catalog)

    # Market perturbation (per tick)
    add_offer_probability: float = 0.3
    add_request_probability: float = 0.3
    remove_offer_probability: float = 0.15
    remove_request_probability: float = 0.15
    max_book_size: int = 15
    min_book_size: int = 3

    # Random offers/requests
    market_companies: list = field(default_factory=_default_market_companies)
    company_offer_probability: float = 0.6
    house_offer_min_kwh: float = 50.0
    house_offer_max_kwh: float = 200.0
    request_min_kwh: float = 100.0
    request_max_kwh: float = 300.0

    replacement_delay_seconds: float = 1.5

    # Plant standing offer
    plant_offer_min_kwh: float = 5.0
    plant_offer_update_threshold_kwh: float = 1.0

    def __post_init__(self) -> None:
        """Apply environment variable overrides only when values are at defaults.

        Precedence: explicit args > env vars > defaults
        """
        if self.pool_name == "Gearlaxy Pool":
            self.pool_name = os.environ.get("MICROGRID_POOL_NAME", self.pool_name)


@dataclass
class PlantConfig:
    """Central solar plant configuration."""

    total_capacity_kw: float = 100.0
    peak_output_kw: float = 45.0
    peak_hour: int = 12
    daylight_start_hour: int = 6
    daylight_end_hour: int = 18
    jitter_percent: float = 10.0
    battery_capacity_kwh: float = 200.0
    reserve_threshold_percent: float = 60.0
    min_battery_level: float = 5.0
    max_battery_level: float = 100.0
    battery_rate_scale: float = 0.005
    co2_kg_per_kwh: float = 0.45


@dataclass
class CommunityConfig:
    """Household and EV fleet generation configuration."""

    house_count: int = 12
    first_house_number: int = 101
    min_monthly_consumption_kwh: float = 100.0
    max_monthly_consumption_kwh: float = 700.0
    solar_probability: float = 0.5
    min_panels: int = 5
    max_panels: int = 7
    min_evs: int = 3
    max_evs: int = 6
    solar_problem_houses: int = 1
    blackout_houses: int = 1
    electricity_rate: float = 4.0


@dataclass
class StoreConfig:
    """Persistent state store configuration.

    Supports environment variable overrides:
    - MICROGRID_STATE_FILE: Path of the JSON state file
    """

    path: str = "microgrid_state.json"

    def __post_init__(self) -> None:
        if self.path == "microgrid_state.json":
            self.path = os.environ.get("MICROGRID_STATE_FILE", self.path)


@dataclass
class SimulationConfig:
    """Main simulator configuration."""

    refresh_interval_seconds: float = 3.0
    market_interval_seconds: float = 5.0
    seed: Optional[int] = None

    pricing: PricingConfig = field(default_factory=PricingConfig)
    market: MarketConfig = field(default_factory=MarketConfig)
    plant: PlantConfig = field(default_factory=PlantConfig)
    community: CommunityConfig = field(default_factory=CommunityConfig)
    store: StoreConfig = field(default_factory=StoreConfig)

    def __post_init__(self) -> None:
        if self.seed is None:
            env_seed = os.environ.get("MICROGRID_SEED")
            if env_seed:
                try:
                    self.seed = int(env_seed)
                except ValueError as e:
                    raise ValueError(
                        f"MICROGRID_SEED must be an integer, got: {env_seed!r}"
                    ) from e

    @classmethod
    def from_dict(cls, data: dict) -> "SimulationConfig":
        """Create config from dictionary."""
        try:
            return cls(
                refresh_interval_seconds=data.get("refresh_interval_seconds", 3.0),
                market_interval_seconds=data.get("market_interval_seconds", 5.0),
                seed=data.get("seed"),
                pricing=PricingConfig(**data.get("pricing", {})),
                market=MarketConfig(**data.get("market", {})),
                plant=PlantConfig(**data.get("plant", {})),
                community=CommunityConfig(**data.get("community", {})),
                store=StoreConfig(**data.get("store", {})),
            )
        except TypeError as e:
            raise ValueError(f"Invalid configuration format: {e}") from e

    @classmethod
    def from_file(cls, path: Path) -> "SimulationConfig":
        """Load config from JSON file."""
        try:
            with open(path) as f:
                data = json.load(f)
            return cls.from_dict(data)
        except FileNotFoundError as exc:
            raise FileNotFoundError(
                f"Configuration file not found: {path}",
            ) from exc
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in configuration file {path}: {exc}") from exc
        except (OSError, ValueError) as exc:
            raise RuntimeError(
                f"Failed to load configuration from {path}: {exc}",
            ) from exc

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return asdict(self)

    def to_file(self, path: Path) -> None:
        """Save config to JSON file."""
        try:
            with open(path, "w") as f:
                json.dump(self.to_dict(), f, indent=2)
        except OSError as exc:
            raise RuntimeError(
                f"Failed to save configuration to {path}: {exc}",
            ) from exc


DEFAULT_CONFIG = SimulationConfig()
