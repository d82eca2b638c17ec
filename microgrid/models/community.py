"""Data models for the households, EV fleet and central solar plant."""

from dataclasses import dataclass, field


@dataclass
class Appliance:
    """A household appliance."""

    id: int
    name: str
    power_kw: float
    is_on: bool
    priority: int  # 1 = critical, 2 = important, 3 = optional

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "power_kw": self.power_kw,
            "is_on": self.is_on,
            "priority": self.priority,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Appliance":
        return cls(
            id=data["id"],
            name=data["name"],
            power_kw=data["power_kw"],
            is_on=data["is_on"],
            priority=data["priority"],
        )


@dataclass
class HistoryPoint:
    """A single consumption sample.

    ``label`` is an ISO timestamp for hourly/daily points and a month
    abbreviation for monthly points.
    """

    label: str
    consumption: float

    def to_dict(self) -> dict:
        return {"label": self.label, "consumption": self.consumption}

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryPoint":
        return cls(label=data["label"], consumption=data["consumption"])


@dataclass
class ConsumptionHistory:
    """24 hour, 30 day and 12 month consumption series."""

    hourly: list[HistoryPoint] = field(default_factory=list)
    daily: list[HistoryPoint] = field(default_factory=list)
    monthly: list[HistoryPoint] = field(default_factory=list)

    def series(self, period: str) -> list[HistoryPoint]:
        """Get the series for ``hourly``, ``daily`` or ``monthly``."""
        if period not in ("hourly", "daily", "monthly"):
            raise ValueError(f"Unknown history period: {period!r}")
        return getattr(self, period)

    def to_dict(self) -> dict:
        return {
            "hourly": [p.to_dict() for p in self.hourly],
            "daily": [p.to_dict() for p in self.daily],
            "monthly": [p.to_dict() for p in self.monthly],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConsumptionHistory":
        return cls(
            hourly=[HistoryPoint.from_dict(p) for p in data.get("hourly", [])],
            daily=[HistoryPoint.from_dict(p) for p in data.get("daily", [])],
            monthly=[HistoryPoint.from_dict(p) for p in data.get("monthly", [])],
        )


@dataclass
class Household:
    """A house in the community."""

    id: int
    name: str
    residents: int
    current_consumption_kw: float
    daily_consumption_kwh: float
    monthly_consumption_kwh: float
    solar_panels: int
    battery_capacity_kwh: float
    battery_level: float  # 0-100%
    appliances: list[Appliance] = field(default_factory=list)
    history: ConsumptionHistory = field(default_factory=ConsumptionHistory)
    solar_allocation: float = 0.0  # Share of central plant output, 0-100%
    solar_problem: bool = False
    blackout: bool = False

    @property
    def has_solar(self) -> bool:
        return self.solar_panels > 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "residents": self.residents,
            "current_consumption_kw": self.current_consumption_kw,
            "daily_consumption_kwh": self.daily_consumption_kwh,
            "monthly_consumption_kwh": self.monthly_consumption_kwh,
            "solar_panels": self.solar_panels,
            "battery_capacity_kwh": self.battery_capacity_kwh,
            "battery_level": self.battery_level,
            "appliances": [a.to_dict() for a in self.appliances],
            "history": self.history.to_dict(),
            "solar_allocation": self.solar_allocation,
            "solar_problem": self.solar_problem,
            "blackout": self.blackout,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Household":
        return cls(
            id=data["id"],
            name=data["name"],
            residents=data["residents"],
            current_consumption_kw=data["current_consumption_kw"],
            daily_consumption_kwh=data["daily_consumption_kwh"],
            monthly_consumption_kwh=data["monthly_consumption_kwh"],
            solar_panels=data["solar_panels"],
            battery_capacity_kwh=data["battery_capacity_kwh"],
            battery_level=data["battery_level"],
            appliances=[Appliance.from_dict(a) for a in data.get("appliances", [])],
            history=ConsumptionHistory.from_dict(data.get("history", {})),
            solar_allocation=data.get("solar_allocation", 0.0),
            solar_problem=data.get("solar_problem", False),
            blackout=data.get("blackout", False),
        )


@dataclass
class ElectricVehicle:
    """An electric vehicle owned by a household."""

    id: int
    name: str
    model: str
    house_id: int
    owner: str
    battery_capacity_kwh: float
    current_charge: float  # 0-100%
    is_charging: bool
    charging_power_kw: float

    @property
    def estimated_hours_to_full(self) -> float:
        """Hours until fully charged at the current charging power."""
        if not self.is_charging or self.charging_power_kw <= 0:
            return 0.0
        remaining_kwh = self.battery_capacity_kwh * (100 - self.current_charge) / 100
        return remaining_kwh / self.charging_power_kw

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "model": self.model,
            "house_id": self.house_id,
            "owner": self.owner,
            "battery_capacity_kwh": self.battery_capacity_kwh,
            "current_charge": self.current_charge,
            "is_charging": self.is_charging,
            "charging_power_kw": self.charging_power_kw,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ElectricVehicle":
        return cls(
            id=data["id"],
            name=data["name"],
            model=data["model"],
            house_id=data["house_id"],
            owner=data["owner"],
            battery_capacity_kwh=data["battery_capacity_kwh"],
            current_charge=data["current_charge"],
            is_charging=data["is_charging"],
            charging_power_kw=data["charging_power_kw"],
        )


@dataclass
class PlantState:
    """Central solar plant state."""

    total_capacity_kw: float
    current_production_kw: float
    battery_capacity_kwh: float
    battery_level: float  # 0-100%
    daily_production_kwh: float
    monthly_production_kwh: float
    total_sold_kwh: float = 0.0

    @property
    def stored_energy_kwh(self) -> float:
        return self.battery_capacity_kwh * self.battery_level / 100

    def discharge(self, kwh: float) -> None:
        """Take ``kwh`` out of the battery for a sale to the pool."""
        percent_used = kwh / self.battery_capacity_kwh * 100
        self.battery_level = max(0.0, self.battery_level - percent_used)
        self.total_sold_kwh += kwh

    def to_dict(self) -> dict:
        return {
            "total_capacity_kw": self.total_capacity_kw,
            "current_production_kw": self.current_production_kw,
            "battery_capacity_kwh": self.battery_capacity_kwh,
            "battery_level": self.battery_level,
            "daily_production_kwh": self.daily_production_kwh,
            "monthly_production_kwh": self.monthly_production_kwh,
            "total_sold_kwh": self.total_sold_kwh,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PlantState":
        return cls(
            total_capacity_kw=data["total_capacity_kw"],
            current_production_kw=data["current_production_kw"],
            battery_capacity_kwh=data["battery_capacity_kwh"],
            battery_level=data["battery_level"],
            daily_production_kwh=data["daily_production_kwh"],
            monthly_production_kwh=data["monthly_production_kwh"],
            total_sold_kwh=data.get("total_sold_kwh", 0.0),
        )
