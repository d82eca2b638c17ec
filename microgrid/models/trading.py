"""Data models for the power pool market.

Sell offers are a tagged variant: each seller kind carries only the fields
it needs and is serialized with a ``kind`` tag.
"""

import math
from dataclasses import dataclass
from typing import Any, Literal, Union

PricingMode = Literal["tou", "fixed"]
TransactionType = Literal["buy", "sell"]

PRICING_MODES: tuple[str, ...] = ("tou", "fixed")
PLANT_SELLER_ID = "central-solar-plant"


@dataclass
class HouseOffer:
    """Surplus solar energy offered by a household."""

    id: int
    seller_id: int
    seller_name: str
    amount: float  # Remaining kWh
    solar_panels: int

    kind = "house"
    is_external = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "id": self.id,
            "seller_id": self.seller_id,
            "seller_name": self.seller_name,
            "amount": self.amount,
            "solar_panels": self.solar_panels,
        }


@dataclass
class CompanyOffer:
    """Energy offered by an external company."""

    id: int
    seller_id: str
    seller_name: str
    amount: float
    description: str = ""

    kind = "company"
    is_external = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "id": self.id,
            "seller_id": self.seller_id,
            "seller_name": self.seller_name,
            "amount": self.amount,
            "description": self.description,
        }


@dataclass
class PlantOffer:
    """Standing surplus offer from the central solar plant."""

    id: int
    amount: float
    seller_name: str = "Central Solar Plant"

    kind = "plant"
    is_external = True
    seller_id = PLANT_SELLER_ID

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "id": self.id,
            "seller_name": self.seller_name,
            "amount": self.amount,
        }


SellOffer = Union[HouseOffer, CompanyOffer, PlantOffer]


def offer_from_dict(data: dict) -> SellOffer:
    """Rebuild a sell offer from its tagged dictionary form."""
    kind = data.get("kind")
    if kind == "house":
        return HouseOffer(
            id=data["id"],
            seller_id=data["seller_id"],
            seller_name=data["seller_name"],
            amount=data["amount"],
            solar_panels=data.get("solar_panels", 0),
        )
    if kind == "company":
        return CompanyOffer(
            id=data["id"],
            seller_id=data["seller_id"],
            seller_name=data["seller_name"],
            amount=data["amount"],
            description=data.get("description", ""),
        )
    if kind == "plant":
        return PlantOffer(
            id=data["id"],
            amount=data["amount"],
            seller_name=data.get("seller_name", "Central Solar Plant"),
        )
    raise ValueError(f"Unknown sell offer kind: {kind!r}")


@dataclass
class BuyRequest:
    """A household asking the pool for energy."""

    id: int
    buyer_id: int
    buyer_name: str
    amount: float  # Remaining kWh
    price_mode: PricingMode
    monthly_consumption_kwh: float

    def __post_init__(self) -> None:
        if self.price_mode not in PRICING_MODES:
            raise ValueError(f"price_mode must be one of {PRICING_MODES}, got {self.price_mode!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "buyer_id": self.buyer_id,
            "buyer_name": self.buyer_name,
            "amount": self.amount,
            "price_mode": self.price_mode,
            "monthly_consumption_kwh": self.monthly_consumption_kwh,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BuyRequest":
        return cls(
            id=data["id"],
            buyer_id=data["buyer_id"],
            buyer_name=data["buyer_name"],
            amount=data["amount"],
            price_mode=data["price_mode"],
            monthly_consumption_kwh=data.get("monthly_consumption_kwh", 0.0),
        )


@dataclass(frozen=True)
class Transaction:
    """An executed trade between the pool and a counterparty.

    ``buy`` means the pool acquired energy, ``sell`` means it dispensed it.
    """

    type: TransactionType
    seller_id: str
    seller_name: str
    buyer_id: str
    buyer_name: str
    kwh: float
    price: float
    pricing_mode: PricingMode
    timestamp: str

    @property
    def total(self) -> float:
        return self.kwh * self.price

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "seller_id": self.seller_id,
            "seller_name": self.seller_name,
            "buyer_id": self.buyer_id,
            "buyer_name": self.buyer_name,
            "kwh": self.kwh,
            "price": self.price,
            "total": self.total,
            "pricing_mode": self.pricing_mode,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Transaction":
        return cls(
            type=data["type"],
            seller_id=str(data["seller_id"]),
            seller_name=data["seller_name"],
            buyer_id=str(data["buyer_id"]),
            buyer_name=data["buyer_name"],
            kwh=data["kwh"],
            price=data["price"],
            pricing_mode=data["pricing_mode"],
            timestamp=data["timestamp"],
        )


@dataclass(frozen=True)
class ProfitAndLoss:
    """Aggregated pool trading results."""

    buy_volume_kwh: float = 0.0
    buy_cost: float = 0.0
    sell_volume_kwh: float = 0.0
    sell_revenue: float = 0.0

    @property
    def net_profit(self) -> float:
        return self.sell_revenue - self.buy_cost

    @property
    def energy_holding_kwh(self) -> float:
        return self.buy_volume_kwh - self.sell_volume_kwh

    @property
    def margin_percent(self) -> float:
        if self.sell_revenue <= 0:
            return 0.0
        margin = self.net_profit / self.sell_revenue * 100
        return margin if math.isfinite(margin) else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "buy_volume_kwh": round(self.buy_volume_kwh, 3),
            "buy_cost": round(self.buy_cost, 2),
            "sell_volume_kwh": round(self.sell_volume_kwh, 3),
            "sell_revenue": round(self.sell_revenue, 2),
            "net_profit": round(self.net_profit, 2),
            "energy_holding_kwh": round(self.energy_holding_kwh, 3),
            "margin_percent": round(self.margin_percent, 1),
        }


@dataclass(frozen=True)
class PendingReplacement:
    """A replacement offer or request waiting for its delay to elapse."""

    kind: Literal["offer", "request"]
    due_at: float  # Unix timestamp

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "due_at": self.due_at}

    @classmethod
    def from_dict(cls, data: dict) -> "PendingReplacement":
        return cls(kind=data["kind"], due_at=data["due_at"])
