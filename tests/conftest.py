"""Shared fixtures for micro-grid tests."""

from datetime import datetime

import pytest

from microgrid.config import StoreConfig
from microgrid.models import (
    Appliance,
    BuyRequest,
    CompanyOffer,
    ElectricVehicle,
    HouseOffer,
    Household,
    PlantState,
)
from microgrid.state import AppState, TradingBook
from microgrid.storage import StateStore

# Local noon: inside the TOU peak window
NOON = datetime(2024, 6, 15, 12, 0, 0).timestamp()


def make_house(house_id: int, monthly: float = 300.0, panels: int = 0, **kwargs) -> Household:
    defaults = dict(
        id=house_id,
        name=f"House No. {100 + house_id}",
        residents=3,
        current_consumption_kw=2.0,
        daily_consumption_kwh=round(monthly / 30, 2),
        monthly_consumption_kwh=monthly,
        solar_panels=panels,
        battery_capacity_kwh=5.0 if panels else 0.0,
        battery_level=80.0 if panels else 0.0,
        appliances=[
            Appliance(id=1, name="Refrigerator", power_kw=0.1, is_on=True, priority=1),
            Appliance(id=2, name="Air Conditioner", power_kw=1.2, is_on=True, priority=2),
            Appliance(id=3, name="TV", power_kw=0.1, is_on=True, priority=3),
        ],
    )
    defaults.update(kwargs)
    return Household(**defaults)


def make_plant(battery_level: float = 75.0) -> PlantState:
    return PlantState(
        total_capacity_kw=100.0,
        current_production_kw=40.0,
        battery_capacity_kwh=200.0,
        battery_level=battery_level,
        daily_production_kwh=500.0,
        monthly_production_kwh=15000.0,
    )


class FakeClock:
    """Manually advanced clock returning Unix seconds."""

    def __init__(self, start: float = NOON):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def houses():
    return [
        make_house(1, monthly=150.0, panels=6),
        make_house(2, monthly=450.0),
        make_house(3, monthly=250.0, panels=5),
    ]


@pytest.fixture
def state(houses):
    """State with a small hand-built order book."""
    book = TradingBook(offer_id_counter=1)
    book.sell_offers = [
        HouseOffer(id=book.next_id(), seller_id=1, seller_name="House No. 101",
                   amount=100.0, solar_panels=6),
        CompanyOffer(id=book.next_id(), seller_id="ext-SolarTech Co., Ltd.",
                     seller_name="SolarTech Co., Ltd.", amount=25.0),
    ]
    book.buy_requests = [
        BuyRequest(id=book.next_id(), buyer_id=2, buyer_name="House No. 102",
                   amount=80.0, price_mode="tou", monthly_consumption_kwh=450.0),
        BuyRequest(id=book.next_id(), buyer_id=3, buyer_name="House No. 103",
                   amount=30.0, price_mode="fixed", monthly_consumption_kwh=250.0),
    ]
    evs = [
        ElectricVehicle(id=1, name="EV-001", model="BYD Atto 3", house_id=2,
                        owner="House No. 102", battery_capacity_kwh=60.0,
                        current_charge=50.0, is_charging=True, charging_power_kw=6.0),
    ]
    return AppState(houses=houses, evs=evs, plant=make_plant(), trading=book)


@pytest.fixture
def store(tmp_path):
    return StateStore(StoreConfig(path=str(tmp_path / "state.json")))
