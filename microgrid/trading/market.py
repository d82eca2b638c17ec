"""Synthetic sell offers and buy requests for the simulated market."""

import random
from typing import Callable

from microgrid.config import MarketConfig
from microgrid.models import BuyRequest, CompanyOffer, Household, HouseOffer, SellOffer

IdFactory = Callable[[], int]


class OfferFactory:
    """Builds the initial order book and random market arrivals."""

    def __init__(self, config: MarketConfig, rng: random.Random) -> None:
        self.config = config
        self._random = rng

    def monthly_solar_surplus(self, house: Household) -> float:
        """Monthly solar production minus consumption (kWh), floored at 0."""
        cfg = self.config
        production = (
            house.solar_panels
            * cfg.panel_kw
            * cfg.peak_sun_hours
            * cfg.days_per_month
            * cfg.system_efficiency
        )
        return max(0.0, production - house.monthly_consumption_kwh)

    def initial_offers(self, houses: list[Household], next_id: IdFactory) -> list[SellOffer]:
        offers: list[SellOffer] = []
        for house in houses:
            if not house.has_solar:
                continue
            surplus = self.monthly_solar_surplus(house)
            if surplus > self.config.min_house_surplus_kwh:
                offers.append(HouseOffer(
                    id=next_id(),
                    seller_id=house.id,
                    seller_name=house.name,
                    amount=round(surplus),
                    solar_panels=house.solar_panels,
                ))

        for company in self.config.initial_companies:
            offers.append(CompanyOffer(
                id=next_id(),
                seller_id=f"ext-{company['name']}",
                seller_name=company["name"],
                amount=company["amount"],
                description=company.get("description", ""),
            ))
        return offers

    def _random_mode(self) -> str:
        return "tou" if self._random.random() > 0.5 else "fixed"

    def initial_requests(self, houses: list[Household], next_id: IdFactory) -> list[BuyRequest]:
        cfg = self.config
        requests = []
        for house in houses:
            wants_to_buy = (
                not house.has_solar
                or house.monthly_consumption_kwh > cfg.buyer_consumption_threshold_kwh
            )
            if not wants_to_buy:
                continue
            mode = self._random_mode()
            share = self._random.uniform(cfg.request_share_min, cfg.request_share_max)
            requests.append(BuyRequest(
                id=next_id(),
                buyer_id=house.id,
                buyer_name=house.name,
                amount=round(house.monthly_consumption_kwh * share),
                price_mode=mode,
                monthly_consumption_kwh=house.monthly_consumption_kwh,
            ))
        return requests

    def random_offer(self, houses: list[Household], next_id: IdFactory) -> SellOffer:
        cfg = self.config
        if not houses or self._random.random() < cfg.company_offer_probability:
            company = self._random.choice(cfg.market_companies)
            offer_id = next_id()
            return CompanyOffer(
                id=offer_id,
                seller_id=f"ext-{company['name']}-{offer_id}",
                seller_name=company["name"],
                amount=round(company["amount"] * self._random.uniform(0.8, 1.2)),
                description="New offer",
            )

        house = self._random.choice(houses)
        return HouseOffer(
            id=next_id(),
            seller_id=house.id,
            seller_name=house.name,
            amount=round(self._random.uniform(cfg.house_offer_min_kwh, cfg.house_offer_max_kwh)),
            solar_panels=house.solar_panels or 5,
        )

    def random_request(self, houses: list[Household], next_id: IdFactory) -> BuyRequest:
        cfg = self.config
        house = self._random.choice(houses)
        return BuyRequest(
            id=next_id(),
            buyer_id=house.id,
            buyer_name=house.name,
            amount=round(self._random.uniform(cfg.request_min_kwh, cfg.request_max_kwh)),
            price_mode=self._random_mode(),
            monthly_consumption_kwh=house.monthly_consumption_kwh,
        )
