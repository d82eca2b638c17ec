"""Application state shared by the simulators and the trading engine."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from microgrid.models import (
    BuyRequest,
    ElectricVehicle,
    Household,
    PendingReplacement,
    PlantState,
    SellOffer,
    Transaction,
)

logger = logging.getLogger(__name__)

DATA_CHANGED = "data_changed"
ALLOCATION_CHANGED = "allocation_changed"

Listener = Callable[[str], None]


@dataclass
class TradingBook:
    """Open sell offers and buy requests plus the shared id counter."""

    sell_offers: list[SellOffer] = field(default_factory=list)
    buy_requests: list[BuyRequest] = field(default_factory=list)
    offer_id_counter: int = 1

    def next_id(self) -> int:
        """Assign the next id from the monotonically increasing counter."""
        assigned = self.offer_id_counter
        self.offer_id_counter += 1
        return assigned


@dataclass
class AppState:
    """Single owner of all community and market entities.

    Listeners registered with :meth:`subscribe` are called with an event name
    after state changes: ``data_changed`` for refreshes and trades,
    ``allocation_changed`` when a solar allocation is adjusted.
    """

    houses: list[Household]
    evs: list[ElectricVehicle]
    plant: PlantState
    trading: Optional[TradingBook] = None
    transactions: list[Transaction] = field(default_factory=list)
    pending_replacements: list[PendingReplacement] = field(default_factory=list)
    _listeners: list[Listener] = field(default_factory=list, repr=False, compare=False)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, event: str) -> None:
        """Call every listener with ``event``."""
        for listener in list(self._listeners):
            listener(event)

    def get_house(self, house_id: int) -> Optional[Household]:
        """Get a house by id, or None if unknown."""
        return next((h for h in self.houses if h.id == house_id), None)

    def total_consumption_kw(self) -> float:
        return sum(h.current_consumption_kw for h in self.houses)

    def total_solar_allocation(self) -> float:
        return sum(h.solar_allocation for h in self.houses)

    def set_solar_allocation(self, house_id: int, percentage: float) -> float:
        """
        Set a house's share of central plant output.

        The requested share is clamped so the community total never exceeds
        100%.

        Args:
            house_id: House to update
            percentage: Requested share (0-100)

        Returns:
            The share actually applied, or 0.0 for an unknown house
        """
        house = self.get_house(house_id)
        if house is None:
            return 0.0

        requested = max(0.0, min(100.0, percentage))
        others = self.total_solar_allocation() - house.solar_allocation
        final = min(requested, max(0.0, 100.0 - others))
        if final != requested:
            logger.info(
                "Clamped solar allocation for %s from %.1f%% to %.1f%%",
                house.name,
                requested,
                final,
            )

        house.solar_allocation = final
        self.notify(ALLOCATION_CHANGED)
        return final

    def reset_solar_allocation(self) -> None:
        for house in self.houses:
            house.solar_allocation = 0.0
        self.notify(ALLOCATION_CHANGED)

    def distributed_solar_power(self, house_id: int) -> float:
        """Central plant power (kW) currently routed to a house."""
        house = self.get_house(house_id)
        if house is None:
            return 0.0
        return self.plant.current_production_kw * house.solar_allocation / 100
