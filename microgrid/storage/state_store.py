"""JSON file store for the simulated micro-grid state.

The whole state is written as a single JSON document after every mutation
and read back at start-up. Stale or corrupt documents are discarded so the
caller can regenerate them.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from microgrid.config import StoreConfig
from microgrid.models import (
    BuyRequest,
    ElectricVehicle,
    Household,
    PendingReplacement,
    PlantState,
    Transaction,
    offer_from_dict,
)
from microgrid.state import AppState, TradingBook

logger = logging.getLogger(__name__)

# Ranges a persisted document must satisfy to be reused
MIN_MONTHLY_CONSUMPTION_KWH = 50
MAX_MONTHLY_CONSUMPTION_KWH = 800
MIN_PANELS = 5
MAX_PANELS = 7


def state_to_dict(state: AppState) -> dict[str, Any]:
    """Serialize application state into the persisted layout."""
    data: dict[str, Any] = {
        "houses": [h.to_dict() for h in state.houses],
        "evData": [ev.to_dict() for ev in state.evs],
        "solarData": state.plant.to_dict(),
        "transactions": [tx.to_dict() for tx in state.transactions],
        "pendingReplacements": [p.to_dict() for p in state.pending_replacements],
        "lastUpdated": datetime.now(timezone.utc).isoformat(),
    }
    if state.trading is not None:
        data["tradingOffers"] = {
            "sellOffers": [o.to_dict() for o in state.trading.sell_offers],
            "buyRequests": [r.to_dict() for r in state.trading.buy_requests],
            "offerIdCounter": state.trading.offer_id_counter,
        }
    return data


def state_from_dict(data: dict[str, Any]) -> AppState:
    """Rebuild application state from the persisted layout.

    Raises:
        AttributeError, KeyError, TypeError, ValueError: If the document is malformed
    """
    trading = None
    offers = data.get("tradingOffers")
    if offers is not None:
        if not isinstance(offers, dict):
            raise TypeError(f"tradingOffers must be an object, got {type(offers).__name__}")
        trading = TradingBook(
            sell_offers=[offer_from_dict(o) for o in offers.get("sellOffers", [])],
            buy_requests=[BuyRequest.from_dict(r) for r in offers.get("buyRequests", [])],
            offer_id_counter=offers.get("offerIdCounter", 1),
        )

    return AppState(
        houses=[Household.from_dict(h) for h in data["houses"]],
        evs=[ElectricVehicle.from_dict(ev) for ev in data.get("evData", [])],
        plant=PlantState.from_dict(data["solarData"]),
        trading=trading,
        transactions=[Transaction.from_dict(t) for t in data.get("transactions", [])],
        pending_replacements=[
            PendingReplacement.from_dict(p) for p in data.get("pendingReplacements", [])
        ],
    )


def find_stale_reason(data: dict[str, Any]) -> Optional[str]:
    """
    Check a persisted document against the current schema.

    Returns:
        A description of the first problem found, or None if the document
        can be reused
    """
    houses = data.get("houses")
    if not houses:
        return "no houses"
    if not isinstance(houses, list):
        return "houses is not a list"
    if not isinstance(data.get("solarData"), dict):
        return "missing solarData"

    for house in houses:
        if not isinstance(house, dict):
            return "house entry is not an object"
        monthly = house.get("monthly_consumption_kwh")
        if monthly is None:
            return f"house {house.get('id')} has no monthly consumption"
        if not _is_number(monthly):
            return f"house {house.get('id')} monthly consumption {monthly!r} is not a number"
        if not MIN_MONTHLY_CONSUMPTION_KWH <= monthly <= MAX_MONTHLY_CONSUMPTION_KWH:
            return f"house {house.get('id')} monthly consumption {monthly} out of range"
        panels = house.get("solar_panels", 0)
        if not isinstance(panels, int) or isinstance(panels, bool):
            return f"house {house.get('id')} solar panel count {panels!r} is not an integer"
        if panels != 0 and not MIN_PANELS <= panels <= MAX_PANELS:
            return f"house {house.get('id')} has {panels} solar panels"

    evs = data.get("evData", [])
    if not isinstance(evs, list):
        return "evData is not a list"
    for ev in evs:
        if not isinstance(ev, dict):
            return "EV entry is not an object"
        if not ev.get("model") or not ev.get("house_id"):
            return f"EV {ev.get('id')} is missing model or house_id"

    if "tradingOffers" in data and not isinstance(data["tradingOffers"], dict):
        return "tradingOffers is not an object"

    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class StateStore:
    """Whole-document JSON store for :class:`AppState`.

    Example:
        >>> store = StateStore(StoreConfig(path="state.json"))
        >>> state = store.load()  # None on cold start
        >>> store.save(state)
    """

    def __init__(self, config: Optional[StoreConfig] = None) -> None:
        self.config = config or StoreConfig()
        self._path = Path(self.config.path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def load(self) -> Optional[AppState]:
        """Load state from disk.

        Returns:
            The stored state, or None if it is missing, corrupt or stale
        """
        if not self._path.exists():
            logger.info("No persisted state found at %s", self._path)
            return None

        try:
            with open(self._path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Discarding unreadable state at %s: %s", self._path, e)
            return None

        if not isinstance(data, dict):
            logger.warning("Discarding state at %s: not a JSON object", self._path)
            return None

        try:
            reason = find_stale_reason(data)
            if reason is not None:
                logger.warning("Discarding stale state at %s: %s", self._path, reason)
                return None
            state = state_from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding malformed state at %s: %s", self._path, e)
            return None

        logger.info("Loaded persisted state from %s", self._path)
        return state

    def save(self, state: AppState) -> None:
        """Overwrite the stored document with ``state``.

        Raises:
            RuntimeError: If the file cannot be written
        """
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w") as f:
                json.dump(state_to_dict(state), f, indent=2)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            logger.error("Failed to save state to %s: %s", self._path, exc)
            raise RuntimeError(f"Failed to save state to {self._path}: {exc}") from exc
        logger.debug("State saved to %s", self._path)

    def try_save(self, state: AppState) -> bool:
        """Save ``state`` without raising.

        Returns:
            True if the document was written, False otherwise
        """
        try:
            self.save(state)
            return True
        except RuntimeError:
            # save() has already logged the failure
            return False

    def clear(self) -> None:
        """Remove the stored document."""
        try:
            self._path.unlink()
            logger.info("Removed persisted state at %s", self._path)
        except FileNotFoundError:
            pass
