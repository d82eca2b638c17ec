"""Tests for application state and the JSON state store."""

import json
import os
from unittest import mock

import pytest

from conftest import make_house
from microgrid.models import PendingReplacement, PlantOffer, Transaction
from microgrid.state import ALLOCATION_CHANGED
from microgrid.storage import StateStore, find_stale_reason, state_from_dict, state_to_dict


class TestSolarAllocation:
    """Tests for AppState solar allocation."""

    def test_clamps_total_to_100(self, state):
        """Test the requesting house is clamped to the remainder."""
        assert state.set_solar_allocation(1, 60) == 60
        assert state.set_solar_allocation(2, 30) == 30
        assert state.set_solar_allocation(3, 50) == 10
        assert state.total_solar_allocation() == 100

    def test_never_exceeds_100(self, state):
        """Test repeated over-allocation never pushes past 100."""
        for house_id, pct in [(1, 90), (2, 90), (3, 90), (1, 100), (2, 5)]:
            state.set_solar_allocation(house_id, pct)
            assert state.total_solar_allocation() <= 100

    def test_clamps_to_range(self, state):
        """Test values outside [0, 100] are clamped."""
        assert state.set_solar_allocation(1, 150) == 100
        assert state.set_solar_allocation(1, -5) == 0

    def test_can_lower_own_share(self, state):
        """Test a house can reduce its share when the total is full."""
        state.set_solar_allocation(1, 100)
        assert state.set_solar_allocation(1, 40) == 40
        assert state.set_solar_allocation(2, 70) == 60

    def test_unknown_house(self, state):
        """Test an unknown house is ignored."""
        assert state.set_solar_allocation(99, 50) == 0
        assert state.total_solar_allocation() == 0

    def test_distributed_power(self, state):
        """Test plant power routed to a house."""
        state.set_solar_allocation(1, 25)
        assert state.distributed_solar_power(1) == 10.0
        assert state.distributed_solar_power(99) == 0

    def test_reset(self, state):
        """Test reset clears every allocation."""
        state.set_solar_allocation(1, 25)
        state.reset_solar_allocation()
        assert state.total_solar_allocation() == 0

    def test_notifies(self, state):
        """Test allocation changes notify listeners until unsubscribed."""
        events = []
        unsubscribe = state.subscribe(events.append)
        state.set_solar_allocation(1, 25)
        unsubscribe()
        state.set_solar_allocation(1, 30)
        assert events == [ALLOCATION_CHANGED]

    def test_lookups(self, state):
        """Test house lookup and totals."""
        assert state.get_house(2).name == "House No. 102"
        assert state.get_house(42) is None
        assert state.total_consumption_kw() == 6.0


class TestStateStore:
    """Tests for StateStore."""

    def test_load_missing(self, store):
        """Test a missing file loads as None."""
        assert not store.exists()
        assert store.load() is None

    def test_round_trip(self, state, store):
        """Test persisted collections reload equal."""
        state.trading.sell_offers.insert(0, PlantOffer(id=state.trading.next_id(), amount=30.0))
        state.transactions.append(Transaction(
            type="buy", seller_id="1", seller_name="House No. 101", buyer_id="pool",
            buyer_name="Gearlaxy Pool", kwh=12.5, price=4.0, pricing_mode="fixed",
            timestamp="2024-06-15T05:00:00+00:00",
        ))
        state.pending_replacements.append(PendingReplacement(kind="offer", due_at=1718427601.5))

        store.save(state)
        loaded = store.load()

        assert loaded.houses == state.houses
        assert loaded.evs == state.evs
        assert loaded.plant == state.plant
        assert loaded.trading.sell_offers == state.trading.sell_offers
        assert loaded.trading.buy_requests == state.trading.buy_requests
        assert loaded.trading.offer_id_counter == state.trading.offer_id_counter
        assert loaded.transactions == state.transactions
        assert loaded.pending_replacements == state.pending_replacements

    def test_layout_keys(self, state, store):
        """Test the persisted top-level layout."""
        store.save(state)
        data = json.loads(store.path.read_text())
        assert set(data) == {
            "houses", "evData", "solarData", "tradingOffers",
            "transactions", "pendingReplacements", "lastUpdated",
        }
        assert set(data["tradingOffers"]) == {"sellOffers", "buyRequests", "offerIdCounter"}

    def test_no_temp_file_left(self, state, store):
        """Test atomic save leaves only the state file."""
        store.save(state)
        assert os.listdir(store.path.parent) == [store.path.name]

    def test_corrupt_file(self, store, caplog):
        """Test unparsable JSON is discarded with a warning."""
        store.path.write_text("{broken")
        assert store.load() is None
        assert "unreadable" in caplog.text

    def test_stale_file(self, state, store, caplog):
        """Test out-of-range documents are discarded."""
        state.houses[0].monthly_consumption_kwh = 900
        store.save(state)
        assert store.load() is None
        assert "stale" in caplog.text

    def test_malformed_file(self, state, store):
        """Test structurally invalid documents are discarded."""
        store.save(state)
        data = json.loads(store.path.read_text())
        data["tradingOffers"]["sellOffers"][0]["kind"] = "grid"
        store.path.write_text(json.dumps(data))
        assert store.load() is None

    @pytest.mark.parametrize("mutate", [
        lambda d: d["houses"][0].update(monthly_consumption_kwh="300"),
        lambda d: d["houses"][0].update(solar_panels="6"),
        lambda d: d.update(houses={"a": 1}),
        lambda d: d.update(houses=["house"]),
        lambda d: d.update(evData=[None]),
        lambda d: d.update(tradingOffers=["x"]),
        lambda d: d.update(solarData="sunny"),
    ], ids=["string-consumption", "string-panels", "houses-dict", "house-not-object",
            "ev-not-object", "offers-list", "plant-not-object"])
    def test_wrong_types_discarded(self, state, store, caplog, mutate):
        """Test documents with wrongly typed fields are discarded, not raised."""
        data = state_to_dict(state)
        mutate(data)
        store.path.write_text(json.dumps(data))

        assert store.load() is None
        assert "Discarding" in caplog.text

    def test_offers_wrong_type_rejected_on_decode(self, state):
        """Test state_from_dict rejects a non-object order book."""
        data = state_to_dict(state)
        data["tradingOffers"] = ["x"]
        with pytest.raises(TypeError):
            state_from_dict(data)

    def test_missing_keys_tolerated(self, state, store):
        """Test optional keys may be absent."""
        data = state_to_dict(state)
        for key in ("tradingOffers", "transactions", "pendingReplacements", "lastUpdated"):
            del data[key]
        store.path.write_text(json.dumps(data))

        loaded = store.load()
        assert loaded.trading is None
        assert loaded.transactions == []

    def test_save_failure(self, state, store):
        """Test write failures surface as RuntimeError."""
        with mock.patch("microgrid.storage.state_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(RuntimeError, match="Failed to save state"):
                store.save(state)

    def test_try_save(self, state, store, caplog):
        """Test try_save reports failures instead of raising."""
        assert store.try_save(state) is True
        with mock.patch("microgrid.storage.state_store.os.replace", side_effect=OSError("disk full")):
            assert store.try_save(state) is False
        assert "Failed to save state" in caplog.text

    def test_clear(self, state, store):
        """Test clear removes the file and tolerates absence."""
        store.save(state)
        store.clear()
        assert not store.exists()
        store.clear()


class TestStaleDetection:
    """Tests for find_stale_reason."""

    def test_valid(self, state):
        """Test a current document passes."""
        assert find_stale_reason(state_to_dict(state)) is None

    @pytest.mark.parametrize("monthly", [49, 801])
    def test_consumption_out_of_range(self, state, monthly):
        """Test monthly consumption outside 50-800."""
        state.houses[0].monthly_consumption_kwh = monthly
        assert "monthly consumption" in find_stale_reason(state_to_dict(state))

    @pytest.mark.parametrize("panels", [1, 4, 8])
    def test_bad_panel_count(self, state, panels):
        """Test panel counts other than 0 or 5-7."""
        state.houses[0].solar_panels = panels
        assert "solar panels" in find_stale_reason(state_to_dict(state))

    def test_ev_missing_model(self, state):
        """Test EVs need a model and house id."""
        data = state_to_dict(state)
        del data["evData"][0]["model"]
        assert "EV" in find_stale_reason(data)

    def test_no_houses(self, state):
        """Test an empty community is stale."""
        state.houses = []
        assert find_stale_reason(state_to_dict(state)) == "no houses"

    def test_zero_panels_valid(self, state):
        """Test houses without solar pass."""
        state.houses = [make_house(1, panels=0)]
        assert find_stale_reason(state_to_dict(state)) is None
