"""Tests for community and solar plant simulators."""

from datetime import datetime

import pytest

from conftest import make_plant
from microgrid.config import CommunityConfig, PlantConfig
from microgrid.simulators import (
    CommunityGenerator,
    CommunitySimulator,
    SolarPlantSimulator,
)
from microgrid.simulators.community import APPLIANCE_TYPES, EV_MODELS, hourly_multiplier

TS = datetime(2024, 6, 15, 12, 0, 0)


class TestSolarPlantSimulator:
    """Tests for SolarPlantSimulator."""

    def test_no_production_at_night(self):
        """Test zero production outside 06:00-18:00."""
        sim = SolarPlantSimulator(make_plant(), seed=42)
        for hour in (0, 3, 5, 19, 23):
            assert sim.generate(datetime(2024, 6, 15, hour)) == 0

    def test_edges_of_daylight_are_zero(self):
        """Test the curve reaches zero at 06:00 and 18:00."""
        sim = SolarPlantSimulator(make_plant(), seed=42)
        assert sim.generate(datetime(2024, 6, 15, 6)) == 0
        assert sim.generate(datetime(2024, 6, 15, 18)) == 0

    def test_peak_at_noon_within_jitter(self):
        """Test noon output is 45 kW +/-10%."""
        sim = SolarPlantSimulator(make_plant(), seed=42)
        for _ in range(50):
            assert 40.5 <= sim.generate(TS) <= 49.5

    def test_curve_is_triangular(self):
        """Test 09:00 output is half of peak within jitter."""
        sim = SolarPlantSimulator(make_plant(), seed=42)
        value = sim.generate(datetime(2024, 6, 15, 9))
        assert 22.5 * 0.9 <= value <= 22.5 * 1.1

    def test_battery_delta_by_hour(self):
        """Test per-refresh battery changes by hour bucket."""
        sim = SolarPlantSimulator(make_plant(), seed=42)
        assert sim._battery_delta(3) == pytest.approx(-0.0025)
        assert sim._battery_delta(8) == pytest.approx(0.005)
        assert sim._battery_delta(14) == pytest.approx(0.0075)
        assert sim._battery_delta(20) == pytest.approx(-0.005)

    def test_battery_clamped(self):
        """Test the battery stays within [5, 100]."""
        plant = make_plant(battery_level=99.999)
        sim = SolarPlantSimulator(plant, seed=42)
        sim.step(datetime(2024, 6, 15, 14))
        assert plant.battery_level == 100

        plant.battery_level = 5.001
        sim.step(datetime(2024, 6, 15, 23))
        assert plant.battery_level == 5

    def test_step_updates_production(self):
        """Test step writes production into the plant state."""
        plant = make_plant()
        SolarPlantSimulator(plant, seed=42).step(datetime(2024, 6, 15, 0))
        assert plant.current_production_kw == 0

    def test_surplus(self):
        """Test surplus above the 60% reserve threshold."""
        plant = make_plant(battery_level=75.0)
        sim = SolarPlantSimulator(plant)
        assert sim.get_surplus() == pytest.approx(30.0)

        plant.battery_level = 55.0
        assert sim.get_surplus() == 0

    def test_hourly_profile(self):
        """Test the 24-point profile."""
        profile = SolarPlantSimulator(make_plant(), seed=1).hourly_profile()
        assert len(profile) == 24
        assert profile[0]["production_kw"] == 0
        assert profile[12]["irradiance_w_m2"] == 1000
        assert max(p["production_kw"] for p in profile) <= 45

    def test_daily_output_and_co2(self):
        """Test daily output and CO2 estimates."""
        sim = SolarPlantSimulator(make_plant())
        assert sim.daily_output_kwh(TS) == 380
        assert sim.co2_saved_kg(TS) == pytest.approx(171.0)

    def test_invalid_config(self):
        """Test invalid plant configuration is rejected."""
        with pytest.raises(ValueError):
            SolarPlantSimulator(make_plant(), PlantConfig(battery_capacity_kwh=0))
        with pytest.raises(ValueError):
            SolarPlantSimulator(make_plant(), PlantConfig(reserve_threshold_percent=120))
        with pytest.raises(ValueError):
            SolarPlantSimulator(make_plant(), PlantConfig(min_battery_level=50, max_battery_level=40))

    def test_reproducibility_with_seed(self):
        """Test same seed produces same results."""
        a = SolarPlantSimulator(make_plant(), seed=42)
        b = SolarPlantSimulator(make_plant(), seed=42)
        assert a.generate(TS) == b.generate(TS)


class TestCommunityGenerator:
    """Tests for CommunityGenerator."""

    def test_house_names_and_count(self):
        """Test twelve houses named House No. 101-112."""
        houses = CommunityGenerator(seed=42).generate_houses(TS)
        assert len(houses) == 12
        assert houses[0].name == "House No. 101"
        assert houses[-1].name == "House No. 112"
        assert [h.id for h in houses] == list(range(1, 13))

    def test_house_ranges(self):
        """Test generated values stay within their ranges."""
        for seed in range(5):
            for house in CommunityGenerator(seed=seed).generate_houses(TS):
                assert 100 <= house.monthly_consumption_kwh <= 700
                assert 2 <= house.residents <= 6
                assert house.solar_panels == 0 or 5 <= house.solar_panels <= 7
                if house.has_solar:
                    solar_kw = house.solar_panels * 0.4
                    assert solar_kw * 2 - 0.01 <= house.battery_capacity_kwh <= solar_kw * 3 + 0.01
                else:
                    assert house.battery_capacity_kwh == 0

    def test_appliances(self):
        """Test every house gets the seven appliance types."""
        house = CommunityGenerator(seed=42).generate_houses(TS)[0]
        assert [a.name for a in house.appliances] == [t[0] for t in APPLIANCE_TYPES]
        for appliance, (_, low, high, priority) in zip(house.appliances, APPLIANCE_TYPES):
            assert low <= appliance.power_kw <= high
            assert appliance.priority == priority

    def test_history_lengths(self):
        """Test 24 hourly, 30 daily and 12 monthly points."""
        house = CommunityGenerator(seed=42).generate_houses(TS)[0]
        assert len(house.history.hourly) == 24
        assert len(house.history.daily) == 30
        assert len(house.history.monthly) == 12
        assert house.history.monthly[-1].label == "Jun"
        assert all(2.5 <= p.consumption <= 7.0 for p in house.history.daily)
        assert all(80 <= p.consumption <= 200 for p in house.history.monthly)

    def test_hourly_multiplier(self):
        """Test time-of-day multipliers."""
        assert hourly_multiplier(7) == 0.8
        assert hourly_multiplier(20) == 1.0
        assert hourly_multiplier(13) == 0.5
        assert hourly_multiplier(2) == 0.2

    def test_scenarios_assigned(self):
        """Test one solar problem and one blackout house."""
        houses = CommunityGenerator(seed=42).generate_houses(TS)
        problems = [h for h in houses if h.solar_problem]
        assert len(problems) <= 1
        assert all(h.has_solar for h in problems)
        assert sum(h.blackout for h in houses) == 1

    def test_ev_fleet(self):
        """Test EV fleet size and values."""
        gen = CommunityGenerator(seed=42)
        houses = gen.generate_houses(TS)
        evs = gen.generate_evs(houses)
        house_ids = {h.id for h in houses}

        assert 3 <= len(evs) <= 6
        for ev in evs:
            assert ev.model in EV_MODELS
            assert ev.house_id in house_ids
            assert 20 <= ev.current_charge <= 95
            assert 40 <= ev.battery_capacity_kwh <= 75
            if ev.is_charging:
                assert 3 <= ev.charging_power_kw <= 7
            else:
                assert ev.charging_power_kw == 0

    def test_plant(self):
        """Test initial plant state."""
        plant = CommunityGenerator(seed=42).generate_plant()
        assert plant.total_capacity_kw == 100
        assert plant.battery_capacity_kwh == 200
        assert 60 <= plant.battery_level <= 95

    def test_generate_state(self):
        """Test generate returns a state without a trading book."""
        state = CommunityGenerator(seed=42).generate(TS)
        assert len(state.houses) == 12
        assert state.trading is None
        assert state.transactions == []

    def test_reproducibility_with_seed(self):
        """Test same seed produces the same community."""
        a = CommunityGenerator(seed=7).generate(TS)
        b = CommunityGenerator(seed=7).generate(TS)
        assert a.houses == b.houses
        assert a.evs == b.evs

    def test_invalid_config(self):
        """Test invalid community configuration is rejected."""
        with pytest.raises(ValueError):
            CommunityGenerator(CommunityConfig(house_count=0))
        with pytest.raises(ValueError):
            CommunityGenerator(CommunityConfig(min_panels=8, max_panels=7))


class TestCommunitySimulator:
    """Tests for CommunitySimulator."""

    def test_consumption_random_walk(self, state):
        """Test consumption moves at most 10% per refresh."""
        before = {h.id: h.current_consumption_kw for h in state.houses}
        CommunitySimulator(state, seed=1).step(TS)
        for house in state.houses:
            assert before[house.id] * 0.9 - 1e-9 <= house.current_consumption_kw
            assert house.current_consumption_kw <= before[house.id] * 1.1 + 1e-9

    def test_ev_charging(self, state):
        """Test charging EVs gain 0.5% per refresh, capped at 100."""
        ev = state.evs[0]
        sim = CommunitySimulator(state, seed=1)
        sim.step(TS)
        assert ev.current_charge == 50.5

        ev.current_charge = 99.8
        sim.step(TS)
        assert ev.current_charge == 100

    def test_idle_ev_unchanged(self, state):
        """Test EVs that are not charging keep their charge."""
        ev = state.evs[0]
        ev.is_charging = False
        CommunitySimulator(state, seed=1).step(TS)
        assert ev.current_charge == 50

    def test_generate_does_not_mutate(self, state):
        """Test generate only proposes new values."""
        before = [h.current_consumption_kw for h in state.houses]
        values = CommunitySimulator(state, seed=1).generate(TS)
        assert set(values) == {h.id for h in state.houses}
        assert [h.current_consumption_kw for h in state.houses] == before
