"""
Micro-grid simulation: wires the community, the central plant and the
trading engine together and drives them on their refresh cadences.
"""

import logging
import time
from datetime import datetime
from typing import Callable, Optional

from microgrid.analysis import community_average_daily_kwh, ev_fleet_stats
from microgrid.config import SimulationConfig
from microgrid.simulators import (
    CommunityGenerator,
    CommunitySimulator,
    SolarPlantSimulator,
)
from microgrid.state import ALLOCATION_CHANGED, DATA_CHANGED, AppState
from microgrid.storage import StateStore
from microgrid.trading import TradingEngine

logger = logging.getLogger(__name__)


class MicrogridSimulation:
    """
    Orchestrates all simulators over one shared application state.

    On construction the persisted state is loaded; when it is missing,
    corrupt or stale a fresh community is generated instead.
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        store: Optional[StateStore] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the simulation.

        Args:
            config: Simulation configuration
            store: State store; defaults to one built from ``config.store``
            clock: Returns the current Unix time in seconds
        """
        self.config = config or SimulationConfig()
        self.store = store or StateStore(self.config.store)
        self._clock = clock
        seed = self.config.seed

        state = self.store.load()
        if state is None:
            generator = CommunityGenerator(
                config=self.config.community,
                plant_config=self.config.plant,
                seed=seed,
            )
            state = generator.generate(self._now())
            logger.info(
                "Generated community with %d houses and %d EVs",
                len(state.houses),
                len(state.evs),
            )
        self.state: AppState = state

        self.community = CommunitySimulator(
            self.state,
            seed=seed + 1 if seed is not None else None,
        )
        self.plant = SolarPlantSimulator(
            self.state.plant,
            config=self.config.plant,
            seed=seed + 2 if seed is not None else None,
        )
        self.engine = TradingEngine(
            self.state,
            store=self.store,
            pricing=self.config.pricing,
            config=self.config.market,
            seed=seed + 3 if seed is not None else None,
            clock=clock,
        )
        self.state.subscribe(self._on_state_event)

    def _on_state_event(self, event: str) -> None:
        # Trades and refreshes save themselves; allocation changes come from
        # AppState directly and are persisted here.
        if event == ALLOCATION_CHANGED:
            self.store.try_save(self.state)

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock())

    def refresh(self, timestamp: Optional[datetime] = None) -> AppState:
        """
        Advance households, EVs and the plant one refresh step.

        The plant's surplus is pushed to its standing market offer.
        """
        if timestamp is None:
            timestamp = self._now()

        self.community.step(timestamp)
        self.plant.step(timestamp)
        self.engine.update_plant_offer(self.plant.get_surplus())

        self.store.try_save(self.state)
        self.state.notify(DATA_CHANGED)

        logger.debug(
            "Refreshed: load=%.2fkW, plant=%.2fkW, plant battery=%.1f%%",
            self.state.total_consumption_kw(),
            self.state.plant.current_production_kw,
            self.state.plant.battery_level,
        )
        return self.state

    def market_tick(self) -> dict[str, int]:
        """Run due replacements, then perturb the order book."""
        self.engine.run_pending()
        return self.engine.tick()

    def summary(self) -> dict:
        """Snapshot of the community, plant and pool for display."""
        pnl = self.engine.get_profit_and_loss()
        plant = self.state.plant
        fleet = ev_fleet_stats(self.state, rate=self.config.community.electricity_rate)
        return {
            "houses": len(self.state.houses),
            "evs": len(self.state.evs),
            "evs_charging": fleet.charging,
            "ev_charging_kw": round(fleet.charging_power_kw, 2),
            "ev_daily_cost": round(fleet.estimated_daily_cost),
            "total_consumption_kw": round(self.state.total_consumption_kw(), 2),
            "average_daily_kwh": round(community_average_daily_kwh(self.state), 2),
            "plant_production_kw": round(plant.current_production_kw, 2),
            "plant_battery_level": round(plant.battery_level, 1),
            "plant_surplus_kwh": round(self.plant.get_surplus(), 2),
            "sell_offers": len(self.engine.list_sell_offers()),
            "buy_requests": len(self.engine.list_buy_requests()),
            "price_period": self.engine.get_price_period(),
            "reserve_kwh": round(self.engine.get_reserve(), 2),
            "profit_and_loss": pnl.to_dict(),
        }


class SimulationRunner:
    """
    Runner for one-shot or continuous simulation.

    Continuous mode drives two cadences from a single loop: the community
    refresh and the market tick. Pending replacements are checked on every
    loop turn.
    """

    def __init__(
        self,
        simulation: MicrogridSimulation,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.simulation = simulation
        self._clock = clock
        self._sleep = sleep
        self._running = False

    def run_once(self) -> dict:
        """Run a single refresh and market tick."""
        self.simulation.refresh()
        self.simulation.market_tick()
        summary = self.simulation.summary()
        logger.info(
            "Load=%.2fkW, Plant=%.2fkW, Plant battery=%.1f%%, Reserve=%.2fkWh",
            summary["total_consumption_kw"],
            summary["plant_production_kw"],
            summary["plant_battery_level"],
            summary["reserve_kwh"],
        )
        return summary

    def run_continuous(
        self,
        duration_seconds: Optional[float] = None,
        poll_seconds: float = 0.5,
    ) -> None:
        """
        Run the simulation continuously.

        Args:
            duration_seconds: Optional total duration. None = run forever.
            poll_seconds: Loop granularity for pending replacements
        """
        cfg = self.simulation.config
        self._running = True
        start_time = self._clock()
        next_refresh = start_time
        next_market = start_time + cfg.market_interval_seconds

        logger.info(
            "Starting simulation: refresh every %ss, market every %ss",
            cfg.refresh_interval_seconds,
            cfg.market_interval_seconds,
        )

        try:
            while self._running:
                now = self._clock()

                if now >= next_refresh:
                    self.simulation.refresh()
                    next_refresh += cfg.refresh_interval_seconds

                if now >= next_market:
                    self.simulation.market_tick()
                    next_market += cfg.market_interval_seconds
                else:
                    self.simulation.engine.run_pending(now)

                if duration_seconds is not None and now - start_time >= duration_seconds:
                    logger.info("Duration reached, stopping")
                    break

                wait = min(next_refresh, next_market) - self._clock()
                self._sleep(max(0.0, min(poll_seconds, wait)))

        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        finally:
            self._running = False

    def stop(self) -> None:
        """Stop the runner."""
        self._running = False
