"""
Micro-grid Simulator - Command Line Interface

Simulates a residential solar micro-grid community:
- Households with appliances, consumption history and rooftop solar
- An EV fleet
- A central solar plant with battery storage
- A power pool that buys surplus energy and sells to households

Usage:
    # Run a single refresh and market tick
    python run_simulator.py --once

    # Run continuously (refresh every 3s, market every 5s)
    python run_simulator.py --continuous --duration 60

    # Show community, plant and pool status
    python run_simulator.py --status

    # Show the order book
    python run_simulator.py --market

    # Trade with the pool
    python run_simulator.py --accept-offer 3 --kwh 40
    python run_simulator.py --accept-request 7 --kwh 20

    # Export a household's consumption history
    python run_simulator.py --export-csv 101 --period daily --output house101.csv

    # Discard the persisted state and start over
    python run_simulator.py --reset
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from microgrid.config import DEFAULT_CONFIG, SimulationConfig
from microgrid.export import export_history_csv
from microgrid.simulation import MicrogridSimulation, SimulationRunner
from microgrid.storage import StateStore
from microgrid.trading import TradeRejected

load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def print_json(data) -> None:
    """Print data as formatted JSON to stdout."""
    print(json.dumps(data, indent=2, default=str))


def run_once(config: SimulationConfig) -> None:
    """Run a single refresh and market tick."""
    runner = SimulationRunner(MicrogridSimulation(config))
    print_json(runner.run_once())


def run_continuous(config: SimulationConfig, duration: float | None = None) -> None:
    """Run the simulation continuously."""
    runner = SimulationRunner(MicrogridSimulation(config))
    runner.run_continuous(duration_seconds=duration)


def show_status(config: SimulationConfig) -> None:
    """Print a snapshot without advancing the simulation."""
    print_json(MicrogridSimulation(config).summary())


def show_market(config: SimulationConfig) -> None:
    """Print the open sell offers and buy requests."""
    engine = MicrogridSimulation(config).engine
    print_json({
        "overview": engine.market_overview(),
        "sell_offers": [o.to_dict() for o in engine.list_sell_offers()],
        "buy_requests": [r.to_dict() for r in engine.list_buy_requests()],
    })


def trade(config: SimulationConfig, offer_id: int | None, request_id: int | None, kwh: float) -> bool:
    """Accept a sell offer or a buy request on behalf of the pool."""
    engine = MicrogridSimulation(config).engine
    try:
        if offer_id is not None:
            tx = engine.accept_sell_offer(offer_id, kwh)
        else:
            tx = engine.accept_buy_request(request_id, kwh)
    except TradeRejected as e:
        logger.error("Trade rejected: %s", e)
        return False

    print_json({
        "transaction": tx.to_dict(),
        "reserve_kwh": round(engine.get_reserve(), 2),
        "profit_and_loss": engine.get_profit_and_loss().to_dict(),
    })
    return True


def export_csv(config: SimulationConfig, house_id: int, period: str, output: Path | None) -> bool:
    """Export one household's consumption history to CSV."""
    simulation = MicrogridSimulation(config)
    house = simulation.state.get_house(house_id)
    if house is None:
        logger.error("Unknown house id: %s", house_id)
        return False
    path = export_history_csv(house, period, output)
    print(path)
    return True


def reset_state(config: SimulationConfig) -> None:
    """Delete the persisted state file."""
    StateStore(config.store).clear()
    logger.info("State file %s removed", config.store.path)


def generate_sample_config(output_path: Path) -> None:
    """Generate a sample configuration file."""
    DEFAULT_CONFIG.to_file(output_path)
    logger.info("Sample config written to %s", output_path)


def main():
    parser = argparse.ArgumentParser(
        description="Micro-grid Simulator - Simulate a solar community and its power pool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    # Mode selection
    mode_group = parser.add_mutually_exclusive_group(required=True)
    mode_group.add_argument(
        "--once",
        action="store_true",
        help="Run a single refresh and market tick and exit",
    )
    mode_group.add_argument(
        "--continuous",
        action="store_true",
        help="Run continuously on the configured cadences",
    )
    mode_group.add_argument(
        "--status",
        action="store_true",
        help="Show community, plant and pool status",
    )
    mode_group.add_argument(
        "--market",
        action="store_true",
        help="Show the open sell offers and buy requests",
    )
    mode_group.add_argument(
        "--accept-offer",
        type=int,
        metavar="OFFER_ID",
        help="Buy from a sell offer into the pool (requires --kwh)",
    )
    mode_group.add_argument(
        "--accept-request",
        type=int,
        metavar="REQUEST_ID",
        help="Sell from the pool to a buy request (requires --kwh)",
    )
    mode_group.add_argument(
        "--export-csv",
        type=int,
        metavar="HOUSE_ID",
        help="Export a household's consumption history to CSV",
    )
    mode_group.add_argument(
        "--reset",
        action="store_true",
        help="Discard the persisted state",
    )
    mode_group.add_argument(
        "--generate-config",
        action="store_true",
        help="Generate a sample configuration file",
    )

    # Configuration options
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to configuration JSON file",
    )
    parser.add_argument(
        "--state-file",
        type=str,
        default=None,
        help="Path of the JSON state file (default: microgrid_state.json)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for reproducibility",
    )
    parser.add_argument(
        "--duration",
        type=float,
        help="Duration in seconds for continuous mode (default: run forever)",
    )
    parser.add_argument(
        "--kwh",
        type=float,
        help="Trade amount in kWh",
    )
    parser.add_argument(
        "--period",
        choices=["hourly", "daily", "monthly"],
        default="daily",
        help="History period for CSV export (default: daily)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Output CSV path",
    )

    # Verbosity
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress log output",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    # Configure logging level
    if args.quiet:
        logging.getLogger().setLevel(logging.WARNING)
    elif args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    # Load or create configuration
    if args.config and not args.generate_config:
        if not args.config.exists():
            parser.error(f"Configuration file not found: {args.config}")
        config = SimulationConfig.from_file(args.config)
        logger.info("Loaded config from %s", args.config)
    else:
        config = SimulationConfig()

    # Apply command line overrides (only if explicitly provided)
    if args.state_file is not None:
        config.store.path = args.state_file
    if args.seed is not None:
        config.seed = args.seed

    # Execute selected mode
    if args.generate_config:
        output_path = args.config or Path("config.json")
        generate_sample_config(output_path)

    elif args.once:
        run_once(config)

    elif args.continuous:
        run_continuous(config, args.duration)

    elif args.status:
        show_status(config)

    elif args.market:
        show_market(config)

    elif args.accept_offer is not None or args.accept_request is not None:
        if args.kwh is None:
            parser.error("--accept-offer and --accept-request require --kwh")
        if not trade(config, args.accept_offer, args.accept_request, args.kwh):
            sys.exit(1)

    elif args.export_csv is not None:
        if not export_csv(config, args.export_csv, args.period, args.output):
            sys.exit(1)

    elif args.reset:
        reset_state(config)


if __name__ == "__main__":
    main()
