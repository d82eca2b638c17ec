"""Power pool trading engine.

The pool is the counterparty to every trade: it buys energy from sellers
(houses, external companies, the central plant) and separately sells energy
to households. It never brokers a direct seller-to-buyer trade.
"""

import logging
import math
import random
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from microgrid.config import MarketConfig, PricingConfig
from microgrid.models import (
    BuyRequest,
    PendingReplacement,
    PlantOffer,
    ProfitAndLoss,
    SellOffer,
    Transaction,
)
from microgrid.state import DATA_CHANGED, AppState, TradingBook
from microgrid.storage import StateStore
from .errors import (
    InsufficientReserveError,
    InvalidAmountError,
    UnknownOfferError,
    UnknownRequestError,
)
from .ledger import TransactionLedger
from .market import OfferFactory
from .pricing import PriceSchedule

logger = logging.getLogger(__name__)


class TradingEngine:
    """
    Operates the single-pool market.

    Every mutation is written to the store immediately and announced to the
    state's listeners. Validation happens before any mutation, so a rejected
    call leaves the state untouched.

    Example:
        >>> engine = TradingEngine(state, store=store, seed=42)
        >>> tx = engine.accept_sell_offer(offer_id=3, kwh=40)
        >>> engine.get_reserve()
        40.0
    """

    def __init__(
        self,
        state: AppState,
        store: Optional[StateStore] = None,
        pricing: Optional[PricingConfig] = None,
        config: Optional[MarketConfig] = None,
        seed: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the engine, synthesizing a market if the state has none.

        Args:
            state: Application state; the engine mutates its trading book
            store: Store written after every mutation (None disables saving)
            pricing: Pricing configuration
            config: Market configuration
            seed: Random seed for reproducibility
            clock: Returns the current Unix time in seconds
        """
        self.state = state
        self.store = store
        self.config = config or MarketConfig()
        self.prices = PriceSchedule(pricing)
        self._clock = clock
        self._random = random.Random(seed)
        self._factory = OfferFactory(self.config, self._random)
        self.ledger = TransactionLedger(state.transactions)

        self.initialize_market()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def book(self) -> TradingBook:
        assert self.state.trading is not None
        return self.state.trading

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    def _local_now(self) -> datetime:
        return datetime.fromtimestamp(self._clock())

    def _commit(self) -> None:
        # The trade is already applied in memory; a failed write must not undo it
        if self.store is not None and not self.store.try_save(self.state):
            logger.warning("Trade kept in memory but not persisted")
        self.state.notify(DATA_CHANGED)

    def _find_offer(self, offer_id: int) -> int:
        for index, offer in enumerate(self.book.sell_offers):
            if offer.id == offer_id:
                return index
        raise UnknownOfferError(f"No sell offer with id {offer_id}")

    def _find_request(self, request_id: int) -> int:
        for index, request in enumerate(self.book.buy_requests):
            if request.id == request_id:
                return index
        raise UnknownRequestError(f"No buy request with id {request_id}")

    @staticmethod
    def _validate_amount(kwh: float, available: float, what: str) -> None:
        if not isinstance(kwh, (int, float)) or not math.isfinite(kwh) or kwh <= 0:
            raise InvalidAmountError(f"Amount must be a positive number of kWh, got {kwh!r}")
        if kwh > available:
            raise InvalidAmountError(
                f"Amount {kwh:,.2f} kWh exceeds the {available:,.2f} kWh available in the {what}"
            )

    def _schedule_replacement(self, kind: str) -> None:
        due_at = self._clock() + self.config.replacement_delay_seconds
        self.state.pending_replacements.append(PendingReplacement(kind=kind, due_at=due_at))

    def _add_random_offer(self) -> SellOffer:
        offer = self._factory.random_offer(self.state.houses, self.book.next_id)
        self.book.sell_offers.append(offer)
        return offer

    def _add_random_request(self) -> Optional[BuyRequest]:
        if not self.state.houses:
            return None
        request = self._factory.random_request(self.state.houses, self.book.next_id)
        self.book.buy_requests.append(request)
        return request

    # ------------------------------------------------------------------
    # Market set-up and listing
    # ------------------------------------------------------------------

    def initialize_market(self) -> bool:
        """
        Synthesize the initial order book when the state has none.

        Returns:
            True if a new book was created
        """
        if self.state.trading is not None:
            return False

        book = TradingBook()
        book.sell_offers = self._factory.initial_offers(self.state.houses, book.next_id)
        book.buy_requests = self._factory.initial_requests(self.state.houses, book.next_id)
        self.state.trading = book

        logger.info(
            "Initialized market with %d sell offers and %d buy requests",
            len(book.sell_offers),
            len(book.buy_requests),
        )
        self._commit()
        return True

    def list_sell_offers(self) -> list[SellOffer]:
        return list(self.book.sell_offers)

    def list_buy_requests(self) -> list[BuyRequest]:
        return list(self.book.buy_requests)

    def market_overview(self) -> dict:
        """Seller/buyer counts, open volumes and current prices."""
        offers = self.book.sell_offers
        requests = self.book.buy_requests
        return {
            "seller_count": len({str(o.seller_id) for o in offers}),
            "offered_kwh": sum(o.amount for o in offers),
            "buyer_count": len({r.buyer_id for r in requests}),
            "requested_kwh": sum(r.amount for r in requests),
            "price_period": self.get_price_period(),
            "buy_prices": {mode: self.get_buy_price(mode) for mode in ("tou", "fixed")},
            "sell_prices": {mode: self.get_sell_price(mode) for mode in ("tou", "fixed")},
        }

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def get_price_period(self) -> str:
        return self.prices.get_price_period(self._local_now())

    def get_buy_price(self, mode: str) -> float:
        return self.prices.get_buy_price(mode, self._local_now())

    def get_sell_price(self, mode: str) -> float:
        return self.prices.get_sell_price(mode, self._local_now())

    # ------------------------------------------------------------------
    # Trades
    # ------------------------------------------------------------------

    def accept_sell_offer(self, offer_id: int, kwh: float) -> Transaction:
        """
        Buy ``kwh`` from an open sell offer at the fixed buy price.

        Args:
            offer_id: Id of the sell offer
            kwh: Amount to buy

        Returns:
            The recorded buy transaction

        Raises:
            UnknownOfferError: If no offer has this id
            InvalidAmountError: If kwh <= 0 or exceeds the offer's remaining amount
        """
        index = self._find_offer(offer_id)
        offer = self.book.sell_offers[index]
        self._validate_amount(kwh, offer.amount, "offer")

        mode = "fixed"
        tx = Transaction(
            type="buy",
            seller_id=str(offer.seller_id),
            seller_name=offer.seller_name,
            buyer_id=self.config.pool_id,
            buyer_name=self.config.pool_name,
            kwh=kwh,
            price=self.get_buy_price(mode),
            pricing_mode=mode,
            timestamp=self._now().isoformat(),
        )
        self.ledger.append(tx)

        if isinstance(offer, PlantOffer):
            self.state.plant.discharge(kwh)

        if kwh >= offer.amount:
            del self.book.sell_offers[index]
            self._schedule_replacement("offer")
        else:
            offer.amount -= kwh

        logger.info(
            "Pool bought %.2f kWh from %s at %.2f/kWh (total %.2f)",
            kwh,
            offer.seller_name,
            tx.price,
            tx.total,
        )
        self._commit()
        return tx

    def accept_buy_request(self, request_id: int, kwh: float) -> Transaction:
        """
        Sell ``kwh`` to a buy request at the buyer's chosen pricing mode.

        Args:
            request_id: Id of the buy request
            kwh: Amount to sell

        Returns:
            The recorded sell transaction

        Raises:
            UnknownRequestError: If no request has this id
            InvalidAmountError: If kwh <= 0 or exceeds the request's remaining amount
            InsufficientReserveError: If kwh exceeds the pool's energy reserve
        """
        index = self._find_request(request_id)
        request = self.book.buy_requests[index]
        self._validate_amount(kwh, request.amount, "request")

        totals = self.get_profit_and_loss()
        reserve = totals.energy_holding_kwh
        if totals.buy_volume_kwh - (totals.sell_volume_kwh + kwh) < 0:
            logger.warning(
                "Rejected sale of %.2f kWh to %s: reserve is %.2f kWh",
                kwh,
                request.buyer_name,
                reserve,
            )
            raise InsufficientReserveError(kwh, reserve)

        mode = request.price_mode
        tx = Transaction(
            type="sell",
            seller_id=self.config.pool_id,
            seller_name=self.config.pool_name,
            buyer_id=str(request.buyer_id),
            buyer_name=request.buyer_name,
            kwh=kwh,
            price=self.get_sell_price(mode),
            pricing_mode=mode,
            timestamp=self._now().isoformat(),
        )
        self.ledger.append(tx)

        if kwh >= request.amount:
            del self.book.buy_requests[index]
            self._schedule_replacement("request")
        else:
            request.amount -= kwh

        logger.info(
            "Pool sold %.2f kWh to %s at %.2f/kWh (%s, total %.2f)",
            kwh,
            request.buyer_name,
            tx.price,
            mode,
            tx.total,
        )
        self._commit()
        return tx

    # ------------------------------------------------------------------
    # Market dynamics
    # ------------------------------------------------------------------

    def run_pending(self, now: Optional[float] = None) -> int:
        """
        Add replacement offers/requests whose delay has elapsed.

        Args:
            now: Unix time to compare against; defaults to the engine clock

        Returns:
            Number of replacements added
        """
        now = self._clock() if now is None else now
        pending = self.state.pending_replacements
        due = [p for p in pending if p.due_at <= now]
        if not due:
            return 0

        for replacement in due:
            pending.remove(replacement)
            if replacement.kind == "offer":
                self._add_random_offer()
            else:
                self._add_random_request()

        logger.debug("Added %d replacement entries", len(due))
        self._commit()
        return len(due)

    def tick(self) -> dict[str, int]:
        """
        Perturb the market: random arrivals and withdrawals.

        Returns:
            Counts of offers/requests added and removed
        """
        cfg = self.config
        book = self.book
        changes = {"offers_added": 0, "requests_added": 0, "offers_removed": 0, "requests_removed": 0}

        if self._random.random() < cfg.add_offer_probability and len(book.sell_offers) < cfg.max_book_size:
            self._add_random_offer()
            changes["offers_added"] += 1

        if (
            self._random.random() < cfg.add_request_probability
            and len(book.buy_requests) < cfg.max_book_size
            and self._add_random_request() is not None
        ):
            changes["requests_added"] += 1

        if self._random.random() < cfg.remove_offer_probability and len(book.sell_offers) > cfg.min_book_size:
            removable = [o for o in book.sell_offers if not isinstance(o, PlantOffer)]
            if removable:
                book.sell_offers.remove(self._random.choice(removable))
                changes["offers_removed"] += 1

        if self._random.random() < cfg.remove_request_probability and len(book.buy_requests) > cfg.min_book_size:
            book.buy_requests.pop(self._random.randrange(len(book.buy_requests)))
            changes["requests_removed"] += 1

        if any(changes.values()):
            logger.debug("Market tick: %s", changes)
        self._commit()
        return changes

    def update_plant_offer(self, available_kwh: float) -> Optional[PlantOffer]:
        """
        Keep the plant's standing offer in line with its surplus.

        At most one plant offer exists. Changes smaller than the update
        threshold are ignored; amounts at or below the minimum remove it.

        Returns:
            The current plant offer, or None if there is none
        """
        cfg = self.config
        offers = self.book.sell_offers
        index = next((i for i, o in enumerate(offers) if isinstance(o, PlantOffer)), None)
        existing = offers[index] if index is not None else None

        if existing is not None and abs(existing.amount - available_kwh) < cfg.plant_offer_update_threshold_kwh:
            return existing

        if available_kwh > cfg.plant_offer_min_kwh:
            amount = round(available_kwh, 2)
            if existing is not None:
                existing.amount = amount
            else:
                existing = PlantOffer(id=self.book.next_id(), amount=amount)
                offers.insert(0, existing)
                logger.info("Central plant offering %.2f kWh", amount)
        elif existing is not None:
            del offers[index]
            existing = None
            logger.info("Central plant surplus too low, offer withdrawn")
        else:
            return None

        self._commit()
        return existing

    # ------------------------------------------------------------------
    # Accounting
    # ------------------------------------------------------------------

    def get_reserve(self) -> float:
        """Energy reserve: kWh bought minus kWh sold, recomputed from the log."""
        return self.ledger.reserve()

    def get_profit_and_loss(self) -> ProfitAndLoss:
        return self.ledger.profit_and_loss()

    def get_transactions(
        self,
        tx_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """Transaction log, most-recent-first, optionally filtered by type."""
        return self.ledger.history(tx_type, limit)
