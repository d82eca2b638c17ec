"""Append-only transaction log with reserve and profit accounting."""

from typing import Optional

from microgrid.models import ProfitAndLoss, Transaction


def summarize(transactions: list[Transaction]) -> ProfitAndLoss:
    """Aggregate a transaction log by a full scan."""
    buy_volume = buy_cost = sell_volume = sell_revenue = 0.0
    for tx in transactions:
        if tx.type == "buy":
            buy_volume += tx.kwh
            buy_cost += tx.total
        elif tx.type == "sell":
            sell_volume += tx.kwh
            sell_revenue += tx.total
    return ProfitAndLoss(
        buy_volume_kwh=buy_volume,
        buy_cost=buy_cost,
        sell_volume_kwh=sell_volume,
        sell_revenue=sell_revenue,
    )


class TransactionLedger:
    """
    Wraps the state's transaction list.

    Running totals are kept alongside the log; :meth:`reserve` and
    :meth:`profit_and_loss` always rescan the log, the ``running_*``
    variants read the incremental totals.
    """

    def __init__(self, transactions: list[Transaction]) -> None:
        self._transactions = transactions
        self._totals = summarize(transactions)

    def __len__(self) -> int:
        return len(self._transactions)

    def append(self, tx: Transaction) -> None:
        self._transactions.append(tx)
        totals = self._totals
        if tx.type == "buy":
            self._totals = ProfitAndLoss(
                buy_volume_kwh=totals.buy_volume_kwh + tx.kwh,
                buy_cost=totals.buy_cost + tx.total,
                sell_volume_kwh=totals.sell_volume_kwh,
                sell_revenue=totals.sell_revenue,
            )
        else:
            self._totals = ProfitAndLoss(
                buy_volume_kwh=totals.buy_volume_kwh,
                buy_cost=totals.buy_cost,
                sell_volume_kwh=totals.sell_volume_kwh + tx.kwh,
                sell_revenue=totals.sell_revenue + tx.total,
            )

    def reserve(self) -> float:
        """kWh bought by the pool minus kWh sold, from a full scan."""
        return summarize(self._transactions).energy_holding_kwh

    def running_reserve(self) -> float:
        return self._totals.energy_holding_kwh

    def profit_and_loss(self) -> ProfitAndLoss:
        return summarize(self._transactions)

    def running_profit_and_loss(self) -> ProfitAndLoss:
        return self._totals

    def history(
        self,
        tx_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """Transactions most-recent-first, optionally filtered by type."""
        selected = [
            tx for tx in reversed(self._transactions)
            if tx_type is None or tx.type == tx_type
        ]
        return selected[:limit] if limit is not None else selected
