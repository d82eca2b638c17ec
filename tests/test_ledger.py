"""Tests for the transaction ledger."""

import pytest

from microgrid.models import Transaction
from microgrid.trading import TransactionLedger, summarize


def tx(kind: str, kwh: float, price: float) -> Transaction:
    return Transaction(
        type=kind,
        seller_id="pool" if kind == "sell" else "1",
        seller_name="x",
        buyer_id="pool" if kind == "buy" else "2",
        buyer_name="y",
        kwh=kwh,
        price=price,
        pricing_mode="fixed",
        timestamp="2024-06-15T05:00:00+00:00",
    )


class TestSummarize:
    """Tests for summarize."""

    def test_empty(self):
        """Test an empty log aggregates to zero."""
        pnl = summarize([])
        assert pnl.energy_holding_kwh == 0
        assert pnl.net_profit == 0
        assert pnl.margin_percent == 0

    def test_mixed(self):
        """Test buys and sells aggregate separately."""
        pnl = summarize([tx("buy", 10, 4.0), tx("sell", 4, 5.8), tx("buy", 5, 2.6)])
        assert pnl.buy_volume_kwh == 15
        assert pnl.buy_cost == pytest.approx(53.0)
        assert pnl.sell_volume_kwh == 4
        assert pnl.sell_revenue == pytest.approx(23.2)


class TestTransactionLedger:
    """Tests for TransactionLedger."""

    def test_wraps_existing_log(self):
        """Test totals start from an existing log."""
        log = [tx("buy", 10, 4.0)]
        ledger = TransactionLedger(log)
        assert len(ledger) == 1
        assert ledger.running_reserve() == 10

    def test_append_writes_through(self):
        """Test appends land in the wrapped list."""
        log = []
        ledger = TransactionLedger(log)
        ledger.append(tx("buy", 10, 4.0))
        assert len(log) == 1

    def test_running_matches_full_scan(self):
        """Test incremental totals agree with a recompute."""
        ledger = TransactionLedger([])
        for i in range(1, 50):
            ledger.append(tx("buy", i * 1.1, 4.0))
            ledger.append(tx("sell", i * 0.7, 4.5))
            assert ledger.running_reserve() == pytest.approx(ledger.reserve())
        assert ledger.running_profit_and_loss().sell_revenue == pytest.approx(
            ledger.profit_and_loss().sell_revenue
        )

    def test_history(self):
        """Test most-recent-first with filter and limit."""
        first, second, third = tx("buy", 1, 4.0), tx("sell", 2, 4.5), tx("buy", 3, 4.0)
        ledger = TransactionLedger([first, second, third])
        assert ledger.history() == [third, second, first]
        assert ledger.history("buy") == [third, first]
        assert ledger.history("buy", limit=1) == [third]
        assert ledger.history(limit=0) == []
