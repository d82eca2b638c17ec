"""Trade rejection errors.

Every rejection is raised before any state is mutated.
"""


class TradeRejected(Exception):
    """Base class for a rejected trade."""


class InvalidAmountError(TradeRejected, ValueError):
    """The amount is non-positive or exceeds what is available."""


class InsufficientReserveError(TradeRejected):
    """The pool does not hold enough energy to complete a sale."""

    def __init__(self, requested_kwh: float, reserve_kwh: float) -> None:
        self.requested_kwh = requested_kwh
        self.reserve_kwh = reserve_kwh
        super().__init__(
            f"Insufficient energy reserve: {reserve_kwh:,.2f} kWh available, "
            f"{requested_kwh:,.2f} kWh requested. Buy more energy first."
        )


class UnknownOfferError(TradeRejected, LookupError):
    """No open sell offer has the given id."""


class UnknownRequestError(TradeRejected, LookupError):
    """No open buy request has the given id."""
