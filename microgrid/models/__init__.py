"""Data models for the micro-grid community and power pool."""

from .community import (
    Appliance,
    ConsumptionHistory,
    ElectricVehicle,
    HistoryPoint,
    Household,
    PlantState,
)
from .trading import (
    PLANT_SELLER_ID,
    PRICING_MODES,
    BuyRequest,
    CompanyOffer,
    HouseOffer,
    PendingReplacement,
    PlantOffer,
    PricingMode,
    ProfitAndLoss,
    SellOffer,
    Transaction,
    offer_from_dict,
)

__all__ = [
    "Appliance",
    "BuyRequest",
    "CompanyOffer",
    "ConsumptionHistory",
    "ElectricVehicle",
    "HistoryPoint",
    "HouseOffer",
    "Household",
    "PLANT_SELLER_ID",
    "PRICING_MODES",
    "PendingReplacement",
    "PlantOffer",
    "PlantState",
    "PricingMode",
    "ProfitAndLoss",
    "SellOffer",
    "Transaction",
    "offer_from_dict",
]
