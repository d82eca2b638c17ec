"""Consumption history export to pandas DataFrames and CSV."""

import logging
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from microgrid.models import Household

logger = logging.getLogger(__name__)

_LABEL_COLUMNS = {
    "hourly": "timestamp",
    "daily": "date",
    "monthly": "month",
}


def history_frame(house: Household, period: str) -> pd.DataFrame:
    """
    Build a DataFrame of one household's consumption history.

    Args:
        house: Household to export
        period: ``hourly``, ``daily`` or ``monthly``

    Returns:
        DataFrame with a label column and a ``consumption_kwh`` column
    """
    points = house.history.series(period)
    label = _LABEL_COLUMNS[period]
    df = pd.DataFrame(
        {
            label: [p.label for p in points],
            "consumption_kwh": [p.consumption for p in points],
        },
        columns=[label, "consumption_kwh"],
    )
    if period == "hourly" and not df.empty:
        df[label] = pd.to_datetime(df[label])
    df.insert(0, "house", house.name)
    return df


def export_history_csv(
    house: Household,
    period: str,
    path: Optional[Union[str, Path]] = None,
) -> Path:
    """
    Write a household's history to CSV.

    Args:
        house: Household to export
        period: ``hourly``, ``daily`` or ``monthly``
        path: Output file; defaults to ``house_<id>_<period>.csv``

    Returns:
        Path of the written file
    """
    df = history_frame(house, period)
    out = Path(path) if path is not None else Path(f"house_{house.id}_{period}.csv")
    out.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out, index=False)
    logger.info("Exported %d %s rows for %s to %s", len(df), period, house.name, out)
    return out
