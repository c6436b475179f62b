from __future__ import annotations

from typing import Any, Iterable

import numpy as np
import pandas as pd

from campaign_planner.io_utils import to_float
from campaign_planner.schema import DIGITAL_MOTIONS_REGION, REGION_METRIC_COLUMNS, SHIPPED_STATUS


def assigned_budget(budgets: dict[str, Any], region: str) -> float:
    entry = (budgets or {}).get(region)
    if isinstance(entry, dict):
        entry = entry.get("assignedBudget")
    return to_float(entry) or 0.0


def region_metrics(rows: Iterable[dict[str, Any]], budgets: dict[str, Any]) -> pd.DataFrame:
    frame = pd.DataFrame(list(rows))
    if frame.empty:
        return pd.DataFrame(columns=REGION_METRIC_COLUMNS)

    for column, default in [
        ("region", "Unknown"),
        ("status", ""),
        ("digitalMotions", False),
        ("forecastedCost", 0.0),
        ("actualCost", 0.0),
    ]:
        if column not in frame.columns:
            frame[column] = default

    region = frame["region"].fillna("Unknown").astype(str).replace("", "Unknown")
    digital = frame["digitalMotions"].apply(lambda value: value is True)
    frame["bucket"] = np.where(digital, DIGITAL_MOTIONS_REGION, region)

    cost = frame["forecastedCost"].apply(to_float).fillna(0.0).astype(float)
    actual = frame["actualCost"].apply(to_float).fillna(0.0).astype(float)
    shipped = frame["status"] == SHIPPED_STATUS
    frame["actuals"] = np.where(shipped, actual, 0.0)
    frame["open_forecast"] = np.where(shipped, 0.0, cost)

    output = frame.groupby("bucket", as_index=False, sort=False).agg(
        actuals=("actuals", "sum"),
        open_forecast=("open_forecast", "sum"),
    )
    output = output.rename(columns={"bucket": "region"})
    output["forecast"] = output["open_forecast"] + output["actuals"]
    output["plan"] = output["region"].apply(lambda name: assigned_budget(budgets, name)).astype(float)
    output["varPlan"] = output["plan"] - output["forecast"]
    output["varActual"] = output["plan"] - output["actuals"]
    return output[REGION_METRIC_COLUMNS].reset_index(drop=True)
