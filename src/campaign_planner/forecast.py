from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from campaign_planner.io_utils import is_blank, read_yaml, round_half_up, tidy_number, to_float
from campaign_planner.schema import IN_ACCOUNT_EVENTS


@dataclass(frozen=True)
class ForecastSettings:
    cost_per_lead: float = 24.0
    mql_rate: float = 0.10
    sql_rate: float = 0.06
    opp_rate: float = 0.80
    pipeline_per_opp: float = 50000.0
    in_account_pipeline_multiplier: float = 20.0
    special_program_type: str = IN_ACCOUNT_EVENTS

    @classmethod
    def from_mapping(cls, payload: dict[str, Any]) -> "ForecastSettings":
        known = {item.name for item in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in (payload or {}).items():
            if key not in known or value is None:
                continue
            values[key] = str(value) if key == "special_program_type" else float(value)
        settings = cls(**values)
        if settings.cost_per_lead <= 0:
            raise ValueError(f"cost_per_lead must be positive, got {settings.cost_per_lead}.")
        return settings

    @classmethod
    def from_yaml(cls, path: Path) -> "ForecastSettings":
        payload = read_yaml(path)
        return cls.from_mapping(payload.get("forecast", payload))


DEFAULT_SETTINGS = ForecastSettings()


def _coerce(value: Any) -> float:
    try:
        parsed = to_float(value)
    except ValueError:
        return 0.0
    return parsed if parsed is not None else 0.0


def is_imported(row: dict[str, Any], field: str) -> bool:
    return field in row and not is_blank(row[field])


def leads_from_cost(cost: float, settings: ForecastSettings = DEFAULT_SETTINGS) -> int:
    if cost <= 0:
        return 0
    return round_half_up(cost / settings.cost_per_lead)


def calculate_pipeline(leads: float, settings: ForecastSettings = DEFAULT_SETTINGS) -> float | int:
    opps = round_half_up(leads * settings.sql_rate * settings.opp_rate)
    return tidy_number(opps * settings.pipeline_per_opp)


def kpis(leads: float = 0, settings: ForecastSettings = DEFAULT_SETTINGS) -> dict[str, float | int]:
    return {
        "mqlForecast": round_half_up(leads * settings.mql_rate),
        "sqlForecast": round_half_up(leads * settings.sql_rate),
        "oppsForecast": round_half_up(leads * settings.sql_rate * settings.opp_rate),
        "pipelineForecast": calculate_pipeline(leads, settings),
    }


def calculate(row: dict[str, Any], settings: ForecastSettings = DEFAULT_SETTINGS) -> dict[str, float | int]:
    program_type = str(row.get("programType") or "").strip()
    cost = _coerce(row.get("forecastedCost"))
    special = program_type == settings.special_program_type
    has_leads = is_imported(row, "expectedLeads")
    has_mql = is_imported(row, "mqlForecast")

    if special and not (has_leads or has_mql):
        return {
            "expectedLeads": 0,
            "mqlForecast": 0,
            "sqlForecast": 0,
            "oppsForecast": 0,
            "pipelineForecast": tidy_number(cost * settings.in_account_pipeline_multiplier),
        }

    if has_leads:
        leads: float | int = tidy_number(_coerce(row["expectedLeads"]))
    elif special:
        leads = 0
    else:
        leads = leads_from_cost(cost, settings)

    derived: dict[str, float | int] = {"expectedLeads": leads}
    derived.update(kpis(leads, settings))
    if has_mql:
        derived["mqlForecast"] = tidy_number(_coerce(row["mqlForecast"]))
    return derived
