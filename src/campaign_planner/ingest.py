from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from campaign_planner.errors import InvalidInput
from campaign_planner.io_utils import as_bool, is_blank, read_json, write_json

log = logging.getLogger("campaign_planner.ingest")

FIELD_ALIASES = {
    "programType": [
        "campaign type", "program type", "type", "category", "initiative type", "motion type",
    ],
    "campaignName": ["campaign name", "campaign", "name", "program name", "title"],
    "strategicPillars": [
        "strategic pillars", "pillars", "pillar", "strategic pillar", "focus area", "strategic focus",
    ],
    "revenuePlay": ["revenue play", "revenue stream", "play", "business play"],
    "fiscalYear": ["fiscal year", "fy", "year", "financial year", "fin year"],
    "quarter": ["quarter", "quarter month", "qtr", "q", "fiscal quarter", "period", "quartermonth"],
    "region": [
        "region", "area", "territory", "geographic region", "geo", "market region", "sales region",
    ],
    "country": ["country", "nation", "geography", "location", "market", "country region"],
    "owner": [
        "owner", "responsible", "manager", "contact", "point of contact", "poc",
        "campaign owner", "responsible person", "assignee",
    ],
    "description": [
        "description", "desc", "details", "campaign description", "summary", "overview", "notes",
    ],
    "forecastedCost": [
        "forecasted cost", "forecast cost", "cost", "budget", "estimated cost", "investment",
        "spend", "allocation",
    ],
    "expectedLeads": [
        "expected leads", "leads", "target leads", "forecasted leads", "lead target", "projected leads",
    ],
    "mqlForecast": [
        "mql forecast", "forecasted mql", "expected mql", "mql target", "marketing qualified leads",
        "projected mql", "target mql", "mql",
    ],
    "pipelineForecast": [
        "pipeline forecast", "forecasted pipeline", "expected pipeline", "pipeline target",
        "projected pipeline", "target pipeline", "sales pipeline", "revenue pipeline", "pipeline",
    ],
    "status": [
        "status", "state", "phase", "stage", "progress", "campaign status", "current status",
        "execution status",
    ],
    "digitalMotions": [
        "digital motions", "dm", "digital", "is digital", "digital flag",
    ],
}

QUARTER_COLUMNS = ["quarter", "qtr", "q", "fiscal quarter"]
MONTH_COLUMNS = ["month", "months", "delivery month", "target month", "launch month"]

CATEGORICAL_DEFAULTS = {
    "region": "Global",
    "owner": "Unassigned",
    "status": "Planning",
}

MONTHS = {
    "jan": "January",
    "feb": "February",
    "mar": "March",
    "apr": "April",
    "may": "May",
    "jun": "June",
    "jul": "July",
    "aug": "August",
    "sep": "September",
    "oct": "October",
    "nov": "November",
    "dec": "December",
}


def normalize_header(name: Any) -> str:
    text = str(name or "").strip().lower()
    text = re.sub(r"[\s_\-/]+", " ", text)
    text = re.sub(r"[^\w\s]", "", text)
    return text.strip()


def _alias_index() -> dict[str, str]:
    index: dict[str, str] = {}
    for field, aliases in FIELD_ALIASES.items():
        for alias in [field.lower()] + aliases:
            index.setdefault(normalize_header(alias), field)
    return index


ALIAS_INDEX = _alias_index()


def map_csv_columns(headers: Iterable[str]) -> dict[str, str]:
    mapping: dict[str, str] = {}
    used: set[str] = set()
    for header in headers:
        field = ALIAS_INDEX.get(normalize_header(header))
        if field is None or field in used:
            continue
        mapping[header] = field
        used.add(field)
    return mapping


def find_quarter_month_columns(headers: Iterable[str]) -> tuple[str | None, str | None]:
    quarter_header: str | None = None
    month_header: str | None = None
    for header in headers:
        key = normalize_header(header)
        if quarter_header is None and key in QUARTER_COLUMNS:
            quarter_header = header
        elif month_header is None and ALIAS_INDEX.get(key) != "quarter" and any(alias in key for alias in MONTH_COLUMNS):
            month_header = header
    return quarter_header, month_header


def normalize_month(value: str) -> str | None:
    key = value.strip().lower()
    if key[:3] in MONTHS and (len(key) == 3 or MONTHS[key[:3]].lower() == key):
        return MONTHS[key[:3]]
    return None


def infer_quarter(month: str) -> str:
    position = list(MONTHS.values()).index(month)
    return f"Q{position // 3 + 1}"


def combine_quarter_month(*values: Any) -> str:
    quarter = ""
    month = ""
    for value in values:
        text = "" if is_blank(value) else str(value).strip()
        if re.fullmatch(r"[qQ][1-4]", text):
            quarter = text.upper()
        elif text and normalize_month(text):
            month = normalize_month(text) or ""

    if quarter and month:
        return f"{quarter} {month}"
    if quarter:
        return quarter
    if month:
        return f"{infer_quarter(month)} {month}"
    for value in values:
        if not is_blank(value):
            return str(value).strip()
    return "Q1"


def load_campaign_csv(csv_path: Path) -> list[dict[str, Any]]:
    source = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
    source = source.loc[:, ~source.columns.str.contains("^Unnamed")]

    headers = [str(col) for col in source.columns]
    mapping = map_csv_columns(headers)
    if not mapping:
        raise InvalidInput(f"No recognisable campaign columns in {csv_path.name}: {headers}")

    quarter_header, month_header = find_quarter_month_columns(headers)
    frame = source[list(mapping.keys())].rename(columns=mapping)
    frame = frame.apply(lambda column: column.str.strip())

    if quarter_header is not None and month_header is not None:
        frame["quarter"] = [
            combine_quarter_month(quarter, month)
            for quarter, month in zip(source[quarter_header], source[month_header])
        ]

    if "digitalMotions" in frame.columns:
        frame["digitalMotions"] = frame["digitalMotions"].apply(as_bool)
    else:
        frame["digitalMotions"] = False

    for field, default in CATEGORICAL_DEFAULTS.items():
        if field not in frame.columns:
            frame[field] = default
        else:
            frame[field] = frame[field].replace("", default)

    rows: list[dict[str, Any]] = []
    for record in frame.to_dict(orient="records"):
        rows.append({key: value for key, value in record.items() if not is_blank(value)})

    unmapped = [header for header in headers if header not in mapping]
    log.info(
        "Imported %d rows from %s (%d columns mapped, unmapped: %s)",
        len(rows),
        csv_path.name,
        len(mapping),
        unmapped or "none",
    )
    return rows


def load_rows_json(path: Path) -> list[dict[str, Any]]:
    payload = read_json(path)
    if isinstance(payload, dict):
        payload = payload.get("rows", payload.get("data"))
    if not isinstance(payload, list):
        raise InvalidInput(f"{path.name} does not contain a row array.")
    return payload


def save_rows_json(path: Path, rows: list[dict[str, Any]], domain: str) -> dict[str, Any]:
    payload = {
        "domain": domain,
        "saved_at": datetime.now(timezone.utc).isoformat(),
        "row_count": len(rows),
        "rows": rows,
    }
    write_json(path, payload)
    return payload
