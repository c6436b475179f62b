from __future__ import annotations

import re
from typing import Any, Callable, Iterable

QUARTER_SEPARATOR = re.compile(r"\s*-\s*")

FLAG_FILTERS = {"digitalMotions"}
KEYWORD_FILTERS = {"descriptionKeyword": "description"}


def normalize_quarter(quarter: Any) -> Any:
    if not isinstance(quarter, str):
        return quarter
    return QUARTER_SEPARATOR.sub(" ", quarter).strip()


def _as_choices(value: Any) -> list[Any] | None:
    if value is None:
        return None
    if isinstance(value, (list, tuple, set, frozenset)):
        choices = list(value)
        return choices or None
    return [value]


def _build_predicate(field: str, value: Any) -> Callable[[dict[str, Any]], bool] | None:
    if field in FLAG_FILTERS:
        if not value:
            return None
        return lambda row: row.get(field) is True

    if field in KEYWORD_FILTERS:
        keywords = [str(word).lower() for word in (_as_choices(value) or []) if str(word).strip()]
        if not keywords:
            return None
        source = KEYWORD_FILTERS[field]

        def keyword_match(row: dict[str, Any]) -> bool:
            text = str(row.get(source) or "").lower()
            return all(word in text for word in keywords)

        return keyword_match

    choices = _as_choices(value)
    if choices is None:
        return None

    if field == "quarter":
        quarters = {normalize_quarter(choice) for choice in choices}
        return lambda row: normalize_quarter(row.get("quarter")) in quarters

    if len(choices) == 1:
        expected = choices[0]
        return lambda row: row.get(field) == expected
    return lambda row: row.get(field) in choices


def apply_filters(rows: Iterable[dict[str, Any]], filter_spec: dict[str, Any] | None) -> list[dict[str, Any]]:
    predicates = []
    for field, value in (filter_spec or {}).items():
        predicate = _build_predicate(field, value)
        if predicate is not None:
            predicates.append(predicate)

    if not predicates:
        return list(rows)
    return [row for row in rows if all(predicate(row) for predicate in predicates)]
