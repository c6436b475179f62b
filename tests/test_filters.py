import copy

from campaign_planner.filters import apply_filters, normalize_quarter

ROWS = [
    {"id": "a", "region": "SAIL", "quarter": "Q1 - July", "status": "Planning", "digitalMotions": True,
     "description": "Partner webinar series", "programType": "Webinars"},
    {"id": "b", "region": "ANZ", "quarter": "Q1 July", "status": "Shipped", "digitalMotions": "true",
     "description": "Executive dinner", "programType": "In-Account Events (1:1)"},
    {"id": "c", "region": "SAIL", "quarter": "Q2 October", "status": "Planning", "digitalMotions": False,
     "description": "Webinar follow-up", "programType": "Webinars"},
]


def _ids(rows):
    return [row["id"] for row in rows]


def test_normalize_quarter():
    assert normalize_quarter("Q1 - July") == "Q1 July"
    assert normalize_quarter("Q1-July") == "Q1 July"
    assert normalize_quarter("Q1 July") == "Q1 July"
    assert normalize_quarter(None) is None


def test_quarter_matches_across_formats():
    assert _ids(apply_filters(ROWS, {"quarter": "Q1 July"})) == ["a", "b"]
    assert _ids(apply_filters(ROWS, {"quarter": "Q1 - July"})) == ["a", "b"]


def test_exact_match_on_categorical_fields():
    assert _ids(apply_filters(ROWS, {"region": "SAIL"})) == ["a", "c"]
    assert _ids(apply_filters(ROWS, {"region": "SAIL", "status": "Planning", "programType": "Webinars"})) == ["a", "c"]
    assert _ids(apply_filters(ROWS, {"region": "sail"})) == []


def test_multi_select_and_empty_filters():
    assert _ids(apply_filters(ROWS, {"region": ["ANZ", "SAIL"], "status": ["Shipped"]})) == ["b"]
    assert _ids(apply_filters(ROWS, {"region": [], "owner": None})) == ["a", "b", "c"]
    assert _ids(apply_filters(ROWS, {})) == ["a", "b", "c"]
    assert _ids(apply_filters(ROWS, None)) == ["a", "b", "c"]


def test_flag_filter_requires_strict_true():
    assert _ids(apply_filters(ROWS, {"digitalMotions": True})) == ["a"]
    assert _ids(apply_filters(ROWS, {"digitalMotions": False})) == ["a", "b", "c"]


def test_description_keywords_must_all_match():
    assert _ids(apply_filters(ROWS, {"descriptionKeyword": ["WEBINAR"]})) == ["a", "c"]
    assert _ids(apply_filters(ROWS, {"descriptionKeyword": ["webinar", "partner"]})) == ["a"]


def test_inputs_are_not_mutated():
    rows = copy.deepcopy(ROWS)
    out = apply_filters(rows, {"quarter": "Q1 July"})
    assert rows == ROWS
    assert out is not rows
    assert out[0]["quarter"] == "Q1 - July"
