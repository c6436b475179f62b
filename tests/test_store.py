import copy
import logging

import pytest

from campaign_planner.errors import InvalidInput
from campaign_planner.store import PlanningStore, parse_row


def _rows():
    return [
        {"id": "r1", "campaignName": "Webinar series", "programType": "Webinars", "forecastedCost": 2400,
         "region": "SAIL", "quarter": "Q1 - July", "status": "Planning"},
        {"id": "r2", "campaignName": "Exec dinner", "programType": "In-Account Events (1:1)", "forecastedCost": "$5,000",
         "region": "ANZ", "quarter": "Q2 October", "status": "Shipped", "expectedLeads": 300},
    ]


@pytest.fixture
def store():
    s = PlanningStore()
    s.initialize(_rows())
    return s


def test_initialize_parses_and_calculates(store):
    r1, r2 = store.get_data()
    assert r1["expectedLeads"] == 100 and r1["mqlForecast"] == 10
    assert r1["__modified"] is False
    assert r2["forecastedCost"] == 5000
    assert r2["expectedLeads"] == 300
    assert store.imported_fields("r2") == frozenset({"expectedLeads"})


def test_initialize_rejects_non_list(store, caplog):
    before = store.get_data()
    with caplog.at_level(logging.ERROR):
        with pytest.raises(InvalidInput):
            store.initialize({"id": "x"})
    assert store.get_data() == before
    assert "expects a list" in caplog.text


def test_initialize_is_all_or_nothing(store):
    before = store.get_data()
    with pytest.raises(InvalidInput):
        store.initialize([{"id": "ok", "forecastedCost": 10}, {"id": "bad", "forecastedCost": "1.2.3"}])
    with pytest.raises(InvalidInput):
        store.initialize([{"id": "dup"}, {"id": "dup"}])
    with pytest.raises(InvalidInput):
        store.initialize([{"id": "neg", "forecastedCost": -5}])
    assert store.get_data() == before


def test_initialize_clears_deleted_rows(store):
    store.delete_row("r1")
    store.initialize(_rows())
    assert store.get_deleted_rows() == {}
    assert store.active_count == 2


def test_get_data_is_a_defensive_copy(store):
    data = store.get_data()
    data[0]["campaignName"] = "hacked"
    data.append({"id": "intruder"})
    assert store.get_row("r1")["campaignName"] == "Webinar series"
    assert store.active_count == 2


def test_add_delete_purge_scenario(store):
    added = store.add_row({"campaignName": "New", "programType": "Webinars", "forecastedCost": 240})
    assert added["id"]
    assert added["__modified"] is True
    assert added["expectedLeads"] == 10
    assert store.active_count == 3

    assert store.delete_row(added["id"]) is True
    assert store.active_count == 2
    assert list(store.get_deleted_rows()) == [added["id"]]

    assert store.purge_deleted() == 1
    assert store.get_deleted_rows() == {}
    assert store.restore_row(added["id"]) is False


def test_add_row_with_existing_id_updates(store):
    out = store.add_row({"id": "r1", "campaignName": "Renamed"})
    assert store.active_count == 2
    assert out["campaignName"] == "Renamed"


def test_update_missing_row_changes_nothing(store):
    before = store.get_data()
    deleted_before = store.get_deleted_rows()
    assert store.update_row("missing-id", {"x": 1}) is False
    assert store.get_data() == before
    assert store.get_deleted_rows() == deleted_before


def test_update_deleted_row_is_not_found(store):
    store.delete_row("r1")
    assert store.update_row("r1", {"campaignName": "x"}) is False


def test_update_recalculates_derived_fields(store):
    assert store.update_row("r1", {"forecastedCost": "$4,800"}) is True
    row = store.get_row("r1")
    assert row["expectedLeads"] == 200
    assert row["mqlForecast"] == 20
    assert row["__modified"] is True


def test_update_keeps_imported_leads(store):
    store.update_row("r2", {"programType": "Webinars", "forecastedCost": 9600})
    row = store.get_row("r2")
    assert row["expectedLeads"] == 300
    assert row["mqlForecast"] == 30


def test_clearing_imported_leads_restores_derivation(store):
    store.update_row("r2", {"programType": "Webinars", "expectedLeads": ""})
    row = store.get_row("r2")
    assert row["expectedLeads"] == round(5000 / 24)
    assert store.imported_fields("r2") == frozenset()


def test_update_with_same_derived_value_stays_derived(store):
    store.update_row("r1", {"expectedLeads": 100})
    store.update_row("r1", {"forecastedCost": 480})
    assert store.get_row("r1")["expectedLeads"] == 20


def test_unrelated_update_keeps_forecasts(store):
    before = store.get_row("r1")
    store.update_row("r1", {"owner": "Dana"})
    after = store.get_row("r1")
    assert after["owner"] == "Dana"
    assert after["pipelineForecast"] == before["pipelineForecast"]


def test_delete_restore_round_trip(store):
    before = store.get_row("r2")
    assert store.delete_row("r2") is True
    assert store.delete_row("r2") is False
    assert store.active_count == 1
    assert store.restore_row("r2") is True
    assert store.restore_row("r2") is False
    assert store.active_count == 2
    assert store.get_row("r2") == before


def test_deleted_rows_hidden_from_filters(store):
    store.delete_row("r1")
    assert [row["id"] for row in store.get_filtered_data({"region": ["SAIL", "ANZ"]})] == ["r2"]


def test_filtered_data_is_idempotent(store):
    wanted = {"quarter": "Q1 July"}
    first = store.get_filtered_data(wanted)
    second = store.get_filtered_data(wanted)
    assert first == second
    assert [row["id"] for row in first] == ["r1"]


def test_notifications_follow_commit(store):
    seen = []

    def handler(kind, summary):
        seen.append((kind, summary, store.active_count))

    store.on_change(handler)
    store.delete_row("r1")
    kind, summary, count_inside = seen[-1]
    assert kind == "delete"
    assert summary["active"] == 1 and summary["deleted"] == 1 and summary["row_id"] == "r1"
    assert count_inside == 1


def test_failing_subscriber_does_not_abort_mutation(store, caplog):
    calls = []

    def broken(kind, summary):
        raise RuntimeError("boom")

    store.on_change(broken)
    store.on_change(lambda kind, summary: calls.append(kind))
    with caplog.at_level(logging.ERROR):
        assert store.update_row("r1", {"owner": "Dana"}) is True
    assert calls == ["update"]
    assert store.get_row("r1")["owner"] == "Dana"
    assert "change subscriber" in caplog.text


def test_unsubscribe(store):
    calls = []
    unsubscribe = store.on_change(lambda kind, summary: calls.append(kind))
    store.delete_row("r1")
    unsubscribe()
    unsubscribe()
    store.restore_row("r1")
    assert calls == ["delete"]


def test_recent_operations_and_saved_flags(store):
    store.update_row("r1", {"owner": "Dana"})
    assert store.clear_modified_flags() == 1
    assert store.get_row("r1")["__modified"] is False
    operations = [entry["operation"] for entry in store.recent_operations(3)]
    assert operations == ["initialize", "update", "mark_saved"]


def test_parse_row_types_fields():
    parsed = parse_row({"forecastedCost": "$1,200", "actualCost": "", "digitalMotions": "yes", "mqlForecast": "n/a"})
    assert parsed == {"forecastedCost": 1200, "actualCost": None, "digitalMotions": True, "mqlForecast": 0}
    with pytest.raises(InvalidInput):
        parse_row(["not", "a", "row"])


def test_rows_are_copied_on_ingest():
    source = _rows()
    snapshot = copy.deepcopy(source)
    s = PlanningStore()
    s.initialize(source)
    assert source == snapshot
