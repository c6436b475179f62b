from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from campaign_planner.io_utils import is_blank
from campaign_planner.schema import EXECUTION_ONLY_FIELDS, MODIFIED_FLAG, PLANNING_SYNC_FIELDS

if TYPE_CHECKING:
    from campaign_planner.store import MasterStore

log = logging.getLogger("campaign_planner.sync")


@dataclass
class SyncResult:
    rows: list[dict[str, Any]]
    orphaned: list[dict[str, Any]] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def orphaned_ids(self) -> list[str]:
        return [str(row.get("id")) for row in self.orphaned]

    @property
    def has_conflicts(self) -> bool:
        return bool(self.orphaned)


def _row_id(row: dict[str, Any]) -> str | None:
    value = row.get("id")
    return None if is_blank(value) else str(value)


def merge_from_planning(
    execution_rows: Iterable[dict[str, Any]],
    planning_rows: Iterable[dict[str, Any]],
) -> SyncResult:
    execution_by_id: dict[str, dict[str, Any]] = {}
    for row in execution_rows:
        row_id = _row_id(row)
        if row_id is not None:
            execution_by_id[row_id] = row

    merged: list[dict[str, Any]] = []
    seen: set[str] = set()
    for planning_row in planning_rows:
        row = {
            key: copy.deepcopy(value)
            for key, value in planning_row.items()
            if key not in EXECUTION_ONLY_FIELDS and key != MODIFIED_FLAG
        }
        row_id = _row_id(planning_row)
        existing = execution_by_id.get(row_id) if row_id is not None else None
        if existing is not None:
            for name in EXECUTION_ONLY_FIELDS:
                row[name] = copy.deepcopy(existing.get(name))
            row[MODIFIED_FLAG] = existing.get(MODIFIED_FLAG) is True
        else:
            for name in EXECUTION_ONLY_FIELDS:
                row[name] = None
            row[MODIFIED_FLAG] = False
        if row_id is not None:
            seen.add(row_id)
        merged.append(row)

    orphaned = [
        copy.deepcopy(row)
        for row_id, row in execution_by_id.items()
        if row_id not in seen
    ]
    return SyncResult(rows=merged, orphaned=orphaned)


def planning_fields(row: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in row.items() if key in PLANNING_SYNC_FIELDS}


def sync_to_planning(
    planning_store: "MasterStore",
    execution_rows: Iterable[dict[str, Any]],
    imported: Mapping[str, Iterable[str]] | None = None,
) -> int:
    updated = 0
    for row in execution_rows:
        row_id = _row_id(row)
        if row_id is None:
            continue
        if row_id not in planning_store:
            log.warning("Execution row %s has no active planning counterpart; skipped", row_id)
            continue
        mask = None if imported is None else imported.get(row_id, ())
        view = planning_store.import_view(planning_fields(row), mask, label=f"execution row {row_id}")
        patch = planning_store.changed_fields(row_id, view)
        if not patch:
            continue
        planning_store.update_row(row_id, patch)
        updated += 1
    return updated


def sync_status(planning_store: "MasterStore", execution_store: "MasterStore") -> dict[str, Any]:
    planning_ids = [row["id"] for row in planning_store.get_data()]
    execution_ids = [row["id"] for row in execution_store.get_data()]
    return {
        "planning_active": len(planning_ids),
        "planning_deleted": len(planning_store.get_deleted_rows()),
        "execution_active": len(execution_ids),
        "execution_deleted": len(execution_store.get_deleted_rows()),
        "missing_in_execution": sorted(set(planning_ids) - set(execution_ids)),
        "orphaned_in_execution": sorted(set(execution_ids) - set(planning_ids)),
        "aligned": planning_ids == execution_ids,
    }
