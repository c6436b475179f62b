from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping

from campaign_planner.errors import InvalidInput
from campaign_planner.events import ChangeCallback, ChangeNotifier
from campaign_planner.filters import apply_filters
from campaign_planner.forecast import DEFAULT_SETTINGS, ForecastSettings, calculate, is_imported
from campaign_planner.io_utils import as_bool, is_blank, tidy_number, to_float
from campaign_planner.schema import (
    BOOLEAN_FIELDS,
    DERIVATION_FIELDS,
    IMPORTABLE_FIELDS,
    MODIFIED_FLAG,
    NON_NEGATIVE_FIELDS,
    NUMERIC_FIELDS,
)
from campaign_planner.sync import SyncResult, merge_from_planning

log = logging.getLogger("campaign_planner.store")

MAX_OPERATIONS = 100
ROW_SEQUENCES = (list, tuple)


def new_row_id() -> str:
    return f"row_{uuid.uuid4().hex[:12]}"


def parse_row(row: Any, label: str = "row") -> dict[str, Any]:
    if not isinstance(row, dict):
        raise InvalidInput(f"{label}: expected a mapping, got {type(row).__name__}.")

    parsed = copy.deepcopy(row)
    for name in NUMERIC_FIELDS:
        if name not in parsed:
            continue
        value = parsed[name]
        if is_blank(value):
            parsed[name] = None
            continue
        try:
            number = to_float(value)
        except ValueError as exc:
            raise InvalidInput(f"{label}: field '{name}' is not numeric: {value!r}") from exc
        if number is None:
            number = 0.0
        if name in NON_NEGATIVE_FIELDS and number < 0:
            raise InvalidInput(f"{label}: field '{name}' must be >= 0, got {number}.")
        parsed[name] = tidy_number(number)

    for name in BOOLEAN_FIELDS:
        if name in parsed:
            parsed[name] = as_bool(parsed[name])
    return parsed


class MasterStore:
    domain = "master"

    def __init__(self, settings: ForecastSettings | None = None, name: str | None = None) -> None:
        self.settings = settings or DEFAULT_SETTINGS
        self.name = name or self.domain
        self.initialized = False
        self._active: dict[str, dict[str, Any]] = {}
        self._deleted: dict[str, dict[str, Any]] = {}
        self._imported: dict[str, frozenset[str]] = {}
        self._operations: list[dict[str, Any]] = []
        self._notifier = ChangeNotifier(self.name)

    # -- ingestion -------------------------------------------------------

    def _derive(self, row: dict[str, Any], imported: frozenset[str] | set[str]) -> dict[str, Any]:
        view = {
            key: value
            for key, value in row.items()
            if key not in IMPORTABLE_FIELDS or key in imported
        }
        return calculate(view, self.settings)

    def _ingest(self, row: Any, label: str) -> tuple[dict[str, Any], frozenset[str]]:
        parsed = parse_row(row, label=label)
        if is_blank(parsed.get("id")):
            parsed["id"] = new_row_id()
        parsed["id"] = str(parsed["id"])
        imported = frozenset(name for name in IMPORTABLE_FIELDS if is_imported(parsed, name))
        parsed.update(self._derive(parsed, imported))
        return parsed, imported

    def _ingest_all(self, rows: Any, operation: str) -> tuple[dict[str, dict[str, Any]], dict[str, frozenset[str]]]:
        if not isinstance(rows, ROW_SEQUENCES):
            log.error("%s store: %s expects a list of rows, got %s", self.name, operation, type(rows).__name__)
            raise InvalidInput(f"{operation} expects a list of rows, got {type(rows).__name__}.")

        active: dict[str, dict[str, Any]] = {}
        imported: dict[str, frozenset[str]] = {}
        for index, raw in enumerate(rows):
            row, fields = self._ingest(raw, label=f"{self.name} row {index}")
            row_id = row["id"]
            if row_id in active:
                raise InvalidInput(f"{operation}: duplicate row id '{row_id}' at position {index}.")
            active[row_id] = row
            imported[row_id] = fields
        return active, imported

    # -- bookkeeping -----------------------------------------------------

    def _record(self, operation: str, **details: Any) -> None:
        self._operations.append(
            {
                "operation": operation,
                "details": details,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )
        if len(self._operations) > MAX_OPERATIONS:
            self._operations = self._operations[-MAX_OPERATIONS:]

    def _emit(self, kind: str, **details: Any) -> None:
        self._record(kind, **details)
        summary = {"active": len(self._active), "deleted": len(self._deleted)}
        summary.update(details)
        self._notifier.notify(kind, summary)

    def on_change(self, callback: ChangeCallback) -> Callable[[], None]:
        return self._notifier.subscribe(callback)

    def recent_operations(self, count: int = 10) -> list[dict[str, Any]]:
        return copy.deepcopy(self._operations[-count:]) if count > 0 else []

    # -- reads -----------------------------------------------------------

    @property
    def active_count(self) -> int:
        return len(self._active)

    @property
    def deleted_count(self) -> int:
        return len(self._deleted)

    def __contains__(self, row_id: object) -> bool:
        return str(row_id) in self._active

    def get_data(self) -> list[dict[str, Any]]:
        return [copy.deepcopy(row) for row in self._active.values()]

    def get_row(self, row_id: str) -> dict[str, Any] | None:
        row = self._active.get(str(row_id))
        return copy.deepcopy(row) if row is not None else None

    def get_deleted_rows(self) -> dict[str, dict[str, Any]]:
        return {row_id: copy.deepcopy(row) for row_id, row in self._deleted.items()}

    def get_filtered_data(self, filter_spec: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        return apply_filters(self.get_data(), filter_spec)

    def imported_fields(self, row_id: str) -> frozenset[str]:
        return self._imported.get(str(row_id), frozenset())

    def imported_map(self) -> dict[str, frozenset[str]]:
        return {row_id: self.imported_fields(row_id) for row_id in self._active}

    def import_view(
        self,
        row: Any,
        imported: Iterable[str] | None = None,
        label: str = "row",
    ) -> dict[str, Any]:
        # Without a mask, a lead/MQL value is imported only if it differs from the derived one.
        parsed = parse_row(row, label=label)
        if imported is not None:
            keep = set(imported)
        else:
            keep = set()
            for name in IMPORTABLE_FIELDS:
                baseline = self._derive(parsed, keep)
                if is_imported(parsed, name) and parsed[name] != baseline[name]:
                    keep.add(name)
        return {key: value for key, value in parsed.items() if key not in IMPORTABLE_FIELDS or key in keep}

    def changed_fields(self, row_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        current = self._active.get(str(row_id))
        if current is None:
            return {}
        changes = parse_row(
            {key: value for key, value in (patch or {}).items() if key not in ("id", MODIFIED_FLAG)},
            label=f"{self.name} row {row_id}",
        )
        return {key: value for key, value in changes.items() if current.get(key) != value}

    # -- mutations -------------------------------------------------------

    def initialize(self, rows: list[dict[str, Any]]) -> None:
        active, imported = self._ingest_all(rows, "initialize")
        for row in active.values():
            row[MODIFIED_FLAG] = False

        self._active = active
        self._deleted = {}
        self._imported = imported
        self.initialized = True
        log.info("%s store initialized with %d rows", self.name, len(active))
        self._emit("initialize", rows=len(active))

    def add_row(self, row: dict[str, Any]) -> dict[str, Any]:
        if not isinstance(row, dict):
            raise InvalidInput(f"add_row expects a mapping, got {type(row).__name__}.")

        row_id = None if is_blank(row.get("id")) else str(row["id"])
        if row_id is not None and row_id in self._active:
            log.warning("%s store: row %s already exists, updating instead", self.name, row_id)
            self.update_row(row_id, row)
            return self.get_row(row_id)

        stored, imported = self._ingest(row, label=f"{self.name} new row")
        stored[MODIFIED_FLAG] = True
        row_id = stored["id"]
        self._deleted.pop(row_id, None)
        self._active[row_id] = stored
        self._imported[row_id] = imported
        self._emit("add", row_id=row_id)
        return copy.deepcopy(stored)

    def update_row(self, row_id: str, patch: dict[str, Any]) -> bool:
        row_id = str(row_id)
        current = self._active.get(row_id)
        if current is None:
            log.warning("%s store: row %s not found for update", self.name, row_id)
            return False

        changes = parse_row(
            {key: value for key, value in (patch or {}).items() if key not in ("id", MODIFIED_FLAG)},
            label=f"{self.name} row {row_id}",
        )
        imported = set(self.imported_fields(row_id))
        for name in IMPORTABLE_FIELDS:
            if name not in changes or changes[name] == current.get(name):
                continue
            if is_imported(changes, name):
                imported.add(name)
            else:
                imported.discard(name)

        updated = {**current, **changes}
        if any(name in changes and changes[name] != current.get(name) for name in DERIVATION_FIELDS):
            updated.update(self._derive(updated, imported))
        updated[MODIFIED_FLAG] = True

        self._active[row_id] = updated
        self._imported[row_id] = frozenset(imported)
        self._emit("update", row_id=row_id, fields=sorted(changes))
        return True

    def delete_row(self, row_id: str) -> bool:
        row_id = str(row_id)
        if row_id not in self._active:
            log.debug("%s store: delete ignored, row %s is not active", self.name, row_id)
            return False
        self._deleted[row_id] = self._active.pop(row_id)
        self._emit("delete", row_id=row_id)
        return True

    def restore_row(self, row_id: str) -> bool:
        row_id = str(row_id)
        if row_id not in self._deleted:
            return False
        if row_id in self._active:
            log.warning("%s store: cannot restore %s, an active row already uses that id", self.name, row_id)
            return False
        self._active[row_id] = self._deleted.pop(row_id)
        self._emit("restore", row_id=row_id)
        return True

    def purge_deleted(self) -> int:
        purged = len(self._deleted)
        for row_id in self._deleted:
            if row_id not in self._active:
                self._imported.pop(row_id, None)
        self._deleted = {}
        if purged:
            log.info("%s store purged %d deleted rows", self.name, purged)
        self._emit("purge", purged=purged)
        return purged

    def clear_modified_flags(self) -> int:
        cleared = 0
        for row in self._active.values():
            if row.get(MODIFIED_FLAG):
                row[MODIFIED_FLAG] = False
                cleared += 1
        self._emit("mark_saved", cleared=cleared)
        return cleared


class PlanningStore(MasterStore):
    domain = "planning"


class ExecutionStore(MasterStore):
    domain = "execution"

    def sync_from_planning(
        self,
        planning_rows: list[dict[str, Any]],
        imported: Mapping[str, Iterable[str]] | None = None,
    ) -> SyncResult:
        if not isinstance(planning_rows, ROW_SEQUENCES):
            log.error("%s store: sync expects a list of planning rows, got %s", self.name, type(planning_rows).__name__)
            raise InvalidInput(f"sync_from_planning expects a list of rows, got {type(planning_rows).__name__}.")

        incoming: list[dict[str, Any]] = []
        skipped: list[str] = []
        for index, row in enumerate(planning_rows):
            if not isinstance(row, dict):
                raise InvalidInput(f"{self.name} planning row {index}: expected a mapping, got {type(row).__name__}.")
            row_id = None if is_blank(row.get("id")) else str(row["id"])
            if row_id is not None and row_id in self._deleted:
                skipped.append(row_id)
                continue
            incoming.append(row)

        merged = merge_from_planning(self._active.values(), incoming)
        prepared = [
            self.import_view(
                row,
                None if imported is None else imported.get(str(row.get("id")), ()),
                label=f"{self.name} row {index}",
            )
            for index, row in enumerate(merged.rows)
        ]
        active, masks = self._ingest_all(prepared, "sync_from_planning")

        deleted = dict(self._deleted)
        for row_id in skipped:
            log.info("%s store: row %s is soft-deleted here; kept out of the active set", self.name, row_id)
        for orphan in merged.orphaned:
            orphan_id = str(orphan["id"])
            log.warning(
                "%s store: row %s has no planning counterpart; moved to deleted rows",
                self.name,
                orphan_id,
            )
            deleted[orphan_id] = self._active[orphan_id]
        for row_id in deleted:
            masks.setdefault(row_id, self.imported_fields(row_id))

        self._active = active
        self._deleted = deleted
        self._imported = masks
        self.initialized = True
        self._emit("sync", rows=len(active), orphaned=len(merged.orphaned), skipped=len(skipped))
        return SyncResult(rows=self.get_data(), orphaned=merged.orphaned, skipped=skipped)
