from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from campaign_planner.forecast import ForecastSettings
from campaign_planner.store import ExecutionStore, PlanningStore
from campaign_planner.sync import SyncResult, sync_status, sync_to_planning


@dataclass
class PlannerContext:
    settings: ForecastSettings
    planning: PlanningStore
    execution: ExecutionStore

    def load(self, rows: list[dict[str, Any]]) -> SyncResult:
        self.planning.initialize(rows)
        result = self.sync_execution()
        self.execution.clear_modified_flags()
        return result

    def sync_execution(self) -> SyncResult:
        return self.execution.sync_from_planning(self.planning.get_data(), imported=self.planning.imported_map())

    def push_execution_edits(self) -> int:
        return sync_to_planning(self.planning, self.execution.get_data(), imported=self.execution.imported_map())

    def status(self) -> dict[str, Any]:
        return sync_status(self.planning, self.execution)


def build_context(
    settings: ForecastSettings | None = None,
    config_path: Path | None = None,
) -> PlannerContext:
    if settings is None:
        settings = ForecastSettings.from_yaml(config_path) if config_path else ForecastSettings()
    return PlannerContext(
        settings=settings,
        planning=PlanningStore(settings=settings),
        execution=ExecutionStore(settings=settings),
    )
