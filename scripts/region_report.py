from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from campaign_planner.ingest import load_rows_json
from campaign_planner.io_utils import read_json, read_yaml
from campaign_planner.metrics import region_metrics
from campaign_planner.store import ExecutionStore


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Summarise plan vs forecast vs actual spend per region.")
    parser.add_argument("--rows", required=True, help="Execution rows JSON written by import_campaigns.py.")
    parser.add_argument("--budgets", required=True, help="Region budgets (JSON or YAML).")
    parser.add_argument("--quarter", default=None, help="Only include campaigns in this quarter.")
    parser.add_argument("--output", default=None, help="Optional CSV output path.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    budgets_path = Path(args.budgets).resolve()
    if not budgets_path.exists():
        raise FileNotFoundError(f"Missing budgets file: {budgets_path}")
    if budgets_path.suffix.lower() in {".yaml", ".yml"}:
        budgets = read_yaml(budgets_path)
    else:
        budgets = read_json(budgets_path)

    store = ExecutionStore()
    store.initialize(load_rows_json(Path(args.rows).resolve()))
    filter_spec = {"quarter": args.quarter} if args.quarter else {}
    report = region_metrics(store.get_filtered_data(filter_spec), budgets)

    if args.output:
        output_path = Path(args.output).resolve()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        report.to_csv(output_path, index=False)
        print(f"- report csv: {output_path}")

    print(f"Region metrics for {store.active_count} campaigns")
    print(report.to_string(index=False))


if __name__ == "__main__":
    main()
