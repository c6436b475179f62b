from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from campaign_planner.context import build_context
from campaign_planner.ingest import load_campaign_csv, save_rows_json


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import a campaign CSV into the planning and execution datasets.")
    parser.add_argument("--csv", required=True, help="Path to the campaign CSV export.")
    parser.add_argument("--config", default="configs/forecast.yaml", help="Forecast settings YAML.")
    parser.add_argument(
        "--output-dir",
        default="data",
        help="Folder for planning.json and execution.json.",
    )
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config_path = Path(args.config).resolve()
    context = build_context(config_path=config_path if config_path.exists() else None)

    rows = load_campaign_csv(Path(args.csv).expanduser().resolve())
    result = context.load(rows)

    output_dir = Path(args.output_dir).resolve()
    planning_path = output_dir / "planning.json"
    execution_path = output_dir / "execution.json"
    save_rows_json(planning_path, context.planning.get_data(), domain=context.planning.domain)
    save_rows_json(execution_path, result.rows, domain=context.execution.domain)

    status = context.status()
    pipeline = sum(float(row.get("pipelineForecast") or 0) for row in result.rows)
    print("Import complete")
    print(f"- campaigns: {status['planning_active']}")
    print(f"- execution rows: {status['execution_active']}")
    print(f"- aligned: {status['aligned']}")
    print(f"- forecast pipeline: {pipeline:,.0f}")
    print(f"- planning json: {planning_path}")
    print(f"- execution json: {execution_path}")


if __name__ == "__main__":
    main()
