"""
GasPro Analytics — End-to-end pipeline smoke run.

Opens the record store, optionally imports a daily report workbook, and
prints the dashboard overview for the latest date.

Usage:
    python main.py [daily_report.xlsx] [--import-zero-gas]
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from gaspro_dashboard.config import APP_NAME, CACHE_DIR, LOG_DATE_FORMAT, LOG_FORMAT, LOG_LEVEL
from gaspro_dashboard.dashboard import get_dashboard_overview, get_field_catalogue
from gaspro_dashboard.exceptions import GasProError
from gaspro_dashboard.state import AppState
from gaspro_dashboard.store import LocalCacheBackend, open_store

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Run the pipeline and print smoke-test outputs."""
    parser = argparse.ArgumentParser(description=f"{APP_NAME} pipeline smoke run")
    parser.add_argument("workbook", nargs="?", help="daily report workbook to import")
    parser.add_argument("--import-zero-gas", action="store_true",
                        help="also import fields whose gas cell holds an explicit 0")
    args = parser.parse_args(argv)

    print("=" * 70)
    print(f"  {APP_NAME.upper()} — Gas Field Production Dashboard")
    print("  Pipeline Smoke Run")
    print("=" * 70)
    print()

    # ------------------------------------------------------------------
    # 1. Load records
    # ------------------------------------------------------------------
    print("[ 1 ] LOADING RECORDS")
    print("-" * 40)

    state = AppState(open_store(), offline_cache=LocalCacheBackend(CACHE_DIR))
    status = state.load()
    print(f"\nStore mode: {status}")
    print(f"Production records: {len(state.production)}")
    print(f"Personnel records:  {len(state.personnel)}")

    # ------------------------------------------------------------------
    # 2. Optional import
    # ------------------------------------------------------------------
    if args.workbook:
        print("\n")
        print("[ 2 ] IMPORTING DAILY REPORT")
        print("-" * 40)
        try:
            content = Path(args.workbook).read_bytes()
            report = state.import_workbook(content, import_zero_gas=args.import_zero_gas)
            print(f"\n{report.message}")
        except OSError as e:
            logger.error("Could not read %s: %s", args.workbook, e)
            print(f"\n[FAIL] Could not read {args.workbook}: {e}")
        except GasProError as e:
            print(f"\n[FAIL] {e}")

    # ------------------------------------------------------------------
    # 3. Dashboard outputs
    # ------------------------------------------------------------------
    print("\n")
    print("[ 3 ] DASHBOARD OUTPUTS")
    print("-" * 40)

    overview = get_dashboard_overview(
        state.production_df, state.personnel_df, state.selected_date, navigation_latest=state.navigator.latest,
    )
    print(f"\nSelected date: {overview['selected_date']}  (latest: {overview['latest_date']})")
    print(f"Total output:  {overview['total']:,.1f} MCF  [{overview['output_status']}]")
    for n, mean in overview["trailing_means"].items():
        print(f"{n:>2}-day mean:   {mean:,.1f} MCF")

    if not overview["distribution"].empty:
        print("\nField distribution:")
        dist = overview["distribution"].copy()
        dist["share"] = dist["share"].map(lambda x: f"{x:.1%}")
        print(dist.to_string(index=False))

    print("\nField catalogue:")
    print(get_field_catalogue(state.production_df, overview["selected_date"]).to_string(index=False))

    if not overview["trend"].empty:
        print("\nTrend window:")
        print(overview["trend"].to_string(index=False))

    workforce = overview["workforce"]
    print(f"\nWorkforce (as of {workforce['date']}):")
    for role in ("officers", "employees"):
        m = workforce[role]
        pct = f"{m['pct_of_target']:.1f}%" if m["pct_of_target"] is not None else "N/A"
        print(f"  {role:10s} | actual {m['actual']:>4} | approved {m['approved']:>4} | "
              f"delta {m['delta']:+d} | {pct} | {m['status']}")

    print("\n" + "=" * 70)
    print("  Pipeline complete.")
    print("=" * 70)
    return 0


if __name__ == "__main__":
    sys.exit(main())
