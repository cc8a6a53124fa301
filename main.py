#!/usr/bin/env python3
"""Intune Discovered Apps Inventory CLI.

This module provides a command-line interface that collects the software
inventory discovered by Intune through Microsoft Graph, streams one row per
(app, device) pair into a flat CSV file, and renders an Excel workbook with
Overview, Applications, Installations and Errors sheets.

Architecture:
    - GraphClient is the shared HTTP layer (pagination via @odata.nextLink)
    - TokenManager handles the OAuth2 client credentials flow
    - CollectInventoryUseCase retries device lookups per app and never aborts
      the run for a single app
    - AggregateInventoryUseCase reshapes the record file into report views

Environment Variables Required:
    - AZURE_TENANT_ID: Entra ID tenant
    - AZURE_CLIENT_ID: App registration client ID
    - AZURE_CLIENT_SECRET: App registration secret

Optional (see src/appinv/config.py):
    - APPINV_OUTPUT_DIR, APPINV_REPORT_NAME, APPINV_MAX_RETRIES,
      APPINV_BASE_DELAY_MS, APPINV_QUOTED_CSV, GRAPH_BASE_URL

Example Usage:
    $ python main.py                              # DiscoveredApps.csv + .xlsx in cwd
    $ python main.py --output-dir reports         # Write both files to reports/
    $ python main.py --max-retries 3 --verbose    # Fewer attempts, debug logging
    $ python main.py --report-only                # Rebuild workbook from existing CSV
"""
import sys

from src.appinv.capabilities import missing_capabilities

_missing = missing_capabilities()
if _missing:
    print(
        f"[Main] Missing required packages: {', '.join(_missing)}. "
        f"Run: pip install {' '.join(_missing)}",
        file=sys.stderr,
    )
    sys.exit(1)

import asyncio
import argparse
import logging
from datetime import datetime, timezone
from dotenv import load_dotenv

load_dotenv()

# Local imports
from src.appinv.api import (
    AuthenticationError,
    ConfigurationError,
    GraphClient,
    RecordFormatError,
    TokenManager,
)
from src.appinv.config import InventorySettings
from src.appinv.inventory.adapters import CsvRecordStore, GraphInventoryAPI
from src.appinv.inventory.use_cases import (
    AggregateInventoryUseCase,
    CollectInventoryUseCase,
)
from src.appinv.reports import InventoryReportGenerator

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # aiohttp access chatter is noise at INFO
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


async def run_collection(settings: InventorySettings, store: CsvRecordStore) -> dict:
    """Collect every discovered app and its installations into the record file.

    Args:
        settings: Resolved run settings
        store: Record file the rows are streamed into

    Returns:
        Collection statistics dictionary
    """
    token_manager = TokenManager()

    async with GraphClient(token_manager, base_url=settings.graph_base_url) as client:
        use_case = CollectInventoryUseCase(
            inventory_api=GraphInventoryAPI(client),
            record_store=store,
            max_retries=settings.max_retries,
            base_delay_ms=settings.base_delay_ms,
        )
        result = await use_case.execute()

    return result.to_dict()


async def build_report(settings: InventorySettings, store: CsvRecordStore) -> None:
    """Read the record file back and write the workbook next to it."""
    records = store.read_all()
    print(f"[Main] Loaded {len(records):,} records from {store.path}")

    views = AggregateInventoryUseCase().execute(records)

    generator = InventoryReportGenerator()
    path = await generator.write_excel_async(views, settings.report_path)
    print(f"[Main] Report saved to {path}")


async def run_inventory(args: argparse.Namespace) -> int:
    """Main orchestration function.

    Args:
        args: Parsed command-line arguments

    Returns:
        Process exit code
    """
    start_time = datetime.now(timezone.utc)
    print(f"[Main] Starting at {start_time.isoformat()}")

    try:
        settings = InventorySettings.from_env(
            output_dir=args.output_dir,
            report_name=args.report_name,
            max_retries=args.max_retries,
            base_delay_ms=args.base_delay_ms,
            quoted_csv=True if args.quoted_csv else None,
        )
    except ConfigurationError as e:
        print(f"[Main] Configuration error: {e}")
        return 1

    store = CsvRecordStore(settings.records_path, quoted=settings.quoted_csv)

    if not args.report_only:
        print("\n" + "=" * 60)
        print("COLLECTING DISCOVERED APPS")
        print("=" * 60)
        try:
            stats = await run_collection(settings, store)
        except ConfigurationError as e:
            print(f"[Main] Configuration error: {e}")
            return 1
        except AuthenticationError as e:
            print(f"[Main] Authentication failed: {e}")
            return 1
        print(f"\n[Main] Collection: {stats}")
        print(f"[Main] Records saved to {store.path}")

    print("\n" + "=" * 60)
    print("BUILDING REPORT")
    print("=" * 60)
    try:
        await build_report(settings, store)
    except FileNotFoundError:
        print(f"[Main] Record file not found: {store.path}")
        return 1
    except RecordFormatError as e:
        print(f"[Main] Record file is malformed: {e}")
        return 1

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    print(f"\n[Main] Completed in {duration:.1f} seconds")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Collect the Intune discovered-apps inventory into CSV and Excel",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                              # Collect and report into the current directory
  python main.py --output-dir reports         # Write DiscoveredApps.csv/.xlsx to reports/
  python main.py --report-name Apps-2024Q3    # Use a different file stem
  python main.py --report-only                # Re-render the workbook from the existing CSV
        """
    )

    # Output options
    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument(
        "--output-dir",
        type=str,
        metavar="DIR",
        help="Directory for the record file and workbook (default: APPINV_OUTPUT_DIR or .)"
    )
    output_group.add_argument(
        "--report-name",
        type=str,
        metavar="NAME",
        help="File stem shared by the .csv and .xlsx (default: DiscoveredApps)"
    )
    output_group.add_argument(
        "--quoted-csv",
        action="store_true",
        help="Quote record file fields so commas in names survive"
    )
    output_group.add_argument(
        "--report-only",
        action="store_true",
        help="Skip collection and rebuild the workbook from the existing record file"
    )

    # Retry tuning
    retry_group = parser.add_argument_group("Retry Options")
    retry_group.add_argument(
        "--max-retries",
        type=int,
        metavar="N",
        help="Device lookup attempts per app (default: 5)"
    )
    retry_group.add_argument(
        "--base-delay-ms",
        type=int,
        metavar="MS",
        help="Pause before every device lookup in milliseconds (default: 300)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()
    configure_logging(args.verbose)

    sys.exit(asyncio.run(run_inventory(args)))


if __name__ == "__main__":
    main()
