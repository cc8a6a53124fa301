"""Collect Inventory Use Case - Streams per-device records to the record store.

Workflow:
1. Create the record file fresh (via IRecordStore)
2. List every discovered app (via IInventoryAPI), unless a list is supplied
3. For each app, strictly one after another:
   - no installs: write one "No installs" row, skip the lookup
   - otherwise pause, then look up its devices with retry and backoff
   - lookup exhausted: write one "Failed after retries" row
   - lookup succeeded: write one row per device
4. Return collection statistics

Rows are appended as they are produced, so memory use is bounded by the
largest single app's device list. A failing app never stops the run; only
authentication and configuration errors do.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from ...api.exceptions import AuthenticationError, ConfigurationError, InventoryError
from ...api.resilience import RetrySequence, next_delay
from ..domain.entities import (
    CollectionResult,
    DeviceInstallation,
    DiscoveredApp,
    InventoryRecord,
)
from ..domain.ports import IInventoryAPI, IRecordStore

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 50


class CollectInventoryUseCase:
    """Orchestrates the collection pass.

    Example:
        use_case = CollectInventoryUseCase(
            inventory_api=GraphInventoryAPI(client),
            record_store=CsvRecordStore("DiscoveredApps.csv"),
        )
        result = await use_case.execute()
    """

    def __init__(
        self,
        inventory_api: IInventoryAPI,
        record_store: IRecordStore,
        max_retries: int = 5,
        base_delay_ms: int = 300,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the use case with its dependencies.

        Args:
            inventory_api: Port for listing apps and their devices
            record_store: Port for the append-only record file
            max_retries: Device-lookup attempts per app (including the first)
            base_delay_ms: Pause before every device lookup
            sleep: Awaitable sleep, replaceable in tests
        """
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        self.api = inventory_api
        self.store = record_store
        self.max_retries = max_retries
        self.base_delay_seconds = base_delay_ms / 1000
        self._sleep = sleep

    async def execute(self, apps: list[DiscoveredApp] | None = None) -> CollectionResult:
        """Run one full collection pass.

        Args:
            apps: Apps to collect; listed from the API when omitted

        Returns:
            CollectionResult with statistics about the pass

        Raises:
            AuthenticationError: If the API rejects our credentials
            InventoryError: If the app listing itself fails
        """
        result = CollectionResult(started_at=datetime.now(timezone.utc))
        logger.info(f"Starting inventory collection at {result.started_at.isoformat()}")

        self.store.reset()

        if apps is None:
            apps = await self.api.list_discovered_apps()

        total = len(apps)
        for index, app in enumerate(apps, start=1):
            await self._collect_app(app, result)
            result.apps_processed += 1

            if index % PROGRESS_EVERY == 0 or index == total:
                logger.info(
                    f"Progress: {index:,}/{total:,} apps, "
                    f"{result.records_written:,} records written"
                )

        result.finished_at = datetime.now(timezone.utc)
        logger.info(
            f"Inventory collection completed in {result.duration_seconds:.2f}s: "
            f"{result.apps_processed} apps, {result.records_written} records, "
            f"{result.apps_without_installs} without installs, {result.apps_failed} failed"
        )
        return result

    # ----------------------------------------
    # Per-app processing
    # ----------------------------------------

    async def _collect_app(self, app: DiscoveredApp, result: CollectionResult) -> None:
        if not app.has_installs:
            self._emit(InventoryRecord.no_installs(app), result)
            result.apps_without_installs += 1
            return

        if self.base_delay_seconds > 0:
            await self._sleep(self.base_delay_seconds)

        devices = await self._lookup_devices(app)

        if devices is None:
            self._emit(InventoryRecord.failed(app), result)
            result.apps_failed += 1
            result.failed_apps.append(f"{app.name} ({app.version})")
            return

        for device in devices:
            self._emit(InventoryRecord.for_device(app, device), result)

        logger.debug(f"{app.name} ({app.version}): {len(devices)} devices")

    async def _lookup_devices(self, app: DiscoveredApp) -> list[DeviceInstallation] | None:
        """Look up an app's devices, retrying failed attempts.

        Returns:
            The device list, or None once every attempt has failed
        """
        sequence = RetrySequence(self.max_retries)
        sequence.begin()

        while not sequence.is_finished:
            attempt = sequence.attempt
            try:
                devices = await self.api.list_app_devices(app.id)
            except (AuthenticationError, ConfigurationError):
                raise
            except InventoryError as e:
                if sequence.fail(e):
                    delay = next_delay(attempt, getattr(e, "retry_after", None))
                    logger.warning(
                        f"Device lookup for {app.name} ({app.version}) failed "
                        f"(attempt {attempt}/{self.max_retries}): {e}. "
                        f"Retrying in {delay:.0f}s"
                    )
                    await self._sleep(delay)
                continue

            sequence.succeed()
            return devices

        logger.error(
            f"Device lookup for {app.name} ({app.version}) failed after "
            f"{self.max_retries} attempts. Last error: {sequence.last_error}"
        )
        return None

    def _emit(self, record: InventoryRecord, result: CollectionResult) -> None:
        self.store.append(record)
        result.records_written += 1
