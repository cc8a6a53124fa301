"""Aggregate Inventory Use Case - Builds the report views from persisted records.

Input is the complete record set read back from the record file after
collection finished. The transformation is pure: the same records always
give the same views and the input list is never modified.

Views:
- Overview: distinct app names, rows with a device, rows with an error
- Applications: one row per (AppName, Version) without errors, ascending
- Installations: devices per (AppName, Version), descending by label
- Errors: distinct (AppName, Version, RetrievalError) triples

InstallCount is an app-level attribute repeated on every row of the app, so
each group takes it from its first member. Groups whose members disagree are
logged; the first member still wins.
"""

import logging
from collections.abc import Iterable, Sequence

from ..domain.entities import (
    ApplicationSummary,
    ErrorEntry,
    InstallationGroup,
    InventoryRecord,
    InventoryViews,
    OverviewMetrics,
)

logger = logging.getLogger(__name__)

GroupKey = tuple[str, str]


def _group_by_app_version(
    records: Iterable[InventoryRecord],
) -> dict[GroupKey, list[InventoryRecord]]:
    """Group records by exact (app_name, version), keeping first-seen order."""
    groups: dict[GroupKey, list[InventoryRecord]] = {}
    for record in records:
        groups.setdefault((record.app_name, record.version), []).append(record)
    return groups


def _group_install_count(key: GroupKey, members: list[InventoryRecord]) -> int:
    install_count = members[0].install_count
    if any(m.install_count != install_count for m in members[1:]):
        counts = sorted({m.install_count for m in members})
        logger.warning(
            f"InstallCount differs within {key[0]} ({key[1]}): {counts}; "
            f"using {install_count}"
        )
    return install_count


class AggregateInventoryUseCase:
    """Derives the four report views from a record set."""

    def execute(self, records: Sequence[InventoryRecord]) -> InventoryViews:
        views = InventoryViews(
            overview=self.build_overview(records),
            applications=self.build_applications(records),
            installations=self.build_installations(records),
            errors=self.build_errors(records),
        )
        logger.info(
            f"Aggregated {len(records):,} records: "
            f"{len(views.applications)} applications, "
            f"{len(views.installations)} installation groups, "
            f"{len(views.errors)} errors"
        )
        return views

    def build_overview(self, records: Sequence[InventoryRecord]) -> OverviewMetrics:
        # Distinct by name only: versions of one title are counted once
        return OverviewMetrics(
            total_discovered_apps=len({r.app_name for r in records}),
            total_install_records=sum(1 for r in records if r.has_device),
            apps_with_errors=sum(1 for r in records if r.has_error),
        )

    def build_applications(
        self, records: Sequence[InventoryRecord]
    ) -> tuple[ApplicationSummary, ...]:
        groups = _group_by_app_version(r for r in records if not r.has_error)
        summaries = [
            ApplicationSummary(
                app_name=key[0],
                version=key[1],
                install_count=_group_install_count(key, members),
            )
            for key, members in groups.items()
        ]
        summaries.sort(key=lambda s: (s.app_name, s.version))
        return tuple(summaries)

    def build_installations(
        self, records: Sequence[InventoryRecord]
    ) -> tuple[InstallationGroup, ...]:
        groups = _group_by_app_version(r for r in records if r.has_device)
        installations = [
            InstallationGroup(
                app_version=f"{key[0]} ({key[1]})",
                install_count=_group_install_count(key, members),
                device_list=tuple(f"{m.device_name} ({m.device_id})" for m in members),
            )
            for key, members in groups.items()
        ]
        installations.sort(key=lambda g: g.app_version, reverse=True)
        return tuple(installations)

    def build_errors(self, records: Sequence[InventoryRecord]) -> tuple[ErrorEntry, ...]:
        # dict preserves first-seen order while dropping duplicates
        entries = {
            ErrorEntry(r.app_name, r.version, r.retrieval_error): None
            for r in records
            if r.has_error
        }
        return tuple(entries)
