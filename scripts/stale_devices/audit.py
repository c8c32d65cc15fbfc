"""One end-to-end stale computer audit run."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from scripts.stale_devices.activity_index import build_activity_index
from scripts.stale_devices.collector import collect_candidates
from scripts.stale_devices.config import AuditConfig, compute_cutoff
from scripts.stale_devices.interfaces import DeviceListing, DirectoryQuery, RecordExporter
from scripts.stale_devices.models import DeviceRecord, EnrichedRecord
from scripts.stale_devices.reconciler import (
    actionable_records,
    reconcile,
    sort_actionable,
    sort_enriched,
)
from scripts.stale_devices.sources.entra_devices import DEVICE_ATTRIBUTES

logger = logging.getLogger("stale_devices.audit")


@dataclass
class AuditResult:
    run_id: str
    cutoff: datetime
    candidates: int = 0
    devices_indexed: int = 0
    active: int = 0
    actionable: list[EnrichedRecord] = field(default_factory=list)
    enriched: list[EnrichedRecord] = field(default_factory=list)
    exported: dict[str, int] = field(default_factory=dict)

    def summary(self) -> dict[str, int]:
        return {
            "candidates": self.candidates,
            "devices_indexed": self.devices_indexed,
            "active": self.active,
            "actionable": len(self.actionable),
        }


class StaleDeviceAudit:
    """Wires the collector, index builder, reconciler and exporter together."""

    def __init__(
        self,
        config: AuditConfig,
        directory: DirectoryQuery,
        devices: DeviceListing,
        exporter: Optional[RecordExporter] = None,
        now: Optional[datetime] = None,
    ) -> None:
        self.config = config
        self.directory = directory
        self.devices = devices
        self.exporter = exporter
        self.cutoff = compute_cutoff(config.report.stale_cutoff_days, now)

    def authenticate(self) -> None:
        """Establish both sessions. AuthenticationError propagates."""
        self.directory.authenticate()
        self.devices.authenticate()

    def run(self) -> AuditResult:
        """Run the audit. Nothing is exported when there are no candidates,
        or when the audit was built without an exporter."""
        report = self.config.report
        result = AuditResult(run_id=str(uuid.uuid4()), cutoff=self.cutoff)
        log_extra = {"run_id": result.run_id}
        logger.info("Audit started with cutoff %s", self.cutoff.isoformat(), extra=log_extra)

        self.authenticate()

        candidates = collect_candidates(
            self.directory,
            report.domain_partitions,
            self.cutoff,
            exclusions=report.exclusion_path_substrings,
            scope=report.scope_restriction,
            page_size=self.config.directory.page_size,
        )
        result.candidates = len(candidates)
        if not candidates:
            logger.info("No stale computers found, nothing to export", extra=log_extra)
            return result

        devices = [DeviceRecord.from_graph(row) for row in self.devices.list_devices(DEVICE_ATTRIBUTES)]
        index = build_activity_index(devices, self.cutoff)
        result.devices_indexed = len(index)

        enriched = reconcile(candidates, index, self.cutoff)
        result.enriched = sort_enriched(enriched)
        result.actionable = sort_actionable(actionable_records(enriched))
        result.active = len(enriched) - len(result.actionable)

        if self.exporter is not None:
            result.exported[report.primary_export_path] = self.exporter.export(
                result.actionable, report.primary_export_path
            )
            if report.debug_export_path:
                result.exported[report.debug_export_path] = self.exporter.export(
                    result.enriched, report.debug_export_path
                )

        logger.info("Audit complete: %s", result.summary(), extra=log_extra)
        return result
