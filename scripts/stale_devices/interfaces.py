from __future__ import annotations

from typing import Optional, Protocol, Sequence

from scripts.stale_devices.models import EnrichedRecord


class DirectoryQuery(Protocol):
    """On-premises directory: filtered computer search per partition."""

    def authenticate(self) -> None:
        ...

    def search_computers(
        self,
        partition: str,
        search_filter: str,
        attributes: Sequence[str],
        page_size: int,
        scope: Optional[str] = None,
    ) -> list[dict]:
        ...


class DeviceListing(Protocol):
    """Cloud identity directory: every device, all pages already fetched."""

    def authenticate(self) -> None:
        ...

    def list_devices(self, attributes: Sequence[str]) -> list[dict]:
        ...


class RecordExporter(Protocol):
    """Tabular destination for enriched or actionable records."""

    def export(self, records: Sequence[EnrichedRecord], destination: str) -> int:
        ...
