"""CSV export of enriched and actionable records."""

from __future__ import annotations

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from scripts.stale_devices.models import EnrichedRecord

logger = logging.getLogger("stale_devices.exporter")

COLUMNS = [
    "DomainPartition",
    "ComputerName",
    "AccountName",
    "LastChanged",
    "DistinguishedName",
    "MatchedDeviceId",
    "MatchedLastSignIn",
    "IsActive",
    "Status",
]


def _format_datetime(dt: Optional[datetime]) -> str:
    return dt.isoformat() if dt else ""


def record_to_row(record: EnrichedRecord) -> dict[str, str]:
    return {
        "DomainPartition": record.domain_partition,
        "ComputerName": record.computer_name,
        "AccountName": record.account_name,
        "LastChanged": _format_datetime(record.last_changed),
        "DistinguishedName": record.distinguished_name,
        "MatchedDeviceId": record.matched_device_id or "",
        "MatchedLastSignIn": _format_datetime(record.matched_last_sign_in),
        "IsActive": "True" if record.is_active else "False",
        "Status": record.status.value,
    }


class CsvExporter:
    """Writes records in the order given; callers sort beforehand."""

    def __init__(self, encoding: str = "utf-8-sig") -> None:
        # BOM lets spreadsheet tools detect UTF-8
        self.encoding = encoding

    def export(self, records: Sequence[EnrichedRecord], destination: str) -> int:
        path = Path(destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding=self.encoding, newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=COLUMNS)
            writer.writeheader()
            for record in records:
                writer.writerow(record_to_row(record))
        logger.info("Wrote %d records to %s", len(records), path, extra={"records": len(records)})
        return len(records)
