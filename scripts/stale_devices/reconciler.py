"""Join stale candidates against the activity index and classify them."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Sequence

from scripts.stale_devices.activity_index import ActivityIndex
from scripts.stale_devices.models import (
    MIN_TIMESTAMP,
    Candidate,
    EnrichedRecord,
    normalize_name,
)


def classify(candidate: Candidate, index: ActivityIndex, cutoff: datetime) -> EnrichedRecord:
    device = index.get(normalize_name(candidate.computer_name))
    # Re-checked against the cutoff even though the index only holds active devices
    is_active = (
        device is not None
        and device.last_sign_in is not None
        and device.last_sign_in >= cutoff
    )
    return EnrichedRecord.from_candidate(candidate, device, is_active)


def reconcile(
    candidates: Iterable[Candidate], index: ActivityIndex, cutoff: datetime
) -> list[EnrichedRecord]:
    """Enrich every candidate, in input order.

    A missing index entry means "not active or not found": the device may be
    inactive, absent from the cloud directory, or lack a sign-in timestamp.
    """
    return [classify(candidate, index, cutoff) for candidate in candidates]


def actionable_records(records: Iterable[EnrichedRecord]) -> list[EnrichedRecord]:
    """Decommissioning candidates: everything not confirmed active."""
    return [r for r in records if not r.is_active]


def sort_actionable(records: Sequence[EnrichedRecord]) -> list[EnrichedRecord]:
    """Oldest directory change first."""
    return sorted(records, key=lambda r: r.last_changed)


def sort_enriched(records: Sequence[EnrichedRecord]) -> list[EnrichedRecord]:
    """Inactive first, then by matched sign-in with missing values first."""
    return sorted(
        records,
        key=lambda r: (r.is_active, r.matched_last_sign_in or MIN_TIMESTAMP),
    )
