"""Name-keyed index of cloud devices signed in since the cutoff.

Matches devices to directory computers by display name (case-insensitive).
Devices sharing a name collapse to the most recently signed-in one.
"""

from __future__ import annotations

from datetime import datetime
from functools import reduce
from types import MappingProxyType
from typing import Iterable, Mapping

from scripts.stale_devices.models import MIN_TIMESTAMP, DeviceRecord, normalize_name

ActivityIndex = Mapping[str, DeviceRecord]


def _recency(device: DeviceRecord) -> datetime:
    return device.last_sign_in or MIN_TIMESTAMP


def is_recently_active(device: DeviceRecord, cutoff: datetime) -> bool:
    return (
        device.last_sign_in is not None
        and device.last_sign_in >= cutoff
        and bool(device.display_name and device.display_name.strip())
    )


def _keep_most_recent(
    index: dict[str, DeviceRecord], device: DeviceRecord
) -> dict[str, DeviceRecord]:
    # Strictly later wins; on a tie the first-seen entry stays
    key = normalize_name(device.display_name or "")
    current = index.get(key)
    if current is None or _recency(device) > _recency(current):
        index[key] = device
    return index


def build_activity_index(
    devices: Iterable[DeviceRecord], cutoff: datetime
) -> ActivityIndex:
    """Fold recently active devices into a read-only name -> device mapping."""
    active = (d for d in devices if is_recently_active(d, cutoff))
    return MappingProxyType(reduce(_keep_most_recent, active, {}))
