"""Run-scoped value objects shared by the collector, index builder and reconciler."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

# Absent timestamps compare as this value and always lose recency checks
MIN_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)

_FRACTION = re.compile(r"\.(\d+)(?=[+-]\d\d:?\d\d$|$)")

_GENERALIZED_TIME_FORMATS = ("%Y%m%d%H%M%S.%fZ", "%Y%m%d%H%M%SZ", "%Y%m%d%H%M%S")


class ActivityStatus(str, enum.Enum):
    ACTIVE = "Active"
    NOT_ACTIVE_OR_NOT_FOUND = "NotActiveOrNotFound"


@dataclass(frozen=True)
class Candidate:
    """A directory computer account unchanged since the cutoff."""

    domain_partition: str
    computer_name: str
    account_name: str
    last_changed: datetime
    distinguished_name: str


@dataclass(frozen=True)
class DeviceRecord:
    """An Entra ID device as listed by Microsoft Graph."""

    id: str
    display_name: Optional[str] = None
    last_sign_in: Optional[datetime] = None

    @classmethod
    def from_graph(cls, row: dict) -> "DeviceRecord":
        display_name = row.get("displayName")
        return cls(
            id=str(row.get("id", "")),
            display_name=display_name if isinstance(display_name, str) else None,
            last_sign_in=parse_timestamp(row.get("approximateLastSignInDateTime")),
        )


@dataclass(frozen=True)
class EnrichedRecord:
    """A candidate together with the outcome of the activity lookup."""

    domain_partition: str
    computer_name: str
    account_name: str
    last_changed: datetime
    distinguished_name: str
    matched_device_id: Optional[str]
    matched_last_sign_in: Optional[datetime]
    is_active: bool
    status: ActivityStatus

    @classmethod
    def from_candidate(
        cls,
        candidate: Candidate,
        device: Optional[DeviceRecord],
        is_active: bool,
    ) -> "EnrichedRecord":
        return cls(
            domain_partition=candidate.domain_partition,
            computer_name=candidate.computer_name,
            account_name=candidate.account_name,
            last_changed=candidate.last_changed,
            distinguished_name=candidate.distinguished_name,
            matched_device_id=device.id if device else None,
            matched_last_sign_in=device.last_sign_in if device else None,
            is_active=is_active,
            status=(
                ActivityStatus.ACTIVE
                if is_active
                else ActivityStatus.NOT_ACTIVE_OR_NOT_FOUND
            ),
        )


def normalize_name(name: str) -> str:
    """Join key shared by directory computer names and device display names."""
    return name.strip().upper()


def parse_timestamp(value: object) -> Optional[datetime]:
    """Cast Graph and LDAP timestamp formats into aware UTC datetimes.

    Returns None for empty or malformed values instead of raising.
    """
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None

    dt: Optional[datetime] = None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, bytes):
        return parse_timestamp(value.decode("ascii", errors="ignore"))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text[0].isdigit() and len(text) >= 14 and text[:14].isdigit():
            # LDAP generalized time, e.g. 20240101000000.0Z
            for fmt in _GENERALIZED_TIME_FORMATS:
                try:
                    dt = datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
                    break
                except ValueError:
                    continue
        else:
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            # Graph sends 7 fraction digits; fromisoformat on 3.10 wants 3 or 6
            text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
            try:
                dt = datetime.fromisoformat(text)
            except ValueError:
                dt = None
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_generalized_time(moment: datetime) -> str:
    """Format an instant for an LDAP filter comparison."""
    return moment.astimezone(timezone.utc).strftime("%Y%m%d%H%M%S.0Z")
