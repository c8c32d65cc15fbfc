from datetime import datetime, timezone
from types import MappingProxyType

from scripts.stale_devices.activity_index import build_activity_index
from scripts.stale_devices.models import ActivityStatus, Candidate, DeviceRecord
from scripts.stale_devices.reconciler import (
    actionable_records,
    reconcile,
    sort_actionable,
    sort_enriched,
)

UTC = timezone.utc


def _candidate(name: str, changed: datetime, partition: str = "corp.example.com") -> Candidate:
    return Candidate(
        domain_partition=partition,
        computer_name=name,
        account_name=f"{name}$",
        last_changed=changed,
        distinguished_name=f"CN={name},OU=Workstations,DC=corp,DC=example,DC=com",
    )


def test_matched_active_device_is_not_actionable(cutoff) -> None:
    device = DeviceRecord(id="dev-1", display_name="PC01", last_sign_in=datetime(2024, 6, 1, tzinfo=UTC))
    index = build_activity_index([device], cutoff)

    [record] = reconcile([_candidate("PC01", datetime(2023, 1, 1, tzinfo=UTC))], index, cutoff)

    assert record.is_active is True
    assert record.status is ActivityStatus.ACTIVE
    assert record.matched_device_id == "dev-1"
    assert record.matched_last_sign_in == datetime(2024, 6, 1, tzinfo=UTC)
    assert actionable_records([record]) == []


def test_unmatched_candidate_is_actionable(cutoff) -> None:
    [record] = reconcile([_candidate("PC02", datetime(2023, 1, 1, tzinfo=UTC))], {}, cutoff)

    assert record.is_active is False
    assert record.status is ActivityStatus.NOT_ACTIVE_OR_NOT_FOUND
    assert record.matched_device_id is None
    assert actionable_records([record]) == [record]


def test_lookup_ignores_case(cutoff) -> None:
    device = DeviceRecord(id="dev-3", display_name="pc03", last_sign_in=datetime(2024, 5, 15, tzinfo=UTC))
    index = build_activity_index([device], cutoff)

    [record] = reconcile([_candidate("Pc03", datetime(2023, 1, 1, tzinfo=UTC))], index, cutoff)
    assert record.is_active is True


def test_stale_entry_in_index_is_still_rejected(cutoff) -> None:
    # An index built some other way must not turn an old sign-in into activity
    stale = DeviceRecord(id="dev-9", display_name="PC09", last_sign_in=datetime(2022, 1, 1, tzinfo=UTC))
    index = MappingProxyType({"PC09": stale})

    [record] = reconcile([_candidate("PC09", datetime(2021, 1, 1, tzinfo=UTC))], index, cutoff)

    assert record.is_active is False
    assert record.status is ActivityStatus.NOT_ACTIVE_OR_NOT_FOUND
    assert record.matched_device_id == "dev-9"


def test_reconcile_is_repeatable(cutoff) -> None:
    devices = [
        DeviceRecord(id="a", display_name="PC01", last_sign_in=datetime(2024, 2, 1, tzinfo=UTC)),
        DeviceRecord(id="b", display_name="PC02", last_sign_in=None),
    ]
    index = build_activity_index(devices, cutoff)
    candidates = [
        _candidate("PC01", datetime(2023, 3, 1, tzinfo=UTC)),
        _candidate("PC02", datetime(2023, 2, 1, tzinfo=UTC)),
        _candidate("PC01", datetime(2023, 4, 1, tzinfo=UTC), partition="emea.example.com"),
    ]

    first = reconcile(candidates, index, cutoff)
    second = reconcile(candidates, index, cutoff)

    assert first == second
    assert [r.is_active for r in first] == [True, False, True]


def test_actionable_iff_no_active_device_for_name(cutoff) -> None:
    devices = [
        DeviceRecord(id="a", display_name="ACTIVE1", last_sign_in=datetime(2024, 2, 1, tzinfo=UTC)),
        DeviceRecord(id="b", display_name="OLD1", last_sign_in=datetime(2023, 6, 1, tzinfo=UTC)),
        DeviceRecord(id="c", display_name="NOSIGNIN", last_sign_in=None),
    ]
    index = build_activity_index(devices, cutoff)
    names = ["ACTIVE1", "OLD1", "NOSIGNIN", "MISSING"]
    records = reconcile([_candidate(n, datetime(2023, 1, 1, tzinfo=UTC)) for n in names], index, cutoff)

    assert [r.computer_name for r in actionable_records(records)] == ["OLD1", "NOSIGNIN", "MISSING"]


def test_output_ordering(cutoff) -> None:
    devices = [
        DeviceRecord(id="a", display_name="LATE", last_sign_in=datetime(2024, 9, 1, tzinfo=UTC)),
        DeviceRecord(id="b", display_name="EARLY", last_sign_in=datetime(2024, 2, 1, tzinfo=UTC)),
    ]
    index = build_activity_index(devices, cutoff)
    records = reconcile(
        [
            _candidate("LATE", datetime(2023, 5, 1, tzinfo=UTC)),
            _candidate("NEWER", datetime(2023, 9, 1, tzinfo=UTC)),
            _candidate("EARLY", datetime(2023, 5, 1, tzinfo=UTC)),
            _candidate("OLDEST", datetime(2022, 1, 1, tzinfo=UTC)),
        ],
        index,
        cutoff,
    )

    assert [r.computer_name for r in sort_actionable(actionable_records(records))] == ["OLDEST", "NEWER"]
    assert [r.computer_name for r in sort_enriched(records)] == ["NEWER", "OLDEST", "EARLY", "LATE"]
