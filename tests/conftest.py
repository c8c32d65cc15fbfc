from __future__ import annotations

from datetime import datetime, timezone

import pytest

from scripts.stale_devices.config import AuditConfig, EntraConfig, ReportConfig

UTC = timezone.utc


class FakeDirectory:
    """Partition -> rows, or partition -> exception to raise."""

    def __init__(self, partitions: dict, fail_auth: Exception | None = None) -> None:
        self.partitions = partitions
        self.fail_auth = fail_auth
        self.authenticated = False
        self.calls: list[tuple] = []

    def authenticate(self) -> None:
        if self.fail_auth:
            raise self.fail_auth
        self.authenticated = True

    def search_computers(self, partition, search_filter, attributes, page_size, scope=None):
        self.calls.append((partition, search_filter, tuple(attributes), page_size, scope))
        outcome = self.partitions.get(partition, [])
        if isinstance(outcome, Exception):
            raise outcome
        return list(outcome)


class FakeDevices:
    def __init__(self, rows: list[dict], fail_auth: Exception | None = None) -> None:
        self.rows = rows
        self.fail_auth = fail_auth
        self.list_calls = 0
        self.authenticated = False

    def authenticate(self) -> None:
        if self.fail_auth:
            raise self.fail_auth
        self.authenticated = True

    def list_devices(self, attributes):
        self.list_calls += 1
        return list(self.rows)


class FakeExporter:
    def __init__(self) -> None:
        self.exports: dict[str, list] = {}

    def export(self, records, destination):
        self.exports[destination] = list(records)
        return len(records)


def computer_row(name: str, changed: str, dn: str | None = None, sam: str | None = None) -> dict:
    return {
        "name": name,
        "sAMAccountName": sam or f"{name}$",
        "whenChanged": changed,
        "distinguishedName": dn or f"CN={name},OU=Workstations,DC=corp,DC=example,DC=com",
    }


@pytest.fixture
def cutoff() -> datetime:
    return datetime(2024, 1, 1, tzinfo=UTC)


@pytest.fixture
def audit_config() -> AuditConfig:
    return AuditConfig(
        tenant_id="tenant-1",
        entra=EntraConfig(tenant_id="tenant-1", client_id="client", client_secret="secret"),
        report=ReportConfig(
            stale_cutoff_days=30,
            domain_partitions=("corp.example.com", "emea.example.com"),
            primary_export_path="out/stale.csv",
            debug_export_path="out/debug.csv",
        ),
    )
