"""Active Directory source: paged computer searches, one per domain partition."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ldap3 import BASE, LEVEL, SCHEMA, SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPException

from scripts.stale_devices.base_source import (
    AuthenticationError,
    BaseSource,
    PartitionQueryError,
)
from scripts.stale_devices.config import DirectoryConfig

logger = logging.getLogger("stale_devices.active_directory")

_SCOPES = {"base": BASE, "onelevel": LEVEL, "subtree": SUBTREE}


def partition_base_dn(partition: str) -> str:
    """corp.example.com -> DC=corp,DC=example,DC=com. DNs pass through."""
    if "=" in partition:
        return partition
    return ",".join(f"DC={label}" for label in partition.split(".") if label)


def partition_host(partition: str) -> str:
    """DNS name to contact for a partition given as a domain name or a DN."""
    if "=" not in partition:
        return partition
    labels = [
        rdn.split("=", 1)[1].strip()
        for rdn in partition.split(",")
        if rdn.strip().upper().startswith("DC=")
    ]
    if not labels:
        raise ValueError(f"Cannot derive a host from partition {partition!r}")
    return ".".join(labels)


def _first(value):
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


class ActiveDirectorySource(BaseSource):
    SOURCE_NAME = "active_directory"

    def __init__(self, config: DirectoryConfig, partitions: Sequence[str]) -> None:
        self.config = config
        self.partitions = tuple(partitions)

    def _host_for(self, partition: str) -> str:
        return self.config.server or partition_host(partition)

    def _connect(self, host: str) -> Connection:
        server = Server(
            host,
            port=self.config.port or (636 if self.config.use_ssl else 389),
            use_ssl=self.config.use_ssl,
            get_info=SCHEMA,
            connect_timeout=self.config.timeout,
        )
        return Connection(
            server,
            user=self.config.user,
            password=self.config.password,
            auto_bind=True,
            read_only=True,
            raise_exceptions=True,
            receive_timeout=self.config.timeout,
        )

    def authenticate(self) -> None:
        if not self.partitions and not self.config.server:
            raise AuthenticationError("No directory server or partition configured")
        host = self._host_for(self.partitions[0]) if self.partitions else self.config.server
        try:
            conn = self._connect(host)
        except LDAPException as exc:
            raise AuthenticationError(f"Directory bind to {host} failed: {exc}") from exc
        conn.unbind()
        logger.info("Directory bind succeeded", extra={"source": self.SOURCE_NAME})

    def search_computers(
        self,
        partition: str,
        search_filter: str,
        attributes: Sequence[str],
        page_size: int,
        scope: Optional[str] = None,
    ) -> list[dict]:
        """Run one paged search and return rows keyed by the requested attribute names."""
        search_scope = _SCOPES[(scope or "subtree").lower()]
        base_dn = partition_base_dn(partition)
        host = self._host_for(partition)

        try:
            conn = self._connect(host)
        except LDAPException as exc:
            raise PartitionQueryError(f"Cannot connect to {host} for {partition}: {exc}") from exc

        try:
            with self._track_fetch(partition=partition) as stats:
                entries = conn.extend.standard.paged_search(
                    search_base=base_dn,
                    search_filter=search_filter,
                    search_scope=search_scope,
                    attributes=list(attributes),
                    paged_size=page_size,
                    generator=True,
                )
                rows = [
                    self._to_row(entry, attributes)
                    for entry in entries
                    if entry.get("type") == "searchResEntry"
                ]
                stats["records"] = len(rows)
        except LDAPException as exc:
            raise PartitionQueryError(f"Search of {base_dn} failed: {exc}") from exc
        finally:
            conn.unbind()
        return rows

    @staticmethod
    def _to_row(entry: dict, attributes: Sequence[str]) -> dict:
        # Attribute name casing in responses follows the schema, not the request
        received = {k.lower(): v for k, v in (entry.get("attributes") or {}).items()}
        row = {name: _first(received.get(name.lower())) for name in attributes}
        if not row.get("distinguishedName"):
            row["distinguishedName"] = entry.get("dn")
        return row
