"""Configuration via environment variables with secret reference support.

Supports:
  - Environment variables and .env files (local runs)
  - AWS Secrets Manager / GCP Secret Manager / OS keyring references for
    the directory password and the Entra client secret
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from dotenv import load_dotenv

from scripts.stale_devices.secrets import resolve_secret

SEARCH_SCOPES = ("base", "onelevel", "subtree")


@dataclass(frozen=True)
class DirectoryConfig:
    server: Optional[str] = None  # None = bind to each partition's DNS name
    user: Optional[str] = None  # None = anonymous bind
    password: Optional[str] = None
    use_ssl: bool = True
    port: Optional[int] = None  # None = 636 with SSL, 389 without
    page_size: int = 1000
    timeout: int = 30


@dataclass(frozen=True)
class EntraConfig:
    tenant_id: str
    client_id: str
    client_secret: str
    authority_host: str = "https://login.microsoftonline.com"
    graph_base_url: str = "https://graph.microsoft.com/v1.0"
    page_size: int = 999
    timeout: int = 60


@dataclass(frozen=True)
class ReportConfig:
    stale_cutoff_days: int = 90
    domain_partitions: tuple[str, ...] = ()
    exclusion_path_substrings: tuple[str, ...] = ()
    scope_restriction: Optional[str] = None  # None = subtree
    primary_export_path: str = "stale_computers.csv"
    debug_export_path: Optional[str] = None  # None = debug export disabled


@dataclass(frozen=True)
class AuditConfig:
    tenant_id: str
    entra: EntraConfig
    directory: DirectoryConfig = field(default_factory=DirectoryConfig)
    report: ReportConfig = field(default_factory=ReportConfig)


def compute_cutoff(days: int, now: Optional[datetime] = None) -> datetime:
    """Return the single cutoff instant shared by staleness and activity checks."""
    if days < 0:
        raise ValueError(f"stale cutoff days must be non-negative, got {days}")
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now - timedelta(days=days)


def _split(raw: str, sep: str) -> tuple[str, ...]:
    return tuple(s.strip() for s in raw.split(sep) if s.strip())


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _require(name: str) -> str:
    value = os.environ.get(name, "").strip()
    if not value:
        raise ValueError(f"{name} environment variable is required")
    return value


def load_config() -> AuditConfig:
    """Load configuration from environment variables.

    Secrets may be plain values or aws-secret://, gcp-secret:// and
    keyring:// references.
    """
    load_dotenv()

    tenant_id = _require("TENANT_ID")

    entra = EntraConfig(
        tenant_id=tenant_id,
        client_id=_require("ENTRA_CLIENT_ID"),
        client_secret=resolve_secret(_require("ENTRA_CLIENT_SECRET")),
        authority_host=os.environ.get(
            "ENTRA_AUTHORITY_HOST", "https://login.microsoftonline.com"
        ),
        graph_base_url=os.environ.get(
            "GRAPH_API_BASE_URL", "https://graph.microsoft.com/v1.0"
        ),
        page_size=int(os.environ.get("GRAPH_PAGE_SIZE", "999")),
    )

    # Password may be a secret reference
    ad_password = os.environ.get("AD_PASSWORD") or None
    if ad_password:
        ad_password = resolve_secret(ad_password)
    ad_port = os.environ.get("AD_PORT", "").strip()

    directory = DirectoryConfig(
        server=os.environ.get("AD_SERVER") or None,
        user=os.environ.get("AD_USER") or None,
        password=ad_password,
        use_ssl=_env_bool("AD_USE_SSL", True),
        port=int(ad_port) if ad_port else None,
        page_size=int(os.environ.get("AD_PAGE_SIZE", "1000")),
        timeout=int(os.environ.get("AD_TIMEOUT", "30")),
    )

    partitions = _split(_require("AD_DOMAINS"), ",")
    # Distinguished names contain commas, so exclusions are ';' separated
    exclusions = _split(os.environ.get("AD_EXCLUDE_PATHS", ""), ";")

    scope = (os.environ.get("AD_SEARCH_SCOPE") or "").strip().lower() or None
    if scope is not None and scope not in SEARCH_SCOPES:
        raise ValueError(
            f"AD_SEARCH_SCOPE must be one of {SEARCH_SCOPES}, got {scope!r}"
        )

    report = ReportConfig(
        stale_cutoff_days=int(os.environ.get("STALE_CUTOFF_DAYS", "90")),
        domain_partitions=partitions,
        exclusion_path_substrings=exclusions,
        scope_restriction=scope,
        primary_export_path=os.environ.get("EXPORT_PATH") or "stale_computers.csv",
        debug_export_path=os.environ.get("DEBUG_EXPORT_PATH") or None,
    )

    return AuditConfig(
        tenant_id=tenant_id,
        entra=entra,
        directory=directory,
        report=report,
    )
