"""Stale computer candidates from every configured directory partition."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from scripts.stale_devices.interfaces import DirectoryQuery
from scripts.stale_devices.models import Candidate, parse_timestamp, to_generalized_time

logger = logging.getLogger("stale_devices.collector")

COMPUTER_ATTRIBUTES = ("whenChanged", "distinguishedName", "sAMAccountName", "name")


def stale_computer_filter(cutoff: datetime) -> str:
    """Computer objects whose whenChanged is at or before the cutoff."""
    return f"(&(objectCategory=computer)(whenChanged<={to_generalized_time(cutoff)}))"


def apply_exclusions(rows: list[dict], exclusions: Sequence[str]) -> list[dict]:
    """Drop rows whose distinguished name contains any exclusion substring.

    DNs compare case-insensitively, as the directory does.
    """
    if not exclusions:
        return rows
    patterns = [pattern.casefold() for pattern in exclusions]
    return [
        row
        for row in rows
        if not any(p in (row.get("distinguishedName") or "").casefold() for p in patterns)
    ]


def _to_candidate(partition: str, row: dict) -> Optional[Candidate]:
    name = row.get("name")
    last_changed = parse_timestamp(row.get("whenChanged"))
    if not name or last_changed is None:
        return None
    return Candidate(
        domain_partition=partition,
        computer_name=str(name),
        account_name=str(row.get("sAMAccountName") or ""),
        last_changed=last_changed,
        distinguished_name=str(row.get("distinguishedName") or ""),
    )


def collect_candidates(
    directory: DirectoryQuery,
    partitions: Sequence[str],
    cutoff: datetime,
    exclusions: Sequence[str] = (),
    scope: Optional[str] = None,
    page_size: int = 1000,
) -> list[Candidate]:
    """Query each partition once and normalise the surviving rows.

    A failing partition is logged and skipped. Duplicate names across
    partitions are kept.
    """
    search_filter = stale_computer_filter(cutoff)
    candidates: list[Candidate] = []

    for partition in partitions:
        try:
            rows = directory.search_computers(
                partition, search_filter, COMPUTER_ATTRIBUTES, page_size, scope
            )
        except Exception as exc:
            logger.warning(
                "Skipping partition %s: %s", partition, exc,
                extra={"partition": partition},
            )
            continue

        kept = apply_exclusions(rows, exclusions)
        rejected = 0
        for row in kept:
            candidate = _to_candidate(partition, row)
            if candidate is None:
                rejected += 1
                continue
            candidates.append(candidate)

        if rejected:
            logger.warning(
                "Rejected %d rows without name or whenChanged in %s",
                rejected, partition,
                extra={"partition": partition},
            )
        logger.info(
            "Collected %d stale computers from %s (%d excluded)",
            len(kept) - rejected, partition, len(rows) - len(kept),
            extra={"partition": partition, "records": len(kept) - rejected},
        )

    return candidates
