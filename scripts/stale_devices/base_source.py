"""Shared behaviour for the directory and device sources."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Generator

logger = logging.getLogger("stale_devices.source")


class AuthenticationError(RuntimeError):
    """Session could not be established with a backend. Always fatal."""


class BaseSource(ABC):
    """Each source overrides authenticate() and declares SOURCE_NAME."""

    SOURCE_NAME: str = ""

    @abstractmethod
    def authenticate(self) -> None:
        """Establish the session; raise AuthenticationError on failure."""

    @contextmanager
    def _track_fetch(self, **extra) -> Generator[dict, None, None]:
        """Time a fetch and log its record count.

        The body stores the fetched row count under "records" in the yielded dict.
        """
        stats: dict = {"records": 0}
        started = time.monotonic()
        yield stats
        logger.info(
            "Fetch complete",
            extra={
                "source": self.SOURCE_NAME,
                "records": stats["records"],
                "duration_s": round(time.monotonic() - started, 3),
                **extra,
            },
        )


class PartitionQueryError(RuntimeError):
    """A directory partition could not be queried. The run skips it."""
