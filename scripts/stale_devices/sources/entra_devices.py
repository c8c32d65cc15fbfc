"""Entra ID device source: Microsoft Graph /devices with app-only auth."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import msal
import requests

from scripts.stale_devices.base_source import AuthenticationError, BaseSource
from scripts.stale_devices.config import EntraConfig

logger = logging.getLogger("stale_devices.entra_devices")

GRAPH_SCOPE = "https://graph.microsoft.com/.default"
DEVICE_ATTRIBUTES = ("id", "displayName", "approximateLastSignInDateTime")


class EntraDeviceSource(BaseSource):
    SOURCE_NAME = "entra_devices"

    def __init__(
        self,
        config: EntraConfig,
        session: Optional[requests.Session] = None,
        app: Optional[msal.ConfidentialClientApplication] = None,
    ) -> None:
        self.config = config
        self._base = config.graph_base_url.rstrip("/")
        self._session = session or requests.Session()
        self._app = app

    def _build_app(self) -> msal.ConfidentialClientApplication:
        return msal.ConfidentialClientApplication(
            self.config.client_id,
            authority=f"{self.config.authority_host.rstrip('/')}/{self.config.tenant_id}",
            client_credential=self.config.client_secret,
        )

    def authenticate(self) -> None:
        try:
            if self._app is None:
                self._app = self._build_app()
            result = self._app.acquire_token_for_client(scopes=[GRAPH_SCOPE])
        except (ValueError, requests.RequestException) as exc:
            raise AuthenticationError(f"Entra token request failed: {exc}") from exc

        token = (result or {}).get("access_token")
        if not token:
            raise AuthenticationError(
                "Entra token request failed: %s"
                % ((result or {}).get("error_description") or (result or {}).get("error"))
            )
        self._session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        })
        logger.info("Graph token acquired", extra={"source": self.SOURCE_NAME})

    def _get_paginated(self, url: str, params: Optional[dict] = None) -> list[dict]:
        """Fetch every page of a Graph collection by following @odata.nextLink."""
        results: list[dict] = []
        while url:
            resp = self._session.get(url, params=params, timeout=self.config.timeout)
            resp.raise_for_status()
            data = resp.json()
            results.extend(data.get("value", []))
            # nextLink already carries the query string
            url = data.get("@odata.nextLink", "")
            params = None
        return results

    def list_devices(self, attributes: Sequence[str] = DEVICE_ATTRIBUTES) -> list[dict]:
        if "Authorization" not in self._session.headers:
            self.authenticate()
        with self._track_fetch() as stats:
            devices = self._get_paginated(
                f"{self._base}/devices",
                params={
                    "$select": ",".join(attributes),
                    "$top": str(self.config.page_size),
                },
            )
            stats["records"] = len(devices)
        return devices
