"""Thin synchronous Alpaca market-data REST client.

Calls are blocking (``requests``); async callers hop through the default
executor exactly like the SDK-backed sources elsewhere in the codebase.
Every non-2xx response, connection failure or undecodable body surfaces as
:class:`TransportError` so the retry layer can treat them uniformly.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

import requests

from core.config import RuntimeSettings
from core.errors import TransportError

logger = logging.getLogger("optionscout.alpaca")


class AlpacaRestClient:
    def __init__(
        self,
        key_id: str,
        secret_key: str,
        *,
        data_url: str = "https://data.alpaca.markets",
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.data_url = data_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._headers = {
            "APCA-API-KEY-ID": key_id,
            "APCA-API-SECRET-KEY": secret_key,
            "accept": "application/json",
        }

    @classmethod
    def from_settings(cls, settings: RuntimeSettings, session: Optional[requests.Session] = None) -> "AlpacaRestClient":
        key_id, secret_key = settings.credentials()
        return cls(
            key_id,
            secret_key,
            data_url=settings.data_url,
            timeout=settings.request_timeout,
            session=session,
        )

    def get_json(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.data_url}/{path.lstrip('/')}"
        try:
            response = self._session.get(url, headers=self._headers, params=dict(params or {}), timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(f"GET {path} failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            body = (response.text or "")[:200]
            logger.warning("alpaca.http_error", extra={"path": path, "status": response.status_code})
            raise TransportError(f"GET {path} returned {response.status_code}: {body}", status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError(f"GET {path} returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise TransportError(f"GET {path} returned {type(payload).__name__}, expected an object")
        return payload

    async def aget_json(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: self.get_json(path, params))

    def close(self) -> None:
        self._session.close()


__all__ = ["AlpacaRestClient"]
