"""Alpaca-backed options snapshot source."""

from __future__ import annotations

from typing import Any, Dict

from services.market.alpaca_rest import AlpacaRestClient
from services.options.chain import OptionsQuery, OptionsSource


class AlpacaSnapshotSource(OptionsSource):
    """Fetch raw option snapshots for one underlying from Alpaca market data."""

    def __init__(self, client: AlpacaRestClient) -> None:
        self._client = client

    async def fetch_options(self, symbol: str, query: OptionsQuery) -> Dict[str, Any]:
        path = f"v1beta1/options/snapshots/{symbol.upper()}"
        payload = await self._client.aget_json(path, query.params())
        payload.setdefault("snapshots", {})
        return payload


__all__ = ["AlpacaSnapshotSource"]
