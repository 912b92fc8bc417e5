from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Protocol

from services.market.alpaca_rest import AlpacaRestClient
from services.sentiment.types import NewsItem


class NewsSource(Protocol):
    async def fetch_news(self) -> Mapping[str, Any]:
        """Return the raw ``{"news": [...]}`` payload."""


class AlpacaNewsFetcher(NewsSource):
    """
    Fetch the most recent market headlines from Alpaca News over REST.
    Returns the raw payload; normalization happens in :func:`parse_news`.
    """

    def __init__(self, client: AlpacaRestClient, limit: int = 50):
        self._client = client
        self.limit = limit

    async def fetch_news(self) -> Dict[str, Any]:
        payload = await self._client.aget_json("v1beta1/news", {"sort": "desc", "limit": self.limit})
        payload.setdefault("news", [])
        return payload


def parse_news(payload: Mapping[str, Any]) -> List[NewsItem]:
    if not isinstance(payload, Mapping):
        return []
    raw: Iterable[Any] = payload.get("news") or []
    items = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        item = NewsItem.from_payload(entry)
        if item is not None:
            items.append(item)
    return items
