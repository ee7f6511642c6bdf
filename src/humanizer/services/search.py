from __future__ import annotations

import httpx

from humanizer.services.types import SearchHit, SearchResponse

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"


class SearchError(RuntimeError):
    pass


class GoogleSearchClient:
    def __init__(
        self,
        *,
        api_key: str | None,
        search_engine_id: str | None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._search_engine_id = search_engine_id
        self._timeout_seconds = timeout_seconds

    def search(self, query: str, *, max_results: int = 5) -> SearchResponse:
        if not self._api_key or not self._search_engine_id:
            raise SearchError(
                "Google API Key or Search Engine ID not configured "
                "(set GOOGLE_API_KEY and GOOGLE_SEARCH_ENGINE_ID)"
            )

        try:
            response = httpx.get(
                GOOGLE_SEARCH_URL,
                params={
                    "key": self._api_key,
                    "cx": self._search_engine_id,
                    "q": query,
                    "num": str(max_results),
                },
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise SearchError(f"Failed to search online: {exc}") from exc

        items = payload.get("items") if isinstance(payload, dict) else None
        if not isinstance(items, list) or not items:
            return SearchResponse(results=[], content=f"No results found for: {query}")

        hits = [
            SearchHit(
                title=str(item.get("title", "")),
                url=str(item.get("link", "")),
                snippet=str(item.get("snippet", "")),
            )
            for item in items
            if isinstance(item, dict)
        ]
        content = "\n".join(
            f"[{index}] {hit.title}\n{hit.url}\n{hit.snippet}\n"
            for index, hit in enumerate(hits, start=1)
        )
        return SearchResponse(results=hits, content=content)
