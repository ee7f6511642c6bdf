import httpx
import pytest

from humanizer.services.search import GOOGLE_SEARCH_URL, GoogleSearchClient, SearchError


class _FakeResponse:
    def __init__(self, payload: dict[str, object]) -> None:
        self._payload = payload

    def raise_for_status(self) -> None:
        return None

    def json(self) -> dict[str, object]:
        return self._payload


def test_search_formats_numbered_results(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_get(url: str, *, params: dict[str, str], timeout: float) -> _FakeResponse:
        captured["url"] = url
        captured["params"] = params
        del timeout
        return _FakeResponse(
            {
                "items": [
                    {"title": "First", "link": "https://a.test", "snippet": "alpha"},
                    {"title": "Second", "link": "https://b.test", "snippet": "beta"},
                ]
            }
        )

    monkeypatch.setattr("humanizer.services.search.httpx.get", fake_get)

    response = GoogleSearchClient(api_key="g-key", search_engine_id="cx-1").search("kant")

    assert [hit.title for hit in response.results] == ["First", "Second"]
    assert response.content == (
        "[1] First\nhttps://a.test\nalpha\n\n[2] Second\nhttps://b.test\nbeta\n"
    )
    assert captured["url"] == GOOGLE_SEARCH_URL
    assert captured["params"] == {"key": "g-key", "cx": "cx-1", "q": "kant", "num": "5"}


def test_search_without_items_reports_no_results(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "humanizer.services.search.httpx.get",
        lambda url, *, params, timeout: _FakeResponse({}),
    )

    response = GoogleSearchClient(api_key="g-key", search_engine_id="cx-1").search("nothing")

    assert response.results == []
    assert response.content == "No results found for: nothing"


def test_search_requires_credentials() -> None:
    with pytest.raises(SearchError, match="GOOGLE_SEARCH_ENGINE_ID"):
        GoogleSearchClient(api_key="g-key", search_engine_id=None).search("q")


def test_search_wraps_non_json_bodies(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "humanizer.services.search.httpx.get",
        lambda url, *, params, timeout: httpx.Response(
            200, text="<html>gateway</html>", request=httpx.Request("GET", url)
        ),
    )

    with pytest.raises(SearchError, match="Failed to search online"):
        GoogleSearchClient(api_key="g-key", search_engine_id="cx-1").search("kant")
