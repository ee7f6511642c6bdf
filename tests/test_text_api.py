import httpx
from fastapi.testclient import TestClient
import pytest

from humanizer.config import get_settings
from humanizer.main import app, get_detector, get_provider_factory, get_search_client, get_transcriber
from humanizer.services.detection import DetectionError
from humanizer.services.types import DetectionResult, SearchHit, SearchResponse

from fakes import FakeProvider


def _use_provider(provider: FakeProvider) -> list[str]:
    requested: list[str] = []

    def factory(name: str) -> FakeProvider:
        requested.append(name)
        return provider

    app.dependency_overrides[get_provider_factory] = lambda: factory
    return requested


def test_process_text_returns_the_rewrite(client: TestClient) -> None:
    provider = FakeProvider(replies=["A rewrite costing $20"])
    requested = _use_provider(provider)

    response = client.post(
        "/api/process-text",
        json={"inputText": "Original text", "instructions": "Rewrite", "llmProvider": "deepseek"},
    )

    assert response.status_code == 200
    assert response.json() == {"result": "A rewrite costing 20 dollars"}
    assert requested == ["deepseek"]


def test_process_text_without_key_is_a_server_error(client: TestClient) -> None:
    response = client.post("/api/process-text", json={"inputText": "text", "instructions": "x"})

    assert response.status_code == 500
    assert response.json()["detail"] == "OpenAI API key is not configured (set OPENAI_API_KEY)"


def test_invalid_bodies_are_bad_requests(client: TestClient) -> None:
    missing = client.post("/api/process-text", json={"instructions": "Rewrite"})
    unknown_provider = client.post(
        "/api/process-text", json={"inputText": "x", "llmProvider": "mistral"}
    )

    assert missing.status_code == 400
    assert "inputText" in missing.json()["detail"]
    assert unknown_provider.status_code == 400


def test_provider_failure_is_a_server_error(client: TestClient) -> None:
    _use_provider(FakeProvider(fail_on_call=1))

    response = client.post("/api/process-text", json={"inputText": "x", "instructions": "Rewrite"})

    assert response.status_code == 500
    assert response.json()["detail"].startswith("Failed to process text with Openai")


def test_non_json_provider_reply_is_a_server_error(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    client.post("/api/update-api-keys", json={"openaiKey": "sk-test"})

    def fake_post(url: str, *, json: dict[str, object], headers: dict[str, str], timeout: float):
        del json, headers, timeout
        return httpx.Response(200, text="<html>gateway</html>", request=httpx.Request("POST", url))

    monkeypatch.setattr("humanizer.providers.openai_compatible.httpx.post", fake_post)

    response = client.post("/api/process-text", json={"inputText": "x", "instructions": "Rewrite"})

    assert response.status_code == 500
    assert response.json()["detail"].startswith(
        "Failed to process text with OpenAI: OpenAI request failed"
    )


def test_process_chunk_echoes_position(client: TestClient) -> None:
    provider = FakeProvider(replies=["chunk done"])
    _use_provider(provider)

    response = client.post(
        "/api/process-chunk",
        json={"inputText": "body", "instructions": "Rewrite", "chunkIndex": 2, "totalChunks": 3},
    )

    assert response.status_code == 200
    assert response.json() == {"result": "chunk done", "chunkIndex": 2, "totalChunks": 3}
    assert "[Processing chunk 3 of 3]" in provider.calls[0]["messages"][0].content


def test_process_chunk_rejects_index_past_the_end(client: TestClient) -> None:
    _use_provider(FakeProvider())

    response = client.post(
        "/api/process-chunk",
        json={"inputText": "body", "chunkIndex": 3, "totalChunks": 3},
    )

    assert response.status_code == 400


def test_chat_passes_history_and_context(client: TestClient) -> None:
    provider = FakeProvider(replies=["Happy to help"])
    _use_provider(provider)

    response = client.post(
        "/api/chat",
        json={
            "message": "Summarize chapter two",
            "conversationHistory": [
                {"role": "user", "content": "Hi"},
                {"role": "assistant", "content": "Hello"},
            ],
            "contextDocument": "Chapter two text",
        },
    )

    assert response.status_code == 200
    assert response.json() == {"response": "Happy to help"}
    assert [message.role for message in provider.calls[0]["messages"]] == ["user", "assistant", "user"]
    assert provider.calls[0]["system"].endswith("Context document:\nChapter two text")


def test_solve_homework(client: TestClient) -> None:
    _use_provider(FakeProvider(replies=["x = 4"]))

    response = client.post("/api/solve-homework", json={"assignment": "Solve 2x = 8"})

    assert response.status_code == 200
    assert response.json() == {"result": "x = 4"}


class _StaticDetector:
    def __init__(self, result: DetectionResult | None) -> None:
        self._result = result

    def detect(self, text: str) -> DetectionResult:
        if self._result is None:
            raise DetectionError("GPTZero API key not configured (set GPTZERO_API_KEY)")
        return self._result


def test_detect_ai_uses_gptzero_result(client: TestClient) -> None:
    app.dependency_overrides[get_detector] = lambda: _StaticDetector(
        DetectionResult(is_ai=True, confidence=0.91, details="Overall AI probability: 91%")
    )
    _use_provider(FakeProvider())

    response = client.post("/api/detect-ai", json={"text": "suspicious"})

    assert response.status_code == 200
    assert response.json() == {
        "isAI": True,
        "confidence": 0.91,
        "details": "Overall AI probability: 91%",
    }


def test_detect_ai_falls_back_to_provider(client: TestClient) -> None:
    app.dependency_overrides[get_detector] = lambda: _StaticDetector(None)
    _use_provider(FakeProvider(replies=['{"isAI": false, "confidence": 0.3, "details": "varied"}']))

    response = client.post("/api/detect-ai", json={"text": "some text"})

    assert response.status_code == 200
    assert response.json() == {"isAI": False, "confidence": 0.3, "details": "varied"}


def test_detect_ai_without_any_backend_is_a_server_error(client: TestClient) -> None:
    app.dependency_overrides[get_detector] = lambda: _StaticDetector(None)

    response = client.post("/api/detect-ai", json={"text": "some text"})

    assert response.status_code == 500
    assert "GPTZERO_API_KEY" in response.json()["detail"]


class _FakeTranscriber:
    def __init__(self) -> None:
        self.received: list[tuple[bytes, str, str | None]] = []

    def transcribe(self, audio: bytes, *, filename: str, content_type: str | None) -> str:
        self.received.append((audio, filename, content_type))
        return "spoken words"


def test_transcribe_returns_text(client: TestClient) -> None:
    transcriber = _FakeTranscriber()
    app.dependency_overrides[get_transcriber] = lambda: transcriber

    response = client.post(
        "/api/transcribe",
        files={"audio": ("memo.webm", b"fake-audio", "audio/webm")},
    )

    assert response.status_code == 200
    assert response.json() == {"result": "spoken words"}
    assert transcriber.received == [(b"fake-audio", "memo.webm", "audio/webm")]


def test_transcribe_requires_a_file(client: TestClient) -> None:
    app.dependency_overrides[get_transcriber] = _FakeTranscriber

    response = client.post("/api/transcribe")

    assert response.status_code == 400
    assert response.json()["detail"] == "No audio file provided"


def test_transcribe_rejects_oversized_audio(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("MAX_AUDIO_BYTES", "1024")
    get_settings.cache_clear()
    app.dependency_overrides[get_transcriber] = _FakeTranscriber

    response = client.post(
        "/api/transcribe",
        files={"audio": ("memo.webm", b"x" * 2048, "audio/webm")},
    )

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Audio file too large")


class _FakeSearch:
    def search(self, query: str, *, max_results: int = 5) -> SearchResponse:
        return SearchResponse(
            results=[SearchHit(title="Result", url="https://r.test", snippet=query)],
            content=f"[1] Result\nhttps://r.test\n{query}\n",
        )


def test_search_online(client: TestClient) -> None:
    app.dependency_overrides[get_search_client] = _FakeSearch

    response = client.post("/api/search-online", json={"query": "hegel"})

    assert response.status_code == 200
    assert response.json()["results"] == [
        {"title": "Result", "url": "https://r.test", "snippet": "hegel"}
    ]


def test_search_online_without_credentials(client: TestClient) -> None:
    response = client.post("/api/search-online", json={"query": "hegel"})

    assert response.status_code == 500


def test_export_endpoints_return_attachments(client: TestClient) -> None:
    html = client.post("/api/export-html", json={"content": "Hello", "filename": "essay.md"})
    latex = client.post("/api/export-latex", json={"content": "Hello", "filename": "essay.md"})
    pdf = client.post("/api/export-pdf", json={"content": "Hello", "filename": "essay.md"})

    assert html.status_code == 200
    assert html.headers["content-type"].startswith("text/html")
    assert html.headers["content-disposition"] == 'attachment; filename="essay.html"'
    assert latex.headers["content-type"].startswith("application/x-latex")
    assert latex.headers["content-disposition"] == 'attachment; filename="essay.tex"'
    assert pdf.json()["filename"] == "essay.pdf"
    assert "Hello" in pdf.json()["htmlContent"]


def test_update_api_keys_enables_a_provider(client: TestClient) -> None:
    response = client.post("/api/update-api-keys", json={"openaiKey": "sk-new", "deepseekKey": ""})

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "API keys updated successfully"}
    assert client.app.state.keys.get("openai") == "sk-new"
    assert client.app.state.keys.get("deepseek") is None
