from fastapi.testclient import TestClient

from humanizer.main import app, get_detector, get_provider_factory
from humanizer.services.types import DetectionResult

from fakes import FakeProvider


def _use_provider(provider: FakeProvider) -> None:
    app.dependency_overrides[get_provider_factory] = lambda: (lambda name: provider)


def test_rewrite_stores_a_completed_job(client: TestClient) -> None:
    provider = FakeProvider(name="anthropic", replies=["Rewritten in style."])
    _use_provider(provider)

    response = client.post(
        "/api/gpt-bypass/rewrite",
        json={"inputText": "Plain input text.", "styleText": "Terse prose.", "provider": "anthropic"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["rewrittenText"] == "Rewritten in style."
    assert body["originalText"] == "Plain input text."
    assert "Terse prose." in provider.calls[0]["messages"][0].content

    job = client.get(f"/api/gpt-bypass/job/{body['jobId']}").json()
    assert job["status"] == "completed"
    assert job["mixingMode"] == "style"
    assert job["outputText"] == "Rewritten in style."
    assert job["chunks"] == [
        {"id": "chunk-0", "content": "Plain input text.", "startWord": 0, "endWord": 3}
    ]
    assert job["selectedChunkIds"] == ["chunk-0"]


def test_rewrite_without_style_uses_the_default_sample(client: TestClient) -> None:
    provider = FakeProvider(name="anthropic", replies=["ok"])
    _use_provider(provider)

    client.post("/api/gpt-bypass/rewrite", json={"inputText": "Some text."})

    assert "Formal relationships hold between linguistic entities" in (
        provider.calls[0]["messages"][0].content
    )


def test_re_rewrite_feeds_previous_output_back(client: TestClient) -> None:
    provider = FakeProvider(name="anthropic", replies=["First pass.", "Second pass."])
    _use_provider(provider)

    first = client.post("/api/gpt-bypass/rewrite", json={"inputText": "Original."}).json()
    second = client.post(
        "/api/gpt-bypass/rewrite",
        json={"reRewrite": True, "jobId": first["jobId"]},
    )

    assert second.status_code == 200
    assert second.json()["jobId"] == first["jobId"]
    assert second.json()["rewrittenText"] == "Second pass."
    assert second.json()["originalText"] == "Original."
    assert "First pass." in provider.calls[1]["messages"][0].content


def test_re_rewrite_of_unknown_job_is_not_found(client: TestClient) -> None:
    _use_provider(FakeProvider(name="anthropic"))

    response = client.post(
        "/api/gpt-bypass/rewrite",
        json={"reRewrite": True, "jobId": "missing"},
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Job not found for re-rewrite"


def test_rewrite_requires_text(client: TestClient) -> None:
    _use_provider(FakeProvider(name="anthropic"))

    response = client.post("/api/gpt-bypass/rewrite", json={"inputText": "   "})

    assert response.status_code == 400
    assert response.json()["detail"] == "No text provided for processing"


def test_failed_rewrite_marks_the_job_as_error(client: TestClient) -> None:
    _use_provider(FakeProvider(name="anthropic", fail_on_call=1))

    response = client.post("/api/gpt-bypass/rewrite", json={"inputText": "Some text."})

    assert response.status_code == 500
    jobs = client.get("/api/gpt-bypass/jobs").json()
    assert [job["status"] for job in jobs] == ["error"]


def test_jobs_are_listed_newest_first(client: TestClient) -> None:
    _use_provider(FakeProvider(name="anthropic", replies=["one", "two"]))

    first = client.post("/api/gpt-bypass/rewrite", json={"inputText": "First."}).json()
    second = client.post("/api/gpt-bypass/rewrite", json={"inputText": "Second."}).json()

    jobs = client.get("/api/gpt-bypass/jobs").json()
    assert [job["id"] for job in jobs] == [second["jobId"], first["jobId"]]


def test_unknown_job_is_not_found(client: TestClient) -> None:
    response = client.get("/api/gpt-bypass/job/nope")

    assert response.status_code == 404
    assert response.json()["detail"] == "Job not found"


def test_chunk_text_returns_word_ranges(client: TestClient) -> None:
    response = client.post("/api/gpt-bypass/chunk-text", json={"text": "one two three"})

    assert response.status_code == 200
    assert response.json() == [
        {"id": "chunk-0", "content": "one two three", "startWord": 0, "endWord": 3}
    ]


def test_check_ai_reports_a_percentage_score(client: TestClient) -> None:
    class _Detector:
        def detect(self, text: str) -> DetectionResult:
            return DetectionResult(is_ai=True, confidence=0.734, details="mostly AI")

    app.dependency_overrides[get_detector] = _Detector

    response = client.post("/api/gpt-bypass/check-ai", json={"text": "text"})

    assert response.status_code == 200
    assert response.json() == {
        "aiScore": 73,
        "isAI": True,
        "confidence": 0.734,
        "details": "mostly AI",
    }
