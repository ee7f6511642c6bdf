import httpx
import pytest

from humanizer.services.transcription import (
    AudioTooLargeError,
    TranscriptionError,
    WhisperTranscriber,
    validate_audio,
)


class _FakeTextResponse:
    def __init__(self, text: str) -> None:
        self.text = text

    def raise_for_status(self) -> None:
        return None


def test_validate_audio_rejects_empty_and_oversized_files() -> None:
    with pytest.raises(ValueError, match="Audio file is empty"):
        validate_audio(b"", max_bytes=1024)

    with pytest.raises(AudioTooLargeError, match="Maximum size is 10MB, received 10.5MB"):
        validate_audio(b"x" * int(10.5 * 1024 * 1024), max_bytes=10 * 1024 * 1024)

    validate_audio(b"ok", max_bytes=1024)


def test_whisper_transcriber_posts_multipart(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_post(url: str, *, data, files, headers, timeout):
        captured.update(url=url, data=data, files=files, headers=headers, timeout=timeout)
        return _FakeTextResponse("  hello there \n")

    monkeypatch.setattr("humanizer.services.transcription.httpx.post", fake_post)

    transcriber = WhisperTranscriber(api_key="sk-test", base_url="https://llm.test/v1")
    result = transcriber.transcribe(b"audio-bytes", filename="note.webm", content_type=None)

    assert result == "hello there"
    assert captured["url"] == "https://llm.test/v1/audio/transcriptions"
    assert captured["data"] == {"model": "whisper-1", "response_format": "text"}
    assert captured["files"] == {"file": ("note.webm", b"audio-bytes", "audio/webm")}
    assert captured["headers"] == {"Authorization": "Bearer sk-test"}
    assert captured["timeout"] == 30.0


def test_whisper_transcriber_reports_timeouts(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_post(url: str, **kwargs):
        raise httpx.ReadTimeout("too slow")

    monkeypatch.setattr("humanizer.services.transcription.httpx.post", fake_post)

    with pytest.raises(TranscriptionError, match="Transcription timeout after 30 seconds"):
        WhisperTranscriber(api_key="sk-test").transcribe(b"a", filename="a.wav", content_type="audio/wav")


def test_whisper_transcriber_requires_a_key() -> None:
    with pytest.raises(TranscriptionError, match="OPENAI_API_KEY"):
        WhisperTranscriber(api_key=None).transcribe(b"a", filename="a.wav", content_type=None)
