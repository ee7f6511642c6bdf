from __future__ import annotations

from typing import Protocol

import httpx

from humanizer.log import get_logger

logger = get_logger(__name__)

WHISPER_MODEL = "whisper-1"


class TranscriptionError(RuntimeError):
    pass


class AudioTooLargeError(ValueError):
    pass


class Transcriber(Protocol):
    def transcribe(self, audio: bytes, *, filename: str, content_type: str | None) -> str: ...


def validate_audio(audio: bytes, *, max_bytes: int) -> None:
    if not audio:
        raise ValueError("Audio file is empty")
    if len(audio) > max_bytes:
        raise AudioTooLargeError(
            f"Audio file too large. Maximum size is {max_bytes // (1024 * 1024)}MB, "
            f"received {len(audio) / (1024 * 1024):.1f}MB"
        )


class WhisperTranscriber:
    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    def transcribe(self, audio: bytes, *, filename: str, content_type: str | None) -> str:
        if not self._api_key:
            raise TranscriptionError("OpenAI API key is not configured (set OPENAI_API_KEY)")

        logger.info("transcribing %d bytes from %s", len(audio), filename)
        try:
            response = httpx.post(
                f"{self._base_url}/audio/transcriptions",
                data={"model": WHISPER_MODEL, "response_format": "text"},
                files={"file": (filename, audio, content_type or "audio/webm")},
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise TranscriptionError(
                f"Transcription timeout after {self._timeout_seconds:g} seconds"
            ) from exc
        except httpx.HTTPError as exc:
            raise TranscriptionError(f"Failed to transcribe audio: {exc}") from exc

        return response.text.strip()
