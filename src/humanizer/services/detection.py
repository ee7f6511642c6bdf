from __future__ import annotations

from typing import Any, Protocol

import httpx

from humanizer.log import get_logger
from humanizer.providers.base import ProviderClient
from humanizer.services.dispatcher import detect_ai_with_provider
from humanizer.services.types import DetectionResult

logger = get_logger(__name__)

GPTZERO_API_URL = "https://api.gptzero.me/v2/predict/text"
MAX_DETECTION_CHARS = 45_000
TRUNCATION_NOTE = "\n\n[Text truncated for analysis]"


class DetectionError(RuntimeError):
    pass


class DetectionClient(Protocol):
    def detect(self, text: str) -> DetectionResult: ...


def _format_ratio(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:.2f}"
    return "N/A"


def _percent(value: Any) -> int:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return round(value * 100)
    return 0


class GPTZeroClient:
    def __init__(self, *, api_key: str | None, timeout_seconds: float = 60.0) -> None:
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds

    def detect(self, text: str) -> DetectionResult:
        if not self._api_key:
            raise DetectionError("GPTZero API key not configured (set GPTZERO_API_KEY)")

        document = text
        if len(document) > MAX_DETECTION_CHARS:
            document = document[:MAX_DETECTION_CHARS] + TRUNCATION_NOTE

        try:
            response = httpx.post(
                GPTZERO_API_URL,
                json={"document": document, "docType": "text"},
                headers={
                    "X-Api-Key": self._api_key,
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise DetectionError(f"Failed to detect AI with GPTZero: {exc}") from exc

        documents = payload.get("documents") if isinstance(payload, dict) else None
        if not isinstance(documents, list) or not documents or not isinstance(documents[0], dict):
            raise DetectionError("Invalid GPTZero payload: missing documents")

        summary = documents[0]
        confidence = summary.get("completely_generated_prob")
        if not isinstance(confidence, (int, float)):
            confidence = 0.0

        paragraphs = summary.get("paragraphs")
        if isinstance(paragraphs, list) and paragraphs:
            paragraph_lines = "\n".join(
                f"Paragraph {index}: {_percent(item.get('generated_prob'))}% AI probability, "
                f"Perplexity: {_format_ratio(item.get('perplexity'))}, "
                f"Burstiness: {_format_ratio(item.get('burstiness'))}"
                for index, item in enumerate(paragraphs, start=1)
                if isinstance(item, dict)
            )
        else:
            paragraph_lines = "No paragraph analysis available"

        details = (
            f"Overall AI probability: {_percent(confidence)}%\n"
            f"Overall burstiness: {_format_ratio(summary.get('overall_burstiness'))}\n\n"
            f"{paragraph_lines}"
        )
        return DetectionResult(
            is_ai=bool(payload.get("isGenerated", confidence >= 0.5)),
            confidence=float(confidence),
            details=details,
            source="gptzero",
        )


def detect_ai(
    text: str,
    *,
    detector: DetectionClient,
    fallback: ProviderClient | None = None,
) -> DetectionResult:
    """GPTZero first; the provider's self-assessment when GPTZero is unavailable."""
    try:
        return detector.detect(text)
    except DetectionError as exc:
        if fallback is None:
            raise
        logger.warning("GPTZero unavailable, falling back to %s: %s", fallback.name, exc)

    return detect_ai_with_provider(fallback, text)
