from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from humanizer.log import get_logger
from humanizer.models import RewriteJobRecord
from humanizer.providers.base import ProviderClient
from humanizer.services.chunker import TextChunk
from humanizer.services.dispatcher import generate_additional_chunks, rewrite_with_style
from humanizer.services.prompts import DEFAULT_STYLE_SAMPLE
from humanizer.services.sequential import ProcessingMode, SequentialProcessor

logger = get_logger(__name__)


class RewriteJobNotFoundError(LookupError):
    pass


class StyleRewriteTransformer:
    def __init__(
        self,
        client: ProviderClient,
        *,
        style_text: str,
        custom_instructions: str | None = None,
    ) -> None:
        self._client = client
        self._style_text = style_text
        self._custom_instructions = custom_instructions

    def rewrite(self, content: str, *, chunk_index: int, total_chunks: int) -> str:
        return rewrite_with_style(
            self._client,
            content,
            self._style_text,
            custom_instructions=self._custom_instructions,
        )

    def generate(self, document: str, count: int) -> str:
        return generate_additional_chunks(
            self._client,
            document,
            count,
            instructions=self._custom_instructions or "",
            style_source=self._style_text,
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def chunk_to_dict(chunk: TextChunk) -> dict[str, Any]:
    return {
        "id": chunk.chunk_id,
        "content": chunk.content,
        "startWord": chunk.start_word,
        "endWord": chunk.end_word,
    }


def rewrite_job_to_dict(job: RewriteJobRecord) -> dict[str, Any]:
    return {
        "id": job.id,
        "inputText": job.input_text,
        "styleText": job.style_text,
        "contentMixText": job.content_mix_text,
        "customInstructions": job.custom_instructions,
        "selectedPresets": job.selected_presets,
        "provider": job.provider,
        "chunks": job.chunks,
        "selectedChunkIds": job.selected_chunk_ids,
        "mixingMode": job.mixing_mode,
        "outputText": job.output_text,
        "inputAiScore": job.input_ai_score,
        "outputAiScore": job.output_ai_score,
        "status": job.status,
        "createdAt": _to_iso(job.created_at),
    }


def create_rewrite_job(
    session: Session,
    *,
    input_text: str,
    provider: str,
    style_text: str | None = None,
    custom_instructions: str | None = None,
    status: str = "pending",
) -> RewriteJobRecord:
    now = _utcnow()
    job = RewriteJobRecord(
        id=str(uuid.uuid4()),
        input_text=input_text,
        style_text=style_text or "",
        custom_instructions=custom_instructions,
        provider=provider,
        mixing_mode="style",
        status=status,
        created_at=now,
        updated_at=now,
    )
    session.add(job)
    session.commit()
    return job


def get_rewrite_job(session: Session, job_id: str) -> RewriteJobRecord | None:
    return session.get(RewriteJobRecord, job_id)


def update_rewrite_job(session: Session, job_id: str, **changes: Any) -> RewriteJobRecord:
    job = session.get(RewriteJobRecord, job_id)
    if job is None:
        raise RewriteJobNotFoundError(f"Rewrite job {job_id} not found")
    for name, value in changes.items():
        setattr(job, name, value)
    job.updated_at = _utcnow()
    session.commit()
    return job


def list_rewrite_jobs(session: Session) -> list[RewriteJobRecord]:
    return list(
        session.scalars(
            select(RewriteJobRecord).order_by(
                RewriteJobRecord.created_at.desc(),
                RewriteJobRecord.id.desc(),
            )
        ).all()
    )


def rewrite_document(
    session: Session,
    client: ProviderClient,
    *,
    input_text: str,
    provider: str,
    style_text: str | None = None,
    custom_instructions: str | None = None,
    re_rewrite: bool = False,
    job_id: str | None = None,
    base_words: int = 1000,
    delay_seconds: float = 0.0,
) -> RewriteJobRecord:
    """Rewrite every chunk of a document in the voice of a style sample.

    A re-rewrite feeds the previous job's output back through the pipeline.
    """
    if re_rewrite and job_id:
        job = get_rewrite_job(session, job_id)
        if job is None:
            raise RewriteJobNotFoundError("Job not found for re-rewrite")
        text_to_process = job.output_text or job.input_text
    else:
        if not input_text.strip():
            raise ValueError("No text provided for processing")
        job = create_rewrite_job(
            session,
            input_text=input_text,
            provider=provider,
            style_text=style_text,
            custom_instructions=custom_instructions,
            status="processing",
        )
        text_to_process = input_text

    update_rewrite_job(session, job.id, status="processing")

    style_sample = (style_text or "").strip() or DEFAULT_STYLE_SAMPLE
    processor = SequentialProcessor(
        StyleRewriteTransformer(
            client,
            style_text=style_sample,
            custom_instructions=custom_instructions,
        ),
        delay_seconds=delay_seconds,
    )
    chunks = processor.prepare(text_to_process, base_words=base_words)

    logger.info("rewrite job %s: %d chunks with %s", job.id, len(chunks), client.name)
    try:
        result = processor.run(
            [chunk.content for chunk in chunks],
            mode=ProcessingMode.REWRITE,
            selected_indices=range(len(chunks)),
        )
    except Exception:
        update_rewrite_job(session, job.id, status="error")
        raise

    return update_rewrite_job(
        session,
        job.id,
        output_text=result.output,
        chunks=[chunk_to_dict(chunk) for chunk in chunks],
        selected_chunk_ids=[chunk.chunk_id for chunk in chunks],
        status="completed",
    )
