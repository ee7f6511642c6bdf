from __future__ import annotations

from datetime import datetime, timezone
import json
import re
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from humanizer.models import DocumentJobRecord
from humanizer.services.selection import normalize_selection
from humanizer.services.sequential import ProcessingMode

ACTIVE_STATUSES: tuple[str, ...] = ("queued", "running")


class DocumentJobNotFoundError(LookupError):
    pass


class DocumentJobStateError(RuntimeError):
    pass


def _to_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def _extract_numeric_suffix(value: str) -> int | None:
    match = re.search(r"(\d+)$", value)
    if match is None:
        return None
    return int(match.group(1))


def next_job_id(session: Session) -> str:
    next_id = 1
    for existing_id in session.scalars(select(DocumentJobRecord.id)).all():
        parsed = _extract_numeric_suffix(str(existing_id))
        if parsed is None:
            continue
        next_id = max(next_id, parsed + 1)
    return str(next_id)


def _load_json(value: Any) -> dict[str, Any] | None:
    if isinstance(value, dict):
        return value
    if isinstance(value, str) and value.strip():
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return None
        if isinstance(parsed, dict):
            return parsed
    return None


def count_steps(mode: ProcessingMode, selected_indices: list[int], additional_chunks: int) -> int:
    steps = 0
    if mode in (ProcessingMode.REWRITE, ProcessingMode.BOTH):
        steps += len(selected_indices)
    if mode in (ProcessingMode.ADD, ProcessingMode.BOTH) and additional_chunks > 0:
        steps += 1
    return steps


def create_document_job(
    session: Session,
    *,
    provider: str,
    mode: ProcessingMode | str,
    chunks: list[str],
    selected_indices: list[int],
    additional_chunks: int = 0,
    instructions: str = "",
    content_source: str | None = None,
    style_source: str | None = None,
) -> DocumentJobRecord:
    mode = ProcessingMode(mode)
    if not chunks:
        raise ValueError("document has no chunks to process")

    selection: list[int] = []
    if mode in (ProcessingMode.REWRITE, ProcessingMode.BOTH):
        selection = normalize_selection(selected_indices, len(chunks))

    total_steps = count_steps(mode, selection, additional_chunks)
    if mode is ProcessingMode.REWRITE and not selection:
        raise ValueError("rewrite mode needs at least one selected chunk")
    if mode is ProcessingMode.ADD and additional_chunks < 1:
        raise ValueError("add mode needs additional_chunks >= 1")
    if total_steps == 0:
        raise ValueError("nothing to process: select chunks or request additional chunks")

    job = DocumentJobRecord(
        id=next_job_id(session),
        status="queued",
        provider=provider,
        mode=mode.value,
        payload_json={
            "instructions": instructions,
            "content_source": content_source,
            "style_source": style_source,
            "chunks": chunks,
            "selected_indices": selection,
            "additional_chunks": additional_chunks,
        },
        progress_current=0,
        progress_total=total_steps,
        output_text=None,
        updated_at=datetime.now(timezone.utc),
    )
    session.add(job)
    session.commit()
    return job


def list_document_jobs(session: Session, *, status: str | None = None) -> list[DocumentJobRecord]:
    stmt = select(DocumentJobRecord)
    if status is not None:
        stmt = stmt.where(DocumentJobRecord.status == status)
    return list(
        session.scalars(
            stmt.order_by(DocumentJobRecord.created_at.asc(), DocumentJobRecord.id.asc())
        ).all()
    )


def cancel_document_job(session: Session, job_id: str) -> DocumentJobRecord:
    job = session.get(DocumentJobRecord, job_id)
    if job is None:
        raise DocumentJobNotFoundError("job not found")
    if job.status not in ACTIVE_STATUSES:
        raise DocumentJobStateError(f"job is already {job.status}")

    now = datetime.now(timezone.utc)
    # a running job is finalised by the worker once its token observes this
    if job.status == "queued":
        job.finished_at = now
    job.status = "cancelled"
    job.updated_at = now
    session.commit()
    return job


def _percentage(job: DocumentJobRecord) -> int:
    if job.progress_total <= 0:
        return 0
    return round(job.progress_current * 100 / job.progress_total)


def document_job_summary(job: DocumentJobRecord) -> dict[str, Any]:
    return {
        "id": job.id,
        "status": job.status,
        "provider": job.provider,
        "mode": job.mode,
        "progress_current": job.progress_current,
        "progress_total": job.progress_total,
    }


def document_job_detail(job: DocumentJobRecord) -> dict[str, Any]:
    payload = _load_json(job.payload_json) or {}
    return {
        **document_job_summary(job),
        "percentage": _percentage(job),
        "selected_indices": payload.get("selected_indices", []),
        "additional_chunks": payload.get("additional_chunks", 0),
        "chunk_count": len(payload.get("chunks") or []),
        "output_text": job.output_text,
        "result_json": _load_json(job.result_json),
        "error": job.error,
        "created_at": _to_iso(job.created_at),
        "updated_at": _to_iso(job.updated_at),
        "started_at": _to_iso(job.started_at),
        "finished_at": _to_iso(job.finished_at),
    }
