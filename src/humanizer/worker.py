from __future__ import annotations

import json
from threading import Event
from typing import Any, Callable

from sqlalchemy import text
from sqlalchemy.engine import Engine

from humanizer.config import get_settings
from humanizer.db import get_engine
from humanizer.log import configure_logging, get_logger
from humanizer.providers.registry import ProviderKeyStore, build_provider
from humanizer.services.sequential import (
    CancellationToken,
    ChunkProcessingError,
    ProcessingResult,
    ProcessingState,
    ProgressUpdate,
    ProviderChunkTransformer,
    SequentialProcessor,
)

logger = get_logger("humanizer.worker")

JobRunner = Callable[
    [dict[str, Any], CancellationToken, Callable[[ProgressUpdate], None]],
    ProcessingResult,
]


class DatabaseCancellationToken(CancellationToken):
    """Cancellation flag that also observes the job row's status."""

    def __init__(self, engine: Engine, job_id: str, *, poll_seconds: float = 1.0) -> None:
        super().__init__()
        self._engine = engine
        self._job_id = job_id
        self._poll_seconds = poll_seconds

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        with self._engine.connect() as connection:
            status = connection.execute(
                text("SELECT status FROM document_jobs WHERE id = :job_id"),
                {"job_id": self._job_id},
            ).scalar()
        if status == "cancelled":
            self._event.set()
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        remaining = seconds
        while remaining > 0:
            if self.cancelled:
                return True
            step = min(self._poll_seconds, remaining)
            if self._event.wait(step):
                return True
            remaining -= step
        return self.cancelled


def _normalize_payload(payload_json: Any) -> dict[str, Any] | None:
    if isinstance(payload_json, dict):
        return payload_json
    if isinstance(payload_json, str) and payload_json.strip():
        try:
            parsed = json.loads(payload_json)
        except json.JSONDecodeError:
            return None
        if isinstance(parsed, dict):
            return parsed
    return None


def claim_next_document_job(engine: Engine) -> dict[str, Any] | None:
    locking = "FOR UPDATE SKIP LOCKED" if engine.dialect.name == "postgresql" else ""
    select_sql = f"""
        SELECT id, provider, mode, payload_json
        FROM document_jobs
        WHERE status = 'queued'
        ORDER BY created_at ASC, id ASC
        LIMIT 1
        {locking}
    """

    with engine.begin() as connection:
        row = connection.execute(text(select_sql)).mappings().first()
        if row is None:
            return None

        claimed = connection.execute(
            text(
                """
                UPDATE document_jobs
                SET status = 'running',
                    started_at = CURRENT_TIMESTAMP,
                    updated_at = CURRENT_TIMESTAMP,
                    finished_at = NULL,
                    error = NULL
                WHERE id = :job_id AND status = 'queued'
                """
            ),
            {"job_id": str(row["id"])},
        )
        if claimed.rowcount != 1:
            return None

        return {
            "id": str(row["id"]),
            "provider": row["provider"],
            "mode": row["mode"],
            "payload_json": _normalize_payload(row["payload_json"]),
        }


def _record_progress(engine: Engine, job_id: str, update: ProgressUpdate) -> None:
    with engine.begin() as connection:
        connection.execute(
            text(
                """
                UPDATE document_jobs
                SET progress_current = :step,
                    output_text = :output_text,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = :job_id
                """
            ),
            {"job_id": job_id, "step": update.step, "output_text": update.output},
        )


def _mark_job_finished(
    engine: Engine,
    job_id: str,
    *,
    status: str,
    output_text: str | None,
    result_json: dict[str, Any] | None,
    error: str | None = None,
) -> None:
    # a cancel that lands while the last step runs still wins
    with engine.begin() as connection:
        connection.execute(
            text(
                """
                UPDATE document_jobs
                SET status = CASE WHEN status = 'cancelled' THEN 'cancelled' ELSE CAST(:status AS VARCHAR) END,
                    output_text = :output_text,
                    result_json = :result_json,
                    error = :error,
                    finished_at = CURRENT_TIMESTAMP,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = :job_id
                """
            ),
            {
                "job_id": job_id,
                "status": status,
                "output_text": output_text,
                "result_json": json.dumps(result_json) if result_json is not None else None,
                "error": error,
            },
        )


def _result_summary(result: ProcessingResult) -> dict[str, Any]:
    return {
        "state": result.state.value,
        "processed_indices": result.processed_indices,
        "added": result.added,
        "steps_completed": result.steps_completed,
        "total_steps": result.total_steps,
    }


def run_document_job(
    job: dict[str, Any],
    token: CancellationToken,
    on_progress: Callable[[ProgressUpdate], None],
) -> ProcessingResult:
    settings = get_settings()
    payload = job.get("payload_json") or {}
    client = build_provider(
        str(job["provider"]),
        keys=ProviderKeyStore.from_settings(settings),
        settings=settings,
    )
    transformer = ProviderChunkTransformer(
        client,
        instructions=str(payload.get("instructions") or ""),
        content_source=payload.get("content_source"),
        style_source=payload.get("style_source"),
        delay_seconds=settings.chunk_delay_seconds,
        wait=token.wait,
    )
    processor = SequentialProcessor(
        transformer,
        delay_seconds=settings.chunk_delay_seconds,
        token=token,
        on_progress=on_progress,
    )
    return processor.run(
        list(payload.get("chunks") or []),
        mode=str(job["mode"]),
        selected_indices=list(payload.get("selected_indices") or []),
        additional_chunks=int(payload.get("additional_chunks") or 0),
    )


def process_claimed_job(
    engine: Engine,
    job: dict[str, Any],
    *,
    runner: JobRunner = run_document_job,
    token: CancellationToken | None = None,
) -> None:
    job_id = str(job["id"])
    token = token or DatabaseCancellationToken(engine, job_id)

    try:
        result = runner(job, token, lambda update: _record_progress(engine, job_id, update))
    except ChunkProcessingError as exc:
        _mark_job_finished(
            engine,
            job_id,
            status="failed",
            output_text=exc.partial.output,
            result_json=_result_summary(exc.partial),
            error=str(exc),
        )
        logger.error("job failed job_id=%s chunk=%s error=%s", job_id, exc.chunk_index, exc)
        return
    except Exception as exc:
        _mark_job_finished(
            engine,
            job_id,
            status="failed",
            output_text=None,
            result_json=None,
            error=str(exc),
        )
        logger.error("job failed job_id=%s error=%s", job_id, exc)
        return

    status = "cancelled" if result.state is ProcessingState.CANCELLED else "completed"
    _mark_job_finished(
        engine,
        job_id,
        status=status,
        output_text=result.output,
        result_json=_result_summary(result),
    )
    logger.info(
        "job %s job_id=%s steps=%d/%d",
        status,
        job_id,
        result.steps_completed,
        result.total_steps,
    )


def run_forever(
    engine: Engine,
    *,
    poll_seconds: int,
    stop_event: Event,
    runner: JobRunner = run_document_job,
) -> None:
    while not stop_event.is_set():
        job = claim_next_document_job(engine)
        if job is None:
            stop_event.wait(poll_seconds)
            continue

        logger.info("claimed job_id=%s mode=%s provider=%s", job["id"], job["mode"], job["provider"])
        process_claimed_job(engine, job, runner=runner)


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("worker started worker_id=%s", settings.worker_id)

    stop_event = Event()
    try:
        run_forever(
            get_engine(),
            poll_seconds=settings.worker_poll_seconds,
            stop_event=stop_event,
        )
    except KeyboardInterrupt:
        stop_event.set()
        logger.info("worker stopped worker_id=%s", settings.worker_id)


if __name__ == "__main__":
    main()
