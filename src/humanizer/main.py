from typing import Annotated, Any, Callable, Literal

from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from humanizer.config import get_settings
from humanizer.db import get_engine
from humanizer.log import configure_logging, get_logger
from humanizer.models import DocumentJobRecord
from humanizer.providers.base import (
    ChatMessage,
    ProviderClient,
    ProviderConfigurationError,
    ProviderError,
    ProviderName,
)
from humanizer.providers.registry import ProviderKeyStore, build_provider
from humanizer.services import dispatcher
from humanizer.services.chunker import chunk_document, count_words, target_chunk_words
from humanizer.services.detection import DetectionClient, DetectionError, GPTZeroClient, detect_ai
from humanizer.services.document_jobs import (
    DocumentJobNotFoundError,
    DocumentJobStateError,
    cancel_document_job,
    create_document_job,
    document_job_detail,
    document_job_summary,
    list_document_jobs,
)
from humanizer.services.export import export_html, export_latex, with_extension
from humanizer.services.rewrite_jobs import (
    RewriteJobNotFoundError,
    chunk_to_dict,
    get_rewrite_job,
    list_rewrite_jobs,
    rewrite_document,
    rewrite_job_to_dict,
)
from humanizer.services.search import GoogleSearchClient, SearchError
from humanizer.services.selection import (
    chunk_previews,
    merge_selection,
    select_pattern,
    select_range,
)
from humanizer.services.sequential import ChunkProcessingError
from humanizer.services.transcription import (
    AudioTooLargeError,
    Transcriber,
    TranscriptionError,
    WhisperTranscriber,
    validate_audio,
)
from humanizer.services.types import DetectionResult, ProcessTextRequest

logger = get_logger(__name__)

app = FastAPI(title="Document Humanizer API", version="0.1.0")

ProviderFactory = Callable[[str], ProviderClient]
SelectionPattern = Literal["first10", "last10", "every3rd", "every5th", "bookends", "distributed"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class ProcessTextBody(_CamelModel):
    input_text: str = Field(alias="inputText", min_length=1)
    instructions: str = ""
    content_source: str | None = Field(default=None, alias="contentSource")
    style_source: str | None = Field(default=None, alias="styleSource")
    llm_provider: ProviderName = Field(default="openai", alias="llmProvider")
    use_content_source: bool = Field(default=False, alias="useContentSource")
    use_style_source: bool = Field(default=False, alias="useStyleSource")
    exam_mode: bool = Field(default=False, alias="examMode")

    def to_request(self) -> ProcessTextRequest:
        return ProcessTextRequest(
            text=self.input_text,
            instructions=self.instructions,
            content_source=self.content_source,
            style_source=self.style_source,
            use_content_source=self.use_content_source,
            use_style_source=self.use_style_source,
            exam_mode=self.exam_mode,
        )


class ProcessChunkBody(ProcessTextBody):
    chunk_index: int = Field(alias="chunkIndex", ge=0)
    total_chunks: int = Field(alias="totalChunks", ge=1)


class DetectAIBody(_CamelModel):
    text: str = Field(min_length=1)
    llm_provider: ProviderName = Field(default="openai", alias="llmProvider")


class ChatTurn(_CamelModel):
    role: Literal["user", "assistant"]
    content: str


class ChatBody(_CamelModel):
    message: str = Field(min_length=1)
    conversation_history: list[ChatTurn] = Field(default_factory=list, alias="conversationHistory")
    llm_provider: ProviderName = Field(default="openai", alias="llmProvider")
    context_document: str | None = Field(default=None, alias="contextDocument")


class HomeworkBody(_CamelModel):
    assignment: str = Field(min_length=1)
    llm_provider: ProviderName = Field(default="openai", alias="llmProvider")


class SearchBody(_CamelModel):
    query: str = Field(min_length=1)


class ExportBody(_CamelModel):
    content: str = Field(min_length=1)
    filename: str = Field(default="document", min_length=1)


class UpdateKeysBody(_CamelModel):
    openai_key: str | None = Field(default=None, alias="openaiKey")
    anthropic_key: str | None = Field(default=None, alias="anthropicKey")
    perplexity_key: str | None = Field(default=None, alias="perplexityKey")
    deepseek_key: str | None = Field(default=None, alias="deepseekKey")


class RewriteBody(_CamelModel):
    input_text: str = Field(default="", alias="inputText")
    style_text: str | None = Field(default=None, alias="styleText")
    custom_instructions: str | None = Field(default=None, alias="customInstructions")
    provider: ProviderName = "anthropic"
    re_rewrite: bool = Field(default=False, alias="reRewrite")
    job_id: str | None = Field(default=None, alias="jobId")


class TextBody(_CamelModel):
    text: str = Field(min_length=1)


class ChunkDocumentBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str = Field(min_length=1)
    base_words: int | None = Field(default=None, ge=50, le=20_000)
    pattern: SelectionPattern | None = None


class DocumentJobBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str | None = None
    chunks: list[str] | None = None
    base_words: int | None = Field(default=None, ge=50, le=20_000)
    provider: ProviderName = "openai"
    instructions: str = ""
    content_source: str | None = None
    style_source: str | None = None
    mode: Literal["rewrite", "add", "both"] = "rewrite"
    selected_indices: list[int] = Field(default_factory=list)
    pattern: SelectionPattern | None = None
    range_start: int | None = Field(default=None, ge=0)
    range_end: int | None = Field(default=None, ge=0)
    additional_chunks: int = Field(default=0, ge=0, le=20)


def _format_validation_errors(errors: list[dict[str, Any]]) -> str:
    messages = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(messages)


@app.exception_handler(RequestValidationError)
def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": _format_validation_errors(exc.errors())})


@app.on_event("startup")
def startup() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    get_engine()
    app.state.keys = ProviderKeyStore.from_settings(settings)


def get_key_store(request: Request) -> ProviderKeyStore:
    keys = getattr(request.app.state, "keys", None)
    if keys is None:
        keys = ProviderKeyStore.from_settings(get_settings())
        request.app.state.keys = keys
    return keys


def get_provider_factory(
    keys: Annotated[ProviderKeyStore, Depends(get_key_store)],
) -> ProviderFactory:
    settings = get_settings()

    def factory(name: str) -> ProviderClient:
        return build_provider(name, keys=keys, settings=settings)

    return factory


def get_detector() -> DetectionClient:
    return GPTZeroClient(api_key=get_settings().gptzero_api_key)


def get_transcriber(keys: Annotated[ProviderKeyStore, Depends(get_key_store)]) -> Transcriber:
    settings = get_settings()
    return WhisperTranscriber(
        api_key=keys.get("openai"),
        base_url=settings.openai_base_url,
        timeout_seconds=settings.transcription_timeout_seconds,
    )


def get_search_client() -> GoogleSearchClient:
    settings = get_settings()
    return GoogleSearchClient(
        api_key=settings.google_api_key,
        search_engine_id=settings.google_search_engine_id,
    )


def _provider(factory: ProviderFactory, name: str) -> ProviderClient:
    try:
        return factory(name)
    except ProviderConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _detection_payload(result: DetectionResult) -> dict[str, Any]:
    return {"isAI": result.is_ai, "confidence": result.confidence, "details": result.details}


def _attachment(content: str, *, filename: str, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/process-text")
def process_text(
    body: ProcessTextBody,
    factory: Annotated[ProviderFactory, Depends(get_provider_factory)],
) -> dict[str, str]:
    client = _provider(factory, body.llm_provider)
    try:
        result = dispatcher.process_text(
            client,
            body.to_request(),
            delay_seconds=get_settings().chunk_delay_seconds,
        )
    except ProviderError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"result": result}


@app.post("/api/process-chunk")
def process_chunk(
    body: ProcessChunkBody,
    factory: Annotated[ProviderFactory, Depends(get_provider_factory)],
) -> dict[str, Any]:
    if body.chunk_index >= body.total_chunks:
        raise HTTPException(status_code=400, detail="chunkIndex must be smaller than totalChunks")

    client = _provider(factory, body.llm_provider)
    try:
        result = dispatcher.process_chunk(
            client,
            body.to_request(),
            chunk_index=body.chunk_index,
            total_chunks=body.total_chunks,
            delay_seconds=get_settings().chunk_delay_seconds,
        )
    except ProviderError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"result": result, "chunkIndex": body.chunk_index, "totalChunks": body.total_chunks}


@app.post("/api/detect-ai")
def detect_ai_endpoint(
    body: DetectAIBody,
    detector: Annotated[DetectionClient, Depends(get_detector)],
    factory: Annotated[ProviderFactory, Depends(get_provider_factory)],
) -> dict[str, Any]:
    try:
        fallback: ProviderClient | None = factory(body.llm_provider)
    except ProviderConfigurationError:
        fallback = None

    try:
        result = detect_ai(body.text, detector=detector, fallback=fallback)
    except (DetectionError, ProviderError) as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return _detection_payload(result)


@app.post("/api/transcribe")
def transcribe(
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
    audio: UploadFile | None = File(default=None),
) -> dict[str, str]:
    if audio is None:
        raise HTTPException(status_code=400, detail="No audio file provided")

    data = audio.file.read()
    try:
        validate_audio(data, max_bytes=get_settings().max_audio_bytes)
    except (AudioTooLargeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    try:
        result = transcriber.transcribe(
            data,
            filename=audio.filename or "audio.webm",
            content_type=audio.content_type,
        )
    except TranscriptionError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"result": result}


@app.post("/api/chat")
def chat(
    body: ChatBody,
    factory: Annotated[ProviderFactory, Depends(get_provider_factory)],
) -> dict[str, str]:
    client = _provider(factory, body.llm_provider)
    history = [ChatMessage(role=turn.role, content=turn.content) for turn in body.conversation_history]
    try:
        response = dispatcher.chat(
            client,
            body.message,
            history,
            context_document=body.context_document,
        )
    except ProviderError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"response": response}


@app.post("/api/solve-homework")
def solve_homework(
    body: HomeworkBody,
    factory: Annotated[ProviderFactory, Depends(get_provider_factory)],
) -> dict[str, str]:
    client = _provider(factory, body.llm_provider)
    try:
        result = dispatcher.solve_homework(client, body.assignment)
    except ProviderError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"result": result}


@app.post("/api/search-online")
def search_online(
    body: SearchBody,
    search_client: Annotated[GoogleSearchClient, Depends(get_search_client)],
) -> dict[str, Any]:
    try:
        response = search_client.search(body.query)
    except SearchError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {
        "results": [
            {"title": hit.title, "url": hit.url, "snippet": hit.snippet}
            for hit in response.results
        ],
        "content": response.content,
    }


@app.post("/api/export-html")
def export_html_endpoint(body: ExportBody) -> Response:
    return _attachment(
        export_html(body.content, body.filename),
        filename=with_extension(body.filename, "html"),
        media_type="text/html",
    )


@app.post("/api/export-latex")
def export_latex_endpoint(body: ExportBody) -> Response:
    return _attachment(
        export_latex(body.content, body.filename),
        filename=with_extension(body.filename, "tex"),
        media_type="application/x-latex",
    )


@app.post("/api/export-pdf")
def export_pdf_endpoint(body: ExportBody) -> dict[str, str]:
    return {
        "htmlContent": export_html(body.content, body.filename),
        "filename": with_extension(body.filename, "pdf"),
        "message": "Use browser print dialog to save as PDF",
    }


@app.post("/api/update-api-keys")
def update_api_keys(
    body: UpdateKeysBody,
    keys: Annotated[ProviderKeyStore, Depends(get_key_store)],
) -> dict[str, Any]:
    updated = keys.update(
        {
            "openai": body.openai_key,
            "anthropic": body.anthropic_key,
            "perplexity": body.perplexity_key,
            "deepseek": body.deepseek_key,
        }
    )
    logger.info("api keys updated providers=%s", ",".join(updated) or "-")
    return {"success": True, "message": "API keys updated successfully"}


@app.post("/api/gpt-bypass/rewrite")
def gpt_bypass_rewrite(
    body: RewriteBody,
    factory: Annotated[ProviderFactory, Depends(get_provider_factory)],
) -> dict[str, Any]:
    if not body.input_text.strip() and not (body.re_rewrite and body.job_id):
        raise HTTPException(status_code=400, detail="No text provided for processing")

    client = _provider(factory, body.provider)
    settings = get_settings()
    with Session(get_engine()) as session:
        try:
            job = rewrite_document(
                session,
                client,
                input_text=body.input_text,
                provider=body.provider,
                style_text=body.style_text,
                custom_instructions=body.custom_instructions,
                re_rewrite=body.re_rewrite,
                job_id=body.job_id,
                base_words=settings.chunk_base_words,
                delay_seconds=settings.chunk_delay_seconds,
            )
        except RewriteJobNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except ChunkProcessingError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc

        return {
            "success": True,
            "jobId": job.id,
            "rewrittenText": job.output_text,
            "originalText": job.input_text,
        }


@app.post("/api/gpt-bypass/chunk-text")
def gpt_bypass_chunk_text(body: TextBody) -> list[dict[str, Any]]:
    chunks = chunk_document(body.text, get_settings().chunk_base_words)
    return [chunk_to_dict(chunk) for chunk in chunks]


@app.post("/api/gpt-bypass/check-ai")
def gpt_bypass_check_ai(
    body: TextBody,
    detector: Annotated[DetectionClient, Depends(get_detector)],
) -> dict[str, Any]:
    try:
        result = detector.detect(body.text)
    except DetectionError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"aiScore": round(result.confidence * 100), **_detection_payload(result)}


@app.get("/api/gpt-bypass/job/{job_id}")
def gpt_bypass_job(job_id: str) -> dict[str, Any]:
    with Session(get_engine()) as session:
        job = get_rewrite_job(session, job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found")
        return rewrite_job_to_dict(job)


@app.get("/api/gpt-bypass/jobs")
def gpt_bypass_jobs() -> list[dict[str, Any]]:
    with Session(get_engine()) as session:
        return [rewrite_job_to_dict(job) for job in list_rewrite_jobs(session)]


@app.post("/api/documents/chunks")
def document_chunks(body: ChunkDocumentBody) -> dict[str, Any]:
    base_words = body.base_words or get_settings().chunk_base_words
    chunks = chunk_document(body.text, base_words)
    total_words = count_words(body.text)
    selected = select_pattern(body.pattern, len(chunks)) if body.pattern else []

    return {
        "total_chunks": len(chunks),
        "total_words": total_words,
        "target_words": target_chunk_words(total_words, base_words),
        "selected_indices": selected,
        "chunks": [
            {
                "index": preview.index,
                "chunk_id": preview.chunk_id,
                "preview": preview.preview,
                "word_count": preview.word_count,
                "start_word": preview.start_word,
                "end_word": preview.end_word,
            }
            for preview in chunk_previews(chunks)
        ],
    }


def _resolve_chunks(body: DocumentJobBody, base_words: int) -> list[str]:
    if body.chunks is not None and body.text is not None:
        raise HTTPException(status_code=400, detail="send either text or chunks, not both")
    if body.chunks is not None:
        contents = [chunk for chunk in body.chunks if chunk.strip()]
    elif body.text is not None:
        contents = [chunk.content for chunk in chunk_document(body.text, base_words)]
    else:
        raise HTTPException(status_code=400, detail="text or chunks is required")

    if not contents:
        raise HTTPException(status_code=400, detail="document has no text to process")
    return contents


def _resolve_selection(body: DocumentJobBody, total: int) -> list[int]:
    selection = list(body.selected_indices)
    try:
        if body.pattern is not None:
            selection = merge_selection(selection, select_pattern(body.pattern, total))
        if body.range_start is not None or body.range_end is not None:
            start = body.range_start if body.range_start is not None else 0
            end = body.range_end if body.range_end is not None else total - 1
            selection = merge_selection(selection, select_range(start, end, total))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return selection


@app.post("/api/documents/jobs")
def enqueue_document_job(
    body: DocumentJobBody,
    keys: Annotated[ProviderKeyStore, Depends(get_key_store)],
) -> JSONResponse:
    try:
        keys.require(body.provider)
    except ProviderConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    contents = _resolve_chunks(body, body.base_words or get_settings().chunk_base_words)
    selection = _resolve_selection(body, len(contents))

    with Session(get_engine()) as session:
        try:
            job = create_document_job(
                session,
                provider=body.provider,
                mode=body.mode,
                chunks=contents,
                selected_indices=selection,
                additional_chunks=body.additional_chunks,
                instructions=body.instructions,
                content_source=body.content_source,
                style_source=body.style_source,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        job_id = job.id
        job_status = job.status
        total_steps = job.progress_total

    return JSONResponse(
        status_code=202,
        content={"job_id": job_id, "status": job_status, "progress_total": total_steps},
    )


@app.get("/api/documents/jobs")
def list_document_jobs_endpoint(
    status: str | None = Query(default=None),
) -> list[dict[str, Any]]:
    with Session(get_engine()) as session:
        jobs = list_document_jobs(session, status=status)
        return [document_job_summary(job) for job in jobs]


@app.get("/api/documents/jobs/{job_id}")
def get_document_job(job_id: str) -> dict[str, Any]:
    with Session(get_engine()) as session:
        job = session.get(DocumentJobRecord, job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="job not found")
        return document_job_detail(job)


@app.post("/api/documents/jobs/{job_id}/cancel")
def cancel_document_job_endpoint(job_id: str) -> dict[str, Any]:
    with Session(get_engine()) as session:
        try:
            job = cancel_document_job(session, job_id)
        except DocumentJobNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except DocumentJobStateError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {"job_id": job.id, "status": job.status}


def run() -> None:
    import uvicorn

    uvicorn.run("humanizer.main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    run()
