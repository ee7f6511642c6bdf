"""Sequential chunk processing.

Chunks are sent to the provider one at a time with a fixed delay between
calls. Selected chunks are rewritten in place, so the reassembled document
keeps its original ordering; generated sections are appended at the end.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from threading import Event
from typing import Callable, Protocol, Sequence

from humanizer.log import get_logger
from humanizer.providers.base import ProviderClient
from humanizer.services.chunker import TextChunk, chunk_document, join_chunks
from humanizer.services.dispatcher import (
    ProcessingCancelledError,
    WaitFn,
    generate_additional_chunks,
    process_text,
)
from humanizer.services.selection import normalize_selection
from humanizer.services.types import ProcessTextRequest

logger = get_logger(__name__)


class ProcessingMode(str, Enum):
    REWRITE = "rewrite"
    ADD = "add"
    BOTH = "both"


class ProcessingState(str, Enum):
    IDLE = "idle"
    CHUNKING = "chunking"
    AWAITING_SELECTION = "awaiting_selection"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class CancellationToken:
    def __init__(self) -> None:
        self._event = Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        if seconds <= 0:
            return self.cancelled
        return self._event.wait(seconds)


class ChunkTransformer(Protocol):
    def rewrite(self, content: str, *, chunk_index: int, total_chunks: int) -> str: ...

    def generate(self, document: str, count: int) -> str: ...


class ProviderChunkTransformer:
    def __init__(
        self,
        client: ProviderClient,
        *,
        instructions: str,
        content_source: str | None = None,
        style_source: str | None = None,
        delay_seconds: float = 15.0,
        wait: WaitFn | None = None,
    ) -> None:
        self._client = client
        self._instructions = instructions
        self._content_source = content_source
        self._style_source = style_source
        self._delay_seconds = delay_seconds
        self._wait = wait

    def _wait_kwargs(self) -> dict[str, object]:
        kwargs: dict[str, object] = {"delay_seconds": self._delay_seconds}
        if self._wait is not None:
            kwargs["wait"] = self._wait
        return kwargs

    def rewrite(self, content: str, *, chunk_index: int, total_chunks: int) -> str:
        request = ProcessTextRequest(
            text=content,
            instructions=self._instructions,
            content_source=self._content_source,
            style_source=self._style_source,
            use_content_source=self._content_source is not None,
            use_style_source=self._style_source is not None,
        )
        return process_text(self._client, request, **self._wait_kwargs())

    def generate(self, document: str, count: int) -> str:
        return generate_additional_chunks(
            self._client,
            document,
            count,
            instructions=self._instructions,
            content_source=self._content_source,
            style_source=self._style_source,
            **self._wait_kwargs(),
        )


@dataclass(frozen=True)
class ProgressUpdate:
    step: int
    total: int
    chunk_index: int | None
    output: str

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 100
        return round(self.step * 100 / self.total)


@dataclass(frozen=True)
class ProcessingResult:
    state: ProcessingState
    chunks: list[str]
    processed_indices: list[int] = field(default_factory=list)
    added: str | None = None
    steps_completed: int = 0
    total_steps: int = 0

    @property
    def output(self) -> str:
        parts = list(self.chunks)
        if self.added:
            parts.append(self.added)
        return join_chunks(parts)


class ChunkProcessingError(RuntimeError):
    def __init__(self, chunk_index: int | None, message: str, partial: ProcessingResult) -> None:
        super().__init__(message)
        self.chunk_index = chunk_index
        self.partial = partial


class SequentialProcessor:
    def __init__(
        self,
        transformer: ChunkTransformer,
        *,
        delay_seconds: float = 15.0,
        token: CancellationToken | None = None,
        on_progress: Callable[[ProgressUpdate], None] | None = None,
    ) -> None:
        self._transformer = transformer
        self._delay_seconds = delay_seconds
        self._token = token or CancellationToken()
        self._on_progress = on_progress
        self.state = ProcessingState.IDLE

    def _should_stop(self, step: int) -> bool:
        if step > 0 and self._token.wait(self._delay_seconds):
            return True
        return self._token.cancelled

    def prepare(self, text: str, *, base_words: int = 1000) -> list[TextChunk]:
        """Chunk the document and wait for the caller to pick what to process."""
        self.state = ProcessingState.CHUNKING
        chunks = chunk_document(text, base_words)
        self.state = ProcessingState.AWAITING_SELECTION
        logger.info("document split into %d chunks, awaiting selection", len(chunks))
        return chunks

    def run(
        self,
        chunks: Sequence[str],
        *,
        mode: ProcessingMode | str,
        selected_indices: Sequence[int] = (),
        additional_chunks: int = 0,
    ) -> ProcessingResult:
        mode = ProcessingMode(mode)
        working = list(chunks)

        order: list[int] = []
        if mode in (ProcessingMode.REWRITE, ProcessingMode.BOTH):
            order = normalize_selection(selected_indices, len(working))
        add_step = mode in (ProcessingMode.ADD, ProcessingMode.BOTH) and additional_chunks > 0

        if mode is ProcessingMode.REWRITE and not order:
            raise ValueError("rewrite mode needs at least one selected chunk")
        if mode is ProcessingMode.ADD and not add_step:
            raise ValueError("add mode needs additional_chunks >= 1")
        if mode is ProcessingMode.BOTH and not order and not add_step:
            raise ValueError("both mode needs selected chunks or additional_chunks >= 1")

        total = len(order) + (1 if add_step else 0)
        processed: list[int] = []
        added: str | None = None
        step = 0

        def snapshot(state: ProcessingState) -> ProcessingResult:
            return ProcessingResult(
                state=state,
                chunks=list(working),
                processed_indices=list(processed),
                added=added,
                steps_completed=step,
                total_steps=total,
            )

        def stop(state: ProcessingState) -> ProcessingResult:
            self.state = state
            logger.info("processing %s after %d/%d steps", state.value, step, total)
            return snapshot(state)

        self.state = ProcessingState.PROCESSING
        logger.info("processing %d steps in %s mode", total, mode.value)

        for chunk_index in order:
            if self._should_stop(step):
                return stop(ProcessingState.CANCELLED)
            try:
                rewritten = self._transformer.rewrite(
                    working[chunk_index],
                    chunk_index=chunk_index,
                    total_chunks=len(working),
                )
            except ProcessingCancelledError:
                return stop(ProcessingState.CANCELLED)
            except Exception as exc:
                self.state = ProcessingState.FAILED
                raise ChunkProcessingError(
                    chunk_index,
                    f"Chunk {chunk_index + 1} failed: {exc}",
                    snapshot(ProcessingState.FAILED),
                ) from exc
            # a result that arrives after cancellation is discarded
            if self._token.cancelled:
                return stop(ProcessingState.CANCELLED)

            working[chunk_index] = rewritten
            processed.append(chunk_index)
            step += 1
            self._emit(step, total, chunk_index, snapshot(ProcessingState.PROCESSING).output)

        if add_step:
            if self._should_stop(step):
                return stop(ProcessingState.CANCELLED)
            try:
                generated = self._transformer.generate(join_chunks(working), additional_chunks)
            except ProcessingCancelledError:
                return stop(ProcessingState.CANCELLED)
            except Exception as exc:
                self.state = ProcessingState.FAILED
                raise ChunkProcessingError(
                    None,
                    f"Generating additional sections failed: {exc}",
                    snapshot(ProcessingState.FAILED),
                ) from exc
            if self._token.cancelled:
                return stop(ProcessingState.CANCELLED)

            added = generated
            step += 1
            self._emit(step, total, None, snapshot(ProcessingState.PROCESSING).output)

        self.state = ProcessingState.COMPLETED
        return snapshot(ProcessingState.COMPLETED)

    def _emit(self, step: int, total: int, chunk_index: int | None, output: str) -> None:
        if self._on_progress is None:
            return
        self._on_progress(
            ProgressUpdate(step=step, total=total, chunk_index=chunk_index, output=output)
        )
