from __future__ import annotations

from dataclasses import replace
import json
import re
from time import sleep
from typing import Callable

from humanizer.log import get_logger
from humanizer.providers.base import DEFAULT_MAX_TOKENS, ChatMessage, ProviderClient, ProviderError, ProviderLimits
from humanizer.services import prompts
from humanizer.services.chunker import PARAGRAPH_JOINER, estimate_tokens, split_by_tokens
from humanizer.services.text_cleaning import (
    protect_math_formulas,
    remove_dollar_signs,
    restore_math_formulas,
)
from humanizer.services.types import DetectionResult, ProcessTextRequest

logger = get_logger(__name__)

# Returns True when the wait was interrupted by cancellation.
WaitFn = Callable[[float], bool]

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_AI_KEYWORDS = ("ai-generated", "ai generated", "artificial", "machine-generated", "likely ai")


class ProcessingCancelledError(RuntimeError):
    pass


def _blocking_wait(seconds: float) -> bool:
    if seconds > 0:
        sleep(seconds)
    return False


def _user(content: str) -> list[ChatMessage]:
    return [ChatMessage(role="user", content=content)]


def solve_homework(
    client: ProviderClient,
    assignment: str,
    *,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> str:
    try:
        reply = client.complete(
            system=prompts.with_dollar_rule(prompts.HOMEWORK_SYSTEM_PROMPT),
            messages=_user(prompts.homework_user_prompt(assignment)),
            max_tokens=max_tokens,
        )
    except ProviderError as exc:
        raise ProviderError(f"Failed to solve homework with {client.display_name}: {exc}") from exc
    return remove_dollar_signs(reply)


def _process_large_text(
    client: ProviderClient,
    request: ProcessTextRequest,
    *,
    delay_seconds: float,
    wait: WaitFn,
) -> str:
    pieces = split_by_tokens(request.text, client.limits.fallback_chunk_tokens)
    logger.info(
        "large document for %s: %d estimated tokens, %d pieces",
        client.name,
        estimate_tokens(request.text),
        len(pieces),
    )

    system = prompts.with_dollar_rule(prompts.ACADEMIC_SYSTEM_PROMPT)
    results: list[str] = []
    for position, piece in enumerate(pieces, start=1):
        prompt = prompts.fallback_chunk_prompt(
            request.instructions,
            piece,
            position=position,
            total=len(pieces),
            content_source=request.active_content_source,
            style_source=request.active_style_source,
        )
        try:
            reply = client.complete(
                system=system,
                messages=_user(prompt),
                max_tokens=request.max_tokens,
            )
        except ProviderError as exc:
            raise ProviderError(
                f"Failed to process chunk {position} with {client.display_name}: {exc}"
            ) from exc
        results.append(remove_dollar_signs(reply))

        if position < len(pieces):
            logger.info("waiting %.1fs before piece %d/%d", delay_seconds, position + 1, len(pieces))
            if wait(delay_seconds):
                raise ProcessingCancelledError(
                    f"Processing cancelled after piece {position} of {len(pieces)}"
                )

    return PARAGRAPH_JOINER.join(results)


def _process_single_shot(client: ProviderClient, request: ProcessTextRequest) -> str:
    protected, formulas = protect_math_formulas(request.text)
    system = prompts.single_shot_system_prompt(
        request.instructions,
        exam_mode=request.exam_mode,
        use_content_source=request.active_content_source is not None,
    )
    user_prompt = prompts.single_shot_user_prompt(
        request.instructions,
        protected,
        content_source=request.active_content_source,
        style_source=request.active_style_source,
    )
    try:
        reply = client.complete(
            system=system,
            messages=_user(user_prompt),
            max_tokens=request.max_tokens,
        )
    except ProviderError as exc:
        raise ProviderError(f"Failed to process text with {client.display_name}: {exc}") from exc
    return restore_math_formulas(remove_dollar_signs(reply), formulas)


def process_text(
    client: ProviderClient,
    request: ProcessTextRequest,
    *,
    delay_seconds: float = 15.0,
    wait: WaitFn = _blocking_wait,
) -> str:
    if prompts.is_homework_request(request.instructions):
        return solve_homework(client, request.text, max_tokens=request.max_tokens)

    if prompts.is_passthrough(request.instructions) and not request.exam_mode:
        try:
            reply = client.complete(
                system=None,
                messages=_user(request.text),
                max_tokens=request.max_tokens,
            )
        except ProviderError as exc:
            raise ProviderError(f"Failed to process text with {client.display_name}: {exc}") from exc
        return remove_dollar_signs(reply)

    if estimate_tokens(request.text) > client.limits.max_input_tokens:
        return _process_large_text(client, request, delay_seconds=delay_seconds, wait=wait)

    return _process_single_shot(client, request)


def process_chunk(
    client: ProviderClient,
    request: ProcessTextRequest,
    *,
    chunk_index: int,
    total_chunks: int,
    delay_seconds: float = 15.0,
    wait: WaitFn = _blocking_wait,
) -> str:
    contextual = replace(
        request,
        instructions=prompts.chunk_context_instructions(
            request.instructions,
            chunk_index=chunk_index,
            total_chunks=total_chunks,
        ),
    )
    return process_text(client, contextual, delay_seconds=delay_seconds, wait=wait)


def generate_additional_chunks(
    client: ProviderClient,
    document: str,
    count: int,
    *,
    instructions: str = "",
    content_source: str | None = None,
    style_source: str | None = None,
    delay_seconds: float = 15.0,
    wait: WaitFn = _blocking_wait,
) -> str:
    if count < 1:
        raise ValueError("count must be >= 1")
    request = ProcessTextRequest(
        text=prompts.additional_chunks_prompt(instructions, document, count),
        instructions=prompts.additional_chunks_instructions(count),
        content_source=content_source,
        style_source=style_source,
        use_content_source=content_source is not None,
        use_style_source=style_source is not None,
    )
    return process_text(client, request, delay_seconds=delay_seconds, wait=wait)


def truncate_context_document(document: str, limits: ProviderLimits) -> str:
    if estimate_tokens(document) <= limits.context_document_tokens:
        return document
    keep = limits.context_keep_chars
    return document[:keep] + prompts.CONTEXT_TRUNCATED_MARKER + document[-keep:]


def truncate_history(messages: list[ChatMessage], *, budget_tokens: int) -> tuple[list[ChatMessage], bool]:
    """Keep the newest messages that fit the budget; the last message is always kept."""
    if not messages:
        return [], False

    kept: list[ChatMessage] = [messages[-1]]
    used = estimate_tokens(messages[-1].content)
    for message in reversed(messages[:-1]):
        cost = estimate_tokens(message.content)
        if used + cost > budget_tokens:
            break
        kept.insert(0, message)
        used += cost

    # Anthropic rejects conversations that open with an assistant turn
    while len(kept) > 1 and kept[0].role != "user":
        kept.pop(0)

    return kept, len(kept) < len(messages)


def chat(
    client: ProviderClient,
    message: str,
    history: list[ChatMessage],
    *,
    context_document: str | None = None,
) -> str:
    system_parts = [prompts.CHAT_SYSTEM_PROMPT]
    if context_document and context_document.strip():
        document = truncate_context_document(context_document.strip(), client.limits)
        system_parts.append(f"Context document:\n{document}")

    budget = client.limits.chat_history_tokens - sum(estimate_tokens(part) for part in system_parts)
    conversation = [*history, ChatMessage(role="user", content=message)]
    kept, truncated = truncate_history(conversation, budget_tokens=max(budget, 0))
    if truncated:
        system_parts.insert(1, prompts.HISTORY_TRUNCATED_NOTE)

    try:
        reply = client.complete(
            system="\n\n".join(system_parts),
            messages=kept,
            max_tokens=DEFAULT_MAX_TOKENS,
        )
    except ProviderError as exc:
        raise ProviderError(f"{client.display_name} chat failed: {exc}") from exc
    return remove_dollar_signs(reply)


def parse_detection_reply(reply: str, *, source: str) -> DetectionResult:
    match = _JSON_OBJECT.search(reply)
    if match is not None:
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict):
            try:
                confidence = float(parsed.get("confidence") or 0)
            except (TypeError, ValueError):
                confidence = 0.0
            return DetectionResult(
                is_ai=bool(parsed.get("isAI", False)),
                confidence=min(1.0, max(0.0, confidence)),
                details=str(parsed.get("details") or "Analysis completed"),
                source=source,
            )

    lowered = reply.lower()
    return DetectionResult(
        is_ai=any(keyword in lowered for keyword in _AI_KEYWORDS),
        confidence=0.5,
        details=reply,
        source=source,
    )


def detect_ai_with_provider(client: ProviderClient, text: str) -> DetectionResult:
    try:
        reply = client.complete(
            system=prompts.DETECTION_SYSTEM_PROMPT,
            messages=_user(prompts.detection_user_prompt(text)),
            max_tokens=500,
            temperature=0.1,
        )
    except ProviderError as exc:
        raise ProviderError(f"{client.display_name} AI detection failed: {exc}") from exc
    return parse_detection_reply(reply, source=client.name)


def rewrite_with_style(
    client: ProviderClient,
    text: str,
    style_text: str,
    *,
    custom_instructions: str | None = None,
) -> str:
    try:
        reply = client.complete(
            system=prompts.style_rewrite_system_prompt(custom_instructions),
            messages=_user(prompts.style_rewrite_user_prompt(text, style_text)),
            max_tokens=DEFAULT_MAX_TOKENS,
        )
    except ProviderError as exc:
        raise ProviderError(f"Failed to rewrite text with {client.display_name}: {exc}") from exc
    return remove_dollar_signs(reply).strip()
