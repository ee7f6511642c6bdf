from __future__ import annotations

from humanizer.services.text_cleaning import DOLLAR_SIGN_FREE_PROMPT

HOMEWORK_MARKERS: tuple[str, ...] = (
    "I am a teacher creating solution keys",
    "educational assessment purposes",
    "COMPLETE THIS ASSIGNMENT ENTIRELY",
)

SHORTER_OUTPUT_KEYWORDS: tuple[str, ...] = ("shorter", "summarize", "reduce", "condense", "brief")

PASSTHROUGH = "PASSTHROUGH"

RETURN_ONLY = (
    "RETURN ONLY THE PROCESSED CONTENT - DO NOT include any explanations, "
    "summaries, or commentary about what you did"
)

ACADEMIC_SYSTEM_PROMPT = (
    "You are an academic writing assistant specializing in philosophy, mathematics, "
    "economics, and interdisciplinary research. You help scholars develop books, papers, "
    "and educational content. Follow instructions exactly and provide complete responses. "
    "Use clean LaTeX format for mathematical expressions. "
    "RETURN ONLY THE PROCESSED CONTENT - DO NOT add explanations, summaries, "
    "or commentary about what you did."
)

EXAM_SYSTEM_PROMPT = (
    "You are an academic assistant answering exam questions. Answer questions directly "
    "and thoroughly. Process mathematical content using clean LaTeX format. Provide "
    "complete, accurate answers demonstrating full understanding. RETURN ONLY THE "
    "REQUESTED CONTENT - DO NOT add explanations, summaries, or commentary about what you did."
)

HOMEWORK_SYSTEM_PROMPT = (
    "You are an expert tutor and academic assistant. Solve the following assignment "
    "thoroughly and step-by-step. Provide complete solutions, not just explanations. "
    "For math problems, show all work and provide final answers. For written questions, "
    "provide comprehensive responses. Actually solve the problems presented."
)

CHAT_SYSTEM_PROMPT = (
    "You are an academic writing assistant in an ongoing conversation. Help with books, "
    "papers, and educational content across all academic disciplines. When analyzing "
    "documents, provide brief summaries and key insights."
)

DETECTION_SYSTEM_PROMPT = (
    "You are an AI detection expert. Analyze the provided text and determine if it was "
    "likely written by AI or human. Respond with a JSON object containing: isAI (boolean), "
    "confidence (0-1), and details (string explanation)."
)

LONGER_OUTPUT_NOTE = (
    "IMPORTANT: Unless explicitly requested otherwise, your rewrite MUST be longer than "
    "the original text. Add more examples, explanations, or details to make the content "
    "more comprehensive."
)

CONTENT_SOURCE_NOTE = (
    "Use the provided content source as reference material to enhance your response. "
    "Do not copy it directly."
)

STYLE_TRANSFER_RULES = """CRITICAL STYLE TRANSFER INSTRUCTIONS:
1. PRESERVE the exact content, concepts, ideas, and substance from the original text
2. ONLY change the writing style, tone, and linguistic approach to match the style reference
3. Do NOT add new content from the style reference - it is ONLY a style template
4. Think of this as translating the original text into a different literary style
5. Keep all technical terms, facts, and specific information exactly as they are
6. The style reference shows HOW to write, not WHAT to write about"""

HISTORY_TRUNCATED_NOTE = (
    "[Note: Earlier conversation history has been truncated due to length limits. "
    "Only recent messages are shown.]"
)

CONTEXT_TRUNCATED_MARKER = "\n\n[... middle section truncated for length ...]\n\n"

DEFAULT_STYLE_SAMPLE = (
    "There are two broad types of relationships: formal and functional. Formal "
    "relationships hold between linguistic entities. Functional relationships hold between "
    'properties. When I say "Snow is white" is true if and only if snow is white, the '
    'relationship between the sentence "Snow is white" and the sentence "snow is white" is '
    "formal: both are sentences, and the relationship between them can be captured in terms "
    "of their syntax and semantics. When I say that being white is a color property, the "
    "relationship between being white and being a color is functional: both are properties "
    "(of objects), and the relationship between them can be captured in terms of the "
    "functional roles that properties play."
)


def is_homework_request(instructions: str) -> bool:
    return any(marker in instructions for marker in HOMEWORK_MARKERS)


def is_passthrough(instructions: str) -> bool:
    stripped = instructions.strip()
    return stripped == "" or stripped == PASSTHROUGH


def requests_shorter_output(instructions: str) -> bool:
    lowered = instructions.lower()
    return any(keyword in lowered for keyword in SHORTER_OUTPUT_KEYWORDS)


def with_dollar_rule(prompt: str) -> str:
    return f"{prompt}\n\n{DOLLAR_SIGN_FREE_PROMPT}"


def homework_user_prompt(text: str) -> str:
    return f"Please solve the following assignment completely:\n\n{text}"


def single_shot_system_prompt(
    instructions: str,
    *,
    exam_mode: bool,
    use_content_source: bool,
) -> str:
    system = with_dollar_rule(EXAM_SYSTEM_PROMPT if exam_mode else ACADEMIC_SYSTEM_PROMPT)
    if not requests_shorter_output(instructions):
        system = f"{system} {LONGER_OUTPUT_NOTE}"
    if use_content_source:
        system = f"{system} {CONTENT_SOURCE_NOTE}"
    return system


def single_shot_user_prompt(
    instructions: str,
    text: str,
    *,
    content_source: str | None,
    style_source: str | None,
) -> str:
    if style_source:
        return (
            f"{instructions}\n\n{STYLE_TRANSFER_RULES}\n\n"
            "Style reference (use ONLY as a writing style template - do NOT incorporate "
            f"its content):\n{style_source}\n\nContent to process:\n{text}"
        )
    if content_source:
        return (
            f"{instructions}\n\nUse this content as reference material (do not copy it, "
            f"use it to enhance your response):\n{content_source}\n\n"
            f"Now process this content according to the instructions above:\n{text}"
        )
    return f"{instructions}\n\n{text}"


def fallback_chunk_prompt(
    instructions: str,
    chunk: str,
    *,
    position: int,
    total: int,
    content_source: str | None,
    style_source: str | None,
) -> str:
    if style_source:
        return (
            f"{instructions}\n\nStyle reference (analyze and emulate this writing style):\n"
            f"{style_source}\n\nProcess this chunk {position} of {total}. {RETURN_ONLY}:\n{chunk}"
        )
    if content_source:
        return (
            f"{instructions}\n\nUse this content as reference material (do not copy it, "
            f"use it to enhance your response):\n{content_source}\n\n"
            f"Now process this chunk {position} of {total} according to the instructions "
            f"above. {RETURN_ONLY}:\n{chunk}"
        )
    return (
        f"{instructions}\n\nThis is chunk {position} of {total} from a larger document. "
        f"Process this ENTIRE chunk according to the instructions. {RETURN_ONLY}:\n\n{chunk}"
    )


def chunk_context_instructions(instructions: str, *, chunk_index: int, total_chunks: int) -> str:
    return (
        f"[Processing chunk {chunk_index + 1} of {total_chunks}]\n{instructions}\n"
        "Note: This is part of a larger document, maintain consistency with previous chunks."
    )


def additional_chunks_instructions(count: int) -> str:
    return f"Generate {count} new section(s) based on the provided document"


def additional_chunks_prompt(instructions: str, document: str, count: int) -> str:
    return (
        f"{instructions}\n\nGenerate {count} additional section(s) that complement "
        f"this document:\n\n{document}"
    )


def style_rewrite_system_prompt(custom_instructions: str | None = None) -> str:
    system = with_dollar_rule(
        "You rewrite text so it reads as if written by the author of the style sample. "
        "Match the sample's sentence rhythm, diction, paragraph shape and level of "
        f"formality. {RETURN_ONLY}."
    )
    if custom_instructions and custom_instructions.strip():
        system = f"{system}\n\nAdditional instructions:\n{custom_instructions.strip()}"
    return system


def style_rewrite_user_prompt(text: str, style_text: str) -> str:
    return (
        f"{STYLE_TRANSFER_RULES}\n\nStyle sample:\n{style_text}\n\n"
        f"Text to rewrite:\n{text}"
    )


def detection_user_prompt(text: str) -> str:
    return f"Please analyze this text for AI detection:\n\n{text}"
