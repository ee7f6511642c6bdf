from dataclasses import dataclass, field

from humanizer.providers.base import DEFAULT_MAX_TOKENS


@dataclass(frozen=True)
class ProcessTextRequest:
    text: str
    instructions: str = ""
    content_source: str | None = None
    style_source: str | None = None
    use_content_source: bool = False
    use_style_source: bool = False
    exam_mode: bool = False
    max_tokens: int = DEFAULT_MAX_TOKENS

    @property
    def active_content_source(self) -> str | None:
        if self.use_content_source and self.content_source and self.content_source.strip():
            return self.content_source
        return None

    @property
    def active_style_source(self) -> str | None:
        if self.use_style_source and self.style_source and self.style_source.strip():
            return self.style_source
        return None


@dataclass(frozen=True)
class DetectionResult:
    is_ai: bool
    confidence: float
    details: str
    source: str = "gptzero"


@dataclass(frozen=True)
class SearchHit:
    title: str
    url: str
    snippet: str


@dataclass(frozen=True)
class SearchResponse:
    results: list[SearchHit] = field(default_factory=list)
    content: str = ""
