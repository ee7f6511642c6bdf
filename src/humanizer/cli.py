from __future__ import annotations

import argparse
from pathlib import Path
import sys

from humanizer.config import get_settings
from humanizer.log import configure_logging
from humanizer.providers.base import PROVIDER_NAMES
from humanizer.providers.registry import ProviderKeyStore, build_provider
from humanizer.services.selection import PATTERN_NAMES, merge_selection, select_pattern
from humanizer.services.sequential import (
    ChunkProcessingError,
    ProcessingMode,
    ProgressUpdate,
    ProviderChunkTransformer,
    SequentialProcessor,
)


def _parse_indices(value: str) -> list[int]:
    indices: list[int] = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start, end = part.split("-", 1)
            indices.extend(range(int(start) - 1, int(end)))
        else:
            indices.append(int(part) - 1)
    return indices


def _build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="humanize",
        description="Chunk a text document and process it sequentially with an LLM provider",
    )
    parser.add_argument("input", help="Path to a UTF-8 text or markdown file")
    parser.add_argument("--provider", choices=PROVIDER_NAMES, default="openai")
    parser.add_argument("--instructions", default="", help="Rewrite instructions")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in ProcessingMode],
        default=ProcessingMode.REWRITE.value,
    )
    parser.add_argument(
        "--select",
        default="",
        help="1-based chunk numbers or ranges, e.g. 1,3,5-7 (default: all chunks)",
    )
    parser.add_argument("--pattern", choices=PATTERN_NAMES, default=None)
    parser.add_argument(
        "--additional",
        type=int,
        default=0,
        help="Number of new sections to generate in add/both mode",
    )
    parser.add_argument(
        "--base-words",
        type=int,
        default=settings.chunk_base_words,
        help="Target chunk size in words for documents up to 20000 words",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=settings.chunk_delay_seconds,
        help="Seconds to wait between provider calls",
    )
    parser.add_argument("--output", default=None, help="Write the result here instead of stdout")
    return parser


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()
    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        source = Path(args.input).read_text(encoding="utf-8")
        client = build_provider(
            args.provider,
            keys=ProviderKeyStore.from_settings(settings),
            settings=settings,
        )

        def report(update: ProgressUpdate) -> None:
            print(
                f"[humanize] step {update.step}/{update.total} ({update.percentage}%)",
                file=sys.stderr,
                flush=True,
            )

        processor = SequentialProcessor(
            ProviderChunkTransformer(
                client,
                instructions=args.instructions,
                delay_seconds=args.delay,
            ),
            delay_seconds=args.delay,
            on_progress=report,
        )
        chunks = processor.prepare(source, base_words=args.base_words)
        if not chunks:
            raise ValueError(f"{args.input} contains no text")

        selection = _parse_indices(args.select)
        if args.pattern is not None:
            selection = merge_selection(selection, select_pattern(args.pattern, len(chunks)))
        if not selection and args.mode != ProcessingMode.ADD.value:
            selection = list(range(len(chunks)))

        result = processor.run(
            [chunk.content for chunk in chunks],
            mode=args.mode,
            selected_indices=selection,
            additional_chunks=args.additional,
        )
    except ChunkProcessingError as exc:
        if args.output:
            Path(args.output).write_text(exc.partial.output, encoding="utf-8")
        print(
            f"[humanize] failed: {exc} (partial steps={exc.partial.steps_completed})",
            file=sys.stderr,
            flush=True,
        )
        raise SystemExit(1) from exc
    except Exception as exc:
        print(f"[humanize] failed: {exc}", file=sys.stderr, flush=True)
        raise SystemExit(1) from exc

    if args.output:
        Path(args.output).write_text(result.output, encoding="utf-8")
    else:
        print(result.output, flush=True)

    print(
        "[humanize] completed "
        f"chunks={len(chunks)} "
        f"processed={len(result.processed_indices)} "
        f"provider={args.provider}",
        file=sys.stderr,
        flush=True,
    )


if __name__ == "__main__":
    main()
