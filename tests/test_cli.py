import sys

import pytest

from humanizer import cli

from fakes import FakeProvider


def test_parse_indices_accepts_one_based_numbers_and_ranges() -> None:
    assert cli._parse_indices("1,3,5-7") == [0, 2, 4, 5, 6]
    assert cli._parse_indices("") == []


def _run(monkeypatch: pytest.MonkeyPatch, provider: FakeProvider, *args: str) -> None:
    monkeypatch.setattr(cli, "configure_logging", lambda level: None)
    monkeypatch.setattr(cli, "build_provider", lambda name, *, keys, settings: provider)
    monkeypatch.setattr(sys, "argv", ["humanize", *args])
    cli.main()


def test_cli_rewrites_selected_chunks_into_output_file(
    monkeypatch: pytest.MonkeyPatch, tmp_path, capsys
) -> None:
    source = tmp_path / "essay.md"
    source.write_text("First paragraph.\n\nSecond paragraph.", encoding="utf-8")
    target = tmp_path / "out.md"
    provider = FakeProvider(replies=["Rewritten document."])

    _run(
        monkeypatch,
        provider,
        str(source),
        "--instructions",
        "Rewrite",
        "--delay",
        "0",
        "--output",
        str(target),
    )

    assert target.read_text(encoding="utf-8") == "Rewritten document."
    err = capsys.readouterr().err
    assert "[humanize] step 1/1 (100%)" in err
    assert "[humanize] completed chunks=1 processed=1 provider=openai" in err


def test_cli_writes_partial_output_on_failure(
    monkeypatch: pytest.MonkeyPatch, tmp_path, capsys
) -> None:
    words = " ".join(["word"] * 60)
    source = tmp_path / "essay.txt"
    source.write_text(f"{words}.\n\n{words}.", encoding="utf-8")
    target = tmp_path / "out.txt"
    provider = FakeProvider(replies=["REWRITTEN"], fail_on_call=2)

    with pytest.raises(SystemExit) as exc_info:
        _run(
            monkeypatch,
            provider,
            str(source),
            "--instructions",
            "Rewrite",
            "--base-words",
            "60",
            "--delay",
            "0",
            "--output",
            str(target),
        )

    assert exc_info.value.code == 1
    assert target.read_text(encoding="utf-8") == f"REWRITTEN\n\n{words}."
    assert "partial steps=1" in capsys.readouterr().err


def test_cli_reports_empty_input(monkeypatch: pytest.MonkeyPatch, tmp_path, capsys) -> None:
    source = tmp_path / "empty.txt"
    source.write_text("   ", encoding="utf-8")

    with pytest.raises(SystemExit):
        _run(monkeypatch, FakeProvider(), str(source), "--delay", "0")

    assert "contains no text" in capsys.readouterr().err
