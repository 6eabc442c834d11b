"""CLI parser and entrypoint behaviour tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from docsite.cli import _build_parser, main


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "build", "docs"])
    assert args.verbose is True
    assert args.command == "build"
    assert args.root == "docs"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["check", "--verbose"])
    assert args.verbose is True
    assert args.command == "check"
    assert args.root == "."


def test_cli_build_options() -> None:
    parser = _build_parser()
    args = parser.parse_args(
        [
            "build",
            "docs",
            "-o",
            "out",
            "--report",
            "r.json",
            "--case-insensitive",
            "--timeout",
            "2.5",
            "--workers",
            "4",
            "--no-cache",
        ]
    )
    assert args.output == Path("out")
    assert args.report == Path("r.json")
    assert args.case_insensitive is True
    assert args.timeout == 2.5
    assert args.workers == 4
    assert args.no_cache is True


def test_cli_case_sensitivity_defaults_to_config() -> None:
    args = _build_parser().parse_args(["check", "docs"])
    assert args.case_insensitive is None


def test_check_prints_report_and_exits_zero(docs_builder, capsys) -> None:
    docs_builder.write({"index.md": "# Home\n\n[Missing](nope.md)\n"})

    with pytest.raises(SystemExit) as excinfo:
        main(["check", str(docs_builder.path()), "--no-cache"])

    assert excinfo.value.code == 0
    captured = capsys.readouterr()
    report = json.loads(captured.out)
    assert report["summary"]["by_kind"] == {"BrokenLink": 1}
    assert "index.md:3: warning: [BrokenLink]" in captured.err


def test_build_exits_one_on_errors(docs_builder, tmp_path: Path) -> None:
    docs_builder.write({"index.md": "# Home\n"})
    docs_builder.write_bytes("bad.md", b"\xff")
    output = tmp_path / "site"

    with pytest.raises(SystemExit) as excinfo:
        main(["build", str(docs_builder.path()), "-o", str(output), "--no-cache"])

    assert excinfo.value.code == 1
    assert (output / "index.html").exists()
    assert (output / "diagnostics.json").exists()


def test_missing_root_exits_two(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["check", str(tmp_path / "absent")])
    assert excinfo.value.code == 2


def test_log_file_receives_run_records(docs_builder, tmp_path: Path) -> None:
    docs_builder.write({"index.md": "# Home\n"})
    log_file = tmp_path / "docsite.log"

    with pytest.raises(SystemExit) as excinfo:
        main(["--log-file", str(log_file), "check", str(docs_builder.path()), "--no-cache"])

    assert excinfo.value.code == 0
    contents = log_file.read_text(encoding="utf-8")
    assert "INFO docsite." in contents
    assert "Resolved 0 links across 1 documents" in contents
