# tests/test_cli.py
from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

import pytest

from csvprobe.cli import main


def test_cli_detects_file(tmp_path: Path):
    f = tmp_path / "people.csv"
    f.write_text("name,age,city\nJohn,30,NYC\nJane,25,LA\n")
    result = subprocess.run(
        [sys.executable, "-m", "csvprobe.cli", str(f)],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0
    assert "delimiter=','" in result.stdout
    assert "charset=UTF-8" in result.stdout


def test_cli_version():
    result = subprocess.run(
        [sys.executable, "-m", "csvprobe.cli", "--version"],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0
    assert "1.0.0" in result.stdout


def test_cli_json_output(tmp_path: Path, capsys):
    f = tmp_path / "data.csv"
    f.write_text("a;b;c\n1;2;3\n")
    main(["--json", str(f)])
    result = json.loads(capsys.readouterr().out)
    assert result["file"] == str(f)
    assert result["delimiter"] == ";"
    assert result["confidence"]["delimiter"] == 82


def test_cli_multiple_files(tmp_path: Path, capsys):
    f1 = tmp_path / "a.csv"
    f2 = tmp_path / "b.csv"
    f1.write_text("a;b\n1;2\n")
    f2.write_text("a|b\n1|2\n")
    main([str(f1), str(f2)])
    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 2
    assert "delimiter=';'" in lines[0]
    assert "delimiter='|'" in lines[1]


def test_cli_unreadable_file_is_skipped(tmp_path: Path, capsys):
    good = tmp_path / "good.csv"
    good.write_text("a;b\n1;2\n")
    main([str(tmp_path / "missing.csv"), str(good)])
    captured = capsys.readouterr()
    assert "missing.csv" in captured.err
    assert "good.csv" in captured.out


def test_cli_detection_failure_exits_1(tmp_path: Path, capsys):
    f = tmp_path / "single.csv"
    f.write_text("alpha\nbeta\n")
    with pytest.raises(SystemExit) as exc_info:
        main([str(f)])
    assert exc_info.value.code == 1
    assert "Unable to detect delimiter" in capsys.readouterr().err


def test_cli_min_confidence_flag(tmp_path: Path, capsys):
    f = tmp_path / "single.csv"
    f.write_text("alpha\nbeta\n")
    main(["--min-confidence", "40", str(f)])
    assert "delimiter=';'" in capsys.readouterr().out


def test_cli_requires_a_file():
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 2
