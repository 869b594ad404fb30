"""Tests for depot.cli — commands against a local backend in tmp_path."""
from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from depot.cli import main


@pytest.fixture
def runner(tmp_path: Path, monkeypatch) -> CliRunner:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("STORAGE_DIR", str(tmp_path / "files"))
    monkeypatch.setenv("TEMP_DIR", str(tmp_path / "tmp"))
    monkeypatch.setenv("FILESYSTEM_TYPE", "local")
    monkeypatch.setenv("APP_URL", "https://example.com")
    monkeypatch.delenv("AWS_S3_BUCKET", raising=False)
    return CliRunner()


def test_put_get(runner: CliRunner):
    result = runner.invoke(main, ["put", "notes.txt", "hello"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(main, ["get", "notes.txt"])
    assert result.exit_code == 0
    assert result.output == "hello"


def test_put_from_stdin_and_file(runner: CliRunner, tmp_path: Path):
    assert runner.invoke(main, ["put", "piped.txt"], input="from stdin").exit_code == 0
    assert runner.invoke(main, ["get", "piped.txt"]).output == "from stdin"

    source = tmp_path / "source.txt"
    source.write_text("from file")
    assert runner.invoke(main, ["put", "copied.txt", "--from-file", str(source)]).exit_code == 0
    assert (tmp_path / "files" / "copied.txt").read_text() == "from file"


def test_get_missing_exits_nonzero(runner: CliRunner):
    result = runner.invoke(main, ["get", "missing.txt"])
    assert result.exit_code == 1


def test_exists(runner: CliRunner):
    runner.invoke(main, ["put", "here.txt", "x"])
    assert runner.invoke(main, ["exists", "here.txt"]).exit_code == 0
    assert runner.invoke(main, ["exists", "missing.txt"]).exit_code == 1


def test_cp_mv_rm(runner: CliRunner, tmp_path: Path):
    runner.invoke(main, ["put", "a.txt", "x"])
    assert runner.invoke(main, ["cp", "a.txt", "b.txt"]).exit_code == 0
    assert runner.invoke(main, ["mv", "b.txt", "c.txt"]).exit_code == 0
    assert runner.invoke(main, ["rm", "a.txt"]).exit_code == 0

    files = tmp_path / "files"
    assert sorted(p.name for p in files.iterdir()) == ["c.txt"]


def test_rm_missing_reports_kind(runner: CliRunner):
    result = runner.invoke(main, ["rm", "missing.txt"])
    assert result.exit_code == 1
    assert "not_found" in result.output


def test_append(runner: CliRunner):
    runner.invoke(main, ["append", "log.txt", "a"])
    runner.invoke(main, ["append", "log.txt", "b"])
    assert runner.invoke(main, ["get", "log.txt"]).output == "ab"


def test_mkdir_rmdir(runner: CliRunner, tmp_path: Path):
    assert runner.invoke(main, ["mkdir", "reports"]).exit_code == 0
    assert (tmp_path / "files" / "reports").is_dir()
    assert runner.invoke(main, ["rmdir", "reports"]).exit_code == 0
    assert not (tmp_path / "files" / "reports").exists()


def test_url_and_stat(runner: CliRunner):
    runner.invoke(main, ["put", "notes.txt", "hello"])
    assert runner.invoke(main, ["url", "notes.txt"]).output.strip() == "https://example.com/notes.txt"

    result = runner.invoke(main, ["stat", "notes.txt"])
    assert result.exit_code == 0
    assert "5" in result.output


def test_backends(runner: CliRunner):
    result = runner.invoke(main, ["backends"])
    assert result.exit_code == 0
    assert "local" in result.output


def test_unknown_backend(runner: CliRunner):
    result = runner.invoke(main, ["--backend", "s3", "url", "a.txt"])
    assert result.exit_code != 0
    assert "No storage backend named 's3'" in result.output


def test_invalid_config(runner: CliRunner, monkeypatch):
    monkeypatch.setenv("FILESYSTEM_TYPE", "ftp")
    result = runner.invoke(main, ["backends"])
    assert result.exit_code != 0
    assert "not recognized" in result.output


def test_unwritable_storage_dir(runner: CliRunner, tmp_path: Path, monkeypatch):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    monkeypatch.setenv("STORAGE_DIR", str(blocker / "files"))
    result = runner.invoke(main, ["backends"])
    assert result.exit_code == 1
    assert "Unable to prepare storage directories" in result.output
    assert not isinstance(result.exception, OSError)
