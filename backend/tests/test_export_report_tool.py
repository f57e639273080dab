"""CLI report export: same rows as the web download, written to a file."""
from __future__ import annotations

from datetime import date

import pytest
from click.testing import CliRunner

from backend.tools import export_report
from participation import repo_db
from participation.repo_memory import InMemoryRecordsRepo
from utils.seed import add_record, seed_school


@pytest.fixture
def repo():
    repo = InMemoryRecordsRepo()
    school = seed_school(repo)
    add_record(repo, school, day="2024-03-04", grade="A")
    add_record(repo, school, day="2024-03-05", grade="C", student=school.other_student)
    return repo


def test_render_csv_for_one_class(repo):
    payload = export_report.render_report(
        repo, kind="students", fmt="csv", date_from=None, date_to=None, class_name="Hifz 2", today=date(2024, 3, 10)
    )
    lines = payload.decode("utf-8").splitlines()
    assert lines[0].startswith("Student Name,Class,Total Records")
    assert len(lines) == 2
    assert lines[1].startswith("Maryam Idris,Hifz 2,1")


def test_render_txt_prints_insights(repo):
    payload = export_report.render_report(
        repo, kind="classes", fmt="txt", date_from=date(2024, 3, 1), date_to=date(2024, 3, 31), class_name=None,
        today=date(2024, 3, 10),
    )
    assert payload.decode("utf-8").splitlines() == [
        "Analysis covers 2 different classes",
        "Hifz 1 shows the highest performance (4.00 average)",
    ]


def test_cli_writes_pdf(repo, tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(repo_db, "DBRecordsRepo", lambda dsn: repo)
    target = tmp_path / "teachers.pdf"
    result = CliRunner().invoke(
        export_report.main,
        ["--db-dsn", "postgresql://fake", "--kind", "teachers", "--format", "pdf", "--output", str(target)],
    )
    assert result.exit_code == 0, result.output
    assert target.read_bytes().startswith(b"%PDF")
    assert "Wrote teachers report" in result.output


def test_cli_rejects_inverted_range(repo, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(repo_db, "DBRecordsRepo", lambda dsn: repo)
    result = CliRunner().invoke(
        export_report.main,
        ["--db-dsn", "postgresql://fake", "--kind", "students", "--from", "2024-03-10", "--to", "2024-03-01"],
    )
    assert result.exit_code != 0
    assert "--from must not be after --to" in result.output


def test_cli_rejects_unknown_kind():
    result = CliRunner().invoke(export_report.main, ["--db-dsn", "x", "--kind", "parents"])
    assert result.exit_code != 0
