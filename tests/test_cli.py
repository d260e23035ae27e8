import json
from datetime import date
from pathlib import Path

import pytest
from typer.testing import CliRunner

from annual_eat import jaccount
from annual_eat.cli import app, cmd_summary, load_transactions_file
from annual_eat.errors import UpstreamError
from annual_eat.models import EatEntity, EatResponse
from tests.helpers.records import cst_epoch, upstream_entity

runner = CliRunner()


def _body() -> dict:
    return {
        "errno": 0,
        "entities": [
            upstream_entity("沪A12345", -20.0, cst_epoch(2024, 3, 1, 7, 30)),
            upstream_entity("第一食堂", -12.34, cst_epoch(2024, 3, 1, 12, 0)),
            upstream_entity("第一食堂", -8.0, cst_epoch(2024, 4, 2, 18, 0)),
        ],
    }


def _write(path: Path, payload) -> Path:
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    return path


def test_load_transactions_file_accepts_wrapped_body(tmp_path: Path):
    plain = load_transactions_file(_write(tmp_path / "plain.json", _body()))
    wrapped = load_transactions_file(_write(tmp_path / "wrapped.json", {"data": _body()}))
    assert plain == wrapped
    assert len(plain.entities) == 3


def test_report_writes_html(tmp_path: Path):
    src = _write(tmp_path / "tx.json", _body())
    out = tmp_path / "out.html"

    result = runner.invoke(app, ["report", "--input", str(src), "--output", str(out)])

    assert result.exit_code == 0, result.output
    html = out.read_text(encoding="utf-8")
    assert "¥40.34" in html
    assert "班车" in html


def test_report_default_output_name(tmp_path: Path):
    src = _write(tmp_path / "tx.json", _body())
    result = runner.invoke(app, ["report", "-i", str(src)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "annual_report_2024.html").exists()


def test_report_with_no_usable_transactions(tmp_path: Path):
    src = _write(tmp_path / "tx.json", {"errno": 0, "entities": []})
    result = runner.invoke(app, ["report", "-i", str(src)])
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_report_with_missing_file(tmp_path: Path):
    result = runner.invoke(app, ["report", "-i", str(tmp_path / "missing.json")])
    assert result.exit_code == 1
    assert "File not found" in result.output


def test_report_with_invalid_json(tmp_path: Path):
    src = tmp_path / "tx.json"
    src.write_text("{not json", encoding="utf-8")
    result = runner.invoke(app, ["report", "-i", str(src)])
    assert result.exit_code == 1


def test_report_with_non_utf8_file(tmp_path: Path):
    src = tmp_path / "tx.json"
    src.write_bytes(b'{"entities": [{"merchant": "\xff\xfe"}]}')
    result = runner.invoke(app, ["report", "-i", str(src)])
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "UTF-8" in result.output


def test_summary_with_unreadable_input(tmp_path: Path):
    folder = tmp_path / "exports"
    folder.mkdir()
    assert cmd_summary(folder) == 1


def test_summary_prints_highlights(tmp_path: Path):
    src = _write(tmp_path / "tx.json", _body())
    result = runner.invoke(app, ["summary", "-i", str(src)])
    assert result.exit_code == 0, result.output
    assert "第一食堂" in result.output
    assert "40.34" in result.output


def test_authorize_url_uses_env_file(tmp_path: Path):
    (tmp_path / ".env").write_text("ANNUAL_EAT_CLIENT_ID=from-dotenv\n", encoding="utf-8")
    result = runner.invoke(app, ["authorize-url"])
    assert result.exit_code == 0, result.output
    assert "client_id=from-dotenv" in result.output


def test_authorize_url_without_client_id():
    result = runner.invoke(app, ["authorize-url"])
    assert result.exit_code == 1
    assert "CLIENT_ID" in result.output


def test_fetch_saves_upstream_json(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    calls = {}

    def fake_fetch_with_code(settings, code, start, end):
        calls["args"] = (code, start, end)
        return EatResponse(entities=[EatEntity.model_validate(e) for e in _body()["entities"]])

    monkeypatch.setattr(jaccount, "fetch_with_code", fake_fetch_with_code)
    out = tmp_path / "saved.json"

    result = runner.invoke(
        app,
        ["fetch", "--code", "abc", "--start", "2024-01-01", "--end", "2024-12-31", "-o", str(out)],
    )

    assert result.exit_code == 0, result.output
    assert calls["args"] == ("abc", date(2024, 1, 1), date(2024, 12, 31))
    saved = json.loads(out.read_text(encoding="utf-8"))
    assert saved["entities"][0]["payTime"] == cst_epoch(2024, 3, 1, 7, 30)
    assert load_transactions_file(out).raw_transactions()[0].merchant == "沪A12345"


def test_fetch_upstream_failure(monkeypatch: pytest.MonkeyPatch):
    def failing(settings, code, start, end):
        raise UpstreamError("token exchange failed: 400 invalid_grant", status=400)

    monkeypatch.setattr(jaccount, "fetch_with_code", failing)
    result = runner.invoke(
        app, ["fetch", "--code", "abc", "--start", "2024-01-01", "--end", "2024-12-31"]
    )
    assert result.exit_code == 1
    assert "invalid_grant" in result.output


def test_fetch_rejects_malformed_dates():
    result = runner.invoke(app, ["fetch", "--code", "abc", "--start", "2024/01/01", "--end", "2024-12-31"])
    assert result.exit_code == 2


def test_run_fetches_and_renders(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(
        jaccount,
        "fetch_with_code",
        lambda settings, code, start, end: EatResponse.model_validate(_body()),
    )
    out = tmp_path / "report.html"
    result = runner.invoke(
        app,
        ["run", "--code", "abc", "--start", "2024-01-01", "--end", "2024-12-31", "-o", str(out)],
    )
    assert result.exit_code == 0, result.output
    assert "¥40.34" in out.read_text(encoding="utf-8")
