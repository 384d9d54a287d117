from __future__ import annotations

import json
from pathlib import Path

import pytest

from incidentwatch.ws_schema_export import check_schema, export_schema, main


def test_export_covers_both_directions(tmp_path: Path) -> None:
    out = tmp_path / "contracts" / "ws_schema.json"
    text = export_schema(out)
    assert out.read_text() == text
    schema = json.loads(text)
    assert schema["protocolVersion"] == "1"
    client_text = json.dumps(schema["clientMessage"])
    server_text = json.dumps(schema["serverMessage"])
    for name in ("addIncident", "updateIncident", "setReadingInterval", "intervalMs"):
        assert name in client_text
    for name in ("init", "incidentAdded", "incidentUpdated", "readingIntervalUpdated", "error"):
        assert f'"{name}"' in server_text


def test_export_is_deterministic() -> None:
    assert export_schema() == export_schema()


def test_check_passes_for_fresh_export(tmp_path: Path, capsys) -> None:
    out = tmp_path / "ws_schema.json"
    main(["--out", str(out)])
    assert check_schema(out)
    main(["--out", str(out), "--check"])
    assert "up to date" in capsys.readouterr().out


def test_check_fails_for_stale_file(tmp_path: Path) -> None:
    out = tmp_path / "ws_schema.json"
    out.write_text("{}\n")
    with pytest.raises(SystemExit) as excinfo:
        main(["--out", str(out), "--check"])
    assert excinfo.value.code == 1


def test_check_fails_for_missing_file(tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        main(["--out", str(tmp_path / "missing.json"), "--check"])


def test_check_requires_explicit_out(capsys) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["--check"])
    assert exc_info.value.code == 2
    assert "--check requires --out" in capsys.readouterr().err
