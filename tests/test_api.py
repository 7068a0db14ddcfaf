from __future__ import annotations

from pathlib import Path

import yaml
from fastapi.testclient import TestClient

from clean_notes.api import create_app
from clean_notes.settings import Settings

OLD_NOTE = "# Tasks\n```tasks\nnot done\n```\n# Log\nShipped it\n"


def _mk_settings(tmp_path: Path) -> Settings:
    vault = tmp_path / "vault"
    (vault / "Daily").mkdir(parents=True)
    return Settings(
        CLEAN_VAULT_PATH=vault,
        CLEAN_OPTIONS_PATH=tmp_path / "data" / "clean_notes.yaml",
        CLEAN_API_CORS_ALLOW_ALL=False,
        CLEAN_SCHEDULE_ENABLED=False,
        CLEAN_LOG_DIR=tmp_path / "_logs",
    )


def _mk_client(settings: Settings) -> TestClient:
    return TestClient(create_app(settings))


def test_health_and_root(tmp_path: Path):
    client = _mk_client(_mk_settings(tmp_path))
    assert client.get("/health").json() == {"ok": True}
    assert client.get("/").json()["endpoints"]["options"] == "/options"


def test_options_roundtrip_persists(tmp_path: Path):
    settings = _mk_settings(tmp_path)
    client = _mk_client(settings)

    r0 = client.get("/options")
    assert r0.status_code == 200
    assert r0.json()["options"]["days_after"] == 7
    assert r0.json()["resolved_folder"] is None

    r1 = client.put("/options", json={"folder": "Daily", "days_after": 30, "remove_buttons": False})
    assert r1.status_code == 200
    body = r1.json()
    assert body["options"]["days_after"] == 30
    assert body["resolved_folder"] == "Daily"

    saved = yaml.safe_load(settings.CLEAN_OPTIONS_PATH.read_text(encoding="utf-8"))
    assert saved["folder"] == "Daily"
    assert saved["remove_buttons"] is False
    assert saved["remove_task_queries"] is True


def test_options_reject_negative_days(tmp_path: Path):
    settings = _mk_settings(tmp_path)
    client = _mk_client(settings)

    r = client.put("/options", json={"days_after": -1})

    assert r.status_code == 422
    assert not settings.CLEAN_OPTIONS_PATH.exists()


def test_options_reject_null_flag(tmp_path: Path):
    client = _mk_client(_mk_settings(tmp_path))
    r = client.put("/options", json={"remove_buttons": None})
    assert r.status_code == 422


def test_clean_endpoint(tmp_path: Path):
    settings = _mk_settings(tmp_path)
    note = settings.CLEAN_VAULT_PATH / "Daily" / "2020-03-01.md"
    note.write_text(OLD_NOTE, encoding="utf-8")
    client = _mk_client(settings)
    client.put("/options", json={"folder": "Daily"})

    dry = client.post("/clean", params={"dry_run": True}).json()
    assert dry["ok"] is True
    assert dry["report"]["modified"] == 1
    assert note.read_text(encoding="utf-8") == OLD_NOTE

    r = client.post("/clean")
    assert r.status_code == 200
    payload = r.json()
    assert payload["ok"] is True
    assert payload["skipped"] is False
    assert payload["report"]["modified"] == 1
    assert payload["report"]["notices"] == ["Finished cleaning daily notes"]
    assert note.read_text(encoding="utf-8") == "# Log\nShipped it\n"


def test_clean_endpoint_reports_missing_folder(tmp_path: Path):
    client = _mk_client(_mk_settings(tmp_path))

    payload = client.post("/clean").json()

    assert payload["ok"] is False
    assert payload["report"]["aborted"] is True
    assert payload["report"]["notices"] == ["Daily notes folder not set"]
