from __future__ import annotations

from fastapi.testclient import TestClient


def test_app_smoke_routes(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}

    r = client.get("/state/missing")
    assert r.status_code == 404


def test_app_uses_disk_store_when_enabled(sandbox_project, monkeypatch):
    monkeypatch.setenv("PERSIST_TO_DISK", "1")
    import app as app_module

    client = TestClient(app_module.create_app())
    r = client.put("/state/brandingConfig", json={"value": {"name": "Acme"}})
    assert r.status_code == 200

    assert (sandbox_project / "data" / "state" / "brandingConfig.json").exists()


def test_settings_from_env(sandbox_project, monkeypatch):
    from settings import get_settings

    monkeypatch.setenv("STATE_STORAGE_QUOTA_BYTES", "5000")
    monkeypatch.setenv("IMPORT_RELOAD_DELAY_SECONDS", "not-a-number")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = get_settings()
    assert settings.persist_to_disk is False
    assert settings.state_data_dir == sandbox_project / "data" / "state"
    assert settings.storage_quota_bytes == 5000
    assert settings.import_reload_delay_seconds == 1.0
    assert settings.log_level == "DEBUG"
