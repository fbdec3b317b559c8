# tests/test_settings.py
import pytest

from app.core.errors import BadRequestError
from app.core.security import SecretBox
from app.settings import services as settings_service
from app.settings.models import AppSettings

from conftest import (
    FakeProvider,
    JIRA_URL,
    configure_jira,
    jira_transport,
    use_jira,
    use_provider,
)


def test_jira_token_hidden_and_encrypted(client, db):
    configure_jira(client)

    r = client.get("/api/settings/jira")
    assert r.status_code == 200
    body = r.json()
    assert body["baseUrl"] == JIRA_URL
    assert body["username"] == "qa@example.com"
    assert body["hasCredentials"] is True
    assert body["isConnected"] is False
    assert "jira-secret-token" not in r.text

    row = db.get(AppSettings, 1)
    assert row.jira_api_token != "jira-secret-token"
    assert SecretBox("test-secret").decrypt(row.jira_api_token) == "jira-secret-token"


def test_jira_settings_validation(client):
    r = client.post("/api/settings/jira", json={"baseUrl": "not a url", "username": "u", "apiToken": "t"})
    assert r.status_code == 422

    r2 = client.post("/api/settings/jira", json={"baseUrl": JIRA_URL, "username": "", "apiToken": "t"})
    assert r2.status_code == 422


def test_environment_fills_missing_jira_values(db, settings):
    settings.JIRA_BASE_URL = "https://env.atlassian.net"
    settings.JIRA_USERNAME = "env-user"
    settings.JIRA_API_TOKEN = "env-token"

    config = settings_service.get_jira_config(db, settings)

    assert config.is_configured
    assert config.base_url == "https://env.atlassian.net"
    assert config.api_token == "env-token"


def test_undecryptable_secret_reads_as_empty(db, settings):
    row = settings_service.get_settings_row(db)
    row.jira_api_token = SecretBox("another-secret").encrypt("token")
    db.commit()

    assert settings_service.get_jira_config(db, settings).api_token == ""


def test_jira_connection_check_marks_connected(client, app):
    configure_jira(client)
    use_jira(app, jira_transport({}))

    r = client.post("/api/settings/jira/test")
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert r.json()["user"] == "QA Bot"
    assert client.get("/api/settings/jira").json()["isConnected"] is True


def test_jira_connection_check_failure(client, app):
    configure_jira(client)
    use_jira(app, jira_transport({}, status_overrides={"myself": 401}))

    r = client.post("/api/settings/jira/test")
    assert r.status_code == 401
    assert r.json()["code"] == "UNAUTHORIZED"
    assert "jira-secret-token" not in r.text
    assert client.get("/api/settings/jira").json()["isConnected"] is False


def test_jira_connection_check_without_credentials(client):
    r = client.post("/api/settings/jira/test")
    assert r.status_code == 400
    assert r.json()["code"] == "PRECONDITION"


def test_llm_defaults_come_from_environment(client):
    r = client.get("/api/settings/llm")
    assert r.status_code == 200
    body = r.json()
    assert body["provider"] == "groq"
    assert body["groq"]["model"] == "llama3-70b-8192"
    assert body["groq"]["hasApiKey"] is False
    assert body["ollama"]["baseUrl"] == "http://localhost:11434"


def test_llm_partial_update_keeps_other_fields(client, db):
    r = client.post(
        "/api/settings/llm",
        json={"provider": "groq", "groqApiKey": "gsk-secret", "groqTemperature": 0.2},
    )
    assert r.status_code == 200

    r2 = client.post("/api/settings/llm", json={"provider": "ollama", "ollamaModel": "mistral"})
    assert r2.status_code == 200

    body = client.get("/api/settings/llm").json()
    assert body["provider"] == "ollama"
    assert body["groq"]["hasApiKey"] is True
    assert body["groq"]["temperature"] == 0.2
    assert body["ollama"]["model"] == "mistral"
    assert "gsk-secret" not in client.get("/api/settings/llm").text

    row = db.get(AppSettings, 1)
    assert row.groq_api_key != "gsk-secret"


def test_llm_settings_validation(client):
    r = client.post("/api/settings/llm", json={"provider": "openai"})
    assert r.status_code == 422

    r2 = client.post("/api/settings/llm", json={"provider": "groq", "groqTemperature": 1.5})
    assert r2.status_code == 422


def test_llm_connection_check_uses_provider(client, app):
    factory = use_provider(app, FakeProvider())

    r = client.post("/api/settings/llm/test", json={"provider": "ollama"})
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert r.json()["models"] == ["fake-1"]
    assert factory.calls == ["ollama"]


def test_llm_model_listing(client, app):
    factory = use_provider(app, FakeProvider())

    r = client.get("/api/settings/llm/models")
    assert r.status_code == 200
    assert r.json() == ["fake-1", "fake-2"]
    assert factory.calls == ["ollama"]


def test_groq_check_without_key_reports_failure(client):
    r = client.post("/api/settings/llm/test", json={"provider": "groq"})
    assert r.status_code == 200
    assert r.json()["success"] is False
    assert r.json()["message"] == "Groq API key not configured"


def test_provider_config_selects_sub_config(db, settings):
    assert settings_service.get_provider_config(db, settings, "ollama").model == "llama3"
    assert settings_service.get_provider_config(db, settings, "groq").model == "llama3-70b-8192"
    with pytest.raises(BadRequestError):
        settings_service.get_provider_config(db, settings, "openai")


def test_settings_row_created_concurrently(db, database, monkeypatch):
    real_get = db.get
    raced = []

    def get_then_race(model, ident):
        if not raced:
            raced.append(ident)
            # another request creates the row between our read and insert
            with database.session() as other:
                settings_service.get_settings_row(other)
            return None
        return real_get(model, ident)

    monkeypatch.setattr(db, "get", get_then_race)

    row = settings_service.get_settings_row(db)

    assert row.id == 1
    assert db.query(AppSettings).count() == 1
