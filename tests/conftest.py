# tests/conftest.py
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.database import Database
from app.main import create_app
from app.settings.schemas import ConnectionResult
from app.template.models import Template
from app.testplan.providers.base import LLMProvider
from app.testplan.providers.factory import get_provider_factory
from app.ticket import services as ticket_service
from app.ticket.jira import JiraClient
from app.ticket.routes import get_ticket_source_factory
from app.ticket.schemas import TicketData

JIRA_URL = "https://example.atlassian.net"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        TEMPLATES_DIR=str(tmp_path / "templates"),
        ENCRYPTION_KEY="test-secret",
        JIRA_BASE_URL="",
        JIRA_USERNAME="",
        JIRA_API_TOKEN="",
        GROQ_API_KEY="",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def database(settings):
    database = Database(settings.DATABASE_URL)
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def db(database):
    with database.session() as session:
        yield session


@pytest.fixture
def app(settings, database):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


class FakeProvider(LLMProvider):
    """Replays a fixed list of events and records what it was asked to do."""

    name = "fake"

    def __init__(self, events=None, raises=None):
        self.events = events or []
        self.raises = raises
        self.contexts = []
        self.closed = False

    def generate(self, context):
        self.contexts.append(context)
        try:
            for event in self.events:
                yield event
            if self.raises is not None:
                raise self.raises
        finally:
            self.closed = True

    def test_connection(self):
        return ConnectionResult(success=True, message="Connected to fake", models=["fake-1"])

    def list_models(self):
        return ["fake-1", "fake-2"]


class RecordingFactory:
    def __init__(self, provider):
        self.provider = provider
        self.calls = []

    def __call__(self, name, config):
        self.calls.append(name)
        return self.provider


def jira_transport(issues: dict, status_overrides: dict | None = None) -> httpx.MockTransport:
    """Serve /issue/<KEY> from ``issues``; unknown keys get 404."""
    status_overrides = status_overrides or {}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/myself"):
            status = status_overrides.get("myself", 200)
            return httpx.Response(status, json={"displayName": "QA Bot"})
        key = path.rsplit("/", 1)[-1]
        if key in status_overrides:
            return httpx.Response(status_overrides[key], json={"errorMessages": ["nope"]})
        if key in issues:
            return httpx.Response(200, json=issues[key])
        return httpx.Response(404, json={"errorMessages": ["Issue does not exist"]})

    return httpx.MockTransport(handler)


def jira_factory(transport: httpx.MockTransport):
    def factory(config, settings):
        return JiraClient(config.base_url, config.username, config.api_token, transport=transport)

    return factory


def make_issue(key="ABC-1", summary="Login page", description="Users can log in"):
    return {
        "key": key,
        "fields": {
            "summary": summary,
            "description": description,
            "priority": {"name": "High"},
            "status": {"name": "In Progress"},
            "assignee": {"displayName": "Dana"},
            "labels": ["auth", "web"],
            "attachment": [
                {
                    "filename": "mockup.png",
                    "mimeType": "image/png",
                    "size": 1024,
                    "content": f"{JIRA_URL}/secure/attachment/1/mockup.png",
                }
            ],
        },
    }


def use_provider(app, provider) -> RecordingFactory:
    factory = RecordingFactory(provider)
    app.dependency_overrides[get_provider_factory] = lambda: factory
    return factory


def use_jira(app, transport) -> None:
    app.dependency_overrides[get_ticket_source_factory] = lambda: jira_factory(transport)


def configure_jira(client) -> None:
    r = client.post(
        "/api/settings/jira",
        json={"baseUrl": JIRA_URL, "username": "qa@example.com", "apiToken": "jira-secret-token"},
    )
    assert r.status_code == 200


def seed_ticket(db, key="ABC-1", summary="Login page"):
    return ticket_service.upsert_ticket(
        db,
        TicketData(
            key=key,
            summary=summary,
            description="Users can log in with email",
            priority="High",
            status="Open",
            assignee="Dana",
            labels=["auth"],
            acceptance_criteria="Given a user when they log in then they see the dashboard",
        ),
    )


def seed_template(db, settings, name="Standard", content="# Scope\n# Test Cases", is_default=True):
    template = Template(
        name=name,
        filename=f"{name.lower()}.pdf",
        filepath=f"{settings.TEMPLATES_DIR}/{name.lower()}.pdf",
        content=content,
        is_default=is_default,
    )
    db.add(template)
    db.commit()
    db.refresh(template)
    return template


def read_sse(response) -> list[dict]:
    events = []
    for line in response.text.splitlines():
        if line.startswith("data: "):
            events.append(json.loads(line[len("data: "):]))
    return events
