# tests/test_jira.py
import httpx
import pytest

from app.core.errors import (
    BadGatewayError,
    ForbiddenError,
    NotFoundError,
    RateLimitedError,
    UnauthorizedError,
    UnreachableError,
)
from app.ticket.jira import JiraClient, adf_to_text, extract_acceptance_criteria, parse_issue

from conftest import JIRA_URL, jira_transport, make_issue


def text(value):
    return {"type": "text", "text": value}


def paragraph(*children):
    return {"type": "paragraph", "content": list(children)}


def test_adf_paragraphs_and_headings():
    doc = {
        "type": "doc",
        "content": [
            {"type": "heading", "attrs": {"level": 2}, "content": [text("Overview")]},
            paragraph(text("Hello "), text("world")),
            paragraph(text("line one"), {"type": "hardBreak"}, text("line two")),
        ],
    }

    assert adf_to_text(doc) == "## Overview\n\nHello world\n\nline one\nline two\n\n"


def test_adf_lists_and_code():
    doc = {
        "type": "doc",
        "content": [
            {
                "type": "bulletList",
                "content": [
                    {"type": "listItem", "content": [paragraph(text("first"))]},
                    {"type": "listItem", "content": [paragraph(text("second"))]},
                ],
            },
            {
                "type": "orderedList",
                "content": [
                    {"type": "listItem", "content": [paragraph(text("step"))]},
                    {"type": "listItem", "content": [paragraph(text("check"))]},
                ],
            },
            {"type": "codeBlock", "content": [text("print(1)")]},
        ],
    }

    out = adf_to_text(doc)

    assert "  • first\n  • second\n" in out
    assert "1. step\n2. check\n" in out
    assert "```\nprint(1)\n```" in out


def test_adf_tolerates_odd_input():
    assert adf_to_text(None) == ""
    assert adf_to_text("plain") == "plain"
    assert adf_to_text(42) == ""
    assert adf_to_text({"type": "mystery", "content": [text("kept")]}) == "kept"


def test_acceptance_criteria_section_is_extracted():
    description = (
        "Some background.\n\n"
        "Acceptance Criteria: user sees a confirmation\n"
        "and receives an email\n\n"
        "Notes follow here."
    )

    ac = extract_acceptance_criteria(description)

    assert ac.startswith("Acceptance Criteria")
    assert "receives an email" in ac
    assert "Notes follow" not in ac


def test_acceptance_criteria_falls_back_to_gherkin_words():
    ac = extract_acceptance_criteria("Intro.\n\nGiven a cart, checkout succeeds\n\nOther")

    assert ac == "Given a cart, checkout succeeds"


def test_acceptance_criteria_missing():
    assert extract_acceptance_criteria("Nothing relevant here.") == ""


def test_parse_issue_defaults_for_missing_fields():
    ticket = parse_issue({"key": "ABC-9", "fields": {"summary": "Bare"}})

    assert ticket.key == "ABC-9"
    assert ticket.summary == "Bare"
    assert ticket.priority == "Unknown"
    assert ticket.status == "Unknown"
    assert ticket.assignee == "Unassigned"
    assert ticket.labels == []
    assert ticket.attachments == []


def test_parse_issue_reads_nested_fields():
    ticket = parse_issue(make_issue())

    assert ticket.priority == "High"
    assert ticket.status == "In Progress"
    assert ticket.assignee == "Dana"
    assert ticket.labels == ["auth", "web"]
    assert ticket.attachments[0].filename == "mockup.png"
    assert ticket.attachments[0].content_type == "image/png"


def test_fetch_ticket_sends_auth_and_fields():
    seen = {}

    def handler(request):
        seen["request"] = request
        return httpx.Response(200, json=make_issue("ABC-1"))

    client = JiraClient(JIRA_URL + "/", "qa@example.com", "token", transport=httpx.MockTransport(handler))
    with client:
        ticket = client.fetch_ticket("ABC-1")

    request = seen["request"]
    assert ticket.summary == "Login page"
    assert request.url.path == "/rest/api/3/issue/ABC-1"
    assert "summary" in request.url.params["fields"]
    assert request.headers["Authorization"].startswith("Basic ")
    assert request.headers["Accept"] == "application/json"


def test_connection_check_returns_user():
    with JiraClient(JIRA_URL, "u", "t", transport=jira_transport({})) as client:
        result = client.test_connection()

    assert result["success"] is True
    assert result["user"] == "QA Bot"


@pytest.mark.parametrize(
    "status,error",
    [
        (401, UnauthorizedError),
        (403, ForbiddenError),
        (404, NotFoundError),
        (429, RateLimitedError),
        (500, BadGatewayError),
        (400, BadGatewayError),
    ],
)
def test_upstream_status_mapping(status, error):
    transport = jira_transport({}, status_overrides={"ABC-1": status})

    with JiraClient(JIRA_URL, "u", "secret-token", transport=transport) as client:
        with pytest.raises(error) as exc_info:
            client.fetch_ticket("ABC-1")

    assert "secret-token" not in exc_info.value.message


def test_unreachable_host():
    def handler(request):
        raise httpx.ConnectError("Name or service not known", request=request)

    with JiraClient(JIRA_URL, "u", "t", transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(UnreachableError) as exc_info:
            client.test_connection()

    assert JIRA_URL in exc_info.value.message
