# app/ticket/jira.py
"""
JIRA REST API v3 client.

Fetches issues and normalizes their Atlassian Document Format (ADF)
descriptions into plain text.
"""
import logging
import re
from collections.abc import Callable
from typing import Any

import httpx

from app.core.errors import (
    AppError,
    BadGatewayError,
    ForbiddenError,
    NotFoundError,
    RateLimitedError,
    UnauthorizedError,
    UnreachableError,
)
from app.core.config import Settings
from app.settings.schemas import JiraConfig
from app.ticket.schemas import Attachment, TicketData

logger = logging.getLogger(__name__)

TICKET_FIELDS = "summary,description,priority,status,assignee,labels,attachment,issuetype"

_AC_PATTERNS = [
    re.compile(r"(?:acceptance criteria|ac:|given when then)", re.IGNORECASE),
    re.compile(r"(?:given|when|then)", re.IGNORECASE),
]
_SECTION_END = re.compile(r"\n{2,}|(?=#{1,6} )")


def adf_to_text(node: Any) -> str:
    """Flatten an ADF node (or a plain string) into readable text."""
    if not node:
        return ""
    if isinstance(node, str):
        return node
    if not isinstance(node, dict):
        return ""

    node_type = node.get("type")
    children = node.get("content")

    if node_type == "text":
        return node.get("text", "")
    if node_type == "paragraph":
        text = _join(children)
        return text + "\n\n" if text else "\n"
    if node_type == "heading":
        level = (node.get("attrs") or {}).get("level") or 1
        return "#" * int(level) + " " + _join(children) + "\n\n"
    if node_type == "bulletList":
        items = _join(children, indent="  ")
        return items + "\n" if items else ""
    if node_type == "orderedList":
        items = "".join(
            f"{i}. {_join(item.get('content')).rstrip(chr(10))}\n"
            for i, item in enumerate(children or [], start=1)
            if isinstance(item, dict)
        )
        return items + "\n" if items else ""
    if node_type == "listItem":
        return "• " + _join(children).rstrip("\n") + "\n"
    if node_type == "codeBlock":
        return "```\n" + _join(children) + "\n```\n\n"
    if node_type == "hardBreak":
        return "\n"
    return _join(children)


def _join(children: Any, indent: str = "") -> str:
    if not isinstance(children, list):
        return ""
    return "".join(indent + adf_to_text(child) for child in children)


def extract_acceptance_criteria(description: Any) -> str:
    """Return the first acceptance-criteria-looking section of a description."""
    text = adf_to_text(description)
    for pattern in _AC_PATTERNS:
        match = pattern.search(text)
        if match:
            section = _SECTION_END.split(text[match.start():], maxsplit=1)[0]
            return section.strip()
    return ""


def parse_issue(issue: dict) -> TicketData:
    fields = issue.get("fields") or {}
    description = fields.get("description")
    attachments = [
        Attachment(
            filename=att.get("filename", ""),
            content_type=att.get("mimeType"),
            size=att.get("size") or 0,
            url=att.get("content"),
        )
        for att in fields.get("attachment") or []
    ]
    return TicketData(
        key=issue["key"],
        summary=fields.get("summary") or "",
        description=adf_to_text(description),
        priority=(fields.get("priority") or {}).get("name") or "Unknown",
        status=(fields.get("status") or {}).get("name") or "Unknown",
        assignee=(fields.get("assignee") or {}).get("displayName") or "Unassigned",
        labels=fields.get("labels") or [],
        acceptance_criteria=extract_acceptance_criteria(description),
        attachments=attachments,
    )


class JiraClient:
    """Client for reading issues from a JIRA Cloud instance."""

    def __init__(
        self,
        base_url: str,
        username: str,
        api_token: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Args:
            base_url: Jira instance URL (e.g., "https://yourcompany.atlassian.net")
            username: Jira user email for authentication
            api_token: Jira API token for authentication
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=f"{self.base_url}/rest/api/3",
            auth=(username, api_token),
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "JiraClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def test_connection(self) -> dict:
        """Fetch the current user; raises an AppError on failure."""
        logger.info("Testing JIRA connection to %s", self.base_url)
        user = self._get("/myself")
        logger.info("JIRA connection successful (%s)", user.get("displayName"))
        return {
            "success": True,
            "message": "Connected successfully",
            "user": user.get("displayName"),
        }

    def fetch_ticket(self, ticket_id: str) -> TicketData:
        logger.info("Fetching JIRA ticket %s", ticket_id)
        issue = self._get(
            f"/issue/{ticket_id}",
            params={"fields": TICKET_FIELDS, "expand": "renderedFields"},
        )
        ticket = parse_issue(issue)
        logger.info("Ticket %s fetched: %s", ticket.key, ticket.summary)
        return ticket

    def _get(self, path: str, params: dict | None = None) -> dict:
        try:
            response = self._client.get(path, params=params)
        except httpx.ConnectError as e:
            raise UnreachableError(
                f"Cannot connect to JIRA server at {self.base_url}. Please check your base URL."
            ) from e
        except httpx.TimeoutException as e:
            raise BadGatewayError("Connection to JIRA timed out. Please try again.") from e
        except httpx.HTTPError as e:
            raise BadGatewayError(f"JIRA request failed: {e.__class__.__name__}") from e

        if response.is_success:
            return response.json()
        raise self._error_for(response)

    @staticmethod
    def _error_for(response: httpx.Response) -> AppError:
        status = response.status_code
        if status == 401:
            return UnauthorizedError("Invalid JIRA credentials. Please check your API token.")
        if status == 403:
            return ForbiddenError("Access denied. Please check your JIRA permissions.")
        if status == 404:
            return NotFoundError("JIRA ticket")
        if status == 429:
            return RateLimitedError("JIRA API rate limit exceeded. Please try again later.")
        if status >= 500:
            return BadGatewayError("JIRA server error. Please try again later.")
        message = f"JIRA API error: {status}"
        try:
            messages = response.json().get("errorMessages") or []
            if messages:
                message = messages[0]
        except ValueError:
            pass
        return BadGatewayError(message)


TicketSourceFactory = Callable[[JiraConfig, Settings], JiraClient]


def jira_client_from_config(config: JiraConfig, settings: Settings) -> JiraClient:
    return JiraClient(
        config.base_url, config.username, config.api_token, timeout=settings.JIRA_TIMEOUT
    )
