"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from urllib.parse import parse_qsl

import httpx
import pytest

from bapp_review.config import PortalSettings, SheetSettings
from bapp_review.http.portal_client import PortalHttpClient
from bapp_review.models import CellUpdate

PORTAL_BASE_URL = "https://portal.example"

PortalReply = httpx.Response | Callable[[httpx.Request], httpx.Response]


@dataclass
class RecordedRequest:
    path: str
    form: dict[str, str]
    cookie: str | None


@dataclass
class PortalStub:
    """Scripted approval portal: queued replies per path, every request recorded."""

    replies: dict[str, list[PortalReply]] = field(default_factory=dict)
    requests: list[RecordedRequest] = field(default_factory=list)

    def queue(self, path: str, *replies: PortalReply) -> None:
        self.replies.setdefault(path, []).extend(replies)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(
            RecordedRequest(
                path=request.url.path,
                form=dict(parse_qsl(request.content.decode("utf-8"), keep_blank_values=True)),
                cookie=request.headers.get("cookie"),
            ),
        )
        queued = self.replies.get(request.url.path)
        if not queued:
            return httpx.Response(404, text="not scripted")
        reply = queued.pop(0)
        if callable(reply):
            return reply(request)
        return reply

    def sent_tokens(self) -> list[str | None]:
        return [
            request.cookie.split("=", 1)[1] if request.cookie else None
            for request in self.requests
        ]


class FakeSheet:
    """In-memory sheet backend."""

    def __init__(self, rows: list[list[str]] | None) -> None:
        self.rows = rows
        self.updates: list[list[CellUpdate]] = []
        self.read_ranges: list[str] = []

    def get_values(self, cell_range: str) -> list[list[str]] | None:
        self.read_ranges.append(cell_range)
        return self.rows

    def batch_update(self, updates: list[CellUpdate]) -> int:
        self.updates.append(list(updates))
        return len(updates)


def session_cookie(token: str) -> dict[str, str]:
    return {"set-cookie": f"ci_session={token}; Max-Age=7200; path=/"}


def sheet_row(
    *,
    assignee: str,
    npsn: str = "",
    school: str = "",
    serial: str = "",
    status: str | None = None,
) -> list[str]:
    row = [""] * 21
    row[1] = assignee
    row[2] = npsn
    row[5] = school
    row[12] = serial
    if status is not None:
        row.append(status)
    return row


@pytest.fixture()
def portal_settings() -> PortalSettings:
    return PortalSettings(base_url=PORTAL_BASE_URL, max_retries=0)


@pytest.fixture()
def sheet_settings() -> SheetSettings:
    return SheetSettings(spreadsheet_id="sheet-1")


@pytest.fixture()
def portal() -> PortalStub:
    return PortalStub()


@pytest.fixture()
def http_client(portal: PortalStub, portal_settings: PortalSettings):
    client = PortalHttpClient(portal_settings, transport=httpx.MockTransport(portal.handler))
    yield client
    client.close()
