"""HTTP transport for the approval portal with session rotation detection."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

from bapp_review.config import PortalSettings
from bapp_review.errors import AuthFailedError, TransientError
from bapp_review.models import Credentials

logger = logging.getLogger(__name__)

RETRYABLE_HTTP_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=UTF-8"


@dataclass(slots=True)
class PortalResponse:
    """Portal response with the session token it handed back, if any."""

    status_code: int
    text: str
    is_success: bool
    rotated_token: str | None = None

    def json_body(self) -> Any | None:
        """Return the decoded JSON body, or None for HTML and plain text."""

        try:
            return json.loads(self.text)
        except ValueError:
            return None


class PortalHttpClient:
    """Form-posting client that sends and tracks the portal session cookie."""

    def __init__(
        self,
        settings: PortalSettings,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._timeout = httpx.Timeout(settings.request_timeout_seconds, connect=10.0)
        self._cookie_domain = httpx.URL(settings.base_url).host
        self._client = httpx.Client(
            base_url=settings.base_url,
            timeout=self._timeout,
            headers={"User-Agent": settings.user_agent},
            transport=transport or httpx.HTTPTransport(retries=settings.max_retries),
            follow_redirects=True,
        )

    def post_form(
        self,
        path: str,
        data: dict[str, str],
        *,
        token: str | None,
    ) -> PortalResponse:
        """POST form data with the session cookie; report a rotated token."""

        headers = {"Content-Type": FORM_CONTENT_TYPE}
        # The jar holds only this request's token; SessionStore owns the session.
        self._client.cookies.clear()
        if token:
            self._client.cookies.set(
                self.settings.session_cookie_name,
                token,
                domain=self._cookie_domain,
            )
        try:
            response = self._client.post(path, data=data, headers=headers)
        except httpx.TimeoutException as exc:
            logger.warning("Timeout calling portal %s", path)
            raise TransientError(message=f"Timeout calling {path}", code="timeout") from exc
        except httpx.HTTPError as exc:
            logger.warning("HTTP error calling portal %s: %s", path, exc)
            raise TransientError(
                message=f"HTTP error calling {path}: {exc}",
                code="transport",
            ) from exc
        finally:
            self._client.cookies.clear()

        if response.status_code in RETRYABLE_HTTP_STATUS_CODES:
            raise TransientError(
                message=f"Temporary portal HTTP error on {path}: {response.status_code}",
                code=str(response.status_code),
                status_code=response.status_code,
            )

        rotated = self._rotated_token(response, sent=token)
        if rotated is not None:
            logger.info("Session rotated by %s: %s", path, mask_token(rotated))
        return PortalResponse(
            status_code=response.status_code,
            text=response.text,
            is_success=response.is_success,
            rotated_token=rotated,
        )

    def login(self, credentials: Credentials) -> str:
        """Exchange credentials for a fresh session token."""

        response = self.post_form(
            self.settings.login_path,
            {"username": credentials.username, "password": credentials.secret},
            token=None,
        )
        body = response.json_body()
        if isinstance(body, dict) and body.get("status") is False:
            raise AuthFailedError(
                message=str(body.get("message") or "Login rejected by portal"),
            )
        if not response.is_success:
            raise AuthFailedError(message=f"Login failed with HTTP {response.status_code}")
        if response.rotated_token is None:
            raise AuthFailedError(message="Login response did not set a session cookie")
        return response.rotated_token

    def _rotated_token(self, response: httpx.Response, *, sent: str | None) -> str | None:
        found: str | None = None
        for hop in (*response.history, response):
            token = parse_session_cookie(
                hop.headers.get_list("set-cookie"),
                self.settings.session_cookie_name,
            )
            if token is not None:
                found = token
        if found is None or found == sent:
            return None
        return found

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> PortalHttpClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


def parse_session_cookie(set_cookie_headers: list[str], cookie_name: str) -> str | None:
    """Return the last value set for ``cookie_name`` across Set-Cookie headers."""

    pattern = re.compile(rf"(?:^|[\s;,]){re.escape(cookie_name)}=([^;,\s]+)")
    token: str | None = None
    for header in set_cookie_headers:
        match = pattern.search(header)
        if match:
            token = match.group(1)
    return token


def mask_token(token: str) -> str:
    if len(token) <= 6:
        return "***"
    return f"{token[:4]}***{token[-2:]}"
