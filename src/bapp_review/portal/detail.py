"""Approval id lookup and detail document fetch."""

from __future__ import annotations

import logging
import re
from typing import Any

from bapp_review.config import PortalSettings
from bapp_review.errors import PortalRequestError
from bapp_review.http.portal_client import PortalHttpClient, PortalResponse
from bapp_review.models import DetailResult, IdentifierResult, Task

logger = logging.getLogger(__name__)

UNKNOWN_STATUS = "unknown"
_APPROVAL_BUTTON_RE = re.compile(r"<button\b[^>]*approvalFunc[^>]*>", re.IGNORECASE | re.DOTALL)
_DATA_ID_RE = re.compile(r"""data-id\s*=\s*["']?([^"'\s>]+)""", re.IGNORECASE)
_ID_KEYS: tuple[str, ...] = ("extractedId", "id", "approval_id")


class DetailClient:
    """Fetches an item's portal id and then its detail page."""

    def __init__(self, http: PortalHttpClient, settings: PortalSettings) -> None:
        self.http = http
        self.settings = settings

    def resolve_identifier(self, task: Task, token: str) -> IdentifierResult:
        """Look up the portal's internal id for a task by its business keys."""

        response = self.http.post_form(
            self.settings.lookup_path,
            {
                "npsn": task.npsn,
                "nama_sekolah": task.school_name,
                "sn": task.serial_number,
            },
            token=token,
        )
        _raise_for_status(response, self.settings.lookup_path)
        external_id = _find_identifier(response.json_body(), response.text)
        if external_id is None:
            logger.info(
                "No approval id for row %d (npsn=%s sn=%s)",
                task.row_coordinate,
                task.npsn,
                task.serial_number,
            )
        return IdentifierResult(external_id=external_id, rotated_token=response.rotated_token)

    def fetch_detail(self, external_id: str, token: str) -> DetailResult:
        """Fetch the detail document.

        A JSON envelope yields its ``html`` field, or an empty document with
        the envelope's status when ``html`` is missing. Any other body passes
        through with status ``unknown``.
        """

        logger.info("Fetching detail for id %s", external_id)
        response = self.http.post_form(
            self.settings.detail_path,
            {"id": external_id},
            token=token,
        )
        _raise_for_status(response, self.settings.detail_path)
        body = response.json_body()
        if isinstance(body, dict):
            document = body.get("html")
            status = str(body.get("status") or UNKNOWN_STATUS)
            if not isinstance(document, str):
                logger.warning(
                    "Detail for id %s has no html (status=%s): %s",
                    external_id,
                    status,
                    body.get("message", ""),
                )
                document = ""
            return DetailResult(
                document=document,
                status=status,
                rotated_token=response.rotated_token,
            )
        if body is not None:
            logger.warning("Detail for id %s is not a JSON object", external_id)
            return DetailResult(
                document="",
                status=UNKNOWN_STATUS,
                rotated_token=response.rotated_token,
            )
        return DetailResult(
            document=response.text,
            status=UNKNOWN_STATUS,
            rotated_token=response.rotated_token,
        )


def _raise_for_status(response: PortalResponse, path: str) -> None:
    if response.is_success:
        return
    logger.warning("Portal refused %s with HTTP %d", path, response.status_code)
    raise PortalRequestError(
        message=f"Portal returned HTTP {response.status_code} for {path}",
        code=str(response.status_code),
        status_code=response.status_code,
    )


def _find_identifier(body: Any, raw: str) -> str | None:
    if isinstance(body, dict):
        for key in _ID_KEYS:
            value = body.get(key)
            if value not in (None, "", False):
                return str(value)
        for key in ("html", "data"):
            value = body.get(key)
            if isinstance(value, str):
                return _scan_markup(value)
        return None
    if body is not None:
        return None
    return _scan_markup(raw)


def _scan_markup(markup: str) -> str | None:
    for button in _APPROVAL_BUTTON_RE.finditer(markup):
        match = _DATA_ID_RE.search(button.group(0))
        if match:
            return match.group(1)
    return None
