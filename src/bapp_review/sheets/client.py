"""Google Sheets backend for the verification spreadsheet."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httplib2
from google.auth import exceptions as auth_exceptions
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from bapp_review.errors import SourceUnavailableError, TransientError
from bapp_review.models import CellUpdate

logger = logging.getLogger(__name__)

SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"
USER_ENTERED = "USER_ENTERED"
RETRYABLE_HTTP_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class SheetBackend(Protocol):
    """Minimal tabular read/write contract used by the review pipeline."""

    def get_values(self, cell_range: str) -> list[list[str]] | None:
        """Return rows of the range, or None when the sheet returned nothing."""
        raise NotImplementedError

    def batch_update(self, updates: list[CellUpdate]) -> int:
        """Write cells with user-entered semantics; return updated cell count."""
        raise NotImplementedError


class GoogleSheetsClient:
    """Sheets API v4 values client authenticated with a service account."""

    def __init__(self, *, spreadsheet_id: str, service: Any, num_retries: int = 0) -> None:
        self.spreadsheet_id = spreadsheet_id
        self.num_retries = num_retries
        self._service = service

    @classmethod
    def from_service_account_info(
        cls,
        *,
        spreadsheet_id: str,
        service_account_info: dict[str, object],
        num_retries: int = 0,
    ) -> GoogleSheetsClient:
        credentials = service_account.Credentials.from_service_account_info(
            service_account_info,
            scopes=[SHEETS_SCOPE],
        )
        service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        return cls(spreadsheet_id=spreadsheet_id, service=service, num_retries=num_retries)

    def get_values(self, cell_range: str) -> list[list[str]] | None:
        logger.debug("Fetching sheet range %s", cell_range)
        request = (
            self._service.spreadsheets()
            .values()
            .get(spreadsheetId=self.spreadsheet_id, range=cell_range)
        )
        response = self._execute(request, action="read")
        values = response.get("values")
        if values is None:
            return None
        return [[str(cell) for cell in row] for row in values]

    def batch_update(self, updates: list[CellUpdate]) -> int:
        if not updates:
            return 0
        body = {
            "valueInputOption": USER_ENTERED,
            "data": [{"range": update.address, "values": [[update.value]]} for update in updates],
        }
        request = (
            self._service.spreadsheets()
            .values()
            .batchUpdate(spreadsheetId=self.spreadsheet_id, body=body)
        )
        response = self._execute(request, action="write")
        return int(response.get("totalUpdatedCells", len(updates)))

    def _execute(self, request: Any, *, action: str) -> dict[str, Any]:
        try:
            return request.execute(num_retries=self.num_retries) or {}
        except HttpError as exc:
            status = exc.resp.status if exc.resp is not None else None
            if status in RETRYABLE_HTTP_STATUS_CODES:
                raise TransientError(
                    message=f"Temporary Sheets API error on {action}: {status}",
                    code=str(status),
                    status_code=status,
                ) from exc
            raise SourceUnavailableError(
                message=f"Sheets API {action} failed: {exc}",
                code=str(status or "http_error"),
            ) from exc
        except auth_exceptions.RefreshError as exc:
            logger.warning("Sheets API %s credential refresh failed: %s", action, exc)
            raise SourceUnavailableError(
                message=f"Sheets API {action} credentials rejected: {exc}",
                code="auth_refresh",
            ) from exc
        except (
            auth_exceptions.TransportError,
            httplib2.HttpLib2Error,
            TimeoutError,
            OSError,
        ) as exc:
            logger.warning("Sheets API %s transport error: %s", action, exc)
            raise TransientError(
                message=f"Sheets API {action} transport error: {exc}",
                code="transport",
            ) from exc
