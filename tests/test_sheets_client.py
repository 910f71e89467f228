from __future__ import annotations

from unittest.mock import MagicMock

import allure
import httplib2
import pytest
from google.auth import exceptions as auth_exceptions
from googleapiclient.errors import HttpError

from bapp_review.errors import SourceUnavailableError, TransientError
from bapp_review.models import CellUpdate
from bapp_review.sheets.client import GoogleSheetsClient

pytestmark = [
    allure.epic("Review Pipeline"),
    allure.feature("Google Sheets"),
]


def _http_error(status: int) -> HttpError:
    return HttpError(httplib2.Response({"status": status}), b"sheet error")


def test_get_values_stringifies_cells() -> None:
    service = MagicMock()
    service.spreadsheets().values().get().execute.return_value = {
        "values": [["No", "Verifikator"], [1, "rina"]],
    }
    client = GoogleSheetsClient(spreadsheet_id="sheet-1", service=service)

    assert client.get_values("A:V") == [["No", "Verifikator"], ["1", "rina"]]
    service.spreadsheets().values().get.assert_called_with(spreadsheetId="sheet-1", range="A:V")


def test_get_values_returns_none_without_values() -> None:
    service = MagicMock()
    service.spreadsheets().values().get().execute.return_value = {"range": "A1:V1"}

    assert GoogleSheetsClient(spreadsheet_id="s", service=service).get_values("A:V") is None


def test_batch_update_sends_user_entered_cells() -> None:
    service = MagicMock()
    service.spreadsheets().values().batchUpdate().execute.return_value = {"totalUpdatedCells": 2}
    client = GoogleSheetsClient(spreadsheet_id="sheet-1", service=service)

    applied = client.batch_update(
        [CellUpdate(column="G", row=4, value="Tidak Ada"), CellUpdate("U", 4, "2026-10-19")],
    )

    assert applied == 2
    service.spreadsheets().values().batchUpdate.assert_called_with(
        spreadsheetId="sheet-1",
        body={
            "valueInputOption": "USER_ENTERED",
            "data": [
                {"range": "G4", "values": [["Tidak Ada"]]},
                {"range": "U4", "values": [["2026-10-19"]]},
            ],
        },
    )


def test_batch_update_with_no_cells_is_a_no_op() -> None:
    service = MagicMock()

    assert GoogleSheetsClient(spreadsheet_id="s", service=service).batch_update([]) == 0
    service.spreadsheets().values().batchUpdate().execute.assert_not_called()


def test_retryable_http_error_maps_to_transient() -> None:
    service = MagicMock()
    service.spreadsheets().values().get().execute.side_effect = _http_error(503)

    with pytest.raises(TransientError) as excinfo:
        GoogleSheetsClient(spreadsheet_id="s", service=service).get_values("A:V")
    assert excinfo.value.status_code == 503


def test_permission_error_maps_to_source_unavailable() -> None:
    service = MagicMock()
    service.spreadsheets().values().batchUpdate().execute.side_effect = _http_error(403)

    with pytest.raises(SourceUnavailableError) as excinfo:
        GoogleSheetsClient(spreadsheet_id="s", service=service).batch_update(
            [CellUpdate("U", 2, "2026-10-19")],
        )
    assert excinfo.value.code == "403"


def test_socket_error_maps_to_transient() -> None:
    service = MagicMock()
    service.spreadsheets().values().get().execute.side_effect = TimeoutError("timed out")

    with pytest.raises(TransientError, match="transport error"):
        GoogleSheetsClient(spreadsheet_id="s", service=service).get_values("A:V")


@pytest.mark.parametrize(
    "error",
    [
        httplib2.ServerNotFoundError("Unable to find the server at sheets.googleapis.com"),
        auth_exceptions.TransportError("connection reset"),
    ],
)
def test_network_errors_map_to_transient(error: Exception) -> None:
    service = MagicMock()
    service.spreadsheets().values().get().execute.side_effect = error

    with pytest.raises(TransientError) as excinfo:
        GoogleSheetsClient(spreadsheet_id="s", service=service).get_values("A:V")
    assert excinfo.value.code == "transport"


def test_credential_refresh_failure_maps_to_source_unavailable() -> None:
    service = MagicMock()
    service.spreadsheets().values().batchUpdate().execute.side_effect = (
        auth_exceptions.RefreshError("invalid_grant: account disabled")
    )

    with pytest.raises(SourceUnavailableError) as excinfo:
        GoogleSheetsClient(spreadsheet_id="s", service=service).batch_update(
            [CellUpdate("U", 2, "2026-10-19")],
        )
    assert excinfo.value.code == "auth_refresh"


def test_requests_use_configured_retries() -> None:
    service = MagicMock()
    service.spreadsheets().values().get().execute.return_value = {"values": [["No"]]}

    GoogleSheetsClient(spreadsheet_id="s", service=service, num_retries=2).get_values("A:V")

    service.spreadsheets().values().get().execute.assert_called_once_with(num_retries=2)
