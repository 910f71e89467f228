from __future__ import annotations

from datetime import date

import allure
from conftest import FakeSheet

from bapp_review.config import SheetSettings
from bapp_review.sheets.write_back import WriteBackClient

pytestmark = [
    allure.epic("Review Pipeline"),
    allure.feature("Spreadsheet Write-back"),
]


def test_apply_updates_writes_values_and_verification_date(sheet_settings: SheetSettings) -> None:
    sheet = FakeSheet([])
    client = WriteBackClient(sheet, sheet_settings)

    result = client.apply_updates(
        7,
        {"G": "Tidak Ada", "T": "Tidak Terlihat"},
        verification_date=date(2026, 10, 19),
    )

    assert result.row_coordinate == 7
    assert result.applied_count == 3
    assert [(u.address, u.value) for u in sheet.updates[0]] == [
        ("G7", "Tidak Ada"),
        ("T7", "Tidak Terlihat"),
        ("U7", "2026-10-19"),
    ]


def test_accept_writes_only_the_date(sheet_settings: SheetSettings) -> None:
    sheet = FakeSheet([])

    result = WriteBackClient(sheet, sheet_settings).apply_updates(
        2,
        {},
        verification_date="19/10/2026",
    )

    assert result.applied_count == 1
    assert [(u.address, u.value) for u in sheet.updates[0]] == [("U2", "19/10/2026")]


def test_date_defaults_to_today(sheet_settings: SheetSettings) -> None:
    sheet = FakeSheet([])

    WriteBackClient(sheet, sheet_settings).apply_updates(2, {})

    assert sheet.updates[0][0].value == date.today().isoformat()


def test_invalid_column_keys_are_dropped(sheet_settings: SheetSettings) -> None:
    sheet = FakeSheet([])

    result = WriteBackClient(sheet, sheet_settings).apply_updates(
        3,
        {"g": "x", "G1": "y", "": "z", "H": "Tidak Ada"},
        verification_date="2026-10-19",
    )

    assert result.applied_count == 2
    assert [u.address for u in sheet.updates[0]] == ["H3", "U3"]


def test_nothing_to_write_skips_the_backend() -> None:
    sheet = FakeSheet([])
    settings = SheetSettings(spreadsheet_id="sheet-1", date_column=None)

    result = WriteBackClient(sheet, settings).apply_updates(5, {"bad key": "x"})

    assert result.applied_count == 0
    assert sheet.updates == []
