"""Evaluation write-back to the verification spreadsheet."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date

from bapp_review.config import COLUMN_LETTERS_PATTERN, SheetSettings
from bapp_review.models import CellUpdate, WriteBackResult
from bapp_review.sheets.client import SheetBackend

logger = logging.getLogger(__name__)


class WriteBackClient:
    """Writes one row's evaluation cells plus the verification date."""

    def __init__(self, backend: SheetBackend, settings: SheetSettings) -> None:
        self.backend = backend
        self.settings = settings

    def apply_updates(
        self,
        row_coordinate: int,
        values: Mapping[str, str],
        *,
        verification_date: date | str | None = None,
    ) -> WriteBackResult:
        cells = dict(values)
        if self.settings.date_column is not None:
            cells[self.settings.date_column] = _format_date(verification_date)

        updates: list[CellUpdate] = []
        for column, value in cells.items():
            if not COLUMN_LETTERS_PATTERN.match(column):
                logger.debug("Dropping write-back key %r: not a column letter", column)
                continue
            updates.append(CellUpdate(column=column, row=row_coordinate, value=value))

        if not updates:
            logger.info("No valid cells to write for row %d", row_coordinate)
            return WriteBackResult(row_coordinate=row_coordinate, applied_count=0)

        applied = self.backend.batch_update(updates)
        logger.info("Applied %d cell updates to row %d", applied, row_coordinate)
        return WriteBackResult(row_coordinate=row_coordinate, applied_count=applied)


def _format_date(value: date | str | None) -> str:
    if value is None:
        return date.today().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value
