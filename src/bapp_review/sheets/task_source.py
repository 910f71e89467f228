"""Pending review queue derived from the verification spreadsheet."""

from __future__ import annotations

import logging

from bapp_review.config import SheetSettings
from bapp_review.errors import SourceUnavailableError
from bapp_review.models import Task
from bapp_review.sheets.client import SheetBackend

logger = logging.getLogger(__name__)


class TaskSource:
    """Filters spreadsheet rows down to one reviewer's unresolved items."""

    def __init__(self, backend: SheetBackend, settings: SheetSettings) -> None:
        self.backend = backend
        self.settings = settings

    def list_pending(self, assignee: str) -> list[Task]:
        """Return the assignee's rows with an empty status, in sheet order.

        ``row_coordinate`` is the 1-based sheet row, counted over the full
        unfiltered range so later write-backs hit the physical row.
        """

        rows = self.backend.get_values(self.settings.read_range)
        if not rows:
            raise SourceUnavailableError(
                message=f"Spreadsheet returned no rows for range {self.settings.read_range}",
            )

        wanted = assignee.strip()
        tasks: list[Task] = []
        for index, row in enumerate(rows):
            if index == 0:
                continue
            row_assignee = _cell(row, self.settings.assignee_index)
            row_status = _cell(row, self.settings.status_index)
            if row_assignee != wanted or row_status:
                continue
            tasks.append(
                Task(
                    row_coordinate=index + 1,
                    npsn=_cell(row, self.settings.npsn_index),
                    school_name=_cell(row, self.settings.school_name_index),
                    serial_number=_cell(row, self.settings.serial_number_index),
                    assignee=row_assignee,
                ),
            )

        logger.info(
            "Loaded %d pending tasks for %s out of %d sheet rows",
            len(tasks),
            wanted,
            len(rows) - 1,
        )
        return tasks


def _cell(row: list[str], index: int) -> str:
    if index >= len(row):
        return ""
    value = row[index]
    return value.strip() if value else ""
