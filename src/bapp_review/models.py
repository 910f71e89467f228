"""Domain models for the review queue, portal documents and decisions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

TRACKING_NUMBER_UNKNOWN = "-"
HISTORY_NOTE_UNKNOWN = " - "
DEFAULT_IMAGE_CAPTION = "Dokumentasi"


class DecisionCode(IntEnum):
    """Status codes understood by the portal's save-approval endpoint."""

    ACCEPT = 2
    REJECT = 3


class ReviewState(str, Enum):
    """Lifecycle states of the review orchestrator."""

    IDLE = "idle"
    LIST_LOADED = "list_loaded"
    TASK_SELECTED = "task_selected"
    DETAIL_LOADED = "detail_loaded"
    DECISION_PENDING = "decision_pending"
    SUBMITTED = "submitted"
    SKIPPED = "skipped"
    EXHAUSTED = "exhausted"


@dataclass(slots=True, frozen=True)
class Credentials:
    """Portal login credentials."""

    username: str
    secret: str


@dataclass(slots=True, frozen=True)
class Task:
    """One pending spreadsheet row assigned to a reviewer."""

    row_coordinate: int
    npsn: str
    school_name: str
    serial_number: str
    assignee: str


@dataclass(slots=True, frozen=True)
class SchoolInfo:
    npsn: str = ""
    name: str = ""
    address: str = ""
    district: str = ""
    regency: str = ""
    province: str = ""


@dataclass(slots=True, frozen=True)
class ItemInfo:
    serial_number: str = ""
    item_name: str = ""


@dataclass(slots=True, frozen=True)
class ImageRef:
    source: str
    caption: str = DEFAULT_IMAGE_CAPTION


@dataclass(slots=True, frozen=True)
class ApprovalLogEntry:
    """One entry of the portal's approval history."""

    date: str = ""
    status: str = ""
    user: str = ""
    note: str = HISTORY_NOTE_UNKNOWN


@dataclass(slots=True, frozen=True)
class ExtractedRecord:
    """Structured view of one portal detail document."""

    school: SchoolInfo = field(default_factory=SchoolInfo)
    item: ItemInfo = field(default_factory=ItemInfo)
    images: tuple[ImageRef, ...] = ()
    history: tuple[ApprovalLogEntry, ...] = ()
    external_id: str = ""
    tracking_number: str = TRACKING_NUMBER_UNKNOWN

    def degraded_fields(self) -> list[str]:
        """Return names of fields that hold an extraction-failure sentinel."""

        degraded: list[str] = []
        if self.tracking_number == TRACKING_NUMBER_UNKNOWN:
            degraded.append("tracking_number")
        if not self.external_id:
            degraded.append("external_id")
        for index, entry in enumerate(self.history):
            if entry.note == HISTORY_NOTE_UNKNOWN:
                degraded.append(f"history[{index}].note")
        return degraded


@dataclass(slots=True, frozen=True)
class Decision:
    """Accept/reject verdict derived from an evaluation form."""

    code: DecisionCode
    note: str = ""

    @property
    def accepted(self) -> bool:
        return self.code == DecisionCode.ACCEPT


@dataclass(slots=True)
class IdentifierResult:
    """Portal id lookup outcome for one task."""

    external_id: str | None
    rotated_token: str | None = None


@dataclass(slots=True)
class DetailResult:
    """Raw detail document as returned by the portal."""

    document: str
    status: str
    rotated_token: str | None = None


@dataclass(slots=True)
class SubmitResult:
    """Decision submission outcome."""

    succeeded: bool
    status_code: int
    raw_body: str
    data: dict[str, Any] = field(default_factory=dict)
    rotated_token: str | None = None


@dataclass(slots=True)
class CellUpdate:
    """One cell write addressed as ``<Column><Row>``."""

    column: str
    row: int
    value: str

    @property
    def address(self) -> str:
        return f"{self.column}{self.row}"


@dataclass(slots=True)
class WriteBackResult:
    """Result of one batch of cell writes."""

    row_coordinate: int
    applied_count: int
