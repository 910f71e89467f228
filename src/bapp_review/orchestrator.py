"""Sequential review state machine over the pending task queue."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from bapp_review.config import Settings
from bapp_review.errors import (
    AuthFailedError,
    DecisionRejectedError,
    NoSessionError,
    ReviewError,
    TransientError,
    describe_error,
)
from bapp_review.evaluation import EvaluationForm
from bapp_review.http.document_extractor import DocumentExtractor
from bapp_review.http.portal_client import PortalHttpClient
from bapp_review.models import (
    Credentials,
    Decision,
    ExtractedRecord,
    ReviewState,
    Task,
    WriteBackResult,
)
from bapp_review.portal.decision import DecisionClient
from bapp_review.portal.detail import DetailClient
from bapp_review.session import (
    CredentialStore,
    FileCredentialStore,
    InMemoryCredentialStore,
    SessionStore,
)
from bapp_review.sheets.client import GoogleSheetsClient
from bapp_review.sheets.task_source import TaskSource
from bapp_review.sheets.write_back import WriteBackClient

logger = logging.getLogger(__name__)


class TransitionError(RuntimeError):
    """Raised when a step is requested from a state that does not allow it."""


@dataclass(slots=True)
class _Selection:
    """Per-task working set, discarded on every task transition."""

    task: Task
    form: EvaluationForm
    record: ExtractedRecord | None = None
    decision: Decision | None = None


class ReviewOrchestrator:
    """Owns the task index, the evaluation form and the session sequence.

    One task at a time: identifier lookup, detail fetch, decision submit and
    write-back run strictly in order, and every rotated session token is
    stored before the next call goes out.
    """

    def __init__(
        self,
        *,
        session: SessionStore,
        task_source: TaskSource,
        detail_client: DetailClient,
        decision_client: DecisionClient,
        write_back: WriteBackClient,
        assignee: str,
        extractor: DocumentExtractor | None = None,
        write_full_form: bool = False,
    ) -> None:
        self.session = session
        self.task_source = task_source
        self.detail_client = detail_client
        self.decision_client = decision_client
        self.write_back = write_back
        self.assignee = assignee
        self.extractor = extractor or DocumentExtractor()
        self.write_full_form = write_full_form

        self.state = ReviewState.IDLE
        self.tasks: list[Task] = []
        self.index = 0
        self.verification_date: date = date.today()
        self.last_error: ReviewError | None = None
        self.last_message: str | None = None
        self.last_write_back: WriteBackResult | None = None
        self.write_back_error: ReviewError | None = None
        self._selection: _Selection | None = None

    @property
    def current_task(self) -> Task | None:
        return self._selection.task if self._selection else None

    @property
    def record(self) -> ExtractedRecord | None:
        return self._selection.record if self._selection else None

    @property
    def form(self) -> EvaluationForm | None:
        return self._selection.form if self._selection else None

    @property
    def decision(self) -> Decision | None:
        return self._selection.decision if self._selection else None

    @property
    def pending_count(self) -> int:
        return max(0, len(self.tasks) - self.index)

    def load_tasks(self) -> ReviewState:
        """Renew the session if possible, then reload the queue from the sheet."""

        self._clear_error()
        self._try_renew_session()
        try:
            tasks = self.task_source.list_pending(self.assignee)
        except ReviewError as error:
            self._record_error(error)
            return self.state

        self.tasks = tasks
        self.index = 0
        self._selection = None
        self._transition(ReviewState.LIST_LOADED)
        return self.state

    def select_current(self) -> ReviewState:
        """Select the task at the current index, or finish the queue."""

        if self.state == ReviewState.IDLE:
            raise TransitionError("Load the task list before selecting a task.")
        self._selection = None
        if self.index >= len(self.tasks):
            self._transition(ReviewState.EXHAUSTED)
            return self.state
        task = self.tasks[self.index]
        self._selection = _Selection(task=task, form=EvaluationForm.defaults())
        logger.info(
            "Selected task %d/%d: row=%d sn=%s",
            self.index + 1,
            len(self.tasks),
            task.row_coordinate,
            task.serial_number,
        )
        self._transition(ReviewState.TASK_SELECTED)
        return self.state

    def load_detail(self) -> ReviewState:
        """Resolve the portal id, fetch the detail page and extract it.

        Without an id or document the task stays selected, waiting for a
        skip. Network failures leave the state in place for a retry.
        """

        selection = self._require(ReviewState.TASK_SELECTED, ReviewState.DETAIL_LOADED)
        self._clear_error()
        selection.record = None
        selection.decision = None
        task = selection.task
        try:
            lookup = self.detail_client.resolve_identifier(task, self.session.get())
            self._store_rotation(lookup.rotated_token)
            if not lookup.external_id:
                self.last_message = f"No approval entry found for {task.serial_number}."
                self._transition(ReviewState.TASK_SELECTED)
                return self.state

            detail = self.detail_client.fetch_detail(lookup.external_id, self.session.get())
            self._store_rotation(detail.rotated_token)
        except NoSessionError:
            raise
        except ReviewError as error:
            self._record_error(error)
            self._transition(ReviewState.TASK_SELECTED)
            return self.state

        if not _has_markup(detail.document):
            logger.info(
                "No detail markup for id %s (status=%s)",
                lookup.external_id,
                detail.status,
            )
            self.last_message = (
                f"No detail available for {task.serial_number} (status: {detail.status})."
            )
            self._transition(ReviewState.TASK_SELECTED)
            return self.state

        selection.record = self.extractor.extract(detail.document, lookup.external_id)
        self._transition(ReviewState.DETAIL_LOADED)
        return self.state

    def evaluate(
        self,
        form: EvaluationForm | None = None,
        *,
        note: str | None = None,
    ) -> Decision:
        """Fix the reviewer's form and derive the pending decision."""

        selection = self._require(ReviewState.DETAIL_LOADED, ReviewState.DECISION_PENDING)
        if form is not None:
            selection.form = form
        selection.decision = selection.form.decision(note)
        self._transition(ReviewState.DECISION_PENDING)
        return selection.decision

    def submit(self) -> ReviewState:
        """Submit the pending decision, write back on success, then advance."""

        selection = self._require(ReviewState.DECISION_PENDING)
        if selection.record is None or selection.decision is None:
            raise TransitionError("No decision pending for the selected task.")
        self._clear_error()
        self.write_back_error = None
        self.last_write_back = None

        task = selection.task
        row_coordinate = task.row_coordinate
        try:
            result = self.decision_client.submit(
                task,
                selection.record,
                selection.decision,
                self.session.get(),
            )
            self._store_rotation(result.rotated_token)
            if not result.succeeded:
                raise DecisionRejectedError(
                    message=f"Portal returned HTTP {result.status_code}: {result.raw_body[:200]}",
                    status_code=result.status_code,
                    raw_body=result.raw_body,
                )
        except NoSessionError:
            raise
        except ReviewError as error:
            self._record_error(error)
            return self.state

        self._transition(ReviewState.SUBMITTED)
        self._write_back(row_coordinate, selection)
        return self._advance()

    def skip(self) -> ReviewState:
        """Leave the current task untouched and move to the next one."""

        if self._selection is None:
            raise TransitionError("No task selected to skip.")
        logger.info("Skipping row %d", self._selection.task.row_coordinate)
        self._transition(ReviewState.SKIPPED)
        return self._advance()

    def _write_back(self, row_coordinate: int, selection: _Selection) -> None:
        values = dict(selection.form) if self.write_full_form else selection.form.findings()
        try:
            self.last_write_back = self.write_back.apply_updates(
                row_coordinate,
                values,
                verification_date=self.verification_date,
            )
        except ReviewError as error:
            logger.warning("Write-back for row %d failed: %s", row_coordinate, error)
            self.write_back_error = error
            self.last_message = (
                f"Decision saved, but the spreadsheet update failed: {describe_error(error)}"
            )

    def _advance(self) -> ReviewState:
        self.index += 1
        return self.select_current()

    def _try_renew_session(self) -> None:
        if self.session.credentials is None:
            return
        try:
            self.session.renew()
        except (AuthFailedError, TransientError) as error:
            logger.warning("Silent session renewal failed: %s", error)

    def _store_rotation(self, token: str | None) -> None:
        if token:
            self.session.set(token)

    def _require(self, *states: ReviewState) -> _Selection:
        if self.state not in states or self._selection is None:
            allowed = ", ".join(state.value for state in states)
            raise TransitionError(f"Expected state in ({allowed}), got {self.state.value}.")
        return self._selection

    def _transition(self, state: ReviewState) -> None:
        if state != self.state:
            logger.debug("Review state %s -> %s", self.state.value, state.value)
        self.state = state

    def _record_error(self, error: ReviewError) -> None:
        logger.warning("Review step failed in state %s: %s", self.state.value, error)
        self.last_error = error
        self.last_message = describe_error(error)

    def _clear_error(self) -> None:
        self.last_error = None
        self.last_message = None


def _has_markup(document: str) -> bool:
    return "<" in document and ">" in document


def build_orchestrator(
    settings: Settings,
    *,
    http: PortalHttpClient | None = None,
    sheets: GoogleSheetsClient | None = None,
) -> ReviewOrchestrator:
    """Wire the production clients from settings."""

    settings.validate()
    http = http or PortalHttpClient(settings.portal)
    sheets = sheets or GoogleSheetsClient.from_service_account_info(
        spreadsheet_id=settings.sheet.spreadsheet_id,
        service_account_info=settings.sheet.service_account_info,
        num_retries=settings.sheet.max_retries,
    )
    if settings.review.credential_file is not None:
        store: CredentialStore = FileCredentialStore(settings.review.credential_file)
    else:
        store = InMemoryCredentialStore()
    credentials = None
    if settings.review.username and settings.review.password:
        credentials = Credentials(
            username=settings.review.username,
            secret=settings.review.password,
        )
    session = SessionStore.from_credential_store(
        store,
        authenticator=http,
        credentials=credentials,
    )
    return ReviewOrchestrator(
        session=session,
        task_source=TaskSource(sheets, settings.sheet),
        detail_client=DetailClient(http, settings.portal),
        decision_client=DecisionClient(http, settings.portal),
        write_back=WriteBackClient(sheets, settings.sheet),
        assignee=settings.review.assignee,
        extractor=DocumentExtractor(
            tracking_case_insensitive=settings.review.tracking_case_insensitive,
        ),
        write_full_form=settings.review.write_full_form,
    )
