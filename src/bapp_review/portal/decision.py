"""Accept/reject submission to the portal's save-approval endpoint."""

from __future__ import annotations

import logging

from bapp_review.config import PortalSettings
from bapp_review.http.portal_client import PortalHttpClient
from bapp_review.models import Decision, DecisionCode, ExtractedRecord, SubmitResult, Task

logger = logging.getLogger(__name__)

_SUCCESS_FLAGS: tuple[str, ...] = ("status", "success")
_FAILURE_WORDS = frozenset({"error", "failed", "fail", "false", "0", "gagal"})


class DecisionClient:
    """Submits one decision for the record currently under review."""

    def __init__(self, http: PortalHttpClient, settings: PortalSettings) -> None:
        self.http = http
        self.settings = settings

    def submit(
        self,
        task: Task,
        record: ExtractedRecord,
        decision: Decision,
        token: str,
    ) -> SubmitResult:
        if decision.code == DecisionCode.REJECT and not decision.note.strip():
            raise ValueError("A reject decision requires a note.")
        if not record.external_id:
            raise ValueError(f"Row {task.row_coordinate} has no portal id to submit against.")

        npsn = record.school.npsn or task.npsn
        logger.info(
            "Submitting approval: status=%d id=%s npsn=%s resi=%s",
            int(decision.code),
            record.external_id,
            npsn,
            record.tracking_number,
        )
        response = self.http.post_form(
            self.settings.save_path,
            {
                "status": str(int(decision.code)),
                "id": record.external_id,
                "npsn": npsn,
                "resi": record.tracking_number,
                "note": decision.note,
            },
            token=token,
        )

        body = response.json_body()
        data = body if isinstance(body, dict) else {"raw": response.text}
        succeeded = response.is_success and _flag_ok(data)
        if not succeeded:
            logger.warning(
                "Portal refused decision for id %s: HTTP %d %s",
                record.external_id,
                response.status_code,
                response.text[:200],
            )
        return SubmitResult(
            succeeded=succeeded,
            status_code=response.status_code,
            raw_body=response.text,
            data=data,
            rotated_token=response.rotated_token,
        )


def _flag_ok(data: dict[str, object]) -> bool:
    for key in _SUCCESS_FLAGS:
        if key not in data:
            continue
        value = data[key]
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() not in _FAILURE_WORDS
        if isinstance(value, int):
            return value != 0
    return True
