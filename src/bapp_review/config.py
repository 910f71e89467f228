"""Runtime configuration for the portal, spreadsheet and review flow."""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
COLUMN_LETTERS_PATTERN = re.compile(r"^[A-Z]+$")


@dataclass(slots=True)
class PortalSettings:
    """Approval portal endpoints and transport settings."""

    base_url: str = "https://kemdikdasmen.mastermedia.co.id"
    login_path: str = "/app/auth/login"
    lookup_path: str = "/app/approval/check"
    detail_path: str = "/app/approval/detail"
    save_path: str = "/app/approval/save_approval"
    session_cookie_name: str = "ci_session"
    request_timeout_seconds: float = 30.0
    max_retries: int = 3
    user_agent: str = DEFAULT_USER_AGENT


@dataclass(slots=True)
class SheetSettings:
    """Verification spreadsheet layout."""

    spreadsheet_id: str = ""
    service_account_info: dict[str, object] = field(default_factory=dict)
    read_range: str = "A:V"
    assignee_index: int = 1
    npsn_index: int = 2
    school_name_index: int = 5
    serial_number_index: int = 12
    status_index: int = 21
    date_column: str | None = "U"
    max_retries: int = 3


@dataclass(slots=True)
class ReviewSettings:
    """Reviewer identity and extraction options."""

    assignee: str = ""
    username: str = ""
    password: str = ""
    credential_file: Path | None = None
    tracking_case_insensitive: bool = True
    write_full_form: bool = False


@dataclass(slots=True)
class Settings:
    """Application settings grouped by external system."""

    portal: PortalSettings = field(default_factory=PortalSettings)
    sheet: SheetSettings = field(default_factory=SheetSettings)
    review: ReviewSettings = field(default_factory=ReviewSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults for the production portal."""

        credential_file = os.getenv("BAPP_REVIEW_CREDENTIAL_FILE", "").strip()
        username = os.getenv("BAPP_REVIEW_USERNAME", "").strip()
        return cls(
            portal=PortalSettings(
                base_url=os.getenv(
                    "BAPP_REVIEW_PORTAL_BASE_URL",
                    "https://kemdikdasmen.mastermedia.co.id",
                ).rstrip("/"),
                login_path=os.getenv("BAPP_REVIEW_PORTAL_LOGIN_PATH", "/app/auth/login"),
                lookup_path=os.getenv("BAPP_REVIEW_PORTAL_LOOKUP_PATH", "/app/approval/check"),
                detail_path=os.getenv("BAPP_REVIEW_PORTAL_DETAIL_PATH", "/app/approval/detail"),
                save_path=os.getenv(
                    "BAPP_REVIEW_PORTAL_SAVE_PATH",
                    "/app/approval/save_approval",
                ),
                session_cookie_name=os.getenv("BAPP_REVIEW_SESSION_COOKIE_NAME", "ci_session"),
                request_timeout_seconds=float(
                    os.getenv("BAPP_REVIEW_REQUEST_TIMEOUT_SECONDS", "30.0"),
                ),
                max_retries=int(os.getenv("BAPP_REVIEW_MAX_RETRIES", "3")),
                user_agent=os.getenv("BAPP_REVIEW_USER_AGENT", DEFAULT_USER_AGENT),
            ),
            sheet=SheetSettings(
                spreadsheet_id=os.getenv("BAPP_REVIEW_SPREADSHEET_ID", "").strip(),
                service_account_info=_load_service_account_info(),
                read_range=os.getenv("BAPP_REVIEW_SHEET_RANGE", "A:V"),
                date_column=_env_optional("BAPP_REVIEW_DATE_COLUMN", "U"),
                max_retries=int(os.getenv("BAPP_REVIEW_SHEET_MAX_RETRIES", "3")),
            ),
            review=ReviewSettings(
                assignee=os.getenv("BAPP_REVIEW_ASSIGNEE", "").strip() or username,
                username=username,
                password=os.getenv("BAPP_REVIEW_PASSWORD", ""),
                credential_file=Path(credential_file) if credential_file else None,
                tracking_case_insensitive=_env_bool(
                    "BAPP_REVIEW_TRACKING_CASE_INSENSITIVE",
                    default=True,
                ),
                write_full_form=_env_bool("BAPP_REVIEW_WRITE_FULL_FORM", default=False),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if required settings are missing or invalid."""

        _validate_base_url(self.portal.base_url)
        if self.portal.request_timeout_seconds <= 0:
            raise ValueError("BAPP_REVIEW_REQUEST_TIMEOUT_SECONDS must be > 0.")
        if self.portal.max_retries < 0:
            raise ValueError("BAPP_REVIEW_MAX_RETRIES must be >= 0.")
        if not self.portal.session_cookie_name:
            raise ValueError("BAPP_REVIEW_SESSION_COOKIE_NAME must not be empty.")
        if self.sheet.max_retries < 0:
            raise ValueError("BAPP_REVIEW_SHEET_MAX_RETRIES must be >= 0.")
        if not self.sheet.spreadsheet_id:
            raise ValueError("BAPP_REVIEW_SPREADSHEET_ID is required.")
        if not self.sheet.service_account_info:
            raise ValueError(
                "A service account is required. "
                "Set BAPP_REVIEW_SERVICE_ACCOUNT_JSON or BAPP_REVIEW_SERVICE_ACCOUNT_FILE.",
            )
        if self.sheet.date_column is not None and not COLUMN_LETTERS_PATTERN.match(
            self.sheet.date_column,
        ):
            raise ValueError(
                f"Invalid BAPP_REVIEW_DATE_COLUMN: {self.sheet.date_column!r}. "
                "Expected column letters such as 'U'.",
            )
        if not self.review.assignee:
            raise ValueError("BAPP_REVIEW_ASSIGNEE (or BAPP_REVIEW_USERNAME) is required.")


def _load_service_account_info() -> dict[str, object]:
    raw = os.getenv("BAPP_REVIEW_SERVICE_ACCOUNT_JSON", "").strip()
    path = os.getenv("BAPP_REVIEW_SERVICE_ACCOUNT_FILE", "").strip()
    if not raw and path:
        raw = Path(path).read_text(encoding="utf-8")
    if not raw:
        return {}
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as error:
        raise ValueError("Invalid service account JSON.") from error
    if not isinstance(info, dict):
        raise ValueError("Service account JSON must be an object.")
    return info


def _validate_base_url(value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            "Invalid BAPP_REVIEW_PORTAL_BASE_URL: "
            f"{value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )


def _env_optional(name: str, default: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip()
    return normalized or None


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
