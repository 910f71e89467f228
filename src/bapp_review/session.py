"""Portal session token ownership, renewal and persistence."""

from __future__ import annotations

import json
import logging
import tempfile
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from bapp_review.errors import AuthFailedError, NoSessionError
from bapp_review.http.portal_client import mask_token
from bapp_review.models import Credentials

logger = logging.getLogger(__name__)


class Authenticator(Protocol):
    """Login exchange used to obtain a fresh session token."""

    def login(self, credentials: Credentials) -> str:
        """Return a new session token or raise AuthFailedError."""
        raise NotImplementedError


@runtime_checkable
class CredentialStore(Protocol):
    """Persistence for reviewer credentials and the last-known token."""

    def load_credentials(self) -> Credentials | None:
        raise NotImplementedError

    def load_token(self) -> str | None:
        raise NotImplementedError

    def save_token(self, token: str) -> None:
        raise NotImplementedError


class InMemoryCredentialStore:
    """Credential store that lives for the process lifetime."""

    def __init__(
        self,
        credentials: Credentials | None = None,
        token: str | None = None,
    ) -> None:
        self._credentials = credentials
        self._token = token

    def load_credentials(self) -> Credentials | None:
        return self._credentials

    def load_token(self) -> str | None:
        return self._token

    def save_token(self, token: str) -> None:
        self._token = token


class FileCredentialStore:
    """JSON file credential store with atomic replace on write.

    File layout: ``{"username": ..., "password": ..., "session": ...}``.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable credential file %s: %s", self.path, exc)
            return {}
        return payload if isinstance(payload, dict) else {}

    def load_credentials(self) -> Credentials | None:
        payload = self._read()
        username = str(payload.get("username") or "")
        password = str(payload.get("password") or "")
        if not username or not password:
            return None
        return Credentials(username=username, secret=password)

    def load_token(self) -> str | None:
        return self._read().get("session") or None

    def save_token(self, token: str) -> None:
        payload = self._read()
        payload["session"] = token
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            delete=False,
            dir=str(self.path.parent),
            encoding="utf-8",
        ) as tf:
            tf.write(json.dumps(payload, indent=2))
            tmpname = tf.name
        Path(tmpname).replace(self.path)


class SessionStore:
    """Single mutable cell holding the current portal session token.

    Every client that observes a rotated token must call :meth:`set` before
    the next request goes out; the lock keeps reads and writes linearized.
    """

    def __init__(
        self,
        *,
        authenticator: Authenticator | None = None,
        token: str | None = None,
        credentials: Credentials | None = None,
        credential_store: CredentialStore | None = None,
    ) -> None:
        self._authenticator = authenticator
        self._token = token
        self._credentials = credentials
        self._credential_store = credential_store
        self._lock = threading.Lock()

    @classmethod
    def from_credential_store(
        cls,
        credential_store: CredentialStore,
        *,
        authenticator: Authenticator | None = None,
        credentials: Credentials | None = None,
    ) -> SessionStore:
        """Seed token and credentials from the store; stored credentials win."""

        return cls(
            authenticator=authenticator,
            token=credential_store.load_token(),
            credentials=credential_store.load_credentials() or credentials,
            credential_store=credential_store,
        )

    @property
    def credentials(self) -> Credentials | None:
        return self._credentials

    @property
    def has_token(self) -> bool:
        with self._lock:
            return self._token is not None

    def get(self) -> str:
        with self._lock:
            if self._token is None:
                raise NoSessionError(message="No portal session; log in first.")
            return self._token

    def set(self, token: str) -> None:
        with self._lock:
            self._token = token
            if self._credential_store is not None:
                self._credential_store.save_token(token)

    def renew(self, credentials: Credentials | None = None) -> str:
        """Log in again and replace the token; the old token survives failures."""

        effective = credentials or self._credentials
        if effective is None:
            raise AuthFailedError(message="No stored credentials for session renewal")
        if self._authenticator is None:
            raise AuthFailedError(message="No authenticator configured for session renewal")
        token = self._authenticator.login(effective)
        self._credentials = effective
        self.set(token)
        logger.info("Session renewed for %s: %s", effective.username, mask_token(token))
        return token
