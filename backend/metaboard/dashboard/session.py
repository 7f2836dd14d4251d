"""Credential stores for the dashboard.

The dashboard remembers the Meta token and ad account ID between sessions.
Instead of ambient global storage, the controller receives one of these
stores explicitly, with a three-call contract:

    load()   read on init (None when nothing is stored)
    save()   write after a successful configuration
    clear()  remove on logout
"""

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardCredentials:
    access_token: str
    account_id: str

    @property
    def complete(self) -> bool:
        return bool(self.access_token.strip() and self.account_id.strip())


class CredentialStore:
    """Interface for persisted dashboard credentials."""

    def load(self) -> Optional[DashboardCredentials]:
        raise NotImplementedError

    def save(self, credentials: DashboardCredentials) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class InMemoryCredentialStore(CredentialStore):
    """Keeps credentials for the lifetime of the process only."""

    def __init__(self, credentials: Optional[DashboardCredentials] = None):
        self._credentials = credentials

    def load(self) -> Optional[DashboardCredentials]:
        return self._credentials

    def save(self, credentials: DashboardCredentials) -> None:
        self._credentials = credentials

    def clear(self) -> None:
        self._credentials = None


class FileCredentialStore(CredentialStore):
    """Keeps credentials in a small JSON file readable only by the owner."""

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> Optional[DashboardCredentials]:
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            credentials = DashboardCredentials(
                access_token=str(payload["access_token"]),
                account_id=str(payload["account_id"]),
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("[DASHBOARD] Ignoring unreadable credentials file %s: %s", self.path, e)
            return None
        return credentials if credentials.complete else None

    def save(self, credentials: DashboardCredentials) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(asdict(credentials)), encoding="utf-8")
        os.chmod(self.path, 0o600)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
