"""Google Sheets API Client Service.

WHAT:
    Thin wrapper around the Sheets v4 `spreadsheets.values` resource,
    authenticated with a service account (email + private key).

WHY:
    - Keeps googleapiclient request building out of the merge logic
    - Translates HttpError into SheetsClientError with status and details

All writes use valueInputOption=RAW so numbers land as numbers and text is
never interpreted as a formula.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"

# Error text the API returns for a range on a tab that does not exist
UNKNOWN_RANGE_MESSAGE = "Unable to parse range"


class SheetsClientError(Exception):
    """Raised when the Sheets API answers with an error."""

    def __init__(self, message: str, http_status: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.http_status = http_status
        self.details = details


def a1_range(tab: str, cells: str) -> str:
    """Return an A1 range on a named tab, e.g. "'Meta Ads Data'!A2:K"."""
    quoted = tab.replace("'", "''")
    return f"'{quoted}'!{cells}"


class SheetsClient:
    """Client for reading and writing cell values of one spreadsheet service.

    Usage:
        ```python
        client = SheetsClient.from_service_account(email, private_key)
        rows = client.read_rows(spreadsheet_id, a1_range("Data", "A2:K"))
        ```
    """

    def __init__(self, service):
        self.service = service

    @classmethod
    def from_service_account(cls, service_account_email: str, private_key: str) -> "SheetsClient":
        info = {
            "type": "service_account",
            "client_email": service_account_email,
            "private_key": private_key,
            "token_uri": TOKEN_URI,
        }
        credentials = service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
        service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        logger.info("[SHEETS_CLIENT] Initialized for %s", service_account_email)
        return cls(service)

    @property
    def _values(self):
        return self.service.spreadsheets().values()

    def ensure_tab(self, spreadsheet_id: str, tab: str, headers: List[str]) -> bool:
        """Make sure `tab` exists and starts with a header row.

        Returns:
            True when the tab had to be created.
        """
        try:
            response = self._values.get(
                spreadsheetId=spreadsheet_id,
                range=a1_range(tab, "A1"),
            ).execute()
        except HttpError as e:
            # An unknown tab name is reported as an unparsable range (400)
            if not self._is_unknown_range(e):
                raise self._translate(e, f"reading header of '{tab}'")
            self._add_tab(spreadsheet_id, tab)
            self._write_headers(spreadsheet_id, tab, headers)
            logger.info("[SHEETS_CLIENT] Created tab '%s'", tab)
            return True

        if not response.get("values"):
            self._write_headers(spreadsheet_id, tab, headers)
        return False

    def read_rows(self, spreadsheet_id: str, range_: str) -> List[List[Any]]:
        """Return the rows of a range (trailing empty cells are omitted by the API).

        Cells are read unformatted: numeric cells come back as numbers, not as
        locale/currency formatted text.
        """
        try:
            response = self._values.get(
                spreadsheetId=spreadsheet_id,
                range=range_,
                valueRenderOption="UNFORMATTED_VALUE",
            ).execute()
        except HttpError as e:
            raise self._translate(e, f"reading {range_}")
        return response.get("values", [])

    def batch_update(self, spreadsheet_id: str, updates: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Write several ranges in a single call. `updates` items: {"range", "values"}."""
        try:
            return self._values.batchUpdate(
                spreadsheetId=spreadsheet_id,
                body={"valueInputOption": "RAW", "data": updates},
            ).execute()
        except HttpError as e:
            raise self._translate(e, f"updating {len(updates)} ranges")

    def append_rows(self, spreadsheet_id: str, range_: str, rows: List[List[Any]]) -> Dict[str, Any]:
        """Append rows after the last row of the table found in range_."""
        try:
            return self._values.append(
                spreadsheetId=spreadsheet_id,
                range=range_,
                valueInputOption="RAW",
                insertDataOption="INSERT_ROWS",
                body={"values": rows},
            ).execute()
        except HttpError as e:
            raise self._translate(e, f"appending {len(rows)} rows")

    def _add_tab(self, spreadsheet_id: str, tab: str) -> None:
        try:
            self.service.spreadsheets().batchUpdate(
                spreadsheetId=spreadsheet_id,
                body={"requests": [{"addSheet": {"properties": {"title": tab}}}]},
            ).execute()
        except HttpError as e:
            raise self._translate(e, f"creating tab '{tab}'")

    def _write_headers(self, spreadsheet_id: str, tab: str, headers: List[str]) -> None:
        try:
            self._values.update(
                spreadsheetId=spreadsheet_id,
                range=a1_range(tab, "A1"),
                valueInputOption="RAW",
                body={"values": [headers]},
            ).execute()
        except HttpError as e:
            raise self._translate(e, f"writing headers of '{tab}'")

    @staticmethod
    def _error_payload(error: HttpError) -> Tuple[Optional[str], Any]:
        """Return (message, error object) from a Sheets error body, if it has one."""
        try:
            payload = json.loads(error.content.decode("utf-8"))
        except (ValueError, AttributeError):
            return None, None
        details = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(details, dict):
            return details.get("message"), details
        return None, details

    @classmethod
    def _is_unknown_range(cls, error: HttpError) -> bool:
        if error.resp.status != 400:
            return False
        message, _ = cls._error_payload(error)
        return bool(message) and UNKNOWN_RANGE_MESSAGE in message

    @classmethod
    def _translate(cls, error: HttpError, context: str) -> SheetsClientError:
        status = error.resp.status
        message, details = cls._error_payload(error)
        message = message or str(error)
        logger.error("[SHEETS_CLIENT] API error while %s: HTTP %s, %s", context, status, message)
        return SheetsClientError(message, status, details)
