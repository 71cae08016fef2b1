"""
Google Sheets client for the shipping tables.

Reads flat cell ranges with the Sheets v4 API. A read that fails because the
configured tab name no longer parses (the owner renamed the tab, changed its
casing, added a space...) gets one retry against the closest existing tab.

Usage:
    source = GoogleSheetsTableSource.from_config(config.sheets)
    rows = source.fetch_range("shipping_config!A2:H1000")
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from google.auth import default as google_auth_default
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from shipping_rates.config import SheetsConfig
from shipping_rates.errors import ShippingConfigError
from shipping_rates.range_resolver import resolve_range


logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]


class TableSource(Protocol):
    def fetch_range(self, range_a1: str) -> list[list[str]]: ...


def build_credentials(*, credentials_json: str | None, credentials_file: str | None) -> Any:
    """
    Resolve service-account credentials.

    Inline JSON wins over a keyfile path; with neither, Application Default
    Credentials are used.
    """
    if credentials_json:
        try:
            info = json.loads(credentials_json)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse GOOGLE_SHEETS_SECRET_KEY")
            raise ShippingConfigError("Invalid GOOGLE_SHEETS_SECRET_KEY value") from e
        try:
            return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
        except (ValueError, KeyError) as e:
            raise ShippingConfigError("GOOGLE_SHEETS_SECRET_KEY is not a service-account key") from e

    if credentials_file:
        path = Path(credentials_file).expanduser()
        if not path.exists():
            raise ShippingConfigError(f"Credentials file not found: {path}")
        try:
            return service_account.Credentials.from_service_account_file(str(path), scopes=SCOPES)
        except (ValueError, KeyError) as e:
            raise ShippingConfigError(f"Invalid service-account key file: {path}") from e

    try:
        credentials, _project = google_auth_default(scopes=SCOPES)
    except GoogleAuthError as e:
        raise ShippingConfigError(
            "No Google credentials. Set GOOGLE_SHEETS_SECRET_KEY or GOOGLE_APPLICATION_CREDENTIALS."
        ) from e
    return credentials


class GoogleSheetsTableSource:
    def __init__(
        self,
        *,
        sheet_id: str,
        credentials_json: str | None = None,
        credentials_file: str | None = None,
        service: Any | None = None,
    ) -> None:
        self.sheet_id = sheet_id
        self._credentials_json = credentials_json
        self._credentials_file = credentials_file
        self._service = service

    @classmethod
    def from_config(cls, config: SheetsConfig) -> GoogleSheetsTableSource:
        return cls(
            sheet_id=config.sheet_id,
            credentials_json=config.credentials_json,
            credentials_file=config.credentials_file,
        )

    def _sheets(self) -> Any:
        if not self.sheet_id:
            raise ShippingConfigError("GOOGLE_SHEETS_ID environment variable is not set")
        if self._service is None:
            credentials = build_credentials(
                credentials_json=self._credentials_json,
                credentials_file=self._credentials_file,
            )
            self._service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        return self._service

    def _get_values(self, range_a1: str) -> list[list[str]]:
        response = (
            self._sheets().spreadsheets().values().get(spreadsheetId=self.sheet_id, range=range_a1).execute()
        )
        return [list(row) for row in response.get("values", [])]

    def list_sheet_titles(self) -> list[str]:
        meta = self._sheets().spreadsheets().get(spreadsheetId=self.sheet_id, fields="sheets.properties.title").execute()
        titles = [str((sheet.get("properties") or {}).get("title") or "") for sheet in meta.get("sheets", [])]
        return [t for t in titles if t]

    def fetch_range(self, range_a1: str) -> list[list[str]]:
        try:
            return self._get_values(range_a1)
        except HttpError as e:
            fallback = resolve_range(range_a1, e, list_titles=self.list_sheet_titles)
            if fallback is None:
                raise
            logger.warning(
                'Retrying Google Sheets read with resolved range "%s" (configured "%s")', fallback, range_a1
            )
            return self._get_values(fallback)
