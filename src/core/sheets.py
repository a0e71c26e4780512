"""
Spreadsheet reference resolution.

A (station, form type) pair resolves to a document id and sharable URL,
first from the static sheet table, then by copying a template through the
Google Drive API, and finally from the first station's static entry.
"""

from datetime import datetime
from typing import Any, Dict, Optional

import requests

from util.logging import logger

from .config import GOOGLE_DRIVE_API, GOOGLE_HTTP_TIMEOUT_SEC, GOOGLE_TOKEN_URL, get_google_credentials
from .errors import NotFoundError, UpstreamError
from .schema import SHEET_TYPES, STATIONS, SheetLocation
from .stations import StationDirectory, get_station_directory
from .validation import require_member


class DriveClient:
    """Minimal Google Drive v3 client: copy a file and share it by link."""

    def __init__(self, client_id: str, client_secret: str, refresh_token: str,
                 timeout_s: int = GOOGLE_HTTP_TIMEOUT_SEC, session: requests.Session = None):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.timeout_s = timeout_s
        self.session = session or requests.Session()

    def _access_token(self) -> str:
        r = self.session.post(GOOGLE_TOKEN_URL, data={
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": self.refresh_token,
            "grant_type": "refresh_token",
        }, timeout=self.timeout_s)
        r.raise_for_status()
        token = r.json().get("access_token")
        if not token:
            raise UpstreamError("Google token endpoint returned no access token")
        return token

    def _post(self, url: str, token: str, payload: Dict[str, Any], params: Dict[str, Any] = None) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"}
        r = self.session.post(url, headers=headers, json=payload, params=params, timeout=self.timeout_s)
        r.raise_for_status()
        return r.json()

    def copy_and_share(self, template_id: str, name: str) -> SheetLocation:
        """Copy a template document and make the copy editable by link."""
        try:
            token = self._access_token()
            copied = self._post(
                f"{GOOGLE_DRIVE_API}/files/{template_id}/copy",
                token,
                {"name": name},
                params={"fields": "id,webViewLink"},
            )
            file_id = copied["id"]
            self._post(
                f"{GOOGLE_DRIVE_API}/files/{file_id}/permissions",
                token,
                {"role": "writer", "type": "anyone"},
            )
        except requests.RequestException as e:
            detail = ""
            if getattr(e, "response", None) is not None:
                detail = f": {e.response.text[:200]}"
            raise UpstreamError(f"Google Drive request failed ({e}){detail}") from e
        except (KeyError, ValueError) as e:
            raise UpstreamError(f"Unexpected Google Drive response: {e}") from e

        url = copied.get("webViewLink") or f"https://docs.google.com/spreadsheets/d/{file_id}/edit"
        return SheetLocation(identifier=file_id, url=url, source="copy")


def get_drive_client() -> Optional[DriveClient]:
    """Drive client built from environment credentials, or None if incomplete."""
    client_id, client_secret, refresh_token = get_google_credentials()
    if not all([client_id, client_secret, refresh_token]):
        return None
    return DriveClient(client_id, client_secret, refresh_token)


def resolve_sheet(station: str, form_type: str, directory: StationDirectory = None,
                  drive: DriveClient = None) -> SheetLocation:
    """Map a station and form type to a sheet location.

    Order: static entry, template copy, first station's static entry.
    Raises UpstreamError when a copy is needed but cannot be made, and
    NotFoundError when nothing is configured for the form type.
    """
    station = require_member('station', station, STATIONS)
    form_type = require_member('sheetType', form_type, SHEET_TYPES)
    directory = directory or get_station_directory()

    location = directory.static_sheet(station, form_type)
    if location:
        logger.log_sheet_resolution(station, form_type, "static")
        return location

    template_id = directory.templates.get(form_type)
    if template_id:
        drive = drive or get_drive_client()
        if drive is None:
            logger.log_sheet_resolution(station, form_type, "copy", "failed", {"reason": "missing credentials"})
            raise UpstreamError("Google Drive credentials are not configured")

        name = f"{station} {form_type} {datetime.now():%Y-%m-%d}"
        try:
            location = drive.copy_and_share(template_id, name)
        except UpstreamError as e:
            logger.log_sheet_resolution(station, form_type, "copy", "failed", {"error": str(e)[:100]})
            raise
        logger.log_sheet_resolution(station, form_type, "copy", details={"sheet_id": location.identifier})
        return location

    first = directory.first_station
    if first is not None:
        fallback = directory.static_sheet(first.name, form_type)
        if fallback:
            logger.log_sheet_resolution(station, form_type, "default", details={"from_station": first.name})
            return SheetLocation(identifier=fallback.identifier, url=fallback.url, source="default")

    logger.log_sheet_resolution(station, form_type, "none", "failed")
    raise NotFoundError(f"No sheet configured for {station} {form_type}")
