# SPDX-FileCopyrightText: 2025 Team Rotation Contributors
# SPDX-License-Identifier: MPL-2.0

"""Google Calendar integration using installed-app OAuth."""

import logging
import time
from dataclasses import dataclass
from pathlib import Path

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from team_rotation.config import Settings
from team_rotation.errors import AuthorizationError, CalendarNotFound, PublishError
from team_rotation.scheduler import RotationEvent

logger = logging.getLogger(__name__)

# Network failures below the HTTP layer
TRANSPORT_ERRORS = (OSError, TransportError, httplib2.HttpLib2Error)

SCOPES = ["https://www.googleapis.com/auth/calendar"]


@dataclass(frozen=True)
class EventHandle:
    """Reference to a created calendar event."""

    event_id: str
    html_link: str | None = None


def load_cached_token(token_file: str | Path) -> Credentials | None:
    """Load a previously saved token, or None if there is none."""
    path = Path(token_file)
    if not path.exists():
        return None
    try:
        return Credentials.from_authorized_user_file(str(path), SCOPES)
    except ValueError as e:
        logger.warning(f"Ignoring unreadable token file {path}: {e}")
        return None


def save_token(token_file: str | Path, credentials: Credentials) -> None:
    path = Path(token_file)
    logger.info(f"Saving credential file to: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(credentials.to_json())


def authorize(settings: Settings) -> Credentials:
    """Run the browser consent flow once.

    The flow's local server handles a single redirect on ``oauth_port``,
    checks the state parameter and closes its socket before returning.
    """
    secrets = Path(settings.credentials_file)
    if not secrets.exists():
        raise AuthorizationError(f"Unable to read client secret file: {secrets}")

    try:
        flow = InstalledAppFlow.from_client_secrets_file(str(secrets), SCOPES)
    except ValueError as e:
        raise AuthorizationError(f"Unable to parse client secret file: {e}") from e

    started = time.monotonic()
    try:
        return flow.run_local_server(
            port=settings.oauth_port,
            open_browser=False,
            authorization_prompt_message="Go to the following link in your browser:\n{url}",
            success_message="Authorization completed, you can close this window.",
            timeout_seconds=settings.auth_timeout,
        )
    except Exception as e:
        if time.monotonic() - started >= settings.auth_timeout:
            raise AuthorizationError(
                f"Authorization did not complete within {settings.auth_timeout}s"
            ) from e
        raise AuthorizationError(f"Authorization failed: {e}") from e


def get_credentials(settings: Settings) -> Credentials:
    """Return valid credentials, refreshing or re-authorizing as needed."""
    credentials = load_cached_token(settings.token_file)

    if credentials and credentials.valid:
        return credentials

    if credentials and credentials.expired and credentials.refresh_token:
        try:
            credentials.refresh(Request())
            save_token(settings.token_file, credentials)
            return credentials
        except RefreshError as e:
            logger.warning(f"Token refresh failed, re-authorizing: {e}")

    credentials = authorize(settings)
    save_token(settings.token_file, credentials)
    return credentials


def get_calendar_service(credentials: Credentials):
    """Build a Google Calendar API service client."""
    return build("calendar", "v3", credentials=credentials)


def find_calendar_id(service, name: str) -> str:
    """Look up a calendar id by its display name.

    Raises:
        CalendarNotFound: No accessible calendar has that name.
    """
    page_token = None
    while True:
        result = service.calendarList().list(pageToken=page_token).execute()
        for entry in result.get("items", []):
            logger.debug(f"Calendar: {entry.get('summary')} ({entry.get('id')})")
            if entry.get("summary") == name:
                return entry["id"]

        page_token = result.get("nextPageToken")
        if not page_token:
            raise CalendarNotFound(name)


def event_body(event: RotationEvent) -> dict:
    """Convert a RotationEvent into an events.insert request body."""
    return {
        "summary": event.title,
        "start": {
            "date": event.start_date.isoformat(),
            "timeZone": event.time_zone,
        },
        "end": {
            "date": event.end_date.isoformat(),
            "timeZone": event.time_zone,
        },
        "recurrence": [event.recurrence_rule],
        "colorId": str(event.color_id),
    }


class CalendarSink:
    """Creates rotation events in one calendar."""

    def __init__(self, service, calendar_id: str):
        self.service = service
        self.calendar_id = calendar_id

    @classmethod
    def connect(cls, settings: Settings, calendar_name: str | None = None) -> "CalendarSink":
        """Authorize, build the service and resolve the target calendar."""
        service = get_calendar_service(get_credentials(settings))
        name = calendar_name or settings.calendar_name
        calendar_id = find_calendar_id(service, name)
        logger.info(f"Using calendar {name} ({calendar_id})")
        return cls(service, calendar_id)

    def publish(self, event: RotationEvent) -> EventHandle:
        """Insert one event.

        Raises:
            PublishError: The API rejected the insert.
        """
        try:
            created = (
                self.service.events()
                .insert(calendarId=self.calendar_id, body=event_body(event))
                .execute()
            )
        except (HttpError, *TRANSPORT_ERRORS) as e:
            raise PublishError(event.member, str(e)) from e

        handle = EventHandle(event_id=created.get("id", ""), html_link=created.get("htmlLink"))
        logger.info(f"Event created: {handle.html_link}")
        return handle
