# SPDX-FileCopyrightText: 2025 Team Rotation Contributors
# SPDX-License-Identifier: MPL-2.0

"""Tests for the Google Calendar sink."""

import itertools
from datetime import date
from unittest.mock import MagicMock, patch

import httplib2
import pytest
from google.auth.exceptions import TransportError
from googleapiclient.errors import HttpError

from team_rotation.config import Settings
from team_rotation.errors import AuthorizationError, CalendarNotFound, PublishError
from team_rotation.gcal import (
    CalendarSink,
    EventHandle,
    event_body,
    find_calendar_id,
    get_credentials,
)
from team_rotation.scheduler import RotationEvent


def http_error(status: int = 403) -> HttpError:
    return HttpError(resp=MagicMock(status=status, reason="Forbidden"), content=b"denied")


@pytest.fixture
def event():
    return RotationEvent(
        member="Cesar",
        title="SRE-ROLE: Cesar",
        start_date=date(2024, 7, 1),
        end_date=date(2024, 7, 22),
        recurrence_rule="RRULE:FREQ=WEEKLY;INTERVAL=6",
        color_id=1,
    )


class TestEventBody:
    """Request body for events.insert."""

    def test_all_day_utc_event(self, event):
        """Dates are all-day and pinned to UTC."""
        body = event_body(event)

        assert body == {
            "summary": "SRE-ROLE: Cesar",
            "start": {"date": "2024-07-01", "timeZone": "UTC"},
            "end": {"date": "2024-07-22", "timeZone": "UTC"},
            "recurrence": ["RRULE:FREQ=WEEKLY;INTERVAL=6"],
            "colorId": "1",
        }


class TestFindCalendarId:
    """Calendar lookup by display name."""

    def test_found_on_first_page(self):
        """Matching summary returns its id."""
        service = MagicMock()
        service.calendarList().list().execute.return_value = {
            "items": [
                {"summary": "Personal", "id": "primary"},
                {"summary": "team-roles-test", "id": "abc@group.calendar.google.com"},
            ]
        }

        assert find_calendar_id(service, "team-roles-test") == "abc@group.calendar.google.com"

    def test_found_on_second_page(self):
        """Pagination is followed."""
        service = MagicMock()
        service.calendarList().list().execute.side_effect = [
            {"items": [{"summary": "Personal", "id": "primary"}], "nextPageToken": "p2"},
            {"items": [{"summary": "oncall", "id": "oncall-id"}]},
        ]

        assert find_calendar_id(service, "oncall") == "oncall-id"
        service.calendarList().list.assert_called_with(pageToken="p2")

    def test_not_found(self):
        """Missing calendar raises CalendarNotFound."""
        service = MagicMock()
        service.calendarList().list().execute.return_value = {"items": []}

        with pytest.raises(CalendarNotFound):
            find_calendar_id(service, "team-roles-test")


class TestCalendarSink:
    """Event insertion."""

    def test_publish_returns_handle(self, event):
        """Created event id and link are returned."""
        service = MagicMock()
        service.events().insert().execute.return_value = {
            "id": "evt1",
            "htmlLink": "https://calendar.google.com/event?eid=evt1",
        }

        handle = CalendarSink(service, "cal-id").publish(event)

        assert handle == EventHandle("evt1", "https://calendar.google.com/event?eid=evt1")
        service.events().insert.assert_called_with(calendarId="cal-id", body=event_body(event))

    def test_http_error_becomes_publish_error(self, event):
        """API failures are wrapped with the member's name."""
        service = MagicMock()
        service.events().insert().execute.side_effect = http_error()

        with pytest.raises(PublishError) as exc_info:
            CalendarSink(service, "cal-id").publish(event)

        assert exc_info.value.member == "Cesar"

    @pytest.mark.parametrize(
        "error",
        [
            TimeoutError("timed out"),
            ConnectionResetError("reset by peer"),
            TransportError("dns failure"),
            httplib2.ServerNotFoundError("no such host"),
        ],
    )
    def test_network_error_becomes_publish_error(self, event, error):
        """Transport failures are wrapped like API errors."""
        service = MagicMock()
        service.events().insert().execute.side_effect = error

        with pytest.raises(PublishError) as exc_info:
            CalendarSink(service, "cal-id").publish(event)

        assert exc_info.value.member == "Cesar"
        assert exc_info.value.__cause__ is error

    @patch("team_rotation.gcal.get_credentials")
    @patch("team_rotation.gcal.build")
    def test_connect_resolves_calendar(self, mock_build, mock_creds):
        """connect builds the service and looks up the configured calendar."""
        service = mock_build.return_value
        service.calendarList().list().execute.return_value = {
            "items": [{"summary": "oncall", "id": "oncall-id"}]
        }

        sink = CalendarSink.connect(Settings(calendar_name="oncall"))

        assert sink.calendar_id == "oncall-id"
        mock_build.assert_called_once_with("calendar", "v3", credentials=mock_creds.return_value)

    @patch("team_rotation.gcal.get_credentials")
    @patch("team_rotation.gcal.build")
    def test_connect_name_override(self, mock_build, mock_creds):
        """An explicit calendar name wins over settings."""
        service = mock_build.return_value
        service.calendarList().list().execute.return_value = {
            "items": [{"summary": "other", "id": "other-id"}]
        }

        sink = CalendarSink.connect(Settings(), calendar_name="other")

        assert sink.calendar_id == "other-id"


class TestGetCredentials:
    """Token cache, refresh and authorization."""

    @pytest.fixture
    def settings(self, tmp_path):
        return Settings(
            credentials_file=str(tmp_path / "credentials.json"),
            token_file=str(tmp_path / "token.json"),
            auth_timeout=5,
        )

    @patch("team_rotation.gcal.load_cached_token")
    def test_valid_cached_token(self, mock_load, settings):
        """A valid cached token is used without authorizing."""
        mock_load.return_value = MagicMock(valid=True)

        assert get_credentials(settings) is mock_load.return_value

    @patch("team_rotation.gcal.save_token")
    @patch("team_rotation.gcal.load_cached_token")
    def test_expired_token_is_refreshed(self, mock_load, mock_save, settings):
        """Expired tokens with a refresh token are refreshed and saved."""
        creds = MagicMock(valid=False, expired=True, refresh_token="r")
        mock_load.return_value = creds

        assert get_credentials(settings) is creds
        creds.refresh.assert_called_once()
        mock_save.assert_called_once_with(settings.token_file, creds)

    @patch("team_rotation.gcal.InstalledAppFlow")
    @patch("team_rotation.gcal.save_token")
    @patch("team_rotation.gcal.load_cached_token", return_value=None)
    def test_no_token_runs_flow(self, mock_load, mock_save, mock_flow, settings, tmp_path):
        """Without a token the browser flow runs on the configured port."""
        (tmp_path / "credentials.json").write_text("{}")
        flow = mock_flow.from_client_secrets_file.return_value

        creds = get_credentials(settings)

        assert creds is flow.run_local_server.return_value
        kwargs = flow.run_local_server.call_args.kwargs
        assert kwargs["port"] == 8080
        assert kwargs["timeout_seconds"] == 5
        mock_save.assert_called_once_with(settings.token_file, creds)

    @patch("team_rotation.gcal.load_cached_token", return_value=None)
    def test_missing_client_secret(self, mock_load, settings):
        """No credentials.json raises AuthorizationError."""
        with pytest.raises(AuthorizationError, match="client secret"):
            get_credentials(settings)

    @patch("team_rotation.gcal.InstalledAppFlow")
    @patch("team_rotation.gcal.load_cached_token", return_value=None)
    @patch("team_rotation.gcal.time.monotonic", side_effect=itertools.count(0.0, 6.0))
    def test_flow_timeout(self, mock_clock, mock_load, mock_flow, settings, tmp_path):
        """A flow that never receives the redirect reports the timeout."""
        (tmp_path / "credentials.json").write_text("{}")
        mock_flow.from_client_secrets_file.return_value.run_local_server.side_effect = (
            AttributeError("'NoneType' object has no attribute 'replace'")
        )

        with pytest.raises(AuthorizationError, match="did not complete within 5s"):
            get_credentials(settings)

    @patch("team_rotation.gcal.InstalledAppFlow")
    @patch("team_rotation.gcal.load_cached_token", return_value=None)
    def test_flow_failure_is_not_reported_as_timeout(self, mock_load, mock_flow, settings, tmp_path):
        """A fast failure such as a bad token exchange keeps its own message."""
        (tmp_path / "credentials.json").write_text("{}")
        mock_flow.from_client_secrets_file.return_value.run_local_server.side_effect = (
            ValueError("invalid_grant: Bad Request")
        )

        with pytest.raises(AuthorizationError) as exc_info:
            get_credentials(settings)

        assert "invalid_grant" in str(exc_info.value)
        assert "did not complete" not in str(exc_info.value)
