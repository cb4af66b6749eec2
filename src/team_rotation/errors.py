# SPDX-FileCopyrightText: 2025 Team Rotation Contributors
# SPDX-License-Identifier: MPL-2.0

"""Exception types raised across the rotation pipeline."""


class RotationError(Exception):
    """Base class for all rotation errors."""


class InvalidRequest(RotationError):
    """Scheduling input is empty or malformed."""


class ResolutionError(RotationError):
    """Could not turn flags or a prompt into a rotation request."""


class ParseFailure(ResolutionError):
    """Language model reply did not match the expected flag grammar."""

    def __init__(self, reply: str):
        super().__init__(f"Unable to parse model reply: {reply!r}")
        self.reply = reply


class ConfigError(RotationError):
    """Configuration file could not be loaded."""


class AuthorizationError(RotationError):
    """OAuth authorization failed or timed out."""


class CalendarNotFound(RotationError):
    """No accessible calendar has the requested display name."""

    def __init__(self, name: str):
        super().__init__(f"Calendar not found: {name}")
        self.name = name


class PublishError(RotationError):
    """A single event could not be created."""

    def __init__(self, member: str, message: str):
        super().__init__(f"Failed to create event for {member}: {message}")
        self.member = member
