# SPDX-FileCopyrightText: 2025 Team Rotation Contributors
# SPDX-License-Identifier: MPL-2.0

"""Rotation scheduling.

Turns a team, a start date and a per-member duration into one all-day
event per member. Blocks tile the calendar back to back and share a weekly
recurrence rule whose interval is one full pass through the team.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from team_rotation.errors import InvalidRequest

TIME_ZONE = "UTC"


@dataclass(frozen=True)
class RotationRequest:
    """Resolved scheduling parameters."""

    members: tuple[str, ...]
    start_date: date
    duration_weeks: int
    title: str

    @classmethod
    def create(
        cls,
        members: Sequence[str],
        start_date: date,
        duration_weeks: int,
        title: str,
    ) -> "RotationRequest":
        return cls(tuple(members), start_date, duration_weeks, title)


@dataclass(frozen=True)
class RotationEvent:
    """One member's block in the rotation."""

    member: str
    title: str
    start_date: date
    end_date: date  # exclusive
    recurrence_rule: str
    color_id: int
    time_zone: str = TIME_ZONE

    def to_dict(self) -> dict:
        return {
            "member": self.member,
            "title": self.title,
            "start": self.start_date.isoformat(),
            "end": self.end_date.isoformat(),
            "time_zone": self.time_zone,
            "recurrence": self.recurrence_rule,
            "color_id": self.color_id,
        }


def recurrence_rule(duration_weeks: int, member_count: int, cycles: int | None = None) -> str:
    """Build the RRULE shared by every event in a rotation.

    Args:
        duration_weeks: Weeks each member serves
        member_count: Number of members in the rotation
        cycles: Stop each member's series after this many passes (None repeats forever)

    Returns:
        RRULE string, e.g. "RRULE:FREQ=WEEKLY;INTERVAL=6"
    """
    rule = f"RRULE:FREQ=WEEKLY;INTERVAL={duration_weeks * member_count}"
    if cycles is not None:
        rule += f";COUNT={cycles}"
    return rule


def validate_request(request: RotationRequest, cycles: int | None = None) -> None:
    """Raise InvalidRequest if the request cannot be scheduled."""
    if not request.members:
        raise InvalidRequest("At least one team member is required")
    if request.duration_weeks < 1:
        raise InvalidRequest(
            f"Duration must be at least one week, got {request.duration_weeks}"
        )
    if cycles is not None and cycles < 1:
        raise InvalidRequest(f"Cycles must be at least one, got {cycles}")


def build_rotation(request: RotationRequest, cycles: int | None = None) -> list[RotationEvent]:
    """Compute the events for a rotation.

    Members are served in ascending ordinal order regardless of input order.
    Duplicate names are kept and produce back-to-back blocks.

    Args:
        request: Resolved rotation parameters
        cycles: Optional COUNT for the shared recurrence rule

    Returns:
        One RotationEvent per member, in serving order.

    Raises:
        InvalidRequest: Empty member list, or duration/cycles below one.
    """
    validate_request(request, cycles)

    members = sorted(request.members)
    block = timedelta(days=request.duration_weeks * 7)
    rule = recurrence_rule(request.duration_weeks, len(members), cycles)

    events = []
    for i, member in enumerate(members):
        member_start = request.start_date + i * block
        events.append(
            RotationEvent(
                member=member,
                title=f"{request.title}: {member}",
                start_date=member_start,
                end_date=member_start + block,
                recurrence_rule=rule,
                color_id=i + 1,
            )
        )
    return events
