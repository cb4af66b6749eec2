# SPDX-FileCopyrightText: 2025 Team Rotation Contributors
# SPDX-License-Identifier: MPL-2.0

"""Publish a computed rotation, one event at a time."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

from team_rotation.cancellation import CancellationToken
from team_rotation.errors import PublishError
from team_rotation.gcal import EventHandle
from team_rotation.scheduler import RotationEvent

logger = logging.getLogger(__name__)

CREATED = "created"
FAILED = "failed"
SKIPPED = "skipped"


class Sink(Protocol):
    def publish(self, event: RotationEvent) -> EventHandle: ...


@dataclass
class PublishOutcome:
    """Result of publishing one member's event."""

    event: RotationEvent
    status: str
    handle: EventHandle | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        result = {
            "member": self.event.member,
            "status": self.status,
            "start": self.event.start_date.isoformat(),
            "end": self.event.end_date.isoformat(),
        }
        if self.handle:
            result["event_id"] = self.handle.event_id
            result["html_link"] = self.handle.html_link
        if self.error:
            result["error"] = self.error
        return result


@dataclass
class BatchResult:
    """Per-member outcomes for a whole rotation."""

    outcomes: list[PublishOutcome] = field(default_factory=list)
    cancelled: bool = False

    def _with_status(self, status: str) -> list[PublishOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def created(self) -> list[PublishOutcome]:
        return self._with_status(CREATED)

    @property
    def failed(self) -> list[PublishOutcome]:
        return self._with_status(FAILED)

    @property
    def skipped(self) -> list[PublishOutcome]:
        return self._with_status(SKIPPED)

    @property
    def ok(self) -> bool:
        return all(o.status == CREATED for o in self.outcomes)

    def to_dict(self) -> dict:
        return {
            "events": [o.to_dict() for o in self.outcomes],
            "cancelled": self.cancelled,
            "summary": {
                "created": len(self.created),
                "failed": len(self.failed),
                "skipped": len(self.skipped),
            },
        }


def publish_rotation(
    events: Iterable[RotationEvent],
    sink: Sink,
    token: CancellationToken | None = None,
) -> BatchResult:
    """Publish each event once, continuing past individual failures.

    Cancellation is checked before each publish. A publish already in
    progress is never interrupted; events not yet started are marked skipped.

    Args:
        events: Events in serving order
        sink: Anything with publish(event) -> EventHandle
        token: Optional cancellation token

    Returns:
        BatchResult with one outcome per event.
    """
    token = token or CancellationToken()
    result = BatchResult()

    for event in events:
        if token.should_stop():
            result.cancelled = True
            result.outcomes.append(PublishOutcome(event, SKIPPED, error="cancelled"))
            continue

        logger.info(f"Creating event for {event.member} starting on {event.start_date}")
        token.start_work(event.member)
        try:
            handle = sink.publish(event)
        except PublishError as e:
            logger.error(str(e))
            result.outcomes.append(PublishOutcome(event, FAILED, error=str(e)))
        else:
            result.outcomes.append(PublishOutcome(event, CREATED, handle=handle))
        finally:
            token.finish_work()

    if result.cancelled:
        logger.warning(f"Cancelled: {len(result.skipped)} event(s) not created")
    return result
