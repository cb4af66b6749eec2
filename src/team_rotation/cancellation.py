# SPDX-FileCopyrightText: 2025 Team Rotation Contributors
# SPDX-License-Identifier: MPL-2.0

"""Cancellation state for the publish loop."""

import signal
import sys
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum


class RunStatus(Enum):
    """Publish loop states."""

    IDLE = "idle"
    WORKING = "working"
    CANCELLED = "cancelled"


@dataclass
class CancellationToken:
    """Cooperative cancellation flag. Check should_stop() before each unit of work."""

    status: RunStatus = RunStatus.IDLE
    current_task: str | None = None
    started_at: datetime | None = None
    cancel_requested: bool = False
    cancel_reason: str | None = None

    def start_work(self, description: str) -> None:
        self.status = RunStatus.WORKING
        self.current_task = description
        self.started_at = datetime.now(UTC)

    def finish_work(self) -> None:
        self.status = RunStatus.CANCELLED if self.cancel_requested else RunStatus.IDLE
        self.current_task = None
        self.started_at = None

    def request_cancel(self, reason: str) -> None:
        self.cancel_requested = True
        self.cancel_reason = reason
        if self.status != RunStatus.WORKING:
            self.status = RunStatus.CANCELLED

    def clear(self) -> None:
        self.cancel_requested = False
        self.cancel_reason = None
        if self.status == RunStatus.CANCELLED:
            self.status = RunStatus.IDLE

    def should_stop(self) -> bool:
        return self.cancel_requested


def install_sigint_handler(token: CancellationToken) -> Callable[[], None]:
    """Turn the first Ctrl-C into a cancellation request.

    The default handler is restored after the first signal, so a second
    Ctrl-C raises KeyboardInterrupt immediately.

    Returns:
        Callable that reinstates the handler active before this call.
    """
    previous = signal.getsignal(signal.SIGINT)

    def _handle(signum, frame):
        print("\nAborted...", file=sys.stderr)
        token.request_cancel("interrupted")
        signal.signal(signal.SIGINT, signal.default_int_handler)

    signal.signal(signal.SIGINT, _handle)

    def restore() -> None:
        signal.signal(signal.SIGINT, previous)

    return restore
