# SPDX-FileCopyrightText: 2025 Team Rotation Contributors
# SPDX-License-Identifier: MPL-2.0

"""Parameter resolution.

Turns either explicit flags or a free-text prompt into a RotationRequest.
Prompts are sent to a local Ollama model that must answer with the same
flags the CLI accepts.
"""

import logging
import re
import subprocess
from collections.abc import Callable, Sequence
from datetime import date, datetime

from team_rotation.errors import ParseFailure, ResolutionError
from team_rotation.scheduler import RotationRequest

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"

REPLY_PATTERN = re.compile(
    r"^-t\s+(?P<members>\S+)"
    r"\s+-s\s+(?P<start>\d{4}-\d{2}-\d{2})"
    r"\s+-d\s+(?P<duration>\d+)"
    r"\s+-n\s+(?P<name>\S.*?)\s*$"
)

PROMPT_TEMPLATE = """
I want to run a command-line tool that creates a calendar event for a team rotation.
The tool takes the following flags:
  -t, --team-members: Comma-separated list of team members
  -s, --start-date: Start date for the rotation
  -d, --duration: Duration of each event in weeks, e.g. 3
  -n, --event-name: Name of the event, e.g. SRE Role
When I ask you to create an event I want you to return the flags with the values I should use.
E.g if I tell you "Create and event called SRE-ROLE for Cesar and Seth that repeats every three weeks starting the first of july"
You should return:
      -t Cesar,Seth -s 2024-07-01 -d 3 -n SRE-ROLE

E.g if I tell you "Create and event called Interrupt-catcher for Mulham, Juan and Bryan that repeats every 1 week starting the second of july"
You should return:
      -t Mulham,Juan,Bryan -s 2024-07-02 -d 1 -n Interrupt-catcher

Make sure to return only strictly necessary flags and values formatted as shown in the examples above.
No additional information or text should be returned.

Now, this is the real ask: {ask}
"""


def build_prompt(ask: str) -> str:
    """Wrap a user request in the flag-extraction instructions."""
    return PROMPT_TEMPLATE.format(ask=ask)


def split_members(team_members: str | Sequence[str]) -> list[str]:
    """Split a comma-separated member list, trimming whitespace.

    An input with no names at all gives an empty list.

    Raises:
        ResolutionError: Some, but not all, member names are blank.
    """
    if isinstance(team_members, str):
        team_members = team_members.split(",")

    members = [m.strip() for m in team_members]
    if not any(members):
        return []
    if any(not m for m in members):
        raise ResolutionError(f"Blank team member name in {list(team_members)!r}")
    return members


def parse_date(value: str | date) -> date:
    """Parse a YYYY-MM-DD start date."""
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError as e:
        raise ResolutionError(f"Unable to parse start date {value!r}: {e}") from e


def sanitize_reply(reply: str) -> str:
    """Trim the model reply and join it onto one line."""
    return reply.strip().replace("\r", "").replace("\n", "")


def parse_flag_reply(reply: str) -> RotationRequest:
    """Parse a model reply of the form ``-t A,B -s YYYY-MM-DD -d N -n NAME``.

    Raises:
        ParseFailure: The reply does not follow the grammar.
        ResolutionError: The reply parses but holds a bad date or member list.
    """
    match = REPLY_PATTERN.match(sanitize_reply(reply))
    if not match:
        raise ParseFailure(reply)

    return RotationRequest.create(
        members=split_members(match["members"]),
        start_date=parse_date(match["start"]),
        duration_weeks=int(match["duration"]),
        title=match["name"],
    )


class OllamaRunner:
    """Runs a prompt through the local ``ollama`` CLI."""

    def __init__(self, model: str = "llama3", timeout: float | None = 120):
        self.model = model
        self.timeout = timeout

    def __call__(self, prompt: str) -> str:
        cmd = ["ollama", "run", self.model, prompt]
        logger.info(f"Running Ollama model {self.model}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ResolutionError("ollama is not installed or not on PATH") from e
        except subprocess.TimeoutExpired as e:
            raise ResolutionError(f"ollama did not answer within {self.timeout}s") from e

        if result.returncode != 0:
            raise ResolutionError(
                f"ollama exited with code {result.returncode}: {result.stderr.strip()}"
            )
        return result.stdout


class Resolver:
    """Source of a RotationRequest."""

    def resolve(self) -> RotationRequest:
        raise NotImplementedError


class DirectParams(Resolver):
    """Request built from explicit CLI flags."""

    def __init__(
        self,
        team_members: str | Sequence[str],
        start_date: str | date,
        duration: int,
        event_name: str,
    ):
        self.team_members = team_members
        self.start_date = start_date
        self.duration = duration
        self.event_name = event_name

    def resolve(self) -> RotationRequest:
        return RotationRequest.create(
            members=split_members(self.team_members),
            start_date=parse_date(self.start_date),
            duration_weeks=self.duration,
            title=self.event_name,
        )


class PromptDerivedParams(Resolver):
    """Request extracted from free text by a language model.

    Args:
        prompt: The user's request, e.g. "SRE-ROLE for Cesar and Seth every 3 weeks"
        runner: Callable taking the full prompt and returning the model's reply.
            Defaults to OllamaRunner.
    """

    def __init__(self, prompt: str, runner: Callable[[str], str] | None = None):
        self.prompt = prompt
        self.runner = runner or OllamaRunner()

    def resolve(self) -> RotationRequest:
        reply = self.runner(build_prompt(self.prompt))
        logger.info(f"Model output is: {sanitize_reply(reply)}")

        request = parse_flag_reply(reply)
        logger.info(
            f"Parsed from model: members={list(request.members)}, "
            f"start={request.start_date}, duration={request.duration_weeks}, "
            f"name={request.title}"
        )
        return request
