# SPDX-FileCopyrightText: 2025 Team Rotation Contributors
# SPDX-License-Identifier: MPL-2.0

"""Command-line entry point.

Results are printed to stdout as JSON; logs go to stderr.
"""

import json
import logging
import sys

import click

from team_rotation.cancellation import CancellationToken, install_sigint_handler
from team_rotation.config import load_settings
from team_rotation.errors import RotationError
from team_rotation.gcal import CalendarSink
from team_rotation.publisher import publish_rotation
from team_rotation.resolver import DirectParams, OllamaRunner, PromptDerivedParams
from team_rotation.scheduler import build_rotation

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

QUARTET = ("team_members", "start_date", "duration", "event_name")


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def check_flags(params: dict) -> None:
    """Require either --prompt or all four scheduling flags, never both."""
    given = [name for name in QUARTET if params.get(name) is not None]
    prompt = params.get("prompt")

    if prompt and given:
        raise click.UsageError("--prompt cannot be combined with --team-members and friends")
    if not prompt and not given:
        raise click.UsageError("Provide either --prompt or --team-members, --start-date, --duration and --event-name")
    if not prompt and len(given) != len(QUARTET):
        missing = ", ".join("--" + name.replace("_", "-") for name in QUARTET if name not in given)
        raise click.UsageError(f"Missing required flags: {missing}")


def fail(message: str) -> None:
    click.echo(json.dumps({"error": message}), err=True)
    sys.exit(1)


@click.command(name="team-rotation")
@click.option("-t", "--team-members", help="Comma-separated list of team members")
@click.option("-s", "--start-date", help="Start date for the rotation (YYYY-MM-DD)")
@click.option("-d", "--duration", type=int, help="Duration of each member's block in weeks, e.g. 3")
@click.option("-n", "--event-name", help="Name of the event, e.g. SRE-ROLE")
@click.option("-p", "--prompt", help="Free-text request to turn into the flags above")
@click.option("--calendar-name", help="Display name of the target calendar")
@click.option("--cycles", type=int, help="Stop each member's series after this many passes")
@click.option("--model", help="Ollama model used for --prompt")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="YAML settings file")
@click.option("--dry-run", is_flag=True, help="Print the events without creating them")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
def main(
    team_members: str | None,
    start_date: str | None,
    duration: int | None,
    event_name: str | None,
    prompt: str | None,
    calendar_name: str | None,
    cycles: int | None,
    model: str | None,
    config_path: str | None,
    dry_run: bool,
    verbose: bool,
):
    """Create one calendar block per team member for a recurring rotation."""
    check_flags(click.get_current_context().params)
    configure_logging(verbose)

    try:
        settings = load_settings(config_path)

        if prompt:
            runner = OllamaRunner(model or settings.ollama_model, settings.ollama_timeout)
            resolver = PromptDerivedParams(prompt, runner=runner)
        else:
            resolver = DirectParams(team_members, start_date, duration, event_name)

        events = build_rotation(resolver.resolve(), cycles=cycles)

        if dry_run:
            click.echo(json.dumps({"events": [e.to_dict() for e in events]}, indent=2))
            return

        token = CancellationToken()
        restore = install_sigint_handler(token)
        try:
            sink = CalendarSink.connect(settings, calendar_name)
            result = publish_rotation(events, sink, token)
        finally:
            restore()
    except RotationError as e:
        logger.debug("Fatal error", exc_info=True)
        fail(str(e))
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        fail(str(e))

    click.echo(json.dumps(result.to_dict(), indent=2))
    if not result.ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
