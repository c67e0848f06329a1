#!/usr/bin/env python3
"""releasebisect CLI - find the release where a regression appeared."""

import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from releasebisect.command.reset import ResetCommand
from releasebisect.command.session import SessionCommand
from releasebisect.command.track import TrackCommand
from releasebisect.core.config import State
from releasebisect.core.log import logger


class CliState(State):
    """Bisect dated releases to find where a regression appeared.

    Tell it which releases are good or bad; it picks the next
    release to test, preferring the first build of a month, week
    or day, downloads and unpacks it, and reports the commit range
    once the good and bad releases are adjacent.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.bisect.days_back 14)
    2. releasebisect.yaml file in current directory
    3. User config releasebisect.yaml (platform config dir)
    4. .env file
    5. Environment variables
       (RELEASEBISECT_CONFIG__BISECT__DAYS_BACK=14)
    """

    session: CliSubCommand[SessionCommand]
    track: CliSubCommand[TrackCommand]
    reset: CliSubCommand[ResetCommand]

    def cli_cmd(self):
        """Dispatch to active subcommand, or show help if none
        provided."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        with logger:
            exit_code = subcommand.run_workflow(self)
            raise SystemExit(exit_code)


def main():
    """Main entry point for CLI."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
