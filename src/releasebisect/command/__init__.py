"""CLI command modules for releasebisect."""

from releasebisect.command.reset import ResetCommand
from releasebisect.command.session import SessionCommand
from releasebisect.command.track import TrackCommand

__all__ = ["ResetCommand", "SessionCommand", "TrackCommand"]
