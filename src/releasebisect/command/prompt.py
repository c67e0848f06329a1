"""Line-based command prompt for an interactive bisection."""

from __future__ import annotations

from collections.abc import Callable

from releasebisect.bisect.controller import Activate, Converged
from releasebisect.bisect.track import Judgment
from releasebisect.core.config import SessionState
from releasebisect.core.errors import BisectError
from releasebisect.core.log import logger
from releasebisect.session import BisectSession, parse_days_arg

PROMPT = "> "

HELP = """\
fetch                        refresh the release list
activate <tag|tip|recent>    prepare a release for testing
launch | run                 start the active release
mark good|bad|skip|blacklist judge the active release
next | advance [Nd]          pick and prepare the next release
track                        show all judgments
reset                        forget all judgments
fix-font                     remove the user font config
quit | exit                  leave"""

MARKS = {
    "good": Judgment.GOOD,
    "bad": Judgment.BAD,
    "skip": Judgment.SKIP,
}


class Prompt:
    """Dispatches prompt lines to a BisectSession.

    Every command failure is reported and the prompt carries on.
    """

    def __init__(
        self,
        session: BisectSession,
        out: Callable[[str], None] = print,
        runtime: SessionState | None = None,
    ):
        """
        Args:
            session: Session the commands act on
            out: Where command output goes
            runtime: Runtime state updated after every command
        """
        self.session = session
        self.out = out
        self.runtime = runtime

    def dispatch(self, line: str) -> bool:
        """Run one prompt line.

        Returns:
            False when the user asked to quit, True otherwise
        """
        words = line.split()
        if not words:
            return True
        verb, args = words[0], words[1:]
        arg = args[0] if args else None

        if verb in ("quit", "exit"):
            return False

        try:
            self._run(verb, arg)
        except (BisectError, ValueError, OSError) as e:
            logger.error(f"Command '{verb}' failed: {e}", verb=verb)
            self.out(f"Error: {e}")

        if self.runtime is not None:
            self.runtime.commands_run += 1
            active = self.session.active
            self.runtime.active_tag = active.tag if active else None
        return True

    def _run(self, verb: str, arg: str | None) -> None:
        session = self.session
        if verb == "fetch":
            session.fetch()
        elif verb in ("launch", "run"):
            session.launch()
        elif verb == "mark":
            if arg == "blacklist":
                session.mark_blacklist()
            elif arg in MARKS:
                session.mark(MARKS[arg])
            else:
                self.out("?")
        elif verb in ("next", "advance"):
            self._advance(arg)
        elif verb == "track":
            for line in session.track_lines():
                self.out(line)
        elif verb == "activate":
            if arg is None:
                self.out("?")
            else:
                session.activate_tag(arg)
        elif verb == "reset":
            session.reset()
        elif verb in ("fix_font", "fix-font"):
            session.fix_font()
        elif verb == "help":
            self.out(HELP)
        else:
            self.out("?")

    def _advance(self, arg: str | None) -> None:
        decision = self.session.advance(parse_days_arg(arg))
        if isinstance(decision, Converged):
            self.out(self.session.convergence_report(decision))
        elif isinstance(decision, Activate):
            if decision.steps_left is not None:
                self.out(f"Approx. {decision.steps_left} steps left.")
            self.out(f"Activated {decision.tag.name}")

    def loop(self, read: Callable[[str], str] | None = None) -> None:
        """Read and dispatch lines until quit or end of input.

        Args:
            read: Line source called with the prompt string;
                defaults to input()
        """
        read = read or input
        while True:
            try:
                line = read(PROMPT)
            except EOFError:
                break
            if not self.dispatch(line):
                break
