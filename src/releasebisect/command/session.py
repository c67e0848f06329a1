"""Session command - interactive bisection prompt."""

from pydantic import BaseModel, Field

from releasebisect.command.prompt import Prompt
from releasebisect.core.errors import BisectError
from releasebisect.core.log import logger
from releasebisect.session import BisectSession


class SessionCommand(BaseModel):
    """Start an interactive bisection prompt.

    Fetches the release list, re-activates the last judged release
    and then reads commands (fetch, activate, launch, mark, advance,
    track, reset, fix-font, quit) until quit or end of input.
    """

    resume: bool = Field(
        default=True,
        description=(
            "Re-activate the last judged release on start. "
            "Use --resume=false to start without an active install."
        ),
    )

    def run_workflow(self, state: "State") -> int:
        """Run the prompt until the user quits.

        A failed initial fetch is reported and the prompt still
        starts; 'fetch' retries it.

        Args:
            state: State instance

        Returns:
            Exit code (0=success)
        """
        runtime = state.runtime.session
        runtime.status = "running"

        with BisectSession.from_config(state.config) as session:
            try:
                session.fetch()
            except (BisectError, OSError) as e:
                logger.error(f"Fetching releases failed: {e}")
                print(f"Error: {e}")
            else:
                if self.resume:
                    session.resume()
            Prompt(session, runtime=runtime).loop()

        runtime.status = "complete"
        logger.info(
            "Session finished",
            commands=runtime.commands_run,
            active=runtime.active_tag,
        )
        return 0
