"""Reset command - forget all judgments."""

from pydantic import BaseModel

from releasebisect.bisect.track import JudgmentLog
from releasebisect.core.log import logger
from releasebisect.session import TRACK_FILE


class ResetCommand(BaseModel):
    """Clear the judgment log so the next bisection starts fresh.

    The blacklist is kept.
    """

    def run_workflow(self, state: "State") -> int:
        """
        Args:
            state: State instance

        Returns:
            Exit code (0=success)
        """
        track = JudgmentLog.load(state.config.paths.state_dir / TRACK_FILE)
        removed = track.clear()

        state.runtime.reset.entries_cleared = removed
        state.runtime.reset.status = "complete"

        logger.info(f"Reset complete ({removed} judgments removed)")
        return 0
