"""Track command - print the judgment log."""

from pydantic import BaseModel

from releasebisect.bisect.track import JudgmentLog
from releasebisect.session import TRACK_FILE


class TrackCommand(BaseModel):
    """Print every recorded judgment, oldest first."""

    def run_workflow(self, state: "State") -> int:
        track = JudgmentLog.load(state.config.paths.state_dir / TRACK_FILE)
        for entry in track:
            print(f"{entry.tag} - {entry.judgment.value}")
        return 0
