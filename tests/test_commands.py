"""Tests for the CLI subcommands."""

import builtins
import json
from types import SimpleNamespace

import pytest

from releasebisect.command.reset import ResetCommand
from releasebisect.command.session import SessionCommand
from releasebisect.command.track import TrackCommand
from releasebisect.core.config import PathsConfig, Runtime
from releasebisect.core.errors import ReleaseFetchError
from releasebisect.session import TRACK_FILE, BisectSession


@pytest.fixture
def state(tmp_path):
    paths = PathsConfig(
        distr_dir=tmp_path / "distr",
        unpack_dir=tmp_path / "unpacked",
        userdata_dir=tmp_path / "userdata",
        state_dir=tmp_path / "state",
    )
    return SimpleNamespace(
        config=SimpleNamespace(paths=paths), runtime=Runtime()
    )


def write_track(state, entries):
    path = state.config.paths.state_dir / TRACK_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(entries))
    return path


def test_track_prints_entries(state, capsys):
    write_track(state, [["t05", "Good"], ["t02", "Bad"]])

    assert TrackCommand().run_workflow(state) == 0

    assert capsys.readouterr().out == "t05 - Good\nt02 - Bad\n"


def test_track_without_file(state, capsys):
    assert TrackCommand().run_workflow(state) == 0

    assert capsys.readouterr().out == ""


def test_reset_clears_track(state):
    path = write_track(state, [["t05", "Good"], ["t02", "Bad"]])

    assert ResetCommand().run_workflow(state) == 0

    assert json.loads(path.read_text()) == []
    assert state.runtime.reset.entries_cleared == 2
    assert state.runtime.reset.status == "complete"


@pytest.mark.parametrize("resume, active", [(True, "t05"), (False, None)])
def test_session_runs_prompt(state, session, monkeypatch, resume, active):
    session.track.append("t05", "Good")
    monkeypatch.setattr(session, "fetch", lambda: session.catalog)
    monkeypatch.setattr(
        BisectSession, "from_config", classmethod(lambda cls, config: session)
    )
    lines = iter(["track"])

    def fake_input(_prompt):
        try:
            return next(lines)
        except StopIteration:
            raise EOFError from None

    monkeypatch.setattr(builtins, "input", fake_input)

    assert SessionCommand(resume=resume).run_workflow(state) == 0

    runtime = state.runtime.session
    assert runtime.status == "complete"
    assert runtime.commands_run == 1
    assert runtime.active_tag == active
    session.hub.client.close.assert_called_once()


def test_session_reports_failed_fetch(state, session, monkeypatch, capsys):
    def fail():
        raise ReleaseFetchError("listing tags failed: fatal: no network")

    monkeypatch.setattr(session, "fetch", fail)
    monkeypatch.setattr(
        BisectSession, "from_config", classmethod(lambda cls, config: session)
    )
    lines = iter(["quit"])
    monkeypatch.setattr(builtins, "input", lambda _prompt: next(lines))

    assert SessionCommand().run_workflow(state) == 0

    assert "Error: listing tags failed: fatal: no network" in capsys.readouterr().out
    assert state.runtime.session.status == "complete"
