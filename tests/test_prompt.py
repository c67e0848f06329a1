"""Tests for the interactive prompt."""

import pytest

from releasebisect.command.prompt import HELP, Prompt
from releasebisect.core.config import SessionState


@pytest.fixture
def output():
    return []


@pytest.fixture
def prompt(session, output):
    return Prompt(session, out=output.append, runtime=SessionState())


@pytest.mark.parametrize("line", ["quit", "exit", "  quit  "])
def test_quit(prompt, line):
    assert prompt.dispatch(line) is False


def test_blank_line(prompt, output):
    assert prompt.dispatch("   ") is True
    assert output == []
    assert prompt.runtime.commands_run == 0


@pytest.mark.parametrize("line", ["frobnicate", "mark", "mark maybe", "activate"])
def test_unknown_input(prompt, output, line):
    assert prompt.dispatch(line) is True
    assert output == ["?"]


def test_help(prompt, output):
    prompt.dispatch("help")

    assert output == [HELP]


def test_error_reported_and_prompt_continues(prompt, output, session):
    assert prompt.dispatch("mark good") is True

    assert len(output) == 1
    assert output[0].startswith("Error: no active install")
    assert len(session.track) == 0


def test_bad_day_offset(prompt, output):
    prompt.dispatch("advance 10")

    assert output == ["Error: expected a day offset like '7d', got '10'"]


def test_activate_mark_track(prompt, output):
    prompt.dispatch("activate tip")
    prompt.dispatch("mark bad")
    prompt.dispatch("track")

    assert output == ["t00 - Bad"]


def test_blacklist(prompt, session):
    prompt.dispatch("activate t07")
    prompt.dispatch("mark blacklist")

    assert "t07" in session.hub.blacklist


def test_advance_upper_bound(prompt, output):
    prompt.dispatch("advance")

    assert output == ["Activated t00"]


def test_next_with_day_offset(prompt, output):
    prompt.dispatch("activate t00")
    prompt.dispatch("mark bad")
    prompt.dispatch("next 3d")

    assert output == ["Activated t03"]


def test_bisecting_shows_steps(prompt, output):
    for line in ("activate t08", "mark good", "activate t02", "mark bad"):
        prompt.dispatch(line)

    prompt.dispatch("next")

    assert output == ["Approx. 3 steps left.", "Activated t05"]


def test_converged_report(prompt, output):
    for line in ("activate t05", "mark good", "activate t04", "mark bad"):
        prompt.dispatch(line)

    prompt.dispatch("advance")

    assert output[0].startswith("Bisected to commit range ( sha-t05 , sha-t04 ]")


def test_reset(prompt, session):
    prompt.dispatch("activate t05")
    prompt.dispatch("mark good")
    prompt.dispatch("reset")

    assert len(session.track) == 0


def test_fix_font(prompt, session):
    session.installer.fix_font.return_value = False

    prompt.dispatch("fix-font")
    prompt.dispatch("fix_font")

    assert session.installer.fix_font.call_count == 2


def test_runtime_tracks_commands(prompt):
    prompt.dispatch("activate t05")
    prompt.dispatch("nonsense")

    assert prompt.runtime.commands_run == 2
    assert prompt.runtime.active_tag == "t05"


def test_loop_stops_at_end_of_input(prompt, session):
    lines = iter(["activate t05", "mark good"])

    def read(_prompt):
        try:
            return next(lines)
        except StopIteration:
            raise EOFError from None

    prompt.loop(read)

    assert [e.tag for e in session.track] == ["t05"]


def test_loop_stops_at_quit(prompt, session):
    lines = iter(["quit", "activate t05"])

    prompt.loop(lambda _prompt: next(lines))

    assert session.active is None
