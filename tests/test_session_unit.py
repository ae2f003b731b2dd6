"""Tests for game.session – the level state machine."""

import logging
import random

import pytest

from game.scoring import FeedbackTier
from game.session import Phase, PlayerProgress, SessionController
from game.templates import build_custom_level


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class RecordingTracker:
    def __init__(self) -> None:
        self.calls = []

    def record_level_complete(self, level_index, solve_time):
        self.calls.append(("complete", level_index, solve_time))

    def add_points(self, points):
        self.calls.append(("points", points))

    def add_badge(self, badge_id):
        self.calls.append(("badge", badge_id))


class FailingTracker:
    def record_level_complete(self, level_index, solve_time):
        raise ConnectionError("offline")

    def add_points(self, points):
        raise ConnectionError("offline")

    def add_badge(self, badge_id):
        raise ConnectionError("offline")


def _custom_level():
    return build_custom_level("Epic Battle Stats", "100 rounds, 20 more kills.",
                              100, 20, x_label="Kills", y_label="Deaths",
                              creator="Ada")


def _controller(tracker=None, progress=None, clock=None):
    return SessionController(tracker=tracker, progress=progress,
                             rng=random.Random(42), clock=clock or FakeClock())


# ── Loading ──────────────────────────────────────────────────────────────

class TestLoad:
    def test_initial_phase_is_loading(self):
        assert _controller().phase is Phase.LOADING

    def test_load_resets_state_and_starts_clock(self):
        clock = FakeClock(500.0)
        c = _controller(clock=clock)
        c.load(_custom_level(), 3)
        assert c.phase is Phase.ACTIVE
        assert c.level_index == 3
        assert c.state.attempts == 0
        assert c.state.start_time == 500.0
        assert not c.state.solved

    def test_actions_before_load_raise(self):
        with pytest.raises(RuntimeError):
            _controller().submit_guess("1", "2")

    def test_play_built_in_wraps_index(self):
        c = _controller()
        level = c.play_built_in(5)
        assert c.level_index == 1
        assert level.scenario_type == "health-shield"
        assert not c.playing_custom

    def test_heading(self):
        c = _controller()
        c.play_custom(_custom_level())
        assert c.heading() == ("Epic Battle Stats", "by Ada")
        c.play_built_in(0)
        assert c.heading()[0] == "Level 1: Kill/Death Ratio"


# ── Guessing ─────────────────────────────────────────────────────────────

class TestSubmitGuess:
    def test_end_to_end_solve_emits_events(self):
        clock = FakeClock(1000.0)
        tracker = RecordingTracker()
        c = _controller(tracker=tracker, clock=clock)
        c.play_custom(_custom_level(), 2)

        first = c.submit_guess("50", "50")
        assert first.feedback_tier is FeedbackTier.GETTING_WARMER
        assert c.phase is Phase.ACTIVE
        assert tracker.calls == []

        clock.now = 1012.7
        second = c.submit_guess("60", "40")
        assert second.is_correct
        assert second.earned_points == 90
        assert c.phase is Phase.SOLVED
        assert c.state.solved
        assert c.state.points_this_level == 90
        assert c.state.attempts == 2
        assert tracker.calls == [
            ("points", 90),
            ("complete", 2, 12),
            ("badge", "quick-solver"),
        ]
        assert c.progress.total_points == 90
        assert c.progress.badges == ["quick-solver"]

    def test_invalid_input_still_counts_attempt(self):
        c = _controller()
        c.play_custom(_custom_level())
        result = c.submit_guess("", "40")
        assert result.feedback_tier is FeedbackTier.INVALID_INPUT
        assert c.state.attempts == 1
        assert c.state.feedback == result.message

    def test_guesses_ignored_once_solved(self):
        tracker = RecordingTracker()
        c = _controller(tracker=tracker)
        c.play_custom(_custom_level())
        c.submit_guess("60", "40")
        calls = list(tracker.calls)

        again = c.submit_guess("60", "40")
        assert again.earned_points == 0
        assert again.is_correct
        assert c.state.attempts == 1
        assert tracker.calls == calls

    def test_held_badge_is_not_emitted_again(self):
        tracker = RecordingTracker()
        progress = PlayerProgress(total_points=500, badges=["first-try", "quick-solver"])
        c = _controller(tracker=tracker, progress=progress)
        c.play_custom(_custom_level())
        result = c.submit_guess("60", "40")
        assert result.badge_unlocked is None
        assert ("badge", "first-try") not in tracker.calls
        assert progress.total_points == 600

    def test_synced_progress_is_used_for_badges(self):
        c = _controller()
        c.play_custom(_custom_level())
        c.sync_progress(PlayerProgress(total_points=100, badges=["first-try"]))
        result = c.submit_guess("60", "40")
        assert result.feedback_tier.value == "quick-solver"
        assert result.badge_unlocked == "quick-solver"
        assert c.progress.total_points == 200
        assert c.progress.badges == ["first-try", "quick-solver"]

    def test_tracker_failure_does_not_roll_back(self, caplog):
        c = _controller(tracker=FailingTracker())
        c.play_custom(_custom_level())
        with caplog.at_level(logging.ERROR, logger="game.session"):
            result = c.submit_guess("60", "40")
        assert result.is_correct
        assert c.phase is Phase.SOLVED
        assert c.progress.total_points == 100
        assert c.progress.badges == ["first-try"]
        assert any("failed" in r.getMessage() for r in caplog.records)


# ── Reveal and hint ──────────────────────────────────────────────────────

class TestRevealAndHint:
    def test_reveal_awards_nothing_and_locks_guessing(self):
        tracker = RecordingTracker()
        c = _controller(tracker=tracker)
        c.play_custom(_custom_level())
        c.submit_guess("1", "1")

        steps = c.reveal_solution()
        assert len(steps) == 5
        assert c.phase is Phase.SOLUTION_REVEALED
        assert c.state.solution_revealed
        assert c.state.points_this_level == 0

        ignored = c.submit_guess("60", "40")
        assert not ignored.is_correct
        assert ignored.feedback_tier is FeedbackTier.LEARNING_MODE
        assert c.state.attempts == 1
        assert tracker.calls == []

    def test_hint_needs_more_than_two_attempts(self):
        c = _controller()
        c.play_custom(_custom_level())
        for _ in range(2):
            c.submit_guess("1", "1")
        assert not c.can_show_hint
        assert c.toggle_hint() is False
        assert c.hint() is None

        c.submit_guess("1", "1")
        assert c.can_show_hint
        assert c.toggle_hint() is True
        assert "2x = 120" in c.hint()
        assert c.toggle_hint() is False

    def test_hint_unavailable_after_solve(self):
        c = _controller()
        c.play_custom(_custom_level())
        for _ in range(3):
            c.submit_guess("1", "1")
        c.toggle_hint()
        c.submit_guess("60", "40")
        assert not c.can_show_hint
        assert c.hint() is None
        assert c.state.hint_revealed is True

    def test_hint_hidden_after_reveal_but_flag_kept(self):
        c = _controller()
        c.play_custom(_custom_level())
        for _ in range(3):
            c.submit_guess("1", "1")
        assert c.toggle_hint() is True
        c.reveal_solution()
        assert c.hint() is None
        assert c.state.to_dict()["hint_revealed"] is True


# ── Retry / next level ───────────────────────────────────────────────────

class TestRetryAndNext:
    def test_retry_custom_keeps_level(self):
        c = _controller()
        level = _custom_level()
        c.play_custom(level, 4)
        c.submit_guess("60", "40")
        assert c.retry() is level
        assert c.phase is Phase.ACTIVE
        assert c.state.attempts == 0
        assert c.level_index == 4

    def test_retry_built_in_regenerates_same_theme(self):
        c = _controller()
        c.play_built_in(2)
        c.reveal_solution()
        level = c.retry()
        assert level.scenario_type == "time-challenge"
        assert c.level_index == 2
        assert c.phase is Phase.ACTIVE
        assert not c.state.solution_revealed

    def test_next_level_cycles(self):
        c = _controller()
        c.play_built_in(3)
        assert c.next_level().scenario_type == "kills-deaths"
        assert c.level_index == 0

    def test_next_level_not_for_custom(self):
        c = _controller()
        c.play_custom(_custom_level())
        with pytest.raises(RuntimeError):
            c.next_level()


def test_graph_follows_phase():
    c = _controller()
    c.play_custom(_custom_level())
    live = c.graph("55", "45")
    assert live.guess_marker is not None
    assert live.solution_marker.kind == "hidden"

    c.submit_guess("60", "40")
    done = c.graph("55", "45")
    assert done.guess_marker is None
    assert done.solution_marker.kind == "solved"
