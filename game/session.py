"""
Equation Quest — session controller.

Drives one play-through of a level:

    LOADING ──► ACTIVE ──► SOLVED
                   │
                   └─────► SOLUTION_REVEALED

``load()`` resets the per-level state and starts the clock.  A correct guess
ends the attempt as SOLVED and emits the completion notices (level time,
points, badge) to the progress tracker.  Revealing the solution ends it
with zero points.  ``retry()`` reloads the same custom level, or draws fresh
numbers from the same built-in template.

Tracker calls are best-effort: an exception from the tracker is logged and
the local session state stands.
"""

from __future__ import annotations

import enum
import logging
import math
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from game import config
from game.engine import hint_text, solution_steps
from game.graph import GraphProjection, project
from game.scoring import (
    LEARNING_MODE_MESSAGE,
    FeedbackTier,
    GuessResult,
    award_badge,
    evaluate,
)
from game.templates import BUILT_IN_TEMPLATES, Level, get_template, template_at

logger = logging.getLogger(__name__)


class Phase(str, enum.Enum):
    LOADING = "loading"
    ACTIVE = "active"
    SOLVED = "solved"
    SOLUTION_REVEALED = "solution-revealed"


class ProgressTracker(Protocol):
    """Receives completion notices.  Implemented by ``ProgressStore``."""

    def record_level_complete(self, level_index: int, solve_time: int) -> None: ...

    def add_points(self, points: int) -> None: ...

    def add_badge(self, badge_id: str) -> None: ...


@dataclass
class PlayerProgress:
    """Local mirror of the player's cumulative points and badges."""

    total_points: int = 0
    badges: list = field(default_factory=list)


@dataclass
class SessionState:
    attempts: int = 0
    solved: bool = False
    start_time: float = 0.0
    hint_revealed: bool = False
    solution_revealed: bool = False
    points_this_level: int = 0
    feedback: str = ""

    def to_dict(self) -> dict:
        return {
            "attempts": self.attempts,
            "solved": self.solved,
            "start_time": self.start_time,
            "hint_revealed": self.hint_revealed,
            "solution_revealed": self.solution_revealed,
            "points_this_level": self.points_this_level,
            "feedback": self.feedback,
        }


class SessionController:
    """Runs levels one at a time for a single player."""

    def __init__(
        self,
        tracker: Optional[ProgressTracker] = None,
        progress: Optional[PlayerProgress] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._tracker = tracker
        self._progress = progress if progress is not None else PlayerProgress()
        self._rng = rng or random.Random()
        self._clock = clock
        self._level: Optional[Level] = None
        self._level_index = 0
        self._phase = Phase.LOADING
        self._state = SessionState()

    # ── Read-only views ──────────────────────────────────────────────────

    @property
    def level(self) -> Optional[Level]:
        return self._level

    @property
    def level_index(self) -> int:
        return self._level_index

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def progress(self) -> PlayerProgress:
        return self._progress

    @property
    def playing_custom(self) -> bool:
        return self._level is not None and self._level.custom

    @property
    def can_show_hint(self) -> bool:
        """The hint toggle is offered only mid-level after a few misses."""
        return (self._phase is Phase.ACTIVE
                and self._state.attempts > config.HINT_AFTER_ATTEMPTS)

    def heading(self) -> tuple[str, str]:
        """Title and subtitle for the level header."""
        level = self._require_level()
        if level.custom:
            return level.title, f"by {level.creator}"
        return (f"Level {self._level_index + 1}: {level.title}",
                "Master the math, dominate the game! 🎮")

    def sync_progress(self, progress: PlayerProgress) -> None:
        """Replace the local mirror with the tracker's current totals."""
        self._progress = progress

    # ── Level loading ────────────────────────────────────────────────────

    def load(self, level: Level, level_index: int = 0) -> None:
        """Enter LOADING, reset all per-level state, then go ACTIVE."""
        self._phase = Phase.LOADING
        self._level = level
        self._level_index = level_index
        self._state = SessionState(start_time=self._clock())
        self._phase = Phase.ACTIVE
        logger.info("Loaded level %d (%s, total=%s diff=%s)",
                    level_index, level.scenario_type, level.total, level.diff)

    def play_built_in(self, index: int = 0) -> Level:
        """Start the built-in campaign at *index*."""
        level = template_at(index).generate(self._rng)
        self.load(level, index % len(BUILT_IN_TEMPLATES))
        return level

    def play_custom(self, level: Level, index: int = 0) -> Level:
        self.load(level, index)
        return level

    def retry(self) -> Level:
        """Replay: same custom level, or new numbers from the same template."""
        level = self._require_level()
        if not level.custom:
            level = get_template(level.scenario_type).generate(self._rng)
        self.load(level, self._level_index)
        return level

    def next_level(self) -> Level:
        """Advance the built-in campaign, wrapping after the last template."""
        level = self._require_level()
        if level.custom:
            raise RuntimeError("Custom levels have no next level; use retry().")
        return self.play_built_in(self._level_index + 1)

    # ── Player actions ───────────────────────────────────────────────────

    def submit_guess(self, x_text, y_text) -> GuessResult:
        """Evaluate a guess.  Ignored (no attempt counted) unless ACTIVE."""
        level = self._require_level()
        if self._phase is not Phase.ACTIVE:
            logger.debug("Guess ignored in phase %s", self._phase.value)
            return GuessResult(
                is_correct=self._state.solved,
                earned_points=0,
                feedback_tier=(FeedbackTier.MASTERED if self._state.solved
                               else FeedbackTier.LEARNING_MODE),
                message=self._state.feedback,
                attempts=self._state.attempts,
            )

        result = evaluate(x_text, y_text, level, self._state.attempts,
                          self._progress.badges)
        self._state.attempts = result.attempts
        self._state.feedback = result.message
        if result.is_correct:
            self._complete(result)
        return result

    def reveal_solution(self) -> list[dict]:
        """Give up on the level: show the walkthrough, award nothing."""
        level = self._require_level()
        if self._phase is Phase.ACTIVE:
            self._phase = Phase.SOLUTION_REVEALED
            self._state.solution_revealed = True
            self._state.feedback = LEARNING_MODE_MESSAGE
            logger.info("Solution revealed for level %d after %d attempts",
                        self._level_index, self._state.attempts)
        return solution_steps(level)

    def toggle_hint(self) -> bool:
        """Flip hint visibility.  Returns the new visibility."""
        if not self.can_show_hint:
            return self._state.hint_revealed
        self._state.hint_revealed = not self._state.hint_revealed
        return self._state.hint_revealed

    def hint(self) -> Optional[str]:
        """Hint text while the hint is showing, otherwise None.

        Once the level is over the hint is hidden, though the flag stays set.
        """
        if (self._phase is Phase.ACTIVE and self._state.hint_revealed
                and self._level is not None):
            return hint_text(self._level)
        return None

    def graph(self, x_text=None, y_text=None) -> GraphProjection:
        return project(
            self._require_level(), x_text, y_text,
            solved=self._phase is Phase.SOLVED,
            revealed=self._phase is Phase.SOLUTION_REVEALED,
        )

    # ── Internals ────────────────────────────────────────────────────────

    def _require_level(self) -> Level:
        if self._level is None:
            raise RuntimeError("No level loaded.")
        return self._level

    def _complete(self, result: GuessResult) -> None:
        self._phase = Phase.SOLVED
        self._state.solved = True
        self._state.points_this_level = result.earned_points
        solve_time = max(0, math.floor(self._clock() - self._state.start_time))
        logger.info("Level %d solved in %ds after %d attempts (+%d)",
                    self._level_index, solve_time, result.attempts,
                    result.earned_points)

        self._progress.total_points += result.earned_points
        self._emit("add_points", result.earned_points)
        self._emit("record_level_complete", self._level_index, solve_time)
        if result.badge_unlocked and award_badge(self._progress.badges,
                                                 result.badge_unlocked):
            self._emit("add_badge", result.badge_unlocked)

    def _emit(self, method: str, *args) -> None:
        """Forward a notice to the tracker; failures never reach gameplay."""
        if self._tracker is None:
            return
        try:
            getattr(self._tracker, method)(*args)
        except Exception:
            logger.exception("Progress tracker %s%r failed", method, args)