"""Guess evaluation, scoring and badge rules."""

import enum
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from game import config

logger = logging.getLogger(__name__)

# Leading decimal number, the way a browser's parseFloat reads "12.5abc".
_NUMBER_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


class InvalidGuessInput(ValueError):
    """A guess field could not be read as a number."""


class FeedbackTier(str, enum.Enum):
    INVALID_INPUT = "invalid-input"
    FIRST_TRY = "first-try"
    QUICK_SOLVER = "quick-solver"
    MASTERED = "mastered"
    SO_CLOSE = "so-close"
    GETTING_WARMER = "getting-warmer"
    KEEP_TRYING = "keep-trying"
    LEARNING_MODE = "learning-mode"


@dataclass(frozen=True)
class GuessResult:
    is_correct: bool
    earned_points: int
    feedback_tier: FeedbackTier
    message: str
    attempts: int
    badge_unlocked: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "is_correct": self.is_correct,
            "earned_points": self.earned_points,
            "feedback_tier": self.feedback_tier.value,
            "message": self.message,
            "attempts": self.attempts,
            "badge_unlocked": self.badge_unlocked,
        }


def parse_guess(text) -> float:
    """Read a guess field.  Raises InvalidGuessInput when it is not a number."""
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        if text != text:
            raise InvalidGuessInput("Guess is not a number.")
        return float(text)
    match = _NUMBER_RE.match(str(text or ""))
    if not match:
        raise InvalidGuessInput(f"Could not read {text!r} as a number.")
    return float(match.group(1))


def points_for(attempts_so_far: int) -> int:
    """Points for a solve after *attempts_so_far* misses, floored at 50."""
    return max(config.MAX_POINTS - attempts_so_far * config.POINTS_PER_MISS,
               config.MIN_POINTS)


def is_within_tolerance(guess_x: float, guess_y: float, solution) -> bool:
    """Each axis independently within ``config.TOLERANCE`` (strict)."""
    return (abs(guess_x - solution.x) < config.TOLERANCE
            and abs(guess_y - solution.y) < config.TOLERANCE)


def award_badge(badges: list, badge_id: str) -> bool:
    """Append *badge_id* unless already held.  Returns True if it was new."""
    if badge_id in badges:
        return False
    badges.append(badge_id)
    return True


def near_miss_tier(guess_x: float, guess_y: float, total, diff) -> FeedbackTier:
    """Classify a wrong guess by how far it is off each equation."""
    eq1_error = abs((guess_x + guess_y) - total)
    eq2_error = abs((guess_x - guess_y) - diff)
    if eq1_error < config.SO_CLOSE_ERROR and eq2_error < config.SO_CLOSE_ERROR:
        return FeedbackTier.SO_CLOSE
    if eq1_error < config.WARMER_ERROR or eq2_error < config.WARMER_ERROR:
        return FeedbackTier.GETTING_WARMER
    return FeedbackTier.KEEP_TRYING


_MISS_MESSAGES = {
    FeedbackTier.SO_CLOSE: "🔥 SO CLOSE! Almost at the intersection!",
    FeedbackTier.GETTING_WARMER: "⚡ Getting warmer! One equation is nearly right.",
    FeedbackTier.KEEP_TRYING: "🎯 Keep trying! Both equations must be satisfied.",
}

INVALID_INPUT_MESSAGE = "Please enter numbers for both values!"
LEARNING_MODE_MESSAGE = "📚 Learning mode - No points, but master the strategy!"


def _success(attempts_so_far: int, badges: Iterable[str]):
    """Pick the badge (if any) and message tier for a correct guess."""
    held = set(badges)
    points = points_for(attempts_so_far)
    tries = attempts_so_far + 1
    if attempts_so_far == 0 and config.BADGE_FIRST_TRY not in held:
        return (config.BADGE_FIRST_TRY, FeedbackTier.FIRST_TRY,
                f"🧙‍♂️ WIZARD PRODIGY! Perfect on first try! +{points} magic points!")
    if (attempts_so_far <= config.QUICK_SOLVER_MAX_ATTEMPTS
            and config.BADGE_QUICK_SOLVER not in held):
        return (config.BADGE_QUICK_SOLVER, FeedbackTier.QUICK_SOLVER,
                f"⚡ LIGHTNING WIZARD! Solved in {tries} tries! +{points} magic points!")
    return (None, FeedbackTier.MASTERED,
            f"✨ SPELL MASTERED! Solved in {tries} attempts! +{points} magic points!")


def evaluate(guess_x, guess_y, level, attempts_so_far: int,
             badges: Iterable[str] = ()) -> GuessResult:
    """Check one guess against *level*.

    *attempts_so_far* is the number of earlier submissions on this level;
    the returned ``attempts`` already counts this one.  *badges* are the
    player's held badges, so an already-earned badge is never re-awarded.
    Never raises: unreadable input comes back as the invalid-input tier.
    """
    attempts = attempts_so_far + 1
    try:
        x = parse_guess(guess_x)
        y = parse_guess(guess_y)
    except InvalidGuessInput as e:
        logger.debug("Rejected guess (%r, %r): %s", guess_x, guess_y, e)
        return GuessResult(
            is_correct=False,
            earned_points=0,
            feedback_tier=FeedbackTier.INVALID_INPUT,
            message=INVALID_INPUT_MESSAGE,
            attempts=attempts,
        )

    if is_within_tolerance(x, y, level.solution):
        badge, tier, message = _success(attempts_so_far, badges)
        return GuessResult(
            is_correct=True,
            earned_points=points_for(attempts_so_far),
            feedback_tier=tier,
            message=message,
            attempts=attempts,
            badge_unlocked=badge,
        )

    tier = near_miss_tier(x, y, level.total, level.diff)
    return GuessResult(
        is_correct=False,
        earned_points=0,
        feedback_tier=tier,
        message=_MISS_MESSAGES[tier],
        attempts=attempts,
    )
