"""
Equation Quest — level templates and level construction.

Built-in templates draw a random ``total`` / ``diff`` pair from fixed ranges
and wrap them in a themed story.  Creator mode builds a level straight from
the values the author typed in.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Optional

from game.engine import Solution, equation_strings, fmt_num, solve

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Level:
    """One concrete puzzle: numbers, story, labels and the derived solution."""

    title: str
    story: str
    eq1: str
    eq2: str
    eq1_text: str
    eq2_text: str
    x_label: str
    y_label: str
    total: float
    diff: float
    scenario_type: str
    creator: str = ""
    custom: bool = False
    solution: Solution = field(init=False)

    def __post_init__(self) -> None:
        # Frozen dataclass: derived field has to go through object.__setattr__
        object.__setattr__(self, "solution", solve(self.total, self.diff))

    @property
    def has_negative_solution(self) -> bool:
        return self.solution.x < 0 or self.solution.y < 0

    def to_payload(self) -> dict:
        """Serialise to the camelCase custom-level payload."""
        return {
            "title": self.title,
            "creator": self.creator,
            "scenarioType": self.scenario_type,
            "story": self.story,
            "eq1": self.eq1,
            "eq2": self.eq2,
            "eq1Text": self.eq1_text,
            "eq2Text": self.eq2_text,
            "xLabel": self.x_label,
            "yLabel": self.y_label,
            "solution": self.solution.to_dict(),
            "total": self.total,
            "diff": self.diff,
            "custom": self.custom,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "Level":
        """Build a custom level from an authored payload.

        The stored ``solution`` is ignored and re-derived from ``total`` and
        ``diff``.  Raises ValueError when either number is missing or not
        numeric.
        """
        total = _coerce_number(payload.get("total"), "total")
        diff = _coerce_number(payload.get("diff"), "diff")
        eq1, eq2 = equation_strings(total, diff)
        level = cls(
            title=str(payload.get("title", "")).strip(),
            creator=str(payload.get("creator") or "").strip() or "Anonymous",
            scenario_type=str(payload.get("scenarioType") or BUILT_IN_TEMPLATES[0].type),
            story=str(payload.get("story", "")).strip(),
            eq1=payload.get("eq1") or eq1,
            eq2=payload.get("eq2") or eq2,
            eq1_text=payload.get("eq1Text") or "Equation 1",
            eq2_text=payload.get("eq2Text") or "Equation 2",
            x_label=payload.get("xLabel") or "x",
            y_label=payload.get("yLabel") or "y",
            total=total,
            diff=diff,
            custom=True,
        )
        stored = payload.get("solution")
        if isinstance(stored, dict) and stored.get("x") is not None:
            if (stored.get("x"), stored.get("y")) != (level.solution.x, level.solution.y):
                logger.warning("Stored solution %s for %r disagrees with derived %s",
                               stored, level.title, level.solution)
        return level


@dataclass(frozen=True)
class Template:
    """A built-in theme and the ranges its random levels are drawn from."""

    type: str
    title: str
    color: str
    total_range: tuple[int, int]
    diff_range: tuple[int, int]
    story: str
    eq1_text: str
    eq2_text: str
    x_label: str
    y_label: str

    def generate(self, rng: Optional[random.Random] = None) -> Level:
        """Draw a fresh level; both ranges are inclusive."""
        rng = rng or random.Random()
        total = rng.randint(*self.total_range)
        diff = rng.randint(*self.diff_range)
        eq1, eq2 = equation_strings(total, diff)
        return Level(
            title=self.title,
            story=self.story.format(total=total, diff=diff),
            eq1=eq1,
            eq2=eq2,
            eq1_text=self.eq1_text,
            eq2_text=self.eq2_text,
            x_label=self.x_label,
            y_label=self.y_label,
            total=total,
            diff=diff,
            scenario_type=self.type,
        )

    def to_dict(self) -> dict:
        return {"type": self.type, "title": self.title, "color": self.color}


# ── Built-in templates (campaign order) ──────────────────────────────────

BUILT_IN_TEMPLATES: tuple[Template, ...] = (
    Template(
        type="kills-deaths",
        title="Kill/Death Ratio",
        color="purple",
        total_range=(80, 120),
        diff_range=(10, 40),
        story=("A player finished {total} total rounds (kills + deaths). "
               "They had {diff} more kills than deaths."),
        eq1_text="Total rounds",
        eq2_text="Kill advantage",
        x_label="Kills",
        y_label="Deaths",
    ),
    Template(
        type="health-shield",
        title="Health + Shield Combo",
        color="green",
        total_range=(150, 200),
        diff_range=(20, 50),
        story=("Your character has {total} total protection points "
               "(health + shield). Health is {diff} points higher than shield."),
        eq1_text="Total protection",
        eq2_text="Health advantage",
        x_label="Health",
        y_label="Shield",
    ),
    Template(
        type="time-challenge",
        title="Speed Run Timer",
        color="blue",
        total_range=(100, 200),
        diff_range=(20, 60),
        story=("Two speed runners completed levels in {total} seconds combined. "
               "The faster runner beat the slower one by {diff} seconds."),
        eq1_text="Combined time",
        eq2_text="Time difference",
        x_label="Slower Time (sec)",
        y_label="Faster Time (sec)",
    ),
    Template(
        type="sports",
        title="Sports Stats",
        color="orange",
        total_range=(60, 100),
        diff_range=(10, 30),
        story=("A player took {total} total shots. "
               "They made {diff} more shots than they missed."),
        eq1_text="Total shots",
        eq2_text="Made advantage",
        x_label="Shots Made",
        y_label="Shots Missed",
    ),
)

_BY_TYPE = {t.type: t for t in BUILT_IN_TEMPLATES}

# Example values the level editor pre-fills when an author picks a theme.
CREATOR_PRESETS = {
    "kills-deaths": {
        "name": "Game Stats",
        "title": "Epic Battle Stats",
        "xLabel": "Kills",
        "yLabel": "Deaths",
        "story": "A player finished 100 rounds with 20 more kills than deaths.",
    },
    "health-shield": {
        "name": "Health & Shields",
        "title": "Shield Challenge",
        "xLabel": "Health",
        "yLabel": "Shield",
        "story": "Your character has 100 protection points with health 20 higher than shield.",
    },
    "sports": {
        "name": "Sports Stats",
        "title": "Basketball Challenge",
        "xLabel": "Shots Made",
        "yLabel": "Shots Missed",
        "story": "You took 100 total shots with 20 more makes than misses.",
    },
    "time-challenge": {
        "name": "Time Challenge",
        "title": "Speed Run",
        "xLabel": "Fast Time",
        "yLabel": "Slow Time",
        "story": "Two players finished in 100 seconds combined with a 20 second difference.",
    },
}


def get_template(template_type: str) -> Template:
    """Look up a built-in template.  Raises KeyError for unknown types."""
    try:
        return _BY_TYPE[template_type]
    except KeyError:
        raise KeyError(f"Unknown template type: {template_type!r}") from None


def template_at(index: int) -> Template:
    """Campaign template for *index*, wrapping around after the last one."""
    return BUILT_IN_TEMPLATES[index % len(BUILT_IN_TEMPLATES)]


def generate_level(template_type: str, rng: Optional[random.Random] = None) -> Level:
    """Generate a random level from the built-in template *template_type*."""
    level = get_template(template_type).generate(rng)
    logger.debug("Generated %s level total=%s diff=%s",
                 template_type, level.total, level.diff)
    return level


def creator_preset(scenario_type: str) -> dict:
    """Return a copy of the editor example values for *scenario_type*."""
    preset = CREATOR_PRESETS.get(scenario_type)
    if preset is None:
        raise KeyError(f"Unknown scenario type: {scenario_type!r}")
    return dict(preset, scenarioType=scenario_type)


# ── Creator mode ─────────────────────────────────────────────────────────

def _coerce_number(value, name: str):
    """Turn user input into an int (when integral) or a float.

    Raises ValueError for missing, non-numeric or non-finite values.
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"'{name}' must be a number.")
    try:
        number = float(str(value).strip())
    except ValueError:
        raise ValueError(f"'{name}' must be a number, got {value!r}.") from None
    if number != number or number in (float("inf"), float("-inf")):
        raise ValueError(f"'{name}' must be a finite number.")
    return int(number) if number.is_integer() else number


def custom_level_problems(title: str, story: str, total, diff) -> list[str]:
    """Return the reasons a custom level cannot be saved (empty if none).

    A ``diff`` larger than ``total`` is allowed: it simply gives a negative
    y, which the game plays like any other level.
    """
    problems = []
    if not str(title or "").strip():
        problems.append("Give your level a title.")
    if not str(story or "").strip():
        problems.append("Write a story for your level.")
    for name, value in (("total", total), ("diff", diff)):
        try:
            _coerce_number(value, name)
        except ValueError as e:
            problems.append(str(e))
    return problems


def build_custom_level(
    title: str,
    story: str,
    total,
    diff,
    x_label: str = "x",
    y_label: str = "y",
    scenario_type: str = "kills-deaths",
    creator: str = "",
) -> Level:
    """Build a creator-mode level from author input.  No randomness involved.

    Raises ValueError when *total* or *diff* is not a number.
    """
    total = _coerce_number(total, "total")
    diff = _coerce_number(diff, "diff")
    eq1, eq2 = equation_strings(total, diff)
    level = Level(
        title=title.strip(),
        creator=creator.strip() or "Anonymous",
        scenario_type=scenario_type,
        story=story.strip(),
        eq1=eq1,
        eq2=eq2,
        eq1_text="Equation 1",
        eq2_text="Equation 2",
        x_label=x_label,
        y_label=y_label,
        total=total,
        diff=diff,
        custom=True,
    )
    if level.has_negative_solution:
        logger.info("Custom level %r has a negative solution (%s, %s)",
                    level.title, fmt_num(level.solution.x), fmt_num(level.solution.y))
    return level
