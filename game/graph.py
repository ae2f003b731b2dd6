"""
Graph projection for Equation Quest.

Turns a level into the data a chart needs: both lines sampled at 101 evenly
spaced x values across the display domain, plus the solution and live-guess
markers.  Nothing here draws anything; the sample is what a chart widget
(or the HTTP client) plots.

Display domain for a solution (sx, sy):
  max_val = 2 · max(sx, sy)
  min_val = min(0, −sx/2, −sy/2)
Line values outside [min_val, max_val] are returned as None so the plotted
line stops at the chart edge instead of running off it.
"""

import math
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from game import config
from game.engine import fmt_num, line_equations
from game.scoring import InvalidGuessInput, parse_guess

# Marker kinds: the solution dot is gold once solved, orange when revealed,
# and hidden while the level is still being played.
MARKER_SOLVED = "solved"
MARKER_REVEALED = "revealed"
MARKER_HIDDEN = "hidden"
MARKER_GUESS = "guess"


@dataclass(frozen=True)
class GraphMarker:
    x: float
    y: float
    kind: str

    @property
    def label(self) -> str:
        return f"({self.x:.1f}, {self.y:.1f})"

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "kind": self.kind, "label": self.label}


@dataclass
class GraphProjection:
    min_val: float
    max_val: float
    samples: list = field(default_factory=list)
    solution_marker: Optional[GraphMarker] = None
    guess_marker: Optional[GraphMarker] = None

    def to_dict(self) -> dict:
        return {
            "min_val": self.min_val,
            "max_val": self.max_val,
            "samples": list(self.samples),
            "solution_marker": self.solution_marker.to_dict() if self.solution_marker else None,
            "guess_marker": self.guess_marker.to_dict() if self.guess_marker else None,
        }


def _round_half_up(value: float, decimals: int = 1) -> float:
    """Round half up, like Math.round (2.25 → 2.3, −2.25 → −2.2)."""
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def display_bounds(solution) -> tuple[float, float]:
    """Return ``(min_val, max_val)`` for the chart around *solution*."""
    max_val = max(solution.x, solution.y) * 2
    min_val = min(0, solution.x * -0.5, solution.y * -0.5)
    return min_val, max_val


def _clip(value: float, lo: float, hi: float) -> Optional[float]:
    if value < lo or value > hi:
        return None
    return float(value)


def sample_lines(level) -> tuple[float, float, list]:
    """Sample both lines of *level*.  Returns ``(min_val, max_val, samples)``."""
    min_val, max_val = display_bounds(level.solution)
    y1_fn, y2_fn = line_equations(level.total, level.diff)

    xs = np.linspace(min_val, max_val, config.GRAPH_SAMPLES)
    y1s = y1_fn(xs)
    y2s = y2_fn(xs)

    samples = []
    for x, y1, y2 in zip(xs, y1s, y2s):
        samples.append({
            "x": _round_half_up(float(x)),
            "y1": _clip(y1, min_val, max_val),
            "y2": _clip(y2, min_val, max_val),
        })
    return min_val, max_val, samples


def guess_marker(x_text, y_text) -> Optional[GraphMarker]:
    """Marker for the live guess, or None unless both fields are numbers."""
    try:
        return GraphMarker(parse_guess(x_text), parse_guess(y_text), MARKER_GUESS)
    except InvalidGuessInput:
        return None


def project(level, x_text=None, y_text=None, solved: bool = False,
            revealed: bool = False) -> GraphProjection:
    """Build the graph data for *level* and the current guess text.

    Deterministic: identical inputs give identical samples.  The guess
    marker is dropped once the level is solved or the solution revealed.
    """
    min_val, max_val, samples = sample_lines(level)

    if solved:
        kind = MARKER_SOLVED
    elif revealed:
        kind = MARKER_REVEALED
    else:
        kind = MARKER_HIDDEN
    solution = GraphMarker(level.solution.x, level.solution.y, kind)

    live = None
    if not solved and not revealed and x_text is not None and y_text is not None:
        live = guess_marker(x_text, y_text)

    return GraphProjection(
        min_val=min_val,
        max_val=max_val,
        samples=samples,
        solution_marker=solution,
        guess_marker=live,
    )


def caption(projection: GraphProjection, level) -> str:
    """One-line caption under the chart describing what the markers show."""
    sol = projection.solution_marker
    if sol.kind == MARKER_SOLVED:
        return (f"🎯 Perfect! The golden dot at {sol.label} is where both "
                f"equations are satisfied!")
    if sol.kind == MARKER_REVEALED:
        return f"📍 Solution: The orange dot shows {sol.label} - where the lines intersect!"
    if projection.guess_marker is not None:
        return (f"Your guess: Blue dot at {projection.guess_marker.label}. "
                f"Get it to the intersection!")
    return (f"The solution is where the lines intersect! "
            f"{level.eq1_text}: x + y = {fmt_num(level.total)}, "
            f"{level.eq2_text}: x - y = {fmt_num(level.diff)}")
