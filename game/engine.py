"""Solution engine for the x + y = total, x − y = diff puzzles."""

"""
Every level in the game is the same two-line system:

    x + y = total
    x − y = diff

so the intersection is always ((total + diff) / 2, (total − diff) / 2).
``solve`` computes it directly; ``solution_steps`` rebuilds the elimination
walkthrough symbolically with SymPy so each displayed step (and the final
check) is exact rather than a float approximation.
"""

import logging
from dataclasses import dataclass

from sympy import Eq, Rational, solve as sym_solve, symbols

logger = logging.getLogger(__name__)

_X, _Y = symbols("x y")


@dataclass(frozen=True)
class Solution:
    """Intersection point of the two lines."""

    x: float
    y: float

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


# ── Numeric formatting ──────────────────────────────────────────────────

def fmt_num(value, max_decimals: int = 10) -> str:
    """Render a level number the way the puzzle text shows it.

    Used for equation strings, hint text, walkthrough steps and graph
    captions, so whole counts read ``60`` and half-values read ``42.5``.
    """
    value = float(value)
    if abs(value - round(value)) < 1e-12:
        return str(int(round(value)))
    return f"{value:.{max_decimals}f}".rstrip("0").rstrip(".")


def _exact(value) -> Rational:
    """Convert an int / float / numeric string into an exact Rational."""
    return Rational(str(value))


# ── Public API ──────────────────────────────────────────────────────────

def solve(total, diff) -> Solution:
    """Return the unique solution of x + y = *total*, x − y = *diff*.

    Accepts any real inputs; the result may be fractional or negative.
    """
    return Solution(x=(total + diff) / 2, y=(total - diff) / 2)


def line_equations(total, diff):
    """Return ``(y1, y2)`` — each line written as y in terms of x.

    ``y1(x) = total − x`` comes from x + y = total and
    ``y2(x) = x − diff`` from x − y = diff.  Both work on scalars and on
    NumPy arrays.
    """
    def y1(x):
        return total - x

    def y2(x):
        return x - diff

    return y1, y2


def equation_strings(total, diff) -> tuple[str, str]:
    """Human-readable forms of the two equations."""
    return f"x + y = {fmt_num(total)}", f"x - y = {fmt_num(diff)}"


def hint_text(level) -> str:
    """Strategy hint shown once the player has missed a few times."""
    return (
        "Strategy: Add both equations together! The y terms will cancel "
        f"out, giving you 2x = {fmt_num(level.total + level.diff)}."
    )


def solution_steps(level) -> list[dict]:
    """Build the elimination walkthrough for *level*.

    Returns a list of ``{step_number, description, expression,
    explanation}`` dicts.  The last step carries ``verified`` — True when
    substituting the solution back satisfies both equations exactly.
    """
    total = _exact(level.total)
    diff = _exact(level.diff)
    eq1 = Eq(_X + _Y, total)
    eq2 = Eq(_X - _Y, diff)
    eq1_str, eq2_str = equation_strings(level.total, level.diff)

    steps = []
    steps.append({
        "description": "Write the equations",
        "expression": f"{eq1_str}\n{eq2_str}",
        "explanation": (
            f"{level.eq1_text}: {eq1_str}. {level.eq2_text}: {eq2_str}. "
            f"x is {level.x_label} and y is {level.y_label}."
        ),
    })

    # Adding the two equations eliminates y
    summed = Eq(eq1.lhs + eq2.lhs, eq1.rhs + eq2.rhs)
    steps.append({
        "description": "Add the equations",
        "expression": f"2x = {fmt_num(summed.rhs)}",
        "explanation": "The y terms cancel!",
    })

    x_val = sym_solve(summed, _X)[0]
    steps.append({
        "description": "Solve for x",
        "expression": f"x = {fmt_num(summed.rhs)} / 2\nx = {fmt_num(x_val)}",
        "explanation": "Divide both sides by 2.",
    })

    y_val = sym_solve(eq1.subs(_X, x_val), _Y)[0]
    steps.append({
        "description": "Find y",
        "expression": f"{fmt_num(x_val)} + y = {fmt_num(total)}\ny = {fmt_num(y_val)}",
        "explanation": "Substitute x back into the first equation.",
    })

    check = {_X: x_val, _Y: y_val}
    verified = bool(eq1.subs(check)) and bool(eq2.subs(check))
    if not verified:
        logger.error("Walkthrough failed verification for total=%s diff=%s",
                     level.total, level.diff)
    mark = "✓" if verified else "✗"
    steps.append({
        "description": "Verify",
        "expression": (
            f"{fmt_num(x_val)} + {fmt_num(y_val)} = {fmt_num(total)} {mark}\n"
            f"{fmt_num(x_val)} - {fmt_num(y_val)} = {fmt_num(diff)} {mark}"
        ),
        "explanation": "Both equations are satisfied at the intersection.",
        "verified": verified,
    })

    for i, s in enumerate(steps, 1):
        s["step_number"] = i
    return steps
