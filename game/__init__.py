"""Equation Quest — linear-system word puzzles, scoring and session logic."""

from game.engine import Solution, line_equations, solution_steps, solve
from game.graph import GraphProjection, project
from game.scoring import FeedbackTier, GuessResult, InvalidGuessInput, evaluate
from game.session import Phase, PlayerProgress, SessionController
from game.templates import (
    BUILT_IN_TEMPLATES,
    Level,
    Template,
    build_custom_level,
    generate_level,
)

__all__ = [
    "BUILT_IN_TEMPLATES",
    "FeedbackTier",
    "GraphProjection",
    "GuessResult",
    "InvalidGuessInput",
    "Level",
    "Phase",
    "PlayerProgress",
    "SessionController",
    "Solution",
    "Template",
    "build_custom_level",
    "evaluate",
    "generate_level",
    "line_equations",
    "project",
    "solution_steps",
    "solve",
]
