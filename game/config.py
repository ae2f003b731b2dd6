"""
Equation Quest — configuration constants.

Gameplay tuning lives here so the evaluator, the session controller and the
progress store all read the same numbers.
"""

import os

# ── Guess evaluation ───────────────────────────────────────────────────────
TOLERANCE = 0.5              # per-axis, strict (< TOLERANCE)
MAX_POINTS = 100
POINTS_PER_MISS = 10
MIN_POINTS = 50
QUICK_SOLVER_MAX_ATTEMPTS = 2
HINT_AFTER_ATTEMPTS = 2      # hint unlocks once attempts > this

# Near-miss thresholds on |x+y-total| and |x-y-diff|
SO_CLOSE_ERROR = 5
WARMER_ERROR = 10

# ── Badges ─────────────────────────────────────────────────────────────────
BADGE_FIRST_TRY = "first-try"
BADGE_QUICK_SOLVER = "quick-solver"
BADGES = (BADGE_FIRST_TRY, BADGE_QUICK_SOLVER)

# ── Graph projection ───────────────────────────────────────────────────────
GRAPH_SAMPLES = 101

# ── Progress store ─────────────────────────────────────────────────────────
DATA_DIR = os.environ.get(
    "EQUATION_QUEST_DATA_DIR",
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "data"),
)
DATA_FILE_NAME = "progress.json"
WEEK_RESET_DAYS = 7
MAX_CUSTOM_LEVELS = 100

# ── HTTP sessions ──────────────────────────────────────────────────────────
MAX_SESSIONS = 500

# ── Logging ────────────────────────────────────────────────────────────────
LOG_LEVEL = os.environ.get("EQUATION_QUEST_LOG_LEVEL", "INFO")
