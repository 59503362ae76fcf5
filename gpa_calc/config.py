"""
Configuration constants for the GPA calculator.

Grade scale, persistence location, share-link settings and summary card
geometry live here. Values that a deployment may need to change can be
overridden through environment variables.
"""

import os
from pathlib import Path

# =============================================================================
# GRADE SCALE
# =============================================================================

# (label, grade point) in the order shown in the grade picker.
# S and U carry the legacy "not counted" sentinel.
GRADE_OPTIONS = [
    ("A+", 5.0), ("A", 5.0), ("A-", 4.5),
    ("B+", 4.0), ("B", 3.5), ("B-", 3.0),
    ("C+", 2.5), ("C", 2.0), ("D+", 1.5),
    ("D", 1.0), ("F", 0.0),
    ("S", -1.0), ("U", -1.0),
]

GRADE_POINTS = (5.0, 4.5, 4.0, 3.5, 3.0, 2.5, 2.0, 1.5, 1.0, 0.0)
UNGRADED = -1.0
TOP_GRADE = GRADE_POINTS[0]
DEFAULT_CREDITS = 4
# Largest credit weight accepted from input or shared data, either sign.
MAX_CREDITS = 1000

# Lower bound of each honours band, best first.
HONOURS_BANDS = [
    (4.50, "Honours (Highest Distinction)"),
    (4.00, "Honours (Distinction)"),
    (3.50, "Honours (Merit)"),
    (3.00, "Honours"),
    (2.00, "Pass"),
]
BELOW_PASS = "Below Pass"


# =============================================================================
# PERSISTENCE
# =============================================================================

STORAGE_KEY = "nus-gpa-calc-state"
# One file per browser client under this directory.
STORAGE_DIR = Path(
    os.environ.get("GPA_CALC_STORAGE_DIR", Path.home() / ".nus_gpa_calc" / "clients")
)
CLIENT_PARAM = "client"


# =============================================================================
# SHARING
# =============================================================================

SHARE_PARAM = "data"
APP_URL = os.environ.get("GPA_CALC_APP_URL", "http://localhost:8501/")

SHORTENER_URL = os.environ.get("GPA_CALC_SHORTENER_URL", "https://is.gd/create.php")
SHORTENER_TIMEOUT = float(os.environ.get("GPA_CALC_SHORTENER_TIMEOUT", "5"))
SHORTENER_RETRIES = 2
SHORTENER_BACKOFF = 0.5
# Longest a share click waits for the short link before using the long one.
SHARE_WAIT = float(os.environ.get("GPA_CALC_SHARE_WAIT", "8"))


# =============================================================================
# SUMMARY CARD
# =============================================================================

CARD_SIZE = (1200, 630)
CARD_MAX_SEMESTERS = 6


LOG_LEVEL = os.environ.get("GPA_CALC_LOG_LEVEL", "INFO").upper()
