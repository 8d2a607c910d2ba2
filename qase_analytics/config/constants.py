"""
Application constants

Centralized constants used across the engine.
"""

from typing import Dict, Tuple

# ============================================================================
# Cache Keys
# ============================================================================

CACHE_KEY_PREFIX = "qase"

# Resource kinds handled by the cached retrieval tools
RESOURCE_PROJECTS = "projects"
RESOURCE_CASES = "cases"
RESOURCE_RUNS = "runs"
RESOURCE_RESULTS = "results"

FINGERPRINT_LENGTH = 12


# ============================================================================
# Qase Enumerations
# ============================================================================

SEVERITY_MAP: Dict[int, str] = {
    1: "blocker",
    2: "critical",
    3: "major",
    4: "normal",
    5: "minor",
    6: "trivial",
}

PRIORITY_MAP: Dict[int, str] = {
    1: "high",
    2: "medium",
    3: "low",
}

AUTOMATION_MAP: Dict[int, str] = {
    0: "is-not-automated",
    1: "automated",
    2: "to-be-automated",
}

CASE_STATUS_MAP: Dict[int, str] = {
    0: "actual",
    1: "draft",
    2: "deprecated",
}

RUN_STATUS_MAP: Dict[int, str] = {
    0: "active",
    1: "complete",
    2: "abort",
}

UNDEFINED = "undefined"

# Buckets used to group run results; anything else lands in "other"
RESULT_STATUS_BUCKETS: Tuple[str, ...] = (
    "passed",
    "failed",
    "blocked",
    "skipped",
    "invalid",
    "in_progress",
)
OTHER_STATUS_BUCKET = "other"


# ============================================================================
# Chart Colors
# ============================================================================

DEFAULT_CHART_COLORS = [
    "#10b981",  # green
    "#ef4444",  # red
    "#f59e0b",  # amber
    "#6366f1",  # indigo
    "#8b5cf6",  # violet
    "#ec4899",  # pink
    "#06b6d4",  # cyan
    "#84cc16",  # lime
]

STATUS_CHART_COLORS: Dict[str, str] = {
    "passed": "#10b981",
    "failed": "#ef4444",
    "blocked": "#f59e0b",
    "skipped": "#6b7280",
    "untested": "#9ca3af",
    "in_progress": "#3b82f6",
    "active": "#3b82f6",
    "complete": "#10b981",
    "abort": "#ef4444",
}
