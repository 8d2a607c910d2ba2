"""
Qase enum mappings and derived metrics shared by the retrieval tools
"""

import math
from typing import Optional, Union

from qase_analytics.config.constants import (
    AUTOMATION_MAP,
    CASE_STATUS_MAP,
    OTHER_STATUS_BUCKET,
    PRIORITY_MAP,
    RESULT_STATUS_BUCKETS,
    RUN_STATUS_MAP,
    SEVERITY_MAP,
    UNDEFINED,
)


def map_severity(value: Optional[int]) -> str:
    return SEVERITY_MAP.get(value, UNDEFINED)


def map_priority(value: Optional[int]) -> str:
    return PRIORITY_MAP.get(value, UNDEFINED)


def map_automation(value: Optional[int]) -> str:
    if value is None:
        return AUTOMATION_MAP[0]
    return AUTOMATION_MAP.get(value, UNDEFINED)


def map_case_status(value: Optional[int]) -> str:
    if value is None:
        return CASE_STATUS_MAP[0]
    return CASE_STATUS_MAP.get(value, UNDEFINED)


def map_run_status(value: Optional[int]) -> str:
    return RUN_STATUS_MAP.get(value, "unknown")


def status_bucket(status: Optional[str]) -> str:
    """Bucket a result status; "In Progress" and "in_progress" land together."""
    normalized = (status or "").strip().lower().replace(" ", "_")
    if normalized in RESULT_STATUS_BUCKETS:
        return normalized
    return OTHER_STATUS_BUCKET


def pass_rate(passed: int, total: int) -> Union[int, float]:
    """
    Percentage of passed over total, rounded half up to two decimals.

    Whole numbers come back as int (90, 100, 0) and everything else as a
    two-decimal float (33.33).
    """
    if total <= 0:
        return 0
    value = math.floor(passed / total * 100 * 100 + 0.5) / 100
    if value.is_integer():
        return int(value)
    return value
