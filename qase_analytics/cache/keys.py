"""
Cache key construction and filter fingerprinting
"""

import hashlib
import json
import re
from typing import Any, Dict, List, Mapping, Optional

from qase_analytics.config.constants import (
    CACHE_KEY_PREFIX,
    FINGERPRINT_LENGTH,
    RESOURCE_CASES,
    RESOURCE_PROJECTS,
    RESOURCE_RESULTS,
    RESOURCE_RUNS,
)

RESOURCE_KINDS = (RESOURCE_PROJECTS, RESOURCE_CASES, RESOURCE_RUNS, RESOURCE_RESULTS)


def filter_fingerprint(filters: Mapping[str, Any]) -> str:
    """
    Stable short hash of a filter mapping.

    Keys are sorted and None values dropped, so {"a": 1, "b": None} and
    {"a": 1} share a fingerprint and key order never matters.
    """
    canonical: Dict[str, Any] = {key: value for key, value in filters.items() if value is not None}
    payload = json.dumps(canonical, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.md5(payload.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def build_cache_key(
    resource_kind: str,
    user_id: str,
    project_code: Optional[str] = None,
    run_id: Optional[int] = None,
    fingerprint: Optional[str] = None,
) -> str:
    """
    Compose ``qase:<kind>:<user>[:<project>][:<run>][:<fingerprint>]``.
    """
    parts = [CACHE_KEY_PREFIX, resource_kind, user_id]
    if project_code:
        parts.append(project_code)
    if run_id is not None:
        parts.append(str(run_id))
    if fingerprint:
        parts.append(fingerprint)
    return ":".join(parts)


def _glob_literal(value: str) -> str:
    # [x] is a one-character class in both fnmatch and Redis MATCH
    return re.sub(r"([*?\[])", r"[\1]", value)


def user_cache_patterns(
    user_id: str,
    resource_kind: Optional[str] = None,
    project_code: Optional[str] = None,
) -> List[str]:
    """
    Glob patterns matching the cached entries of one user.

    One pattern per resource kind, each with the kind and user segments
    spelled out, so another user's key never matches even when its project
    code equals this user's id.
    """
    kinds = [resource_kind] if resource_kind else list(RESOURCE_KINDS)
    user = _glob_literal(user_id)
    scope = f"{user}:{_glob_literal(project_code)}" if project_code else user
    return [f"{CACHE_KEY_PREFIX}:{kind}:{scope}:*" for kind in kinds]
