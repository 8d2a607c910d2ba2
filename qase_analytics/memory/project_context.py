"""
Project context - which Qase project each user is currently looking at
"""

from typing import Dict, Optional


class ProjectContextStore:
    """Plain user id -> project code map; entries never expire."""

    def __init__(self):
        self._projects: Dict[str, str] = {}

    def get_project(self, user_id: str) -> Optional[str]:
        return self._projects.get(user_id)

    def set_project(self, user_id: str, project_code: str) -> None:
        self._projects[user_id] = project_code

    def clear_project(self, user_id: str) -> bool:
        return self._projects.pop(user_id, None) is not None

    def clear_all(self) -> None:
        self._projects.clear()


_shared_context: Optional[ProjectContextStore] = None


def get_project_context_store() -> ProjectContextStore:
    """Get the process-wide project context store (singleton)."""
    global _shared_context
    if _shared_context is None:
        _shared_context = ProjectContextStore()
    return _shared_context
