"""
Configuration layer - Settings and constants
"""

from qase_analytics.config.settings import settings, Settings, PROJECT_ROOT

__all__ = [
    "settings",
    "Settings",
    "PROJECT_ROOT",
]
