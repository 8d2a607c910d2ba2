"""
Qase Analytics - natural-language QA analytics over Qase.io
"""

__version__ = "0.1.0"
