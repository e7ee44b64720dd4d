# Mockify package
"""
Mockify - Backend Module
"""

from .config import settings

__all__ = [
    "settings",
]
