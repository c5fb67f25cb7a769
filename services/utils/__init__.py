"""
Utility services for test strip scanning.

Utilities:
- DebugContext: Visual logging and step tracking
"""

from services.utils.debug import DebugContext

__all__ = [
    'DebugContext'
]
