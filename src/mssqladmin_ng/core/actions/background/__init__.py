"""
Background runspace actions.
"""

from .runspaces import Runspaces, StopRunspace

__all__ = ["Runspaces", "StopRunspace"]
