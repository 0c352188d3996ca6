"""
Administration actions for SQL Server instance configuration.
"""

from .maxmemory import TestMaxMemory, SetMaxMemory
from .install import InstallProcedure

__all__ = [
    "TestMaxMemory",
    "SetMaxMemory",
    "InstallProcedure",
]
