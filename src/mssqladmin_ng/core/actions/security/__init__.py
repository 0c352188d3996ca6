"""
Security actions: orphaned users, login renames and database ownership.
"""

from .orphans import OrphanUsers, RepairOrphanUsers
from .rename_login import RenameLogin
from .dbowner import TestDatabaseOwner, SetDatabaseOwner

__all__ = [
    "OrphanUsers",
    "RepairOrphanUsers",
    "RenameLogin",
    "TestDatabaseOwner",
    "SetDatabaseOwner",
]
