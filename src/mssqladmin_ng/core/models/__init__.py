"""Models for SQL Server connections and command output records."""

from .server import Server
from .records import (
    Record,
    OrphanUser,
    OrphanRepair,
    ProcedureInstall,
    LoginRename,
    MaxMemory,
    MaxMemoryChange,
    AgentCopy,
    DatabaseOwner,
    CollectorSet,
    CollectorCounter,
    RunspaceInfo,
    BackupHistory,
)

__all__ = [
    "Server",
    "Record",
    "OrphanUser",
    "OrphanRepair",
    "ProcedureInstall",
    "LoginRename",
    "MaxMemory",
    "MaxMemoryChange",
    "AgentCopy",
    "DatabaseOwner",
    "CollectorSet",
    "CollectorCounter",
    "RunspaceInfo",
    "BackupHistory",
]
