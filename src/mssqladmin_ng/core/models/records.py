# mssqladmin_ng/core/models/records.py
"""
Flat output records emitted by actions.

Attribute names are snake_case; to_dict() exposes the column names shown to
users (PascalCase unless a field overrides it through its metadata).
"""

# Built-in imports
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, Optional


def _column(name: str) -> Dict[str, str]:
    return {"column": name}


def _pascal_case(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_"))


@dataclass
class Record:
    """Base class for output records."""

    def to_dict(self) -> Dict[str, Any]:
        return {
            item.metadata.get("column", _pascal_case(item.name)): getattr(self, item.name)
            for item in fields(self)
            if not item.metadata.get("hidden", False)
        }


@dataclass
class OrphanUser(Record):
    computer_name: str
    instance_name: str
    sql_instance: str
    database_name: str
    user: str


@dataclass
class OrphanRepair(Record):
    computer_name: str
    instance_name: str
    sql_instance: str
    database_name: str
    user: str
    status: str


@dataclass
class ProcedureInstall(Record):
    computer_name: str
    instance_name: str
    sql_instance: str
    database: str
    script: str
    batches: int
    status: str


@dataclass
class LoginRename(Record):
    computer_name: str
    instance_name: str
    sql_instance: str
    database: Optional[str]
    previous_login: str
    new_login: str
    previous_user: Optional[str] = None
    new_user: Optional[str] = None
    status: str = "Successful"


@dataclass
class MaxMemory(Record):
    computer_name: str
    instance_name: str
    sql_instance: str
    total_mb: int = field(metadata=_column("TotalMB"))
    max_value: int
    recommended_value: int


@dataclass
class MaxMemoryChange(Record):
    computer_name: str
    instance_name: str
    sql_instance: str
    total_mb: int = field(metadata=_column("TotalMB"))
    old_max_value: int
    current_max_value: int


@dataclass
class AgentCopy(Record):
    source_server: str
    destination_server: str
    name: str
    type: str
    status: str
    notes: Optional[str] = None
    date_time: datetime = field(default_factory=datetime.now, metadata=_column("DateTime"))


@dataclass
class DatabaseOwner(Record):
    computer_name: str
    instance_name: str
    sql_instance: str
    database: str
    db_state: str = field(metadata=_column("DBState"))
    current_owner: Optional[str]
    target_owner: str
    owner_match: bool


@dataclass
class CollectorSet(Record):
    computer_name: str
    name: str
    type: Optional[str] = None
    status: Optional[str] = None
    root_path: Optional[str] = None
    schedules: Optional[str] = None
    run_as: Optional[str] = None


@dataclass
class CollectorCounter(Record):
    computer_name: str
    data_collector_set: str
    data_collector: str
    name: str
    status: Optional[str] = None


@dataclass
class RunspaceInfo(Record):
    name: str
    state: str
    alive: bool


@dataclass
class BackupHistory(Record):
    sql_instance: str
    database: str
    type: str
    start: Optional[datetime]
    end: Optional[datetime]
    duration: str
    backup_set_id: int = field(metadata=_column("BackupSetID"))
    total_size: str
    user_name: Optional[str] = None
    path: Optional[str] = None
    copy_only: bool = False
    total_size_bytes: int = field(default=0, metadata={"hidden": True})
