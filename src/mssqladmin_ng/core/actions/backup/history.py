# mssqladmin_ng/core/actions/backup/history.py

# Built-in imports
from datetime import datetime
from typing import Any, Dict, List, Optional

# Third party imports
from loguru import logger

# Local imports
from ..base import DatabaseAction
from ..factory import ActionFactory
from ...models.records import BackupHistory
from ...services.database import DatabaseContext
from ...utils.common import format_bytes, format_duration
from ...utils.sql import in_list, quote_literal

BACKUP_TYPES = {
    "D": "Full",
    "I": "Differential",
    "L": "Log",
    "F": "File",
    "G": "Differential File",
    "P": "Partial Full",
    "Q": "Partial Differential",
}

TYPE_CODES = {label.lower(): code for code, label in BACKUP_TYPES.items()}

HISTORY_QUERY = """
    SELECT
        bs.backup_set_id,
        bs.database_name AS name,
        bs.type,
        CONVERT(VARCHAR(23), bs.backup_start_date, 126) AS start_date,
        CONVERT(VARCHAR(23), bs.backup_finish_date, 126) AS finish_date,
        DATEDIFF(SECOND, bs.backup_start_date, bs.backup_finish_date) AS duration_seconds,
        CAST(bs.backup_size AS BIGINT) AS backup_size,
        bs.user_name,
        CAST(bs.is_copy_only AS INT) AS is_copy_only,
        mf.physical_device_name
    FROM msdb.dbo.backupset bs
    JOIN msdb.dbo.backupmediafamily mf ON bs.media_set_id = mf.media_set_id
    {where}
    ORDER BY bs.database_name, bs.backup_start_date, bs.backup_set_id;
"""


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parses the ISO 8601 strings produced by CONVERT(..., 126).

    >>> parse_date("2024-03-01T22:15:04.123")
    datetime.datetime(2024, 3, 1, 22, 15, 4, 123000)
    """
    if not value:
        return None
    return datetime.fromisoformat(str(value))


def group_backup_sets(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Merges the rows of striped backups (one per media family) into one row
    per backup set, with their device names gathered in "paths".
    """
    grouped: Dict[Any, Dict[str, Any]] = {}
    for row in rows:
        key = row["backup_set_id"]
        if key not in grouped:
            grouped[key] = dict(row, paths=[])
        if row.get("physical_device_name"):
            grouped[key]["paths"].append(str(row["physical_device_name"]))
    return list(grouped.values())


def _latest(rows: List[Dict[str, Any]], code: str, after: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
    candidates = [
        row
        for row in rows
        if row["type"] == code and (after is None or row["start"] > after)
    ]
    return max(candidates, key=lambda row: row["start"]) if candidates else None


def last_chain(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    The backups needed to restore one database to its latest point: the
    latest full, the latest differential taken after it, then every log
    taken after the most recent of those two.
    """
    full = _latest(rows, "D")
    if full is None:
        return []

    chain = [full]
    differential = _latest(rows, "I", after=full["start"])
    if differential is not None:
        chain.append(differential)

    base = chain[-1]["start"]
    chain.extend(
        sorted(
            (row for row in rows if row["type"] == "L" and row["start"] > base),
            key=lambda row: row["start"],
        )
    )
    return chain


@ActionFactory.register("backup-history", "Query backup history from msdb")
class BackupHistoryAction(DatabaseAction):
    """
    Returns the backup history recorded in msdb.

    --last returns the restore chain of each database (latest full, latest
    differential after it, and the logs taken since). --last-full,
    --last-diff and --last-log return the latest backup of that type.

    Usage:
        backup-history -d Sales --since 2024-03-01
        backup-history --last --ignore-copy-only
        backup-history --type Log --type Differential
    """

    def __init__(self):
        super().__init__()
        self._since: Optional[datetime] = None
        self._types: List[str] = []
        self._last: Optional[str] = None
        self._ignore_copy_only = False

    def validate_arguments(
        self, additional_arguments: str = "", argument_list: Optional[List[str]] = None
    ) -> None:
        parser = self.create_argument_parser("Query backup history")
        self.add_database_arguments(parser)
        parser.add_argument("--since", default=None)
        parser.add_argument("--type", action="append", default=[])
        parser.add_argument("--ignore-copy-only", action="store_true")
        group = parser.add_mutually_exclusive_group()
        group.add_argument("--last", dest="last", action="store_const", const="chain")
        group.add_argument("--last-full", dest="last", action="store_const", const="D")
        group.add_argument("--last-diff", dest="last", action="store_const", const="I")
        group.add_argument("--last-log", dest="last", action="store_const", const="L")
        namespace = self.parse_with(parser, additional_arguments, argument_list)
        self.set_database_filters(namespace)

        if namespace.since:
            try:
                self._since = datetime.fromisoformat(namespace.since)
            except ValueError:
                raise ValueError(f"Invalid --since value: {namespace.since}. Use an ISO date such as 2024-03-01T08:00")

        self._types = []
        for label in namespace.type:
            code = TYPE_CODES.get(label.lower())
            if code is None:
                available = ", ".join(BACKUP_TYPES.values())
                raise ValueError(f"Unknown backup type: {label}. Available types: {available}")
            self._types.append(code)

        self._last = namespace.last
        self._ignore_copy_only = namespace.ignore_copy_only

    def build_query(self) -> str:
        conditions = []

        databases = in_list(self.databases)
        if databases:
            conditions.append(f"bs.database_name IN ({databases})")

        if self._since is not None:
            conditions.append(f"bs.backup_start_date >= {quote_literal(self._since.isoformat(timespec='seconds'))}")

        if self._types:
            conditions.append(f"bs.type IN ({in_list(self._types)})")

        if self._ignore_copy_only:
            conditions.append("bs.is_copy_only = 0")

        where = "WHERE " + " AND ".join(conditions) if conditions else ""
        return HISTORY_QUERY.format(where=where)

    def select(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if self._last is None:
            return rows

        by_database: Dict[str, List[Dict[str, Any]]] = {}
        for row in rows:
            by_database.setdefault(str(row["name"]), []).append(row)

        selected: List[Dict[str, Any]] = []
        for database, database_rows in by_database.items():
            if self._last == "chain":
                chain = last_chain(database_rows)
                if not chain:
                    logger.warning(f"No full backup found for {database}")
                selected.extend(chain)
            else:
                latest = _latest(database_rows, self._last)
                if latest is None:
                    logger.warning(f"No {BACKUP_TYPES[self._last].lower()} backup found for {database}")
                else:
                    selected.append(latest)
        return selected

    def execute(self, database_context: DatabaseContext) -> List[BackupHistory]:
        server = database_context.server

        try:
            rows = database_context.query_service.execute_table(self.build_query())
        except Exception as e:
            self.stop_function("Failed to read backup history", server.sql_instance, e)
            return []

        backup_sets = group_backup_sets(self.filter_databases(rows))
        for row in backup_sets:
            row["start"] = parse_date(row.get("start_date"))
            row["end"] = parse_date(row.get("finish_date"))

        records = []
        for row in self.select(backup_sets):
            size = int(row["backup_size"]) if row.get("backup_size") is not None else 0
            code = str(row["type"]).strip()
            records.append(
                BackupHistory(
                    sql_instance=server.sql_instance,
                    database=str(row["name"]),
                    type=BACKUP_TYPES.get(code, code),
                    start=row["start"],
                    end=row["end"],
                    duration=format_duration(row.get("duration_seconds")),
                    backup_set_id=int(row["backup_set_id"]),
                    total_size=format_bytes(size),
                    user_name=row.get("user_name"),
                    path=", ".join(row["paths"]) or None,
                    copy_only=row.get("is_copy_only") == 1,
                    total_size_bytes=size,
                )
            )

        logger.info(f"{len(records)} backup(s) found on {server.sql_instance}")
        return records

    def get_arguments(self) -> List[str]:
        return [
            "-d/--database: Database(s) to report (default: all)",
            "-x/--exclude-database: Database(s) to skip",
            "--since: Only backups started at or after this ISO date/time",
            "--type: Backup type(s): Full, Differential, Log, File, ...",
            "--last: Latest restore chain (full, differential, logs)",
            "--last-full / --last-diff / --last-log: Latest backup of that type",
            "--ignore-copy-only: Skip copy-only backups",
        ]
