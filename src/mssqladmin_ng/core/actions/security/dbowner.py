# mssqladmin_ng/core/actions/security/dbowner.py

# Built-in imports
from typing import Any, Dict, List, Optional

# Third party imports
from loguru import logger

# Local imports
from ..base import DatabaseAction
from ..factory import ActionFactory
from ...models.records import DatabaseOwner
from ...services.database import SYSTEM_DATABASES, DatabaseContext
from ...utils.sql import quote_identifier, quote_literal

OWNERS_QUERY = """
    SELECT
        d.name,
        d.state_desc,
        SUSER_SNAME(d.owner_sid) AS owner
    FROM sys.databases d
    ORDER BY d.name;
"""

SA_LOGIN_QUERY = "SELECT name FROM sys.server_principals WHERE sid = 0x01;"


class _DatabaseOwnerAction(DatabaseAction):
    """Shared argument handling and audit logic of the ownership actions."""

    description = ""

    def __init__(self):
        super().__init__()
        self._target_login: Optional[str] = None

    def add_extra_arguments(self, parser) -> None:
        pass

    def apply_extra_arguments(self, namespace) -> None:
        pass

    def validate_arguments(
        self, additional_arguments: str = "", argument_list: Optional[List[str]] = None
    ) -> None:
        parser = self.create_argument_parser(self.description)
        self.add_database_arguments(parser)
        parser.add_argument("-l", "--target-login", default=None)
        self.add_extra_arguments(parser)
        namespace = self.parse_with(parser, additional_arguments, argument_list)
        self.set_database_filters(namespace)
        self._target_login = namespace.target_login
        self.apply_extra_arguments(namespace)

    def resolve_target_login(self, database_context: DatabaseContext) -> Optional[str]:
        """
        The expected owner: the given login, or the login holding SID 0x01 (sa).
        Windows groups cannot own databases.
        """
        query_service = database_context.query_service
        server = database_context.server

        login = self._target_login or query_service.execute_scalar(SA_LOGIN_QUERY)
        if not login:
            self.stop_function("Could not determine the sa login", server.sql_instance)
            return None

        login_type = query_service.execute_scalar(
            f"SELECT type FROM sys.server_principals WHERE name = {quote_literal(login)};"
        )
        if login_type is None:
            self.stop_function(f"Login {login} does not exist", server.sql_instance)
            return None

        if str(login_type).strip() == "G":
            self.stop_function(f"{login} is a Windows group and cannot own databases", server.sql_instance)
            return None

        return str(login)

    def audit(self, database_context: DatabaseContext, target_login: str) -> List[DatabaseOwner]:
        server = database_context.server
        rows: List[Dict[str, Any]] = database_context.query_service.execute_table(OWNERS_QUERY)

        return [
            DatabaseOwner(
                computer_name=server.computer_name,
                instance_name=server.instance_name,
                sql_instance=server.sql_instance,
                database=str(row["name"]),
                db_state=str(row.get("state_desc") or ""),
                current_owner=row.get("owner"),
                target_owner=target_login,
                owner_match=(row.get("owner") or "").lower() == target_login.lower(),
            )
            for row in self.filter_databases(rows)
        ]


@ActionFactory.register("test-dbowner", "Audit database owners against an expected login")
class TestDatabaseOwner(_DatabaseOwnerAction):
    """
    Compares the owner of every database with the expected login
    (default: the sa login, whatever its current name).

    Usage:
        test-dbowner
        test-dbowner -l DOMAIN\\svc_owner --only-mismatch
    """

    description = "Audit database ownership"

    def __init__(self):
        super().__init__()
        self._only_mismatch = False

    def add_extra_arguments(self, parser) -> None:
        parser.add_argument("--only-mismatch", action="store_true")

    def apply_extra_arguments(self, namespace) -> None:
        self._only_mismatch = namespace.only_mismatch

    def execute(self, database_context: DatabaseContext) -> List[DatabaseOwner]:
        target_login = self.resolve_target_login(database_context)
        if target_login is None:
            return []

        records = self.audit(database_context, target_login)
        mismatches = [record for record in records if not record.owner_match]

        logger.info(
            f"{len(mismatches)} of {len(records)} database(s) on {database_context.server.sql_instance} "
            f"not owned by {target_login}"
        )

        return mismatches if self._only_mismatch else records

    def get_arguments(self) -> List[str]:
        return [
            "-l/--target-login: Expected owner (default: sa login)",
            "-d/--database: Database(s) to check (default: all)",
            "-x/--exclude-database: Database(s) to skip",
            "--only-mismatch: Only return databases with another owner",
        ]


@ActionFactory.register("set-dbowner", "Change database owners to the expected login")
class SetDatabaseOwner(_DatabaseOwnerAction):
    """
    Sets the owner of mismatching online databases to the expected login.

    System databases are skipped: SQL Server refuses to change the owner
    of master, model and tempdb. A login mapped to a user inside the
    database cannot become its owner, those databases are skipped too.
    """

    description = "Change database ownership"

    def execute(self, database_context: DatabaseContext) -> List[DatabaseOwner]:
        server = database_context.server
        query_service = database_context.query_service

        target_login = self.resolve_target_login(database_context)
        if target_login is None:
            return []

        records: List[DatabaseOwner] = []

        for record in self.audit(database_context, target_login):
            if record.owner_match:
                continue

            target = f"{server.sql_instance}.{record.database}"

            if record.database.lower() in SYSTEM_DATABASES:
                logger.warning(f"[{target}] Skipping: the owner of a system database cannot be changed")
                continue

            if record.db_state != "ONLINE":
                logger.warning(f"[{target}] Skipping: database is {record.db_state}")
                continue

            try:
                mapped_user = query_service.execute_scalar(
                    f"SELECT dp.name FROM {quote_identifier(record.database)}.sys.database_principals dp "
                    "JOIN master.sys.server_principals sp ON dp.sid = sp.sid "
                    f"WHERE sp.name = {quote_literal(target_login)} AND dp.name <> 'dbo';"
                )
            except Exception as e:
                self.stop_function("Failed to read database users", target, e)
                continue

            if mapped_user:
                logger.warning(
                    f"[{target}] Skipping: {target_login} is mapped to user {mapped_user} in this database"
                )
                continue

            try:
                query_service.execute_non_processing(
                    f"ALTER AUTHORIZATION ON DATABASE::{quote_identifier(record.database)} "
                    f"TO {quote_identifier(target_login)};"
                )
            except Exception as e:
                self.stop_function("Failed to change owner", target, e)
                continue

            logger.success(f"[{target}] Owner changed from {record.current_owner} to {target_login}")
            record.current_owner = target_login
            record.owner_match = True
            records.append(record)

        return records

    def get_arguments(self) -> List[str]:
        return [
            "-l/--target-login: New owner (default: sa login)",
            "-d/--database: Database(s) to change (default: all)",
            "-x/--exclude-database: Database(s) to skip",
        ]
