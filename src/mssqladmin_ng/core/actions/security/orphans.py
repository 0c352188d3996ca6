# mssqladmin_ng/core/actions/security/orphans.py

# Built-in imports
from typing import List, Optional

# Third party imports
from loguru import logger

# Local imports
from ..base import DatabaseAction
from ..factory import ActionFactory
from ...models.records import OrphanRepair, OrphanUser
from ...services.database import DatabaseContext
from ...utils.sql import in_database, quote_identifier

ORPHAN_QUERY = """
    SELECT dp.name AS user_name
    FROM {database}.sys.database_principals dp
    LEFT JOIN master.sys.server_principals sp ON dp.sid = sp.sid
    WHERE dp.type IN ('S', 'U', 'G')
      AND dp.sid IS NOT NULL
      AND dp.principal_id > 4
      AND dp.authentication_type_desc NOT IN ('NONE', 'DATABASE')
      AND dp.name NOT IN ('dbo', 'guest', 'sys', 'INFORMATION_SCHEMA', 'MS_DataCollectorInternalUser')
      AND dp.name NOT LIKE '##%'
      AND sp.sid IS NULL
    ORDER BY dp.name;
"""

SQL_LOGINS_QUERY = "SELECT name FROM sys.server_principals WHERE type = 'S';"


def find_orphans(database_context: DatabaseContext, database: str) -> List[str]:
    """Names of the orphaned users of one database."""
    rows = database_context.query_service.execute_table(
        ORPHAN_QUERY.format(database=quote_identifier(database))
    )
    return [str(row["user_name"]) for row in rows]


@ActionFactory.register("orphans", "List database users without a matching server login")
class OrphanUsers(DatabaseAction):
    """
    Lists orphaned users: database principals whose SID matches no server login.

    Contained users, users created WITHOUT LOGIN and built-in principals are
    not reported.

    Usage:
        orphans
        orphans -d AppDb -d Sales
        orphans -x tempdb
    """

    def validate_arguments(
        self, additional_arguments: str = "", argument_list: Optional[List[str]] = None
    ) -> None:
        parser = self.create_argument_parser("List orphaned database users")
        self.add_database_arguments(parser)
        self.set_database_filters(
            self.parse_with(parser, additional_arguments, argument_list)
        )

    def execute(self, database_context: DatabaseContext) -> List[OrphanUser]:
        server = database_context.server
        records: List[OrphanUser] = []

        for database in self.accessible_databases(database_context):
            try:
                orphans = find_orphans(database_context, database)
            except Exception as e:
                self.stop_function("Failed to list users", f"{server.sql_instance}.{database}", e)
                continue

            logger.debug(f"{len(orphans)} orphaned user(s) in {database}")
            records.extend(
                OrphanUser(
                    computer_name=server.computer_name,
                    instance_name=server.instance_name,
                    sql_instance=server.sql_instance,
                    database_name=database,
                    user=user,
                )
                for user in orphans
            )

        if not records:
            logger.info(f"No orphaned users on {server.sql_instance}")

        return records

    def get_arguments(self) -> List[str]:
        return [
            "-d/--database: Database(s) to check (default: all)",
            "-x/--exclude-database: Database(s) to skip",
        ]


@ActionFactory.register("repair-orphans", "Map orphaned users back to the login of the same name")
class RepairOrphanUsers(DatabaseAction):
    """
    Repairs orphaned users by re-mapping them to the SQL login of the same name.

    Orphans without a matching login are skipped, or dropped with
    --remove-not-existing (a user owning a schema cannot be dropped).
    """

    def __init__(self):
        super().__init__()
        self._remove_not_existing = False

    def validate_arguments(
        self, additional_arguments: str = "", argument_list: Optional[List[str]] = None
    ) -> None:
        parser = self.create_argument_parser("Repair orphaned database users")
        self.add_database_arguments(parser)
        parser.add_argument("--remove-not-existing", action="store_true")
        namespace = self.parse_with(parser, additional_arguments, argument_list)
        self.set_database_filters(namespace)
        self._remove_not_existing = namespace.remove_not_existing

    def _repair(self, database_context: DatabaseContext, database: str, user: str, logins: set) -> str:
        query_service = database_context.query_service
        target = f"{database_context.server.sql_instance}.{database}.{user}"

        if user.lower() in logins:
            statement = f"ALTER USER {quote_identifier(user)} WITH LOGIN = {quote_identifier(user)};"
            try:
                query_service.execute_non_processing(in_database(database, statement))
            except Exception as e:
                self.stop_function("Failed to map user to its login", target, e)
                return "Failed"
            logger.success(f"User {user} in {database} mapped to login {user}")
            return "Repaired"

        if not self._remove_not_existing:
            logger.info(f"No login named {user}, leaving {database}.{user} untouched")
            return "Skipped"

        try:
            query_service.execute_non_processing(
                in_database(database, f"DROP USER {quote_identifier(user)};")
            )
        except Exception as e:
            self.stop_function("Failed to drop user", target, e)
            return "Failed"

        logger.success(f"Dropped orphaned user {user} from {database}")
        return "Removed"

    def execute(self, database_context: DatabaseContext) -> List[OrphanRepair]:
        server = database_context.server
        logins = {
            str(row["name"]).lower()
            for row in database_context.query_service.execute_table(SQL_LOGINS_QUERY)
        }
        records: List[OrphanRepair] = []

        for database in self.accessible_databases(database_context):
            try:
                orphans = find_orphans(database_context, database)
            except Exception as e:
                self.stop_function("Failed to list users", f"{server.sql_instance}.{database}", e)
                continue

            for user in orphans:
                records.append(
                    OrphanRepair(
                        computer_name=server.computer_name,
                        instance_name=server.instance_name,
                        sql_instance=server.sql_instance,
                        database_name=database,
                        user=user,
                        status=self._repair(database_context, database, user, logins),
                    )
                )

        return records

    def get_arguments(self) -> List[str]:
        return [
            "-d/--database: Database(s) to repair (default: all)",
            "-x/--exclude-database: Database(s) to skip",
            "--remove-not-existing: Drop orphans without a matching login",
        ]
