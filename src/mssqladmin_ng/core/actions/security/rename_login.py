# mssqladmin_ng/core/actions/security/rename_login.py

# Built-in imports
import re
from typing import List, Optional

# Third party imports
from loguru import logger

# Local imports
from ..base import DatabaseAction
from ..factory import ActionFactory
from ...models.records import LoginRename
from ...services.database import DatabaseContext
from ...utils.sql import in_database, quote_identifier, quote_literal

SID_PATTERN = re.compile(r"^0x[0-9A-Fa-f]+$")


@ActionFactory.register("rename-login", "Rename a login and the database users mapped to it")
class RenameLogin(DatabaseAction):
    """
    Renames a server login. Database users mapped to the login whose name
    equals the old login name are renamed as well.

    If a user cannot be renamed, the login rename is rolled back.

    Usage:
        rename-login <login> <new_login> [-d database ...] [-x database ...]
    """

    def __init__(self):
        super().__init__()
        self._login: str = ""
        self._new_login: str = ""

    def validate_arguments(
        self, additional_arguments: str = "", argument_list: Optional[List[str]] = None
    ) -> None:
        parser = self.create_argument_parser("Rename a login")
        parser.add_argument("login")
        parser.add_argument("new_login")
        self.add_database_arguments(parser)
        namespace = self.parse_with(parser, additional_arguments, argument_list)
        self.set_database_filters(namespace)

        self._login = namespace.login.strip()
        self._new_login = namespace.new_login.strip()

        if not self._login or not self._new_login:
            raise ValueError("Login names cannot be empty.")

        if self._login == self._new_login:
            raise ValueError("The new login name must differ from the current one.")

    def _record(self, database_context: DatabaseContext, **fields) -> LoginRename:
        server = database_context.server
        return LoginRename(
            computer_name=server.computer_name,
            instance_name=server.instance_name,
            sql_instance=server.sql_instance,
            previous_login=self._login,
            new_login=self._new_login,
            **fields,
        )

    def _login_sid(self, database_context: DatabaseContext, name: str) -> Optional[str]:
        sid = database_context.query_service.execute_scalar(
            "SELECT CONVERT(VARCHAR(514), sid, 1) FROM sys.server_principals "
            f"WHERE name = {quote_literal(name)};"
        )
        return str(sid) if sid is not None else None

    def _rename_login(self, database_context: DatabaseContext, old: str, new: str) -> None:
        database_context.query_service.execute_non_processing(
            f"ALTER LOGIN {quote_identifier(old)} WITH NAME = {quote_identifier(new)};"
        )

    def execute(self, database_context: DatabaseContext) -> List[LoginRename]:
        server = database_context.server
        query_service = database_context.query_service
        records: List[LoginRename] = []

        sid = self._login_sid(database_context, self._login)
        if sid is None:
            self.stop_function(f"Login {self._login} does not exist", server.sql_instance)
            return records

        if not SID_PATTERN.match(sid):
            self.stop_function(f"Unexpected SID format for {self._login}: {sid}", server.sql_instance)
            return records

        if self._login_sid(database_context, self._new_login) is not None:
            self.stop_function(f"Login {self._new_login} already exists", server.sql_instance)
            return records

        try:
            databases = self.accessible_databases(database_context)
        except Exception as e:
            self.stop_function("Failed to list databases", server.sql_instance, e)
            return records

        try:
            self._rename_login(database_context, self._login, self._new_login)
        except Exception as e:
            self.stop_function(f"Failed to rename login {self._login}", server.sql_instance, e)
            return records

        logger.success(f"Renamed login {self._login} to {self._new_login} on {server.sql_instance}")
        records.append(self._record(database_context, database=None))

        for database in databases:
            statement = (
                f"ALTER USER {quote_identifier(self._login)} "
                f"WITH NAME = {quote_identifier(self._new_login)};"
            )
            try:
                users = query_service.execute_table(
                    f"SELECT name FROM {quote_identifier(database)}.sys.database_principals "
                    f"WHERE sid = {sid} AND name = {quote_literal(self._login)};"
                )
                if not users:
                    continue
                query_service.execute_non_processing(in_database(database, statement))
            except Exception as e:
                logger.error(f"Failed to rename user {self._login} in {database}, rolling back login rename")
                try:
                    self._rename_login(database_context, self._new_login, self._login)
                except Exception as rollback_error:
                    logger.error(f"Rollback of login {self._new_login} failed: {rollback_error}")

                records.append(
                    self._record(
                        database_context,
                        database=database,
                        previous_user=self._login,
                        new_user=self._new_login,
                        status="Failure",
                    )
                )
                self.stop_function(
                    f"Failed to rename user {self._login}", f"{server.sql_instance}.{database}", e
                )
                return records

            logger.success(f"Renamed user {self._login} to {self._new_login} in {database}")
            records.append(
                self._record(
                    database_context,
                    database=database,
                    previous_user=self._login,
                    new_user=self._new_login,
                )
            )

        return records

    def get_arguments(self) -> List[str]:
        return [
            "login: Current login name (required)",
            "new_login: New login name (required)",
            "-d/--database: Database(s) whose mapped users are renamed (default: all)",
            "-x/--exclude-database: Database(s) to skip",
        ]
