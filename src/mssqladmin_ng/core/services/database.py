# mssqladmin_ng/core/services/database.py

# Built-in imports
from typing import TYPE_CHECKING, List, Optional

# Third party imports
from loguru import logger

# Local imports
from .authentication import AuthenticationService
from .config import ConfigService
from .query import QueryService
from .shell import ShellService
from .user import UserService

if TYPE_CHECKING:
    from .connection import InstanceConnector

IDENTITY_QUERY = """
    SELECT
        CAST(SERVERPROPERTY('ComputerNamePhysicalNetBIOS') AS NVARCHAR(128)) AS computer_name,
        CAST(SERVERPROPERTY('InstanceName') AS NVARCHAR(128)) AS instance_name,
        CAST(@@SERVERNAME AS NVARCHAR(128)) AS sql_instance,
        CAST(SERVERPROPERTY('ProductVersion') AS NVARCHAR(128)) AS version;
"""

DATABASES_QUERY = """
    SELECT
        name,
        database_id,
        state_desc,
        CAST(HAS_DBACCESS(name) AS INT) AS accessible
    FROM sys.databases
    ORDER BY name;
"""

SYSTEM_DATABASES = ("master", "model", "msdb", "tempdb")


class DatabaseContext:
    """
    Bundles the services bound to one connected instance.
    """

    def __init__(
        self,
        auth_service: AuthenticationService,
        connector: Optional["InstanceConnector"] = None,
    ):
        self._connector = connector
        self._server = auth_service.server
        self._query_service = QueryService(auth_service.connection)
        self._config_service = ConfigService(self._query_service)
        self._user_service = UserService(self._query_service)
        self._shell_service = ShellService(self._query_service, self._config_service)

        self._load_identity()

    def _load_identity(self) -> None:
        try:
            rows = self._query_service.execute_table(IDENTITY_QUERY)
        except Exception as e:
            logger.warning(f"Could not read instance identity of {self._server.display_name}: {e}")
            return

        if rows:
            row = rows[0]
            self._server.set_identity(
                row.get("computer_name"), row.get("instance_name"), row.get("sql_instance")
            )
            if row.get("version"):
                self._server.version = row["version"]

    def list_databases(self) -> List[dict]:
        """
        Lists databases with their state and whether the current login can access them.
        """
        return self._query_service.execute_table(DATABASES_QUERY)

    @property
    def user_service(self) -> UserService:
        return self._user_service

    @property
    def query_service(self) -> QueryService:
        return self._query_service

    @property
    def config_service(self) -> ConfigService:
        return self._config_service

    @property
    def shell_service(self) -> ShellService:
        return self._shell_service

    @property
    def connector(self) -> Optional["InstanceConnector"]:
        return self._connector

    @property
    def server(self):
        return self._server
