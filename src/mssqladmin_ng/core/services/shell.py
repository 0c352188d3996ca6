# mssqladmin_ng/core/services/shell.py
"""
Operating system command execution on the instance host through xp_cmdshell.
"""

# Built-in imports
from typing import List

# Third party imports
from loguru import logger

# Local imports
from .config import ConfigService
from .query import QueryService
from ..exceptions import MssqlAdminError
from ..utils.sql import quote_literal


class ShellService:
    """
    Runs commands with xp_cmdshell, enabling it only for the duration of the call.
    """

    def __init__(self, query_service: QueryService, config_service: ConfigService):
        self._query_service = query_service
        self._config_service = config_service

    def run(self, command: str) -> List[str]:
        """
        Execute a command on the host of the SQL Server instance.

        Args:
            command: Command line passed to cmd.exe

        Returns:
            Output lines, blank lines (NULL rows) kept as empty strings

        Raises:
            MssqlAdminError: If xp_cmdshell cannot be enabled
        """
        previous_state = self._config_service.get_configuration_option("xp_cmdshell")

        if previous_state != 1 and not self._config_service.set_configuration_option("xp_cmdshell", 1):
            raise MssqlAdminError("Failed to enable 'xp_cmdshell'.")

        try:
            logger.debug(f"Running on host: {command}")
            rows = self._query_service.execute(
                f"EXEC master..xp_cmdshell {quote_literal(command)};", tuple_mode=True
            )
        finally:
            if previous_state == 0:
                self._config_service.set_configuration_option("xp_cmdshell", 0)

        output: List[str] = []
        for row in rows or []:
            line = row[0] if row else None
            if line is None or line == "NULL":
                line = ""
            output.append(str(line).rstrip())

        while output and not output[-1]:
            output.pop()

        return output
