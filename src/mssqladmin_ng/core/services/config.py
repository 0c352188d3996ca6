# mssqladmin_ng/core/services/config.py
"""
Configuration service wrapping sp_configure.
"""

# Built-in imports
from typing import Optional

# Third party imports
from loguru import logger

# Local imports
from .query import QueryService
from ..utils.sql import quote_literal


class ConfigService:
    """
    Reads and changes server configuration options (sys.configurations).
    """

    def __init__(self, query_service: QueryService):
        self._query_service = query_service

    def get_configuration_option(self, option_name: str, in_use: bool = False) -> Optional[int]:
        """
        Get the configured value of an option.

        Args:
            option_name: Name as listed in sys.configurations
            in_use: Return value_in_use instead of the configured value

        Returns:
            The value, or None if the option does not exist
        """
        column = "value_in_use" if in_use else "value"
        query = (
            f"SELECT CAST({column} AS INT) AS value FROM sys.configurations "
            f"WHERE name = {quote_literal(option_name)};"
        )
        value = self._query_service.execute_scalar(query)
        return int(value) if value is not None else None

    def _is_advanced(self, option_name: str) -> bool:
        query = (
            "SELECT CAST(is_advanced AS INT) FROM sys.configurations "
            f"WHERE name = {quote_literal(option_name)};"
        )
        return self._query_service.execute_scalar(query) == 1

    def set_configuration_option(self, option_name: str, value: int) -> bool:
        """
        Set a configuration option and apply it with RECONFIGURE.
        Enables 'show advanced options' first when the option is advanced.

        Returns:
            True if the option now holds the requested value; otherwise False
        """
        current = self.get_configuration_option(option_name)

        if current is None:
            logger.error(f"Configuration option '{option_name}' does not exist")
            return False

        if current == value:
            logger.debug(f"'{option_name}' is already set to {value}")
            return True

        try:
            if self._is_advanced(option_name) and self.get_configuration_option("show advanced options") != 1:
                logger.debug("Enabling 'show advanced options'")
                self._query_service.execute_non_processing(
                    "EXEC sp_configure 'show advanced options', 1; RECONFIGURE;"
                )

            self._query_service.execute_non_processing(
                f"EXEC sp_configure {quote_literal(option_name)}, {int(value)}; RECONFIGURE;"
            )
        except Exception as e:
            logger.error(f"Failed to set '{option_name}' to {value}: {e}")
            return False

        applied = self.get_configuration_option(option_name)
        if applied != value:
            logger.error(f"'{option_name}' is {applied} after reconfiguration, expected {value}")
            return False

        logger.debug(f"'{option_name}' changed from {current} to {value}")
        return True
