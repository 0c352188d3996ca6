# mssqladmin_ng/core/runner.py
"""
Runs an action against each target instance in turn.
"""

# Built-in imports
from typing import Any, List, Optional, Sequence

# Third party imports
from loguru import logger

# Local imports
from .actions.base import BaseAction
from .exceptions import ActionError, ConnectionFailure
from .models.server import Server
from .services.connection import InstanceConnector
from .services.database import DatabaseContext
from .utils.formatters import OutputFormatter


class InstanceRunner:
    """
    Error boundary around actions: one failing instance does not stop the
    others, unless enable_exception is set.
    """

    def __init__(self, connector: InstanceConnector, enable_exception: bool = False):
        self.connector = connector
        self.enable_exception = enable_exception
        self.failures = 0

    def run_on_context(self, action: BaseAction, database_context: DatabaseContext) -> List[Any]:
        """
        Executes an already validated action on a connected instance.

        Raises:
            ActionError: When enable_exception is set and the action failed
        """
        action.enable_exception = self.enable_exception
        failures_before = action.failures
        sql_instance = database_context.server.sql_instance

        try:
            records = action.execute(database_context) or []
        except ActionError:
            self.failures += 1
            raise
        except KeyboardInterrupt:
            raise
        except Exception as e:
            self.failures += 1
            if self.enable_exception:
                raise ActionError(f"[{sql_instance}] {e}", target=sql_instance) from e
            logger.error(f"[{sql_instance}] {action.get_name()} failed: {e}")
            return []

        self.failures += action.failures - failures_before
        return list(records)

    def run(self, action: BaseAction, servers: Sequence[Server]) -> List[Any]:
        """
        Connects to each server sequentially and collects the records of the action.
        """
        records: List[Any] = []

        for server in servers:
            try:
                with self.connector.open(server) as database_context:
                    logger.info(
                        f"Executing {action.get_name()} against {database_context.server.sql_instance}"
                    )
                    records.extend(self.run_on_context(action, database_context))
            except ConnectionFailure as e:
                self.failures += 1
                if self.enable_exception:
                    raise
                logger.warning(str(e))

        return records

    @staticmethod
    def display(records: List[Any]) -> Optional[str]:
        """Prints records on stdout in the current output format."""
        if not records:
            return None
        rendered = OutputFormatter.convert_records(records)
        print(rendered)
        return rendered
