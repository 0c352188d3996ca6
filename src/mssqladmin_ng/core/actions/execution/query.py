# mssqladmin_ng/core/actions/execution/query.py

# Built-in imports
from typing import Any, Dict, List, Optional

# Third-party imports
from loguru import logger

# Local imports
from ..base import BaseAction
from ..factory import ActionFactory
from ...services.database import DatabaseContext


@ActionFactory.register("query", "Execute a raw T-SQL query")
class Query(BaseAction):
    """
    Executes a T-SQL query and returns its rows.

    The whole argument string is the query; it is not split.
    """

    def __init__(self):
        super().__init__()
        self._query: str = ""

    def validate_arguments(
        self, additional_arguments: str = "", argument_list: Optional[List[str]] = None
    ) -> None:
        if argument_list is not None:
            additional_arguments = " ".join(argument_list)

        if not additional_arguments or not additional_arguments.strip():
            raise ValueError("Query action requires a T-SQL statement.")

        self._query = additional_arguments.strip()

    def execute(self, database_context: DatabaseContext) -> List[Dict[str, Any]]:
        try:
            rows = database_context.query_service.execute_table(self._query)
        except Exception as e:
            self.stop_function("Query failed", database_context.server.sql_instance, e)
            return []

        if not rows:
            logger.info("Query returned no rows")
        return rows

    def get_arguments(self) -> List[str]:
        return ["query: T-SQL statement to execute (required)"]
