# mssqladmin_ng/core/services/query.py
"""
Query service for executing SQL queries against MSSQL servers using impacket's TDS.
"""

# Built-in imports
import threading
from typing import Any, Dict, List, Optional

# Third party imports
from loguru import logger
from impacket.tds import MSSQL, SQLErrorException
from impacket.tds import TDS_DONE_TOKEN, TDS_DONEINPROC_TOKEN, TDS_DONEPROC_TOKEN


def _normalize_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """impacket renders NULL as the literal string 'NULL'."""
    return {key: (None if value == "NULL" else value) for key, value in row.items()}


class QueryService:
    """
    Service for executing SQL queries against MSSQL using impacket's TDS protocol.

    One TDS connection serves one request at a time: calls are serialized so
    background runspaces can share the connection with the terminal.
    """

    def __init__(self, mssql: MSSQL):
        """
        Initialize the query service with an MSSQL connection.

        Args:
            mssql: An active MSSQL connection instance from impacket
        """
        self.connection = mssql
        self._lock = threading.RLock()

    def execute(self, query: str, tuple_mode: bool = False) -> List[Any]:
        """
        Execute a SQL query and return results as rows.

        Raises:
            ValueError: If query is empty
            SQLErrorException: If query execution fails
        """
        return self._execute_with_handling(query, tuple_mode=tuple_mode, return_rows=True)

    def execute_non_processing(self, query: str) -> int:
        """
        Execute a SQL statement without returning results (ALTER, EXEC, etc.).

        Returns:
            Number of affected rows

        Raises:
            SQLErrorException: If the statement fails
        """
        result = self._execute_with_handling(query, tuple_mode=False, return_rows=False)
        return result if result is not None else 0

    def execute_table(self, query: str) -> List[Dict[str, Any]]:
        """
        Execute a SQL query and return the results as a list of dictionaries.
        NULL values are returned as None.
        """
        rows = self.execute(query, tuple_mode=False)
        return [_normalize_row(row) for row in rows] if rows else []

    def execute_scalar(self, query: str) -> Optional[Any]:
        """
        Execute a SQL query and return a single scalar value (first column of first row).
        """
        rows = self.execute_table(query)

        if rows:
            first_row = rows[0]
            if first_row:
                return next(iter(first_row.values()))

        return None

    def _execute_with_handling(
        self, query: str, tuple_mode: bool = False, return_rows: bool = True
    ) -> Any:
        with self._lock:
            return self._run_batch(query, tuple_mode, return_rows)

    def _run_batch(self, query: str, tuple_mode: bool, return_rows: bool) -> Any:
        if not query or not query.strip():
            raise ValueError("Query cannot be null or empty.")

        if not self.connection or not self.connection.socket:
            logger.error("Database connection is not initialized or not open.")
            raise ValueError("Database connection is not open.")

        logger.debug(f"Query to execute: {query}")

        try:
            self.connection.batch(query, tuplemode=tuple_mode)

            # Populates lastError from the ERROR tokens
            self.connection.printReplies()

            if self.connection.lastError:
                raise self.connection.lastError

            if return_rows:
                return self.connection.rows
            return self._get_affected_rows()

        except SQLErrorException as e:
            logger.debug(f"Query execution returned an error: {e}")
            raise

        except Exception as e:
            error_message = str(e).strip()

            # Some procedures raise with just "0" as message, meaning success
            if error_message == "0":
                logger.debug("Query returned status code 0 (success)")
                if return_rows:
                    return self.connection.rows if hasattr(self.connection, "rows") else []
                return 0

            logger.debug(f"Unexpected error during query execution: {e}")
            raise

    def _get_affected_rows(self) -> int:
        """
        Extract the number of affected rows from TDS replies.
        """
        affected = 0

        for token_type in [TDS_DONE_TOKEN, TDS_DONEINPROC_TOKEN, TDS_DONEPROC_TOKEN]:
            if token_type in self.connection.replies:
                tokens = self.connection.replies[token_type]
                if tokens:
                    last_token = tokens[-1]
                    if "DoneRowCount" in last_token.fields:
                        affected = last_token["DoneRowCount"]

        return affected

    def change_database(self, database: str) -> None:
        """
        Change the current database context.
        """
        with self._lock:
            if database != self.connection.currentDB:
                self.connection.changeDB(database)
                self.connection.printReplies()
                if self.connection.lastError:
                    raise self.connection.lastError

    def get_current_database(self) -> str:
        return self.connection.currentDB
