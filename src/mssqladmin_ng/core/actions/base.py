# mssqladmin_ng/core/actions/base.py

# Built-in imports
import argparse
import shlex
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

# Third party imports
from loguru import logger

# Local imports
from ..exceptions import ActionError
from ..services.database import SYSTEM_DATABASES


class BaseAction(ABC):
    """
    Abstract base class for all actions, enforcing validation and execution logic.

    Actions are executed once per instance. Failures of a unit of work
    (instance, database, object) go through stop_function(): a warning by
    default, an ActionError when enable_exception is set.
    """

    def __init__(self):
        self.enable_exception: bool = False
        self.failures: int = 0

    @abstractmethod
    def validate_arguments(
        self, additional_arguments: str = "", argument_list: Optional[List[str]] = None
    ) -> None:
        pass

    @abstractmethod
    def execute(self, database_context=None) -> Optional[List[Any]]:
        pass

    def stop_function(
        self, message: str, target: str = "", exception: Optional[BaseException] = None
    ) -> None:
        """
        Report a failed unit of work and let the caller continue with the next one.

        Raises:
            ActionError: When enable_exception is set
        """
        self.failures += 1
        full_message = f"{message}: {exception}" if exception else message
        if target:
            full_message = f"[{target}] {full_message}"

        if self.enable_exception:
            raise ActionError(full_message, target=target) from exception

        logger.warning(full_message)

    def split_arguments(
        self, additional_arguments: str, separator: str = ","
    ) -> List[str]:
        if not additional_arguments or additional_arguments.strip() == "":
            logger.debug("No arguments provided.")
            return []

        try:
            splitted = [
                arg for arg in shlex.split(additional_arguments) if arg != separator
            ]
            logger.debug(f"Splitted arguments: {splitted}")
            return splitted
        except ValueError as e:
            logger.warning(f"shlex parsing failed: {e}. Falling back to simple split.")
            return [arg.strip() for arg in additional_arguments.split() if arg.strip() and arg != separator]

    def create_argument_parser(self, description: str = "") -> argparse.ArgumentParser:
        """
        Create an argument parser for this action, raising instead of exiting.
        """
        return argparse.ArgumentParser(
            prog=self.get_name(),
            description=description,
            add_help=False,
            exit_on_error=False,
        )

    def parse_with(
        self,
        parser: argparse.ArgumentParser,
        additional_arguments: str = "",
        argument_list: Optional[List[str]] = None,
    ) -> argparse.Namespace:
        """
        Parse arguments using an argparse parser.

        Args:
            parser: The argument parser to use
            additional_arguments: The argument string to parse
            argument_list: Pre-split list of arguments (preferred)

        Raises:
            ValueError: If argument parsing fails
        """
        if argument_list is None:
            argument_list = self.split_arguments(additional_arguments)

        try:
            return parser.parse_args(argument_list)
        except (argparse.ArgumentError, SystemExit) as e:
            raise ValueError(f"Failed to parse arguments: {e}")

    def get_name(self) -> str:
        return self.__class__.__name__

    def get_arguments(self) -> List[str]:
        """
        Get the list of arguments for this action.
        """
        return []

    def get_help(self) -> str:
        return self.__doc__.strip() if self.__doc__ else "No help available."


def flatten_names(values: Optional[Sequence[str]]) -> List[str]:
    """
    Flattens repeated and comma separated name options into one list.

    >>> flatten_names(["db1,db2", "db3"])
    ['db1', 'db2', 'db3']
    """
    names: List[str] = []
    for value in values or []:
        names.extend(part.strip() for part in value.split(",") if part.strip())
    return names


class DatabaseAction(BaseAction):
    """
    Base class for actions iterating over the databases of an instance.
    """

    include_system_databases: bool = True

    def __init__(self):
        super().__init__()
        self.databases: List[str] = []
        self.exclude_databases: List[str] = []

    @staticmethod
    def add_database_arguments(parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "-d", "--database", action="append", default=[],
            help="Database(s) to process, repeatable or comma separated",
        )
        parser.add_argument(
            "-x", "--exclude-database", action="append", default=[],
            help="Database(s) to skip, repeatable or comma separated",
        )

    def set_database_filters(self, namespace: argparse.Namespace) -> None:
        self.databases = flatten_names(namespace.database)
        self.exclude_databases = flatten_names(namespace.exclude_database)

    def filter_databases(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Applies include/exclude filters (case-insensitive) to sys.databases rows.
        """
        include = {name.lower() for name in self.databases}
        exclude = {name.lower() for name in self.exclude_databases}

        selected = []
        for row in rows:
            name = str(row["name"])
            lowered = name.lower()
            if include and lowered not in include:
                continue
            if lowered in exclude:
                continue
            if not self.include_system_databases and lowered in SYSTEM_DATABASES:
                continue
            selected.append(row)
        return selected

    def accessible_databases(self, database_context) -> List[str]:
        """
        Names of the selected databases that are online and accessible.
        Others are skipped with a warning.
        """
        names: List[str] = []
        server = database_context.server

        all_rows = database_context.list_databases()

        for row in self.filter_databases(all_rows):
            name = str(row["name"])
            if row.get("state_desc") != "ONLINE":
                logger.warning(f"[{server.sql_instance}] Skipping {name}: database is {row.get('state_desc')}")
                continue
            if row.get("accessible") != 1:
                logger.warning(f"[{server.sql_instance}] Skipping {name}: database is not accessible")
                continue
            names.append(name)

        missing = {name.lower() for name in self.databases} - {
            str(row["name"]).lower() for row in all_rows
        }
        for name in sorted(missing):
            logger.warning(f"[{server.sql_instance}] Database {name} does not exist")

        return names
