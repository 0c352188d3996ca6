# mssqladmin_ng/core/actions/background/runspaces.py

# Built-in imports
from typing import List, Optional

# Third party imports
from loguru import logger

# Local imports
from ..base import BaseAction
from ..factory import ActionFactory
from ...models.records import RunspaceInfo
from ...runspaces import RunspaceRegistry, registry


def _info(runspace) -> RunspaceInfo:
    return RunspaceInfo(name=runspace.name, state=runspace.state.value, alive=runspace.is_alive)


@ActionFactory.register("runspaces", "List registered background runspaces")
class Runspaces(BaseAction):
    """
    Lists the runspaces registered in this process.
    """

    def __init__(self, runspace_registry: Optional[RunspaceRegistry] = None):
        super().__init__()
        self._registry = runspace_registry if runspace_registry is not None else registry

    def validate_arguments(
        self, additional_arguments: str = "", argument_list: Optional[List[str]] = None
    ) -> None:
        parser = self.create_argument_parser("List runspaces")
        self.parse_with(parser, additional_arguments, argument_list)

    def execute(self, database_context=None) -> List[RunspaceInfo]:
        runspaces = self._registry.all()
        if not runspaces:
            logger.info("No runspace registered")
        return [_info(runspace) for runspace in runspaces]


@ActionFactory.register("stop-runspace", "Stop registered background runspaces")
class StopRunspace(BaseAction):
    """
    Signals named runspaces to stop and waits for them up to their timeout.
    Workers ignoring the signal are abandoned.

    Usage:
        stop-runspace <name> [<name> ...]
    """

    def __init__(self, runspace_registry: Optional[RunspaceRegistry] = None):
        super().__init__()
        self._registry = runspace_registry if runspace_registry is not None else registry
        self._names: List[str] = []

    def validate_arguments(
        self, additional_arguments: str = "", argument_list: Optional[List[str]] = None
    ) -> None:
        parser = self.create_argument_parser("Stop runspaces")
        parser.add_argument("names", nargs="+")
        namespace = self.parse_with(parser, additional_arguments, argument_list)
        self._names = namespace.names

    def execute(self, database_context=None) -> List[RunspaceInfo]:
        records: List[RunspaceInfo] = []

        for name in self._names:
            try:
                runspace = self._registry.get(name)
            except KeyError as e:
                self.stop_function(str(e.args[0]), name)
                continue

            if runspace.stop():
                logger.success(f"Runspace '{runspace.name}' stopped")
            else:
                self.stop_function("Runspace did not stop in time and was abandoned", runspace.name)

            records.append(_info(runspace))

        return records

    def get_arguments(self) -> List[str]:
        return ["names: Runspace name(s) to stop (required)"]
