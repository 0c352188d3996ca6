# mssqladmin_ng/core/actions/performance/collectorsets.py

# Built-in imports
from typing import Dict, List, Optional

# Third party imports
from loguru import logger

# Local imports
from ..base import BaseAction
from ..factory import ActionFactory
from ...models.records import CollectorCounter, CollectorSet
from ...services.collectors import CollectorSetService
from ...services.database import DatabaseContext


def _host(database_context: DatabaseContext) -> str:
    server = database_context.server
    return server.computer_name or server.hostname


def _set_status(service: CollectorSetService, name: str) -> Optional[str]:
    blocks = service.query_set(name)
    if not blocks:
        return None
    status = blocks[0].get("Status")
    return str(status) if status is not None else None


@ActionFactory.register("collectorsets", "List performance-counter collector sets on the instance host")
class CollectorSets(BaseAction):
    """
    Lists the data collector sets of the host running the instance, through
    logman and xp_cmdshell.

    Usage:
        collectorsets
        collectorsets "System Correlation" "SQL Baseline"
    """

    def __init__(self):
        super().__init__()
        self._names: List[str] = []

    def validate_arguments(
        self, additional_arguments: str = "", argument_list: Optional[List[str]] = None
    ) -> None:
        parser = self.create_argument_parser("List collector sets")
        parser.add_argument("names", nargs="*")
        namespace = self.parse_with(parser, additional_arguments, argument_list)
        self._names = namespace.names

    def execute(self, database_context: DatabaseContext) -> List[CollectorSet]:
        service = CollectorSetService(database_context.shell_service)
        host = _host(database_context)

        try:
            sets = service.list_sets()
        except Exception as e:
            self.stop_function("Failed to list collector sets", host, e)
            return []

        wanted = {name.lower() for name in self._names}
        records: List[CollectorSet] = []

        for row in sets:
            if wanted and row["Name"].lower() not in wanted:
                continue

            record = CollectorSet(
                computer_name=host, name=row["Name"], type=row["Type"], status=row["Status"]
            )

            if wanted:
                try:
                    blocks = service.query_set(row["Name"])
                except Exception as e:
                    self.stop_function("Failed to read collector set", f"{host}.{row['Name']}", e)
                    blocks = []

                if blocks:
                    detail = blocks[0]
                    record.root_path = detail.get("Root Path")
                    record.run_as = detail.get("Run as")
                    schedules = detail.get("Schedules")
                    record.schedules = "; ".join(schedules) if isinstance(schedules, list) else schedules

            records.append(record)

        for name in sorted(wanted - {row["Name"].lower() for row in sets}):
            logger.warning(f"[{host}] Collector set {name} does not exist")

        return records

    def get_arguments(self) -> List[str]:
        return ["names: Collector set name(s) to detail (default: list all)"]


@ActionFactory.register("collectorset-counters", "List the counters of a collector set")
class CollectorSetCounters(BaseAction):
    """
    Lists the counters of every data collector of a set, optionally filtered
    by counter path.

    Usage:
        collectorset-counters "SQL Baseline"
        collectorset-counters "SQL Baseline" "\\Processor(_Total)\\% Processor Time"
    """

    def __init__(self):
        super().__init__()
        self._set: str = ""
        self._counters: List[str] = []

    def validate_arguments(
        self, additional_arguments: str = "", argument_list: Optional[List[str]] = None
    ) -> None:
        parser = self.create_argument_parser("List collector set counters")
        parser.add_argument("set")
        parser.add_argument("counters", nargs="*")
        namespace = self.parse_with(parser, additional_arguments, argument_list)
        self._set = namespace.set
        self._counters = namespace.counters

    def execute(self, database_context: DatabaseContext) -> List[CollectorCounter]:
        service = CollectorSetService(database_context.shell_service)
        host = _host(database_context)

        try:
            status = _set_status(service, self._set)
            collectors = service.counters(self._set)
        except Exception as e:
            self.stop_function("Failed to read collector set", f"{host}.{self._set}", e)
            return []

        wanted = {counter.lower() for counter in self._counters}

        return [
            CollectorCounter(
                computer_name=host,
                data_collector_set=self._set,
                data_collector=collector,
                name=counter,
                status=status,
            )
            for collector, counters in collectors.items()
            for counter in counters
            if not wanted or counter.lower() in wanted
        ]

    def get_arguments(self) -> List[str]:
        return [
            "set: Collector set name (required)",
            "counters: Counter path(s) to keep (default: all)",
        ]


@ActionFactory.register("remove-counter", "Remove counters from a collector set")
class RemoveCounter(BaseAction):
    """
    Removes counters from the data collectors of a stopped collector set.

    A data collector cannot be left without counters.

    Usage:
        remove-counter "SQL Baseline" "\\Memory\\Available MBytes"
    """

    def __init__(self):
        super().__init__()
        self._set: str = ""
        self._counters: List[str] = []

    def validate_arguments(
        self, additional_arguments: str = "", argument_list: Optional[List[str]] = None
    ) -> None:
        parser = self.create_argument_parser("Remove collector set counters")
        parser.add_argument("set")
        parser.add_argument("counters", nargs="+")
        namespace = self.parse_with(parser, additional_arguments, argument_list)
        self._set = namespace.set
        self._counters = namespace.counters

    def execute(self, database_context: DatabaseContext) -> List[CollectorCounter]:
        service = CollectorSetService(database_context.shell_service)
        host = _host(database_context)
        target = f"{host}.{self._set}"

        try:
            status = _set_status(service, self._set)
            collectors = service.counters(self._set)
        except Exception as e:
            self.stop_function("Failed to read collector set", target, e)
            return []

        if status and status.lower() == "running":
            self.stop_function("Collector set is running, stop it before removing counters", target)
            return []

        removals: Dict[str, List[str]] = {}
        for counter in self._counters:
            owner = next(
                (
                    collector
                    for collector, paths in collectors.items()
                    if counter.lower() in (path.lower() for path in paths)
                ),
                None,
            )
            if owner is None:
                logger.warning(f"[{target}] Counter {counter} not found")
                continue
            removals.setdefault(owner, []).append(counter.lower())

        records: List[CollectorCounter] = []

        for collector, removed in removals.items():
            remaining = [path for path in collectors[collector] if path.lower() not in removed]

            if not remaining:
                self.stop_function(
                    "Cannot remove every counter of a data collector", f"{target}.{collector}"
                )
                continue

            try:
                service.set_counters(collector, remaining)
            except Exception as e:
                self.stop_function("Failed to update counters", f"{target}.{collector}", e)
                continue

            for path in collectors[collector]:
                if path.lower() in removed:
                    logger.success(f"[{target}] Removed {path}")
                    records.append(
                        CollectorCounter(
                            computer_name=host,
                            data_collector_set=self._set,
                            data_collector=collector,
                            name=path,
                            status="Removed",
                        )
                    )

        return records

    def get_arguments(self) -> List[str]:
        return [
            "set: Collector set name (required)",
            "counters: Counter path(s) to remove (required)",
        ]


class _CollectorSetControl(BaseAction):
    """Starts or stops collector sets by name."""

    verb = ""

    def __init__(self):
        super().__init__()
        self._names: List[str] = []

    def validate_arguments(
        self, additional_arguments: str = "", argument_list: Optional[List[str]] = None
    ) -> None:
        parser = self.create_argument_parser(f"{self.verb.capitalize()} collector sets")
        parser.add_argument("names", nargs="+")
        namespace = self.parse_with(parser, additional_arguments, argument_list)
        self._names = namespace.names

    def control(self, service: CollectorSetService, name: str) -> None:
        raise NotImplementedError

    def execute(self, database_context: DatabaseContext) -> List[CollectorSet]:
        service = CollectorSetService(database_context.shell_service)
        host = _host(database_context)
        records: List[CollectorSet] = []

        for name in self._names:
            try:
                self.control(service, name)
                status = _set_status(service, name)
            except Exception as e:
                self.stop_function(f"Failed to {self.verb} collector set", f"{host}.{name}", e)
                continue

            logger.success(f"[{host}] Collector set {name}: {status}")
            records.append(CollectorSet(computer_name=host, name=name, status=status))

        return records

    def get_arguments(self) -> List[str]:
        return [f"names: Collector set name(s) to {self.verb} (required)"]


@ActionFactory.register("start-collectorset", "Start collector sets")
class StartCollectorSet(_CollectorSetControl):
    """
    Starts collector sets with logman start.
    """

    verb = "start"

    def control(self, service: CollectorSetService, name: str) -> None:
        service.start(name)


@ActionFactory.register("stop-collectorset", "Stop collector sets")
class StopCollectorSet(_CollectorSetControl):
    """
    Stops collector sets with logman stop.
    """

    verb = "stop"

    def control(self, service: CollectorSetService, name: str) -> None:
        service.stop(name)
