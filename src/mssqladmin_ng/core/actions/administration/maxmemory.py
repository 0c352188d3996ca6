# mssqladmin_ng/core/actions/administration/maxmemory.py

# Built-in imports
from typing import List, Optional

# Third party imports
from loguru import logger

# Local imports
from ..base import BaseAction
from ..factory import ActionFactory
from ...models.records import MaxMemory, MaxMemoryChange
from ...services.database import DatabaseContext

MAX_MEMORY_OPTION = "max server memory (MB)"
TOTAL_MEMORY_QUERY = (
    "SELECT CAST(total_physical_memory_kb / 1024 AS INT) AS total_mb FROM sys.dm_os_sys_memory;"
)


def recommended_max_memory(total_mb: int) -> int:
    """
    Recommended 'max server memory (MB)' for a host with total_mb of RAM.

    Below 4 GB, half of the memory. Otherwise the OS keeps 1 GB, plus 1 GB
    per 4 GB up to 16 GB and 1 GB per 8 GB above.

    >>> recommended_max_memory(16384)
    11264
    >>> recommended_max_memory(65536)
    54272
    """
    if total_mb < 4096:
        return int(total_mb * 0.5)

    reserve_gb = 1
    remaining = total_mb
    while remaining > 0:
        reserve_gb += 1
        remaining -= 8192 if remaining > 16384 else 4096

    return int(total_mb - reserve_gb * 1024)


def read_memory(database_context: DatabaseContext):
    """Returns (total physical memory in MB, configured max server memory in MB)."""
    total_mb = database_context.query_service.execute_scalar(TOTAL_MEMORY_QUERY)
    current = database_context.config_service.get_configuration_option(MAX_MEMORY_OPTION)

    if total_mb is None or current is None:
        raise ValueError("Unable to read memory information")

    return int(total_mb), int(current)


@ActionFactory.register("test-maxmemory", "Compare max server memory with the recommended value")
class TestMaxMemory(BaseAction):
    """
    Reports total physical memory, the configured 'max server memory (MB)'
    and the recommended value.
    """

    def validate_arguments(
        self, additional_arguments: str = "", argument_list: Optional[List[str]] = None
    ) -> None:
        self.parse_with(
            self.create_argument_parser("Test max server memory"),
            additional_arguments,
            argument_list,
        )

    def execute(self, database_context: DatabaseContext) -> List[MaxMemory]:
        server = database_context.server

        try:
            total_mb, current = read_memory(database_context)
        except Exception as e:
            self.stop_function("Failed to read memory configuration", server.sql_instance, e)
            return []

        recommended = recommended_max_memory(total_mb)
        if current > total_mb:
            logger.warning(
                f"[{server.sql_instance}] max server memory ({current} MB) exceeds physical memory ({total_mb} MB)"
            )

        return [
            MaxMemory(
                computer_name=server.computer_name,
                instance_name=server.instance_name,
                sql_instance=server.sql_instance,
                total_mb=total_mb,
                max_value=current,
                recommended_value=recommended,
            )
        ]


@ActionFactory.register("set-maxmemory", "Set max server memory (explicit or recommended)")
class SetMaxMemory(BaseAction):
    """
    Sets 'max server memory (MB)'.

    Without --max the recommended value is applied. A value above the
    physical memory of the host is refused.

    Usage:
        set-maxmemory
        set-maxmemory --max 20480
    """

    def __init__(self):
        super().__init__()
        self._max: Optional[int] = None

    def validate_arguments(
        self, additional_arguments: str = "", argument_list: Optional[List[str]] = None
    ) -> None:
        parser = self.create_argument_parser("Set max server memory")
        parser.add_argument("-m", "--max", type=int, default=None)
        namespace = self.parse_with(parser, additional_arguments, argument_list)

        if namespace.max is not None and namespace.max < 128:
            raise ValueError(f"Invalid max memory value: {namespace.max}. Minimum is 128 MB.")

        self._max = namespace.max

    def execute(self, database_context: DatabaseContext) -> List[MaxMemoryChange]:
        server = database_context.server

        try:
            total_mb, current = read_memory(database_context)
        except Exception as e:
            self.stop_function("Failed to read memory configuration", server.sql_instance, e)
            return []

        value = self._max if self._max is not None else recommended_max_memory(total_mb)

        if value > total_mb:
            logger.warning(
                f"[{server.sql_instance}] Requested {value} MB is more than the {total_mb} MB "
                "of physical memory, skipping"
            )
            return []

        logger.info(f"Setting {MAX_MEMORY_OPTION} on {server.sql_instance} from {current} to {value}")

        if not database_context.config_service.set_configuration_option(MAX_MEMORY_OPTION, value):
            self.stop_function(f"Failed to set {MAX_MEMORY_OPTION}", server.sql_instance)
            return []

        return [
            MaxMemoryChange(
                computer_name=server.computer_name,
                instance_name=server.instance_name,
                sql_instance=server.sql_instance,
                total_mb=total_mb,
                old_max_value=current,
                current_max_value=database_context.config_service.get_configuration_option(
                    MAX_MEMORY_OPTION
                ),
            )
        ]

    def get_arguments(self) -> List[str]:
        return ["-m/--max: Value in MB (default: recommended value)"]
