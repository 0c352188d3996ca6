# mssqladmin_ng/core/actions/administration/install.py

# Built-in imports
import re
from pathlib import Path
from typing import List, Optional, Tuple

# Third party imports
from loguru import logger

# Local imports
from ..base import BaseAction
from ..factory import ActionFactory
from ...models.records import ProcedureInstall
from ...services.database import DatabaseContext
from ...utils.sql import split_batches

PROCEDURE_STATEMENT = re.compile(
    r"\b(CREATE|ALTER)(\s+OR\s+ALTER)?\s+PROC(EDURE)?\b", re.IGNORECASE
)


@ActionFactory.register(
    "install-procedure", "Install diagnostic stored procedures from local SQL scripts"
)
class InstallProcedure(BaseAction):
    """
    Installs third-party stored procedures (sp_WhoIsActive, First Responder
    Kit, ...) from local SQL scripts.

    Each script is split on GO separators and its batches are executed in
    the target database. Scripts must create or alter at least one procedure.

    Usage:
        install-procedure who_is_active.sql
        install-procedure Install-All-Scripts.sql -d DBA
    """

    def __init__(self):
        super().__init__()
        self._database: str = "master"
        self._scripts: List[Tuple[Path, List[str]]] = []

    def validate_arguments(
        self, additional_arguments: str = "", argument_list: Optional[List[str]] = None
    ) -> None:
        parser = self.create_argument_parser("Install stored procedures")
        parser.add_argument("scripts", nargs="+")
        parser.add_argument("-d", "--database", default="master")
        namespace = self.parse_with(parser, additional_arguments, argument_list)

        self._database = namespace.database
        self._scripts = []

        for script in namespace.scripts:
            path = Path(script).expanduser()
            if not path.is_file():
                raise ValueError(f"Script not found: {path}")

            text = path.read_text(encoding="utf-8-sig", errors="replace")
            batches = split_batches(text)

            if not batches:
                raise ValueError(f"Script is empty: {path}")

            if not any(PROCEDURE_STATEMENT.search(batch) for batch in batches):
                raise ValueError(f"Script does not create any stored procedure: {path}")

            logger.debug(f"{path.name}: {len(batches)} batch(es)")
            self._scripts.append((path, batches))

    def _install(self, database_context: DatabaseContext, path: Path, batches: List[str]) -> str:
        query_service = database_context.query_service
        target = f"{database_context.server.sql_instance}.{self._database}"

        for index, batch in enumerate(batches, start=1):
            try:
                query_service.execute_non_processing(batch)
            except Exception as e:
                self.stop_function(f"{path.name} failed at batch {index}/{len(batches)}", target, e)
                return "Failed"

        logger.success(f"Installed {path.name} into {target}")
        return "Installed"

    def execute(self, database_context: DatabaseContext) -> List[ProcedureInstall]:
        server = database_context.server
        query_service = database_context.query_service
        records: List[ProcedureInstall] = []

        previous_database = query_service.get_current_database()

        try:
            query_service.change_database(self._database)
        except Exception as e:
            self.stop_function(f"Cannot use database {self._database}", server.sql_instance, e)
            return records

        try:
            for path, batches in self._scripts:
                records.append(
                    ProcedureInstall(
                        computer_name=server.computer_name,
                        instance_name=server.instance_name,
                        sql_instance=server.sql_instance,
                        database=self._database,
                        script=path.name,
                        batches=len(batches),
                        status=self._install(database_context, path, batches),
                    )
                )
        finally:
            if previous_database:
                try:
                    query_service.change_database(previous_database)
                except Exception as e:
                    logger.warning(f"[{server.sql_instance}] Could not switch back to {previous_database}: {e}")

        return records

    def get_arguments(self) -> List[str]:
        return [
            "scripts: Local SQL script file(s) (required)",
            "-d/--database: Database receiving the procedures (default: master)",
        ]
