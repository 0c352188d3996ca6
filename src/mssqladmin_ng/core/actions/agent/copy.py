# mssqladmin_ng/core/actions/agent/copy.py

# Built-in imports
from typing import Any, Dict, List, Optional, Set

# Third party imports
from loguru import logger

# Local imports
from ..base import BaseAction, flatten_names
from ..factory import ActionFactory
from .scripting import CATEGORY_CLASSES, script_category, script_job, script_operator
from ...exceptions import ConnectionFailure
from ...models.records import AgentCopy
from ...models.server import Server
from ...services.database import DatabaseContext
from ...utils.sql import exec_procedure

JOBS_QUERY = """
    SELECT
        CONVERT(NVARCHAR(36), j.job_id) AS job_id,
        j.name,
        CAST(j.enabled AS INT) AS enabled,
        j.description,
        j.start_step_id,
        c.name AS category_name,
        SUSER_SNAME(j.owner_sid) AS owner_login,
        j.notify_level_eventlog,
        j.notify_level_email,
        j.notify_level_page,
        j.delete_level,
        oe.name AS notify_email_operator,
        op.name AS notify_page_operator
    FROM msdb.dbo.sysjobs j
    LEFT JOIN msdb.dbo.syscategories c ON j.category_id = c.category_id
    LEFT JOIN msdb.dbo.sysoperators oe ON j.notify_email_operator_id = oe.id
    LEFT JOIN msdb.dbo.sysoperators op ON j.notify_page_operator_id = op.id
    ORDER BY j.name;
"""

STEPS_QUERY = """
    SELECT
        CONVERT(NVARCHAR(36), s.job_id) AS job_id,
        s.step_id,
        s.step_name,
        s.subsystem,
        s.command,
        s.database_name,
        s.database_user_name,
        s.cmdexec_success_code,
        s.on_success_action,
        s.on_success_step_id,
        s.on_fail_action,
        s.on_fail_step_id,
        s.retry_attempts,
        s.retry_interval,
        s.output_file_name,
        s.flags,
        p.name AS proxy_name
    FROM msdb.dbo.sysjobsteps s
    LEFT JOIN msdb.dbo.sysproxies p ON s.proxy_id = p.proxy_id
    ORDER BY s.job_id, s.step_id;
"""

SCHEDULES_QUERY = """
    SELECT
        CONVERT(NVARCHAR(36), js.job_id) AS job_id,
        s.name,
        CAST(s.enabled AS INT) AS enabled,
        s.freq_type,
        s.freq_interval,
        s.freq_subday_type,
        s.freq_subday_interval,
        s.freq_relative_interval,
        s.freq_recurrence_factor,
        s.active_start_date,
        s.active_end_date,
        s.active_start_time,
        s.active_end_time
    FROM msdb.dbo.sysjobschedules js
    JOIN msdb.dbo.sysschedules s ON js.schedule_id = s.schedule_id;
"""

OPERATORS_QUERY = """
    SELECT
        o.name,
        CAST(o.enabled AS INT) AS enabled,
        o.email_address,
        o.pager_address,
        o.weekday_pager_start_time,
        o.weekday_pager_end_time,
        o.saturday_pager_start_time,
        o.saturday_pager_end_time,
        o.sunday_pager_start_time,
        o.sunday_pager_end_time,
        o.pager_days,
        o.netsend_address,
        c.name AS category_name
    FROM msdb.dbo.sysoperators o
    LEFT JOIN msdb.dbo.syscategories c ON o.category_id = c.category_id
    ORDER BY o.name;
"""

CATEGORIES_QUERY = """
    SELECT name, category_class, category_type
    FROM msdb.dbo.syscategories
    WHERE category_id >= 100
    ORDER BY category_class, name;
"""


def _names(database_context: DatabaseContext, query: str) -> Set[str]:
    return {
        str(row["name"]).lower()
        for row in database_context.query_service.execute_table(query)
        if row.get("name") is not None
    }


class _AgentCopyAction(BaseAction):
    """
    Copies SQL Agent objects from a source instance to each target instance.
    """

    object_type = ""

    def __init__(self):
        super().__init__()
        self._source: Optional[Server] = None
        self._names: List[str] = []
        self._exclude: List[str] = []
        self._force = False

    def add_extra_arguments(self, parser) -> None:
        pass

    def apply_extra_arguments(self, namespace) -> None:
        pass

    def validate_arguments(
        self, additional_arguments: str = "", argument_list: Optional[List[str]] = None
    ) -> None:
        parser = self.create_argument_parser(f"Copy SQL Agent {self.object_type.lower()}s")
        parser.add_argument("-s", "--source", required=True)
        parser.add_argument("-n", "--name", action="append", default=[])
        parser.add_argument("--exclude", action="append", default=[])
        parser.add_argument("--force", action="store_true")
        self.add_extra_arguments(parser)
        namespace = self.parse_with(parser, additional_arguments, argument_list)

        self._source = Server.parse_server(namespace.source)
        self._names = flatten_names(namespace.name)
        self._exclude = flatten_names(namespace.exclude)
        self._force = namespace.force
        self.apply_extra_arguments(namespace)

    def selected(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        include = {name.lower() for name in self._names}
        exclude = {name.lower() for name in self._exclude}
        return [
            row
            for row in rows
            if (not include or str(row["name"]).lower() in include)
            and str(row["name"]).lower() not in exclude
        ]

    def record(
        self, source: DatabaseContext, destination: DatabaseContext, name: str, status: str, notes: Optional[str] = None
    ) -> AgentCopy:
        return AgentCopy(
            source_server=source.server.sql_instance,
            destination_server=destination.server.sql_instance,
            name=name,
            type=self.object_type,
            status=status,
            notes=notes,
        )

    def copy(self, source: DatabaseContext, destination: DatabaseContext) -> List[AgentCopy]:
        raise NotImplementedError

    def execute(self, database_context: DatabaseContext) -> List[AgentCopy]:
        destination = database_context

        if destination.connector is None:
            self.stop_function("No connector available to reach the source instance", destination.server.sql_instance)
            return []

        try:
            with destination.connector.open(self._source) as source:
                if source.server.same_instance(destination.server):
                    self.stop_function(
                        "Source and destination are the same instance", destination.server.sql_instance
                    )
                    return []

                logger.info(
                    f"Copying {self.object_type.lower()}s from {source.server.sql_instance} "
                    f"to {destination.server.sql_instance}"
                )
                return self.copy(source, destination)
        except ConnectionFailure as e:
            self.stop_function("Cannot reach the source instance", destination.server.sql_instance, e)
            return []

    def get_arguments(self) -> List[str]:
        return [
            "-s/--source: Source instance (required)",
            f"-n/--name: {self.object_type} name(s) to copy (default: all)",
            f"--exclude: {self.object_type} name(s) to skip",
            f"--force: Drop and recreate existing {self.object_type.lower()}s",
        ]


@ActionFactory.register("copy-agentjob", "Copy SQL Agent jobs between instances")
class CopyAgentJob(_AgentCopyAction):
    """
    Copies SQL Agent jobs with their steps and schedules.

    Jobs depending on a database, login, operator or proxy missing on the
    destination are skipped. Existing jobs are skipped unless --force.

    Usage:
        copy-agentjob -s SQL01
        copy-agentjob -s SQL01 -n "Nightly ETL" --force --disable-on-source
    """

    object_type = "Job"

    def __init__(self):
        super().__init__()
        self._disable_on_source = False
        self._disable_on_destination = False

    def add_extra_arguments(self, parser) -> None:
        parser.add_argument("--disable-on-source", action="store_true")
        parser.add_argument("--disable-on-destination", action="store_true")

    def apply_extra_arguments(self, namespace) -> None:
        self._disable_on_source = namespace.disable_on_source
        self._disable_on_destination = namespace.disable_on_destination

    def dependency_problem(
        self,
        job: Dict[str, Any],
        steps: List[Dict[str, Any]],
        databases: Set[str],
        logins: Set[str],
        operators: Set[str],
        proxies: Set[str],
    ) -> Optional[str]:
        """Describes the first dependency missing on the destination, if any."""
        for step in steps:
            database = step.get("database_name")
            if database and str(database).lower() not in databases:
                return f"Job is dependent on database: {database}"
            proxy = step.get("proxy_name")
            if proxy and str(proxy).lower() not in proxies:
                return f"Job is dependent on proxy: {proxy}"

        owner = job.get("owner_login")
        if owner and str(owner).lower() not in logins:
            return f"Job owner {owner} does not exist on destination"

        for key in ("notify_email_operator", "notify_page_operator"):
            operator = job.get(key)
            if operator and str(operator).lower() not in operators:
                return f"Job is dependent on operator: {operator}"

        return None

    def copy(self, source: DatabaseContext, destination: DatabaseContext) -> List[AgentCopy]:
        records: List[AgentCopy] = []
        source_query = source.query_service
        destination_query = destination.query_service

        jobs = self.selected(source_query.execute_table(JOBS_QUERY))
        steps_by_job: Dict[str, List[Dict[str, Any]]] = {}
        for step in source_query.execute_table(STEPS_QUERY):
            steps_by_job.setdefault(str(step["job_id"]), []).append(step)
        schedules_by_job: Dict[str, List[Dict[str, Any]]] = {}
        for schedule in source_query.execute_table(SCHEDULES_QUERY):
            schedules_by_job.setdefault(str(schedule["job_id"]), []).append(schedule)

        existing = _names(destination, "SELECT name FROM msdb.dbo.sysjobs;")
        databases = _names(destination, "SELECT name FROM sys.databases;")
        logins = _names(destination, "SELECT name FROM sys.server_principals;")
        operators = _names(destination, "SELECT name FROM msdb.dbo.sysoperators;")
        proxies = _names(destination, "SELECT name FROM msdb.dbo.sysproxies;")

        for job in jobs:
            name = str(job["name"])
            job_id = str(job["job_id"])
            steps = steps_by_job.get(job_id, [])
            target = f"{destination.server.sql_instance}.{name}"

            if name.lower() in existing and not self._force:
                logger.warning(f"[{target}] Job already exists on destination, use --force to drop and recreate")
                records.append(self.record(source, destination, name, "Skipped", "Already exists on destination"))
                continue

            problem = self.dependency_problem(job, steps, databases, logins, operators, proxies)
            if problem:
                logger.warning(f"[{target}] {problem}, skipping")
                records.append(self.record(source, destination, name, "Skipped", problem))
                continue

            replace = name.lower() in existing
            if replace:
                logger.info(f"Replacing job {name} on {destination.server.sql_instance}")

            try:
                destination_query.execute_non_processing(
                    script_job(
                        job,
                        steps,
                        schedules_by_job.get(job_id, []),
                        enabled=False if self._disable_on_destination else None,
                        replace=replace,
                    )
                )
            except Exception as e:
                records.append(self.record(source, destination, name, "Failed", str(e)))
                self.stop_function("Failed to copy job", target, e)
                continue

            if self._disable_on_source:
                try:
                    source_query.execute_non_processing(
                        exec_procedure("msdb.dbo.sp_update_job", [("job_name", name), ("enabled", 0)])
                    )
                except Exception as e:
                    self.stop_function("Failed to disable job on source", f"{source.server.sql_instance}.{name}", e)

            logger.success(f"[{target}] Job copied")
            records.append(self.record(source, destination, name, "Successful"))

        return records

    def get_arguments(self) -> List[str]:
        return super().get_arguments() + [
            "--disable-on-source: Disable copied jobs on the source",
            "--disable-on-destination: Create copied jobs disabled",
        ]


@ActionFactory.register("copy-agentoperator", "Copy SQL Agent operators between instances")
class CopyAgentOperator(_AgentCopyAction):
    """
    Copies SQL Agent operators. Existing operators are skipped unless --force.
    """

    object_type = "Operator"

    def copy(self, source: DatabaseContext, destination: DatabaseContext) -> List[AgentCopy]:
        records: List[AgentCopy] = []
        existing = _names(destination, "SELECT name FROM msdb.dbo.sysoperators;")

        for operator in self.selected(source.query_service.execute_table(OPERATORS_QUERY)):
            name = str(operator["name"])
            target = f"{destination.server.sql_instance}.{name}"

            if name.lower() in existing and not self._force:
                logger.warning(f"[{target}] Operator already exists on destination")
                records.append(self.record(source, destination, name, "Skipped", "Already exists on destination"))
                continue

            try:
                if name.lower() in existing:
                    destination.query_service.execute_non_processing(
                        exec_procedure("msdb.dbo.sp_delete_operator", [("name", name)])
                    )
                destination.query_service.execute_non_processing(script_operator(operator))
            except Exception as e:
                records.append(self.record(source, destination, name, "Failed", str(e)))
                self.stop_function("Failed to copy operator", target, e)
                continue

            logger.success(f"[{target}] Operator copied")
            records.append(self.record(source, destination, name, "Successful"))

        return records


@ActionFactory.register("copy-agentcategory", "Copy user-defined SQL Agent categories between instances")
class CopyAgentCategory(_AgentCopyAction):
    """
    Copies user-defined job, alert and operator categories.
    Existing categories are skipped unless --force.
    """

    object_type = "Category"

    def copy(self, source: DatabaseContext, destination: DatabaseContext) -> List[AgentCopy]:
        records: List[AgentCopy] = []
        existing = {
            (str(row["name"]).lower(), int(row["category_class"]))
            for row in destination.query_service.execute_table(CATEGORIES_QUERY)
        }

        for category in self.selected(source.query_service.execute_table(CATEGORIES_QUERY)):
            name = str(category["name"])
            key = (name.lower(), int(category["category_class"]))
            target = f"{destination.server.sql_instance}.{name}"

            if key in existing and not self._force:
                logger.warning(f"[{target}] Category already exists on destination")
                records.append(self.record(source, destination, name, "Skipped", "Already exists on destination"))
                continue

            try:
                if key in existing:
                    destination.query_service.execute_non_processing(
                        exec_procedure(
                            "msdb.dbo.sp_delete_category",
                            [("class", CATEGORY_CLASSES.get(int(category["category_class"]), "JOB")), ("name", name)],
                        )
                    )
                destination.query_service.execute_non_processing(script_category(category))
            except Exception as e:
                records.append(self.record(source, destination, name, "Failed", str(e)))
                self.stop_function("Failed to copy category", target, e)
                continue

            logger.success(f"[{target}] Category copied")
            records.append(self.record(source, destination, name, "Successful"))

        return records
