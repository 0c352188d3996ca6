# mssqladmin_ng/core/actions/agent/scripting.py
"""
Builds T-SQL recreating SQL Agent objects from msdb catalog rows.
"""

# Built-in imports
from typing import Any, Dict, List, Optional

# Local imports
from ...utils.sql import Output, Raw, exec_procedure, quote_literal

CATEGORY_CLASSES = {1: "JOB", 2: "ALERT", 3: "OPERATOR"}
CATEGORY_TYPES = {1: "LOCAL", 2: "MULTI-SERVER", 3: "NONE"}


def _int(row: Dict[str, Any], key: str, default: Optional[int] = None) -> Optional[int]:
    value = row.get(key)
    if value is None or value == "":
        return default
    return int(value)


def _text(row: Dict[str, Any], key: str) -> Optional[str]:
    value = row.get(key)
    if value is None:
        return None
    return str(value)


def script_category(row: Dict[str, Any]) -> str:
    """sp_add_category call, guarded against an existing category."""
    category_class = CATEGORY_CLASSES.get(_int(row, "category_class", 1), "JOB")
    category_type = CATEGORY_TYPES.get(_int(row, "category_type", 1), "LOCAL")
    name = str(row["name"])

    return (
        "IF NOT EXISTS (SELECT 1 FROM msdb.dbo.syscategories "
        f"WHERE name = {quote_literal(name)} AND category_class = {_int(row, 'category_class', 1)})\n"
        + "    "
        + exec_procedure(
            "msdb.dbo.sp_add_category",
            [("class", category_class), ("type", category_type), ("name", name)],
        )
    )


def script_operator(row: Dict[str, Any]) -> str:
    """sp_add_operator call."""
    return exec_procedure(
        "msdb.dbo.sp_add_operator",
        [
            ("name", str(row["name"])),
            ("enabled", _int(row, "enabled", 1)),
            ("email_address", _text(row, "email_address")),
            ("pager_address", _text(row, "pager_address")),
            ("weekday_pager_start_time", _int(row, "weekday_pager_start_time")),
            ("weekday_pager_end_time", _int(row, "weekday_pager_end_time")),
            ("saturday_pager_start_time", _int(row, "saturday_pager_start_time")),
            ("saturday_pager_end_time", _int(row, "saturday_pager_end_time")),
            ("sunday_pager_start_time", _int(row, "sunday_pager_start_time")),
            ("sunday_pager_end_time", _int(row, "sunday_pager_end_time")),
            ("pager_days", _int(row, "pager_days")),
            ("netsend_address", _text(row, "netsend_address")),
            ("category_name", _text(row, "category_name")),
        ],
    )


def script_step(step: Dict[str, Any]) -> str:
    return exec_procedure(
        "msdb.dbo.sp_add_jobstep",
        [
            ("job_id", Raw("@job_id")),
            ("step_name", str(step["step_name"])),
            ("step_id", _int(step, "step_id")),
            ("subsystem", _text(step, "subsystem")),
            ("command", _text(step, "command")),
            ("database_name", _text(step, "database_name")),
            ("database_user_name", _text(step, "database_user_name")),
            ("cmdexec_success_code", _int(step, "cmdexec_success_code")),
            ("on_success_action", _int(step, "on_success_action")),
            ("on_success_step_id", _int(step, "on_success_step_id")),
            ("on_fail_action", _int(step, "on_fail_action")),
            ("on_fail_step_id", _int(step, "on_fail_step_id")),
            ("retry_attempts", _int(step, "retry_attempts")),
            ("retry_interval", _int(step, "retry_interval")),
            ("output_file_name", _text(step, "output_file_name")),
            ("flags", _int(step, "flags")),
            ("proxy_name", _text(step, "proxy_name")),
        ],
    )


def script_schedule(schedule: Dict[str, Any]) -> str:
    return exec_procedure(
        "msdb.dbo.sp_add_jobschedule",
        [
            ("job_id", Raw("@job_id")),
            ("name", str(schedule["name"])),
            ("enabled", _int(schedule, "enabled", 1)),
            ("freq_type", _int(schedule, "freq_type")),
            ("freq_interval", _int(schedule, "freq_interval")),
            ("freq_subday_type", _int(schedule, "freq_subday_type")),
            ("freq_subday_interval", _int(schedule, "freq_subday_interval")),
            ("freq_relative_interval", _int(schedule, "freq_relative_interval")),
            ("freq_recurrence_factor", _int(schedule, "freq_recurrence_factor")),
            ("active_start_date", _int(schedule, "active_start_date")),
            ("active_end_date", _int(schedule, "active_end_date")),
            ("active_start_time", _int(schedule, "active_start_time")),
            ("active_end_time", _int(schedule, "active_end_time")),
        ],
    )


def script_job(
    job: Dict[str, Any],
    steps: List[Dict[str, Any]],
    schedules: List[Dict[str, Any]],
    enabled: Optional[bool] = None,
    replace: bool = False,
) -> str:
    """
    Script creating a job with its steps and schedules, targeting the local
    server. Runs in a transaction rolled back on the first error.

    Args:
        job: sysjobs row (with category_name, owner_login and operator names)
        steps: sysjobsteps rows of the job
        schedules: sysschedules rows attached to the job
        enabled: Override the enabled flag of the source job
        replace: Drop a job of the same name first, inside the same transaction
    """
    job_enabled = _int(job, "enabled", 1) if enabled is None else int(enabled)
    category = _text(job, "category_name")

    lines = [
        "SET XACT_ABORT ON;",
        "BEGIN TRY",
        "BEGIN TRANSACTION;",
        "DECLARE @job_id UNIQUEIDENTIFIER;",
    ]

    if replace:
        lines.append(
            f"IF EXISTS (SELECT 1 FROM msdb.dbo.sysjobs WHERE name = {quote_literal(str(job['name']))})\n"
            + "    "
            + exec_procedure(
                "msdb.dbo.sp_delete_job",
                [("job_name", str(job["name"])), ("delete_unused_schedule", 1)],
            )
        )

    if category:
        lines.append(script_category({"name": category, "category_class": 1, "category_type": 1}))

    lines.append(
        exec_procedure(
            "msdb.dbo.sp_add_job",
            [
                ("job_name", str(job["name"])),
                ("enabled", job_enabled),
                ("description", _text(job, "description")),
                ("start_step_id", _int(job, "start_step_id")),
                ("category_name", category),
                ("owner_login_name", _text(job, "owner_login")),
                ("notify_level_eventlog", _int(job, "notify_level_eventlog")),
                ("notify_level_email", _int(job, "notify_level_email")),
                ("notify_level_page", _int(job, "notify_level_page")),
                ("notify_email_operator_name", _text(job, "notify_email_operator")),
                ("notify_page_operator_name", _text(job, "notify_page_operator")),
                ("delete_level", _int(job, "delete_level")),
                ("job_id", Output("@job_id")),
            ],
        )
    )

    for step in sorted(steps, key=lambda row: _int(row, "step_id", 0)):
        lines.append(script_step(step))

    for schedule in schedules:
        lines.append(script_schedule(schedule))

    lines.append(
        exec_procedure(
            "msdb.dbo.sp_add_jobserver",
            [("job_id", Raw("@job_id")), ("server_name", "(local)")],
        )
    )

    lines.extend(
        [
            "COMMIT TRANSACTION;",
            "END TRY",
            "BEGIN CATCH",
            "IF @@TRANCOUNT > 0 ROLLBACK TRANSACTION;",
            "THROW;",
            "END CATCH;",
        ]
    )

    return "\n".join(lines)
