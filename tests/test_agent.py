"""
Test SQL Agent scripting and the copy actions.

Run with: python3 -m unittest tests.test_agent
"""

import unittest

from mssqladmin_ng.core.actions.agent.copy import CopyAgentCategory, CopyAgentJob, CopyAgentOperator
from mssqladmin_ng.core.actions.agent.scripting import script_category, script_job, script_operator

from tests.fakes import FakeConnector, FakeContext, FakeQueryService

JOBS = [
    {
        "job_id": "A1", "name": "Nightly ETL", "enabled": 1, "description": "Loads the warehouse",
        "start_step_id": 1, "category_name": "ETL", "owner_login": "sa",
        "notify_level_eventlog": 2, "notify_level_email": 2, "notify_level_page": 0, "delete_level": 0,
        "notify_email_operator": "DBA Team", "notify_page_operator": None,
    },
    {
        "job_id": "B2", "name": "Legacy", "enabled": 1, "description": None,
        "start_step_id": 1, "category_name": None, "owner_login": "sa",
        "notify_level_eventlog": 0, "notify_level_email": 0, "notify_level_page": 0, "delete_level": 0,
        "notify_email_operator": None, "notify_page_operator": None,
    },
    {
        "job_id": "C3", "name": "Existing", "enabled": 0, "description": None,
        "start_step_id": 1, "category_name": None, "owner_login": "sa",
        "notify_level_eventlog": 0, "notify_level_email": 0, "notify_level_page": 0, "delete_level": 0,
        "notify_email_operator": None, "notify_page_operator": None,
    },
]

STEPS = [
    {"job_id": "A1", "step_id": 2, "step_name": "Cleanup", "subsystem": "TSQL", "command": "EXEC dbo.cleanup;",
     "database_name": "AppDb", "on_success_action": 1, "on_fail_action": 2, "proxy_name": None},
    {"job_id": "A1", "step_id": 1, "step_name": "Load", "subsystem": "TSQL", "command": "EXEC dbo.load 'full';",
     "database_name": "AppDb", "on_success_action": 3, "on_fail_action": 2, "proxy_name": None},
    {"job_id": "B2", "step_id": 1, "step_name": "Run", "subsystem": "TSQL", "command": "SELECT 1;",
     "database_name": "OldDb", "proxy_name": None},
    {"job_id": "C3", "step_id": 1, "step_name": "Run", "subsystem": "TSQL", "command": "SELECT 1;",
     "database_name": "master", "proxy_name": None},
]

SCHEDULES = [
    {"job_id": "A1", "name": "Daily", "enabled": 1, "freq_type": 4, "freq_interval": 1,
     "freq_subday_type": 1, "freq_subday_interval": 0, "freq_relative_interval": 0,
     "freq_recurrence_factor": 0, "active_start_date": 20240101, "active_end_date": 99991231,
     "active_start_time": 10000, "active_end_time": 235959},
]

OPERATORS = [
    {"name": "DBA Team", "enabled": 1, "email_address": "dba@corp.local"},
    {"name": "OnCall", "enabled": 1, "email_address": "oncall@corp.local", "pager_days": 127},
]

CATEGORIES = [{"name": "ETL", "category_class": 1, "category_type": 1}]


def copy_setup():
    connector = FakeConnector()
    source_queries = (
        FakeQueryService()
        .on("FROM msdb.dbo.sysjobs j", JOBS)
        .on("FROM msdb.dbo.sysjobsteps s", STEPS)
        .on("FROM msdb.dbo.sysjobschedules js", SCHEDULES)
        .on("FROM msdb.dbo.sysoperators o", OPERATORS)
        .on("WHERE category_id >= 100", CATEGORIES)
    )
    destination_queries = (
        FakeQueryService()
        .on("SELECT name FROM msdb.dbo.sysjobs;", [{"name": "Existing"}])
        .on("SELECT name FROM sys.databases;", [{"name": "master"}, {"name": "AppDb"}])
        .on("SELECT name FROM sys.server_principals;", [{"name": "sa"}])
        .on("SELECT name FROM msdb.dbo.sysoperators;", [{"name": "DBA Team"}])
    )
    source = connector.add(FakeContext("SQL01", query_service=source_queries))
    destination = connector.add(FakeContext("SQL02", query_service=destination_queries))
    return source, destination


class TestScripting(unittest.TestCase):
    def test_job_script(self):
        script = script_job(JOBS[0], STEPS[:2], SCHEDULES)

        self.assertTrue(script.startswith("SET XACT_ABORT ON;\nBEGIN TRY\nBEGIN TRANSACTION;"))
        self.assertIn("msdb.dbo.sp_add_category @class = N'JOB', @type = N'LOCAL', @name = N'ETL';", script)
        self.assertIn("@job_name = N'Nightly ETL', @enabled = 1, @description = N'Loads the warehouse'", script)
        self.assertIn("@notify_email_operator_name = N'DBA Team'", script)
        self.assertIn("@job_id = @job_id OUTPUT;", script)
        self.assertNotIn("notify_page_operator_name", script)
        self.assertLess(script.index("@step_name = N'Load'"), script.index("@step_name = N'Cleanup'"))
        self.assertIn("@command = N'EXEC dbo.load ''full'';'", script)
        self.assertIn("EXEC msdb.dbo.sp_add_jobschedule @job_id = @job_id, @name = N'Daily'", script)
        self.assertIn("EXEC msdb.dbo.sp_add_jobserver @job_id = @job_id, @server_name = N'(local)';", script)
        self.assertTrue(script.endswith("IF @@TRANCOUNT > 0 ROLLBACK TRANSACTION;\nTHROW;\nEND CATCH;"))

    def test_enabled_override(self):
        self.assertIn("@enabled = 0", script_job(JOBS[0], [], [], enabled=False))

    def test_operator_script(self):
        self.assertEqual(
            script_operator(OPERATORS[1]),
            "EXEC msdb.dbo.sp_add_operator @name = N'OnCall', @enabled = 1, "
            "@email_address = N'oncall@corp.local', @pager_days = 127;",
        )

    def test_category_script_is_guarded(self):
        script = script_category({"name": "Reports", "category_class": 2, "category_type": 3})
        self.assertTrue(script.startswith("IF NOT EXISTS (SELECT 1 FROM msdb.dbo.syscategories"))
        self.assertIn("@class = N'ALERT', @type = N'NONE', @name = N'Reports';", script)


class TestCopyAgentJob(unittest.TestCase):
    def test_copies_jobs_with_dependencies(self):
        source, destination = copy_setup()
        action = CopyAgentJob()
        action.validate_arguments(argument_list=["-s", "SQL01"])
        records = action.execute(destination)

        self.assertEqual(
            [(r.name, r.status) for r in records],
            [("Nightly ETL", "Successful"), ("Legacy", "Skipped"), ("Existing", "Skipped")],
        )
        self.assertEqual(records[1].notes, "Job is dependent on database: OldDb")
        self.assertEqual(records[0].source_server, "SQL01")
        self.assertEqual(records[0].destination_server, "SQL02")
        self.assertEqual(records[0].type, "Job")

        self.assertEqual(len(destination.query_service.statements), 1)
        self.assertIn("@job_name = N'Nightly ETL'", destination.query_service.statements[0])
        self.assertEqual(source.query_service.statements, [])

    def test_force_replaces_existing_job_in_one_transaction(self):
        source, destination = copy_setup()
        action = CopyAgentJob()
        action.validate_arguments(argument_list=["-s", "SQL01", "-n", "existing", "--force"])
        records = action.execute(destination)

        self.assertEqual([(r.name, r.status) for r in records], [("Existing", "Successful")])
        statements = destination.query_service.statements
        self.assertEqual(len(statements), 1)
        script = statements[0]
        drop = "EXEC msdb.dbo.sp_delete_job @job_name = N'Existing', @delete_unused_schedule = 1;"
        self.assertIn(drop, script)
        self.assertLess(script.index("BEGIN TRANSACTION;"), script.index(drop))
        self.assertLess(script.index(drop), script.index("EXEC msdb.dbo.sp_add_job "))
        self.assertIn("@job_name = N'Existing', @enabled = 0", script)

    def test_failed_replacement_keeps_existing_job(self):
        source, destination = copy_setup()
        destination.query_service.fail("sp_add_jobstep", "Invalid subsystem")
        action = CopyAgentJob()
        action.validate_arguments(argument_list=["-s", "SQL01", "-n", "existing", "--force"])
        records = action.execute(destination)

        self.assertEqual([(r.name, r.status) for r in records], [("Existing", "Failed")])
        statements = destination.query_service.statements
        self.assertEqual(len(statements), 1)
        self.assertIn("ROLLBACK TRANSACTION", statements[0])
        self.assertIn("sp_delete_job", statements[0])

    def test_disable_on_source_and_destination(self):
        source, destination = copy_setup()
        action = CopyAgentJob()
        action.validate_arguments(
            argument_list=["-s", "SQL01", "-n", "Nightly ETL", "--disable-on-source", "--disable-on-destination"]
        )
        action.execute(destination)

        self.assertIn("@job_name = N'Nightly ETL', @enabled = 0", destination.query_service.statements[0])
        self.assertEqual(
            source.query_service.statements,
            ["EXEC msdb.dbo.sp_update_job @job_name = N'Nightly ETL', @enabled = 0;"],
        )

    def test_missing_operator_skips_job(self):
        source, destination = copy_setup()
        destination.query_service.responses = [
            response for response in destination.query_service.responses if "sysoperators" not in response[0]
        ]
        action = CopyAgentJob()
        action.validate_arguments(argument_list=["-s", "SQL01", "--exclude", "Legacy,Existing"])
        records = action.execute(destination)

        self.assertEqual(records[0].status, "Skipped")
        self.assertEqual(records[0].notes, "Job is dependent on operator: DBA Team")

    def test_failed_creation(self):
        source, destination = copy_setup()
        destination.query_service.fail("sp_add_job ", "The specified @owner_login_name is invalid")
        action = CopyAgentJob()
        action.validate_arguments(argument_list=["-s", "SQL01", "-n", "Nightly ETL"])
        records = action.execute(destination)

        self.assertEqual(records[0].status, "Failed")
        self.assertEqual(action.failures, 1)

    def test_same_instance_is_refused(self):
        source, destination = copy_setup()
        action = CopyAgentJob()
        action.validate_arguments(argument_list=["-s", "sql02"])
        self.assertEqual(action.execute(destination), [])
        self.assertEqual(action.failures, 1)

    def test_unreachable_source(self):
        source, destination = copy_setup()
        action = CopyAgentJob()
        action.validate_arguments(argument_list=["-s", "SQL09"])
        self.assertEqual(action.execute(destination), [])
        self.assertEqual(action.failures, 1)

    def test_source_is_required(self):
        with self.assertRaises(ValueError):
            CopyAgentJob().validate_arguments(argument_list=[])


class TestCopyOperatorsAndCategories(unittest.TestCase):
    def test_operators(self):
        source, destination = copy_setup()
        action = CopyAgentOperator()
        action.validate_arguments(argument_list=["-s", "SQL01"])
        records = action.execute(destination)

        self.assertEqual([(r.name, r.status) for r in records], [("DBA Team", "Skipped"), ("OnCall", "Successful")])
        self.assertTrue(destination.query_service.statements[0].startswith("EXEC msdb.dbo.sp_add_operator @name = N'OnCall'"))

    def test_operators_force(self):
        source, destination = copy_setup()
        action = CopyAgentOperator()
        action.validate_arguments(argument_list=["-s", "SQL01", "-n", "DBA Team", "--force"])
        action.execute(destination)
        self.assertEqual(
            destination.query_service.statements[0], "EXEC msdb.dbo.sp_delete_operator @name = N'DBA Team';"
        )

    def test_categories(self):
        source, destination = copy_setup()
        action = CopyAgentCategory()
        action.validate_arguments(argument_list=["-s", "SQL01"])
        records = action.execute(destination)

        self.assertEqual([(r.name, r.status, r.type) for r in records], [("ETL", "Successful", "Category")])
        self.assertIn("@class = N'JOB', @type = N'LOCAL', @name = N'ETL';", destination.query_service.statements[0])


if __name__ == "__main__":
    unittest.main()
