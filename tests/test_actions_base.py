"""
Test the action base classes and the factory.

Run with: python3 -m unittest tests.test_actions_base
"""

import unittest

from mssqladmin_ng.core import actions  # noqa: F401
from mssqladmin_ng.core.actions.base import BaseAction, DatabaseAction, flatten_names
from mssqladmin_ng.core.actions.factory import ActionFactory
from mssqladmin_ng.core.exceptions import ActionError

from tests.fakes import FakeContext, database_row


class DummyAction(DatabaseAction):
    def validate_arguments(self, additional_arguments="", argument_list=None):
        parser = self.create_argument_parser("dummy")
        self.add_database_arguments(parser)
        self.set_database_filters(self.parse_with(parser, additional_arguments, argument_list))

    def execute(self, database_context=None):
        return self.accessible_databases(database_context)


class TestStopFunction(unittest.TestCase):
    def test_warns_and_counts(self):
        action = DummyAction()
        action.stop_function("Failed", "SQL01")
        action.stop_function("Failed again")
        self.assertEqual(action.failures, 2)

    def test_raises_when_enabled(self):
        action = DummyAction()
        action.enable_exception = True
        cause = RuntimeError("timeout")
        with self.assertRaises(ActionError) as ctx:
            action.stop_function("Failed to connect", "SQL01", cause)
        self.assertEqual(str(ctx.exception), "[SQL01] Failed to connect: timeout")
        self.assertEqual(ctx.exception.target, "SQL01")
        self.assertIs(ctx.exception.__cause__, cause)


class TestArguments(unittest.TestCase):
    def test_flatten_names(self):
        self.assertEqual(flatten_names(["db1,db2", " db3 "]), ["db1", "db2", "db3"])
        self.assertEqual(flatten_names(None), [])

    def test_string_and_list_arguments(self):
        action = DummyAction()
        action.validate_arguments("-d 'App Db' -x tempdb")
        self.assertEqual(action.databases, ["App Db"])
        self.assertEqual(action.exclude_databases, ["tempdb"])

        action.validate_arguments(argument_list=["-d", "a,b", "-d", "c"])
        self.assertEqual(action.databases, ["a", "b", "c"])

    def test_unknown_argument_raises_value_error(self):
        with self.assertRaises(ValueError):
            DummyAction().validate_arguments(argument_list=["--bogus"])


class TestDatabaseSelection(unittest.TestCase):
    def setUp(self):
        self.context = FakeContext(
            databases=[
                database_row("master", database_id=1),
                database_row("AppDb"),
                database_row("Offline", state="OFFLINE"),
                database_row("Locked", accessible=0),
            ]
        )

    def test_skips_offline_and_inaccessible(self):
        action = DummyAction()
        action.validate_arguments(argument_list=[])
        self.assertEqual(action.execute(self.context), ["master", "AppDb"])

    def test_filters_are_case_insensitive(self):
        action = DummyAction()
        action.validate_arguments(argument_list=["-d", "appdb,MASTER,missing", "-x", "Master"])
        self.assertEqual(action.execute(self.context), ["AppDb"])

    def test_exclude_system_databases(self):
        action = DummyAction()
        action.include_system_databases = False
        action.validate_arguments(argument_list=[])
        self.assertEqual(action.execute(self.context), ["AppDb"])


class TestActionFactory(unittest.TestCase):
    def test_every_command_is_registered(self):
        expected = {
            "orphans", "repair-orphans", "install-procedure", "rename-login",
            "test-maxmemory", "set-maxmemory", "copy-agentjob", "copy-agentoperator",
            "copy-agentcategory", "test-dbowner", "set-dbowner", "collectorsets",
            "collectorset-counters", "remove-counter", "start-collectorset",
            "stop-collectorset", "runspaces", "stop-runspace", "backup-history", "query",
        }
        self.assertTrue(expected.issubset(set(ActionFactory.list_actions())))

    def test_get_action_returns_new_instances(self):
        first = ActionFactory.get_action("ORPHANS")
        second = ActionFactory.get_action("orphans")
        self.assertIsInstance(first, BaseAction)
        self.assertIsNot(first, second)

    def test_unknown_action(self):
        self.assertIsNone(ActionFactory.get_action("nope"))
        self.assertFalse(ActionFactory.action_exists("nope"))
        self.assertIsNone(ActionFactory.get_action_description("nope"))

    def test_duplicate_registration(self):
        with self.assertRaises(ValueError):
            ActionFactory.register("orphans", "again")(DummyAction)

    def test_available_actions_describe_arguments(self):
        entries = {name: arguments for name, _, arguments in ActionFactory.get_available_actions()}
        self.assertIn("--remove-not-existing: Drop orphans without a matching login", entries["repair-orphans"])


if __name__ == "__main__":
    unittest.main()
