"""
Test running actions across instances.

Run with: python3 -m unittest tests.test_runner
"""

import unittest

from mssqladmin_ng.core.actions.base import BaseAction
from mssqladmin_ng.core.exceptions import ActionError, ConnectionFailure
from mssqladmin_ng.core.models.server import Server
from mssqladmin_ng.core.runner import InstanceRunner

from tests.fakes import FakeConnector, FakeContext


class ProbeAction(BaseAction):
    """Reports one record per instance, failing on the ones it is told to."""

    def __init__(self, failing=(), crashing=()):
        super().__init__()
        self.failing = set(failing)
        self.crashing = set(crashing)

    def validate_arguments(self, additional_arguments="", argument_list=None):
        pass

    def execute(self, database_context=None):
        name = database_context.server.sql_instance
        if name in self.crashing:
            raise RuntimeError("unexpected")
        if name in self.failing:
            self.stop_function("check failed", name)
            return []
        return [{"SqlInstance": name}]


def build_connector():
    connector = FakeConnector()
    for host in ("SQL01", "SQL02", "SQL03"):
        connector.add(FakeContext(host))
    return connector


def servers(*names):
    return [Server.parse_server(name) for name in names]


class TestInstanceRunner(unittest.TestCase):
    def test_runs_every_instance(self):
        runner = InstanceRunner(build_connector())
        records = runner.run(ProbeAction(), servers("SQL01", "SQL02", "SQL03"))
        self.assertEqual([r["SqlInstance"] for r in records], ["SQL01", "SQL02", "SQL03"])
        self.assertEqual(runner.failures, 0)

    def test_failure_does_not_stop_others(self):
        runner = InstanceRunner(build_connector())
        records = runner.run(ProbeAction(failing={"SQL02"}), servers("SQL01", "SQL02", "SQL03"))
        self.assertEqual([r["SqlInstance"] for r in records], ["SQL01", "SQL03"])
        self.assertEqual(runner.failures, 1)

    def test_unexpected_error_is_contained(self):
        runner = InstanceRunner(build_connector())
        records = runner.run(ProbeAction(crashing={"SQL01"}), servers("SQL01", "SQL02"))
        self.assertEqual([r["SqlInstance"] for r in records], ["SQL02"])
        self.assertEqual(runner.failures, 1)

    def test_unreachable_instance(self):
        runner = InstanceRunner(build_connector())
        records = runner.run(ProbeAction(), servers("SQL09", "SQL01"))
        self.assertEqual([r["SqlInstance"] for r in records], ["SQL01"])
        self.assertEqual(runner.failures, 1)

    def test_strict_mode_stops_at_first_failure(self):
        runner = InstanceRunner(build_connector(), enable_exception=True)
        with self.assertRaises(ActionError) as ctx:
            runner.run(ProbeAction(failing={"SQL02"}), servers("SQL01", "SQL02", "SQL03"))
        self.assertEqual(ctx.exception.target, "SQL02")
        self.assertEqual(runner.failures, 1)

    def test_strict_mode_wraps_unexpected_errors(self):
        runner = InstanceRunner(build_connector(), enable_exception=True)
        with self.assertRaises(ActionError):
            runner.run(ProbeAction(crashing={"SQL01"}), servers("SQL01"))

    def test_strict_mode_unreachable(self):
        runner = InstanceRunner(build_connector(), enable_exception=True)
        with self.assertRaises(ConnectionFailure):
            runner.run(ProbeAction(), servers("SQL09"))

    def test_display_nothing(self):
        self.assertIsNone(InstanceRunner.display([]))


if __name__ == "__main__":
    unittest.main()
