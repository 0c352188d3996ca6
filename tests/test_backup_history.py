"""
Test the backup history action.

Run with: python3 -m unittest tests.test_backup_history
"""

import unittest
from datetime import datetime

from mssqladmin_ng.core.actions.backup.history import (
    BackupHistoryAction,
    group_backup_sets,
    last_chain,
    parse_date,
)

from tests.fakes import FakeContext, FakeQueryService


def backup(set_id, database, code, start, finish, seconds=60, size=1048576, copy_only=0, device=None):
    return {
        "backup_set_id": set_id,
        "name": database,
        "type": code,
        "start_date": start,
        "finish_date": finish,
        "duration_seconds": seconds,
        "backup_size": size,
        "user_name": "CORP\\svc_sql",
        "is_copy_only": copy_only,
        "physical_device_name": device or f"\\\\backup\\{database}_{set_id}.bak",
    }


HISTORY = [
    backup(1, "AppDb", "D", "2024-03-01T00:00:00.000", "2024-03-01T00:10:00.000", seconds=600, size=1610612736),
    backup(2, "AppDb", "L", "2024-03-01T01:00:00.000", "2024-03-01T01:00:05.000", seconds=5),
    backup(3, "AppDb", "I", "2024-03-01T12:00:00.000", "2024-03-01T12:01:00.000"),
    backup(4, "AppDb", "L", "2024-03-01T13:00:00.000", "2024-03-01T13:00:05.000", seconds=5),
    backup(4, "AppDb", "L", "2024-03-01T13:00:00.000", "2024-03-01T13:00:05.000", seconds=5, device="\\\\backup\\AppDb_4b.trn"),
    backup(5, "AppDb", "D", "2024-03-01T14:00:00.000", "2024-03-01T14:05:00.000", copy_only=1),
    backup(6, "Sales", "L", "2024-03-01T02:00:00.000", "2024-03-01T02:00:01.000", seconds=1),
]


def history_context():
    return FakeContext(query_service=FakeQueryService().on("FROM msdb.dbo.backupset bs", HISTORY))


class TestHelpers(unittest.TestCase):
    def test_parse_date(self):
        self.assertEqual(parse_date("2024-03-01T22:15:04.123"), datetime(2024, 3, 1, 22, 15, 4, 123000))
        self.assertIsNone(parse_date(None))

    def test_group_striped_backups(self):
        grouped = group_backup_sets(HISTORY)
        self.assertEqual([row["backup_set_id"] for row in grouped], [1, 2, 3, 4, 5, 6])
        self.assertEqual(grouped[3]["paths"], ["\\\\backup\\AppDb_4.bak", "\\\\backup\\AppDb_4b.trn"])

    def test_last_chain(self):
        rows = group_backup_sets([row for row in HISTORY if row["name"] == "AppDb" and row["is_copy_only"] == 0])
        for row in rows:
            row["start"] = parse_date(row["start_date"])
        self.assertEqual([row["backup_set_id"] for row in last_chain(rows)], [1, 3, 4])

    def test_last_chain_without_full(self):
        self.assertEqual(last_chain([{"type": "L", "start": datetime(2024, 1, 1)}]), [])


class TestBackupHistoryAction(unittest.TestCase):
    def run_action(self, arguments):
        action = BackupHistoryAction()
        action.validate_arguments(argument_list=arguments)
        context = history_context()
        return action, context, action.execute(context)

    def test_all_history(self):
        _, _, records = self.run_action([])
        self.assertEqual(len(records), 6)

        full = records[0]
        self.assertEqual(full.type, "Full")
        self.assertEqual(full.duration, "00:10:00")
        self.assertEqual(full.total_size, "1.50 GB")
        self.assertEqual(full.total_size_bytes, 1610612736)
        self.assertEqual(full.start, datetime(2024, 3, 1))
        self.assertEqual(full.sql_instance, "SQL01")
        self.assertFalse(full.copy_only)
        self.assertTrue(records[4].copy_only)
        self.assertEqual(records[3].path, "\\\\backup\\AppDb_4.bak, \\\\backup\\AppDb_4b.trn")

    def test_filters_are_sent_to_the_server(self):
        _, context, _ = self.run_action(
            ["-d", "AppDb", "--since", "2024-03-01T06:00", "--type", "log", "--type", "Differential", "--ignore-copy-only"]
        )
        query = context.query_service.executed[0]
        self.assertIn("bs.database_name IN (N'AppDb')", query)
        self.assertIn("bs.backup_start_date >= N'2024-03-01T06:00:00'", query)
        self.assertIn("bs.type IN (N'L', N'I')", query)
        self.assertIn("bs.is_copy_only = 0", query)

    def test_no_filter_no_where(self):
        _, context, _ = self.run_action([])
        self.assertNotIn("WHERE", context.query_service.executed[0])

    def test_last_full_per_database(self):
        _, _, records = self.run_action(["--last-full"])
        self.assertEqual([(r.database, r.backup_set_id) for r in records], [("AppDb", 5)])

    def test_last_log(self):
        _, _, records = self.run_action(["--last-log"])
        self.assertEqual([(r.database, r.backup_set_id) for r in records], [("AppDb", 4), ("Sales", 6)])

    def test_last_chain(self):
        _, _, records = self.run_action(["--last", "-x", "Sales"])
        self.assertEqual([r.backup_set_id for r in records], [5])

    def test_last_options_are_exclusive(self):
        with self.assertRaises(ValueError):
            BackupHistoryAction().validate_arguments(argument_list=["--last", "--last-log"])

    def test_invalid_since(self):
        with self.assertRaises(ValueError):
            BackupHistoryAction().validate_arguments(argument_list=["--since", "yesterday"])

    def test_unknown_type(self):
        with self.assertRaises(ValueError) as ctx:
            BackupHistoryAction().validate_arguments(argument_list=["--type", "Snapshot"])
        self.assertIn("Partial Differential", str(ctx.exception))

    def test_query_failure(self):
        context = FakeContext(query_service=FakeQueryService().fail("msdb.dbo.backupset", "msdb is offline"))
        action = BackupHistoryAction()
        action.validate_arguments(argument_list=[])
        self.assertEqual(action.execute(context), [])
        self.assertEqual(action.failures, 1)


if __name__ == "__main__":
    unittest.main()
