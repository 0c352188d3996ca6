"""
Test output records and formatters.

Run with: python3 -m unittest tests.test_formatters
"""

import unittest
from datetime import datetime

from mssqladmin_ng.core.models.records import (
    BackupHistory,
    MaxMemoryChange,
    OrphanUser,
    DatabaseOwner,
)
from mssqladmin_ng.core.utils.formatters import (
    CsvFormatter,
    MarkdownFormatter,
    OutputFormatter,
    normalize_value,
)


class TestRecords(unittest.TestCase):
    def test_pascal_case_columns(self):
        record = OrphanUser("SQL01", "MSSQLSERVER", "SQL01", "AppDb", "bob")
        self.assertEqual(
            record.to_dict(),
            {
                "ComputerName": "SQL01",
                "InstanceName": "MSSQLSERVER",
                "SqlInstance": "SQL01",
                "DatabaseName": "AppDb",
                "User": "bob",
            },
        )

    def test_column_overrides(self):
        record = MaxMemoryChange("SQL01", "MSSQLSERVER", "SQL01", 16384, 2147483647, 11264)
        self.assertEqual(list(record.to_dict()), [
            "ComputerName", "InstanceName", "SqlInstance", "TotalMB", "OldMaxValue", "CurrentMaxValue",
        ])

        owner = DatabaseOwner("SQL01", "MSSQLSERVER", "SQL01", "AppDb", "ONLINE", "bob", "sa", False)
        self.assertIn("DBState", owner.to_dict())

    def test_hidden_fields(self):
        record = BackupHistory(
            sql_instance="SQL01",
            database="AppDb",
            type="Full",
            start=None,
            end=None,
            duration="00:00:01",
            backup_set_id=7,
            total_size="1.00 KB",
            total_size_bytes=1024,
        )
        columns = record.to_dict()
        self.assertEqual(columns["BackupSetID"], 7)
        self.assertNotIn("TotalSizeBytes", columns)


class TestFormatters(unittest.TestCase):
    def tearDown(self):
        OutputFormatter.set_format("markdown")

    def test_normalize_value(self):
        self.assertEqual(normalize_value(None), "")
        self.assertEqual(normalize_value(b"abc"), "abc")
        self.assertEqual(normalize_value(datetime(2024, 3, 1, 8, 0, 5)), "2024-03-01 08:00:05")

    def test_markdown_table(self):
        output = MarkdownFormatter().convert_list_of_dicts([{"Name": "a", "Value": 1}, {"Name": "bbb", "Value": None}])
        lines = output.strip().splitlines()
        self.assertEqual(lines[0], "| Name | Value |")
        self.assertEqual(lines[1], "| ---- | ----- |")
        self.assertEqual(lines[3], "| bbb  |       |")

    def test_markdown_empty(self):
        self.assertEqual(MarkdownFormatter().convert_list_of_dicts([]), "No data available.")

    def test_csv_quotes_commas(self):
        output = CsvFormatter().convert_list_of_dicts([{"Name": "a,b", "Flag": True}])
        self.assertEqual(output, 'Name,Flag\n"a,b",True')

    def test_set_format(self):
        OutputFormatter.set_format("CSV")
        self.assertEqual(OutputFormatter.current_format(), "csv")
        OutputFormatter.set_format("md")
        self.assertEqual(OutputFormatter.current_format(), "markdown")

    def test_unknown_format(self):
        with self.assertRaises(ValueError):
            OutputFormatter.set_format("xml")

    def test_convert_records_accepts_rows(self):
        OutputFormatter.set_format("csv")
        output = OutputFormatter.convert_records(
            [OrphanUser("SQL01", "MSSQLSERVER", "SQL01", "AppDb", "bob"), {"ComputerName": "SQL02"}]
        )
        self.assertEqual(output.splitlines()[0], "ComputerName,InstanceName,SqlInstance,DatabaseName,User")
        self.assertEqual(output.splitlines()[2], "SQL02,,,,")


if __name__ == "__main__":
    unittest.main()
