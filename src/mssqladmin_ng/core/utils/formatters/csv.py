# mssqladmin_ng/core/utils/formatters/csv.py

# Built-in imports
import csv
import io
from typing import Any, Dict, List

# Local imports
from .base import IOutputFormatter, normalize_value


class CsvFormatter(IOutputFormatter):
    """Comma-separated output, suitable for piping into other tools."""

    @property
    def format_name(self) -> str:
        return "csv"

    @staticmethod
    def _write(rows: List[List[Any]]) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        for row in rows:
            writer.writerow([normalize_value(cell) for cell in row])
        return buffer.getvalue().rstrip("\n")

    def convert_dict(
        self, data: Dict[str, Any], column_one_header: str, column_two_header: str
    ) -> str:
        if not data:
            return ""
        return self._write(
            [[column_one_header, column_two_header]] + [[k, v] for k, v in data.items()]
        )

    def convert_list_of_dicts(self, data: List[Dict[str, Any]]) -> str:
        if not data:
            return ""
        columns = list(data[0].keys())
        return self._write(
            [columns] + [[row.get(col, "") for col in columns] for row in data]
        )

    def convert_list(self, data: List[Any], column_name: str) -> str:
        if not data:
            return ""
        return self._write([[column_name]] + [[item] for item in data])
