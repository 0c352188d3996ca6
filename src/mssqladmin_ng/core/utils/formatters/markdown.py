# mssqladmin_ng/core/utils/formatters/markdown.py

# Built-in imports
from typing import Any, Dict, List

# Local imports
from .base import IOutputFormatter, normalize_value


class MarkdownFormatter(IOutputFormatter):
    """Markdown-friendly tables, aligned for terminal display."""

    @property
    def format_name(self) -> str:
        return "markdown"

    def convert_dict(
        self, data: Dict[str, Any], column_one_header: str, column_two_header: str
    ) -> str:
        if not data:
            return ""

        rows = [(column_one_header, column_two_header)] + list(data.items())
        col1_width = max(len(normalize_value(row[0])) for row in rows)
        col2_width = max(len(normalize_value(row[1])) for row in rows)

        lines = [
            f"| {column_one_header.ljust(col1_width)} | {column_two_header.ljust(col2_width)} |",
            f"| {'-' * col1_width} | {'-' * col2_width} |",
        ]
        for key, value in data.items():
            lines.append(
                f"| {normalize_value(key).ljust(col1_width)} | {normalize_value(value).ljust(col2_width)} |"
            )
        return "\n" + "\n".join(lines)

    def convert_list_of_dicts(self, data: List[Dict[str, Any]]) -> str:
        if not data:
            return "No data available."

        columns = list(data[0].keys())
        col_widths = [
            max(len(str(col)), max(len(normalize_value(row.get(col, ""))) for row in data))
            for col in columns
        ]
        header = (
            "| "
            + " | ".join(col.ljust(col_widths[i]) for i, col in enumerate(columns))
            + " |"
        )
        separator = (
            "| " + " | ".join("-" * col_widths[i] for i in range(len(columns))) + " |"
        )
        data_lines = []
        for row in data:
            data_lines.append(
                "| "
                + " | ".join(
                    normalize_value(row.get(col, "")).ljust(col_widths[i])
                    for i, col in enumerate(columns)
                )
                + " |"
            )
        return "\n" + "\n".join([header, separator] + data_lines)

    def convert_list(self, data: List[Any], column_name: str) -> str:
        if not data:
            return ""
        col_width = max(len(column_name), max(len(normalize_value(item)) for item in data))
        lines = [f"| {column_name.ljust(col_width)} |", f"| {'-' * col_width} |"]
        for item in data:
            lines.append(f"| {normalize_value(item).ljust(col_width)} |")
        return "\n" + "\n".join(lines)
