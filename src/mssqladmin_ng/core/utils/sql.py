# mssqladmin_ng/core/utils/sql.py
"""
Helpers to embed names and values into T-SQL text.
"""

# Built-in imports
import re
from typing import Any, Iterable, List, Optional, Sequence, Tuple

GO_SEPARATOR = re.compile(r"^\s*GO\s*(?:\d+\s*)?(?:--.*)?$", re.IGNORECASE)


class Raw(str):
    """A T-SQL fragment that must be emitted as-is (variables, expressions)."""


class Output(Raw):
    """A variable bound to an OUTPUT parameter."""


def quote_identifier(name: str) -> str:
    """
    Wraps a name in brackets, doubling any closing bracket.

    >>> quote_identifier("my]db")
    '[my]]db]'
    """
    if name is None or name == "":
        raise ValueError("Identifier cannot be null or empty.")
    return "[" + name.replace("]", "]]") + "]"


def quote_literal(value: str) -> str:
    """
    Returns a Unicode string literal with single quotes escaped.

    >>> quote_literal("O'Neil")
    "N'O''Neil'"
    """
    return "N'" + str(value).replace("'", "''") + "'"


def format_value(value: Any) -> str:
    """Renders a Python value as a T-SQL literal."""
    if value is None:
        return "NULL"
    if isinstance(value, Raw):
        return str(value)
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    return quote_literal(value)


def exec_procedure(
    procedure: str, parameters: Sequence[Tuple[str, Any]], skip_null: bool = True
) -> str:
    """
    Builds an EXEC statement with named parameters.

    Args:
        procedure: Fully qualified procedure name
        parameters: Ordered (name, value) pairs, names without '@'
        skip_null: Leave out parameters whose value is None

    Returns:
        The EXEC statement terminated by a semicolon
    """
    rendered: List[str] = []
    for name, value in parameters:
        if value is None and skip_null:
            continue
        argument = f"@{name} = {format_value(value)}"
        if isinstance(value, Output):
            argument += " OUTPUT"
        rendered.append(argument)

    if not rendered:
        return f"EXEC {procedure};"

    return f"EXEC {procedure} " + ", ".join(rendered) + ";"


def split_batches(script: str) -> List[str]:
    """
    Splits a T-SQL script into batches on lines that only hold GO.

    Empty batches are dropped.
    """
    batches: List[str] = []
    current: List[str] = []

    for line in script.splitlines():
        if GO_SEPARATOR.match(line):
            batch = "\n".join(current).strip()
            if batch:
                batches.append(batch)
            current = []
            continue
        current.append(line)

    batch = "\n".join(current).strip()
    if batch:
        batches.append(batch)

    return batches


def in_list(values: Iterable[str]) -> Optional[str]:
    """Renders values as a T-SQL IN list body, or None if empty."""
    literals = [quote_literal(value) for value in values]
    if not literals:
        return None
    return ", ".join(literals)


def in_database(database: str, statement: str) -> str:
    """
    Wraps a statement so it runs in the context of another database
    without changing the connection's current database.
    """
    return f"EXEC {quote_identifier(database)}.sys.sp_executesql {quote_literal(statement)};"
