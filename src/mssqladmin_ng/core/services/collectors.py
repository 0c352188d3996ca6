# mssqladmin_ng/core/services/collectors.py
"""
Performance-counter collector sets, driven through logman on the instance host.
"""

# Built-in imports
import re
from typing import Dict, List, Optional

# Third party imports
from loguru import logger

# Local imports
from .shell import ShellService
from ..exceptions import MssqlAdminError

SUCCESS_MARKER = "The command completed successfully."
COLUMN_SPLIT = re.compile(r"\s{2,}")
KEY_VALUE = re.compile(r"^([A-Za-z][A-Za-z ]*?):\s*(.*)$")


def parse_set_table(lines: List[str]) -> List[Dict[str, str]]:
    """
    Parses the table printed by `logman query`.

    Returns:
        One dict per set with Name, Type and Status keys
    """
    sets: List[Dict[str, str]] = []
    type_column: Optional[int] = None
    status_column: Optional[int] = None
    in_body = False

    for line in lines:
        if not in_body:
            if "Data Collector Set" in line and "Status" in line:
                type_column = line.find("Type")
                status_column = line.find("Status")
            elif line.startswith("---"):
                in_body = True
            continue

        if not line.strip() or line.strip() == SUCCESS_MARKER:
            break

        parts = COLUMN_SPLIT.split(line.strip())
        if len(parts) == 3:
            name, set_type, status = parts
        elif type_column and status_column:
            name = line[:type_column].strip()
            set_type = line[type_column:status_column].strip()
            status = line[status_column:].strip()
        else:
            logger.debug(f"Unparsable logman row: {line}")
            continue

        sets.append({"Name": name, "Type": set_type, "Status": status})

    return sets


def parse_set_detail(lines: List[str]) -> List[Dict[str, object]]:
    """
    Parses the key/value blocks printed by `logman query <name>`.

    The first block describes the set itself, each following block one of
    its data collectors. Counter paths listed under "Counters:" are
    gathered into a list.
    """
    blocks: List[Dict[str, object]] = []
    current: Dict[str, object] = {}
    list_key: Optional[str] = None

    for raw_line in lines:
        line = raw_line.rstrip()

        if not line.strip():
            if current:
                blocks.append(current)
            current = {}
            list_key = None
            continue

        if line.strip() == SUCCESS_MARKER:
            break

        if list_key and raw_line[:1].isspace():
            current[list_key].append(line.strip())
            continue

        match = KEY_VALUE.match(line)
        if not match:
            logger.debug(f"Unparsable logman line: {line}")
            continue

        key, value = match.group(1).strip(), match.group(2).strip()
        if value:
            current[key] = value
            list_key = None
        else:
            current[key] = []
            list_key = key

    if current:
        blocks.append(current)

    return blocks


class CollectorSetService:
    """
    Lists, inspects and edits collector sets with the logman utility.
    """

    def __init__(self, shell_service: ShellService):
        self._shell = shell_service

    def _logman(self, arguments: str) -> List[str]:
        output = self._shell.run(f"logman {arguments}")

        if not any(line.strip() == SUCCESS_MARKER for line in output):
            message = " ".join(line.strip() for line in output if line.strip())
            raise MssqlAdminError(f"logman {arguments} failed: {message or 'no output'}")

        return output

    @staticmethod
    def _quote(value: str) -> str:
        return '"' + value.replace('"', '') + '"'

    def list_sets(self) -> List[Dict[str, str]]:
        return parse_set_table(self._logman("query"))

    def query_set(self, name: str) -> List[Dict[str, object]]:
        """
        Returns the detail blocks of a set: the set first, then its collectors.
        """
        return parse_set_detail(self._logman(f"query {self._quote(name)}"))

    def counters(self, name: str) -> Dict[str, List[str]]:
        """
        Returns counter paths per data collector of a set.
        """
        result: Dict[str, List[str]] = {}
        for block in self.query_set(name)[1:]:
            counters = block.get("Counters")
            if isinstance(counters, list):
                result[str(block.get("Name", name))] = counters
        return result

    def set_counters(self, name: str, counters: List[str]) -> None:
        """
        Replaces the counter list of a set.
        """
        if not counters:
            raise ValueError("A collector set needs at least one counter.")
        arguments = " ".join(self._quote(counter) for counter in counters)
        self._logman(f"update counter {self._quote(name)} -c {arguments}")

    def start(self, name: str) -> None:
        self._logman(f"start {self._quote(name)}")

    def stop(self, name: str) -> None:
        self._logman(f"stop {self._quote(name)}")
