# mssqladmin_ng/core/models/server.py
"""
Server model representing a SQL Server instance with connection details.
"""

# Built-in imports
from typing import List, Optional, Tuple

# Third party imports
from loguru import logger

DEFAULT_PORT = 1433
DEFAULT_INSTANCE = "MSSQLSERVER"


class Server:
    """
    Represents a SQL Server instance.

    Attributes:
        hostname: The hostname or IP address of the machine
        instance: The named instance, or None for the default instance
        port: The SQL Server port (default: 1433)
        port_explicit: Whether the port was given by the user
        database: The database to connect to (None means the login default)
        computer_name: Physical computer name, filled once connected
        instance_name: Instance name as reported by the server, filled once connected
        sql_instance: @@SERVERNAME, filled once connected
    """

    def __init__(
        self,
        hostname: str,
        port: Optional[int] = None,
        database: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        """
        Initialize a Server instance.

        Raises:
            ValueError: If hostname is empty or port is invalid
        """
        if not hostname or not hostname.strip():
            raise ValueError("Hostname cannot be null or empty.")

        if port is not None and not (1 <= port <= 65535):
            raise ValueError(f"Port must be between 1 and 65535, got {port}")

        hostname = hostname.strip()

        # SQL01\INSTANCE names a named instance on SQL01
        if instance is None and "\\" in hostname:
            hostname, _, instance = hostname.partition("\\")

        self.hostname = hostname
        self.instance = instance.strip() if instance and instance.strip() else None
        self.port_explicit = port is not None
        self.port = port if port is not None else DEFAULT_PORT
        self.database = database.strip() if database and database.strip() else None

        self._version: Optional[str] = None

        self.computer_name = self.hostname
        self.instance_name = self.instance or DEFAULT_INSTANCE
        self.sql_instance = self.display_name

    @property
    def display_name(self) -> str:
        """Instance identifier as typed by an administrator (HOST or HOST\\INSTANCE)."""
        if self.instance:
            return f"{self.hostname}\\{self.instance}"
        return self.hostname

    @property
    def version(self) -> Optional[str]:
        """Get the server version."""
        return self._version

    @version.setter
    def version(self, value: Optional[str]) -> None:
        self._version = value

        if value is not None:
            major = self._parse_major_version(value)
            if 0 < major <= 10:
                logger.warning(
                    f"Legacy server detected: version {value} (major version {major})"
                )

    @property
    def major_version(self) -> int:
        """
        The major version of the server (e.g., 15 for "15.00.2000").
        """
        if self._version is None:
            return 0
        return self._parse_major_version(self._version)

    @staticmethod
    def _parse_major_version(version_string: str) -> int:
        if not version_string or not version_string.strip():
            return 0

        try:
            return int(version_string.split(".")[0])
        except (ValueError, IndexError):
            return 0

    def set_identity(
        self, computer_name: Optional[str], instance_name: Optional[str], sql_instance: Optional[str]
    ) -> None:
        """Records the names reported by the server once connected."""
        if computer_name:
            self.computer_name = computer_name
        self.instance_name = instance_name or DEFAULT_INSTANCE
        if sql_instance:
            self.sql_instance = sql_instance

    def same_instance(self, other: "Server") -> bool:
        """Whether both objects point at the same SQL Server instance."""
        return self.sql_instance.upper() == other.sql_instance.upper()

    @staticmethod
    def _split_components(server_input: str) -> Tuple[str, List[Tuple[str, str]]]:
        """
        Splits "host[:port][@database]" into the host and its suffixed components.
        A bracketed host may contain any delimiter.
        """
        text = server_input.strip()

        if text.startswith("["):
            closing = text.find("]")
            if closing == -1:
                raise ValueError(f"Unclosed bracket in server name: '{server_input}'")
            host = text[1:closing]
            rest = text[closing + 1 :]
        else:
            end = len(text)
            for delimiter in (":", "@"):
                index = text.find(delimiter)
                if index != -1:
                    end = min(end, index)
            host = text[:end]
            rest = text[end:]

        components: List[Tuple[str, str]] = []
        current_delimiter: Optional[str] = None
        buffer = ""
        for char in rest:
            if char in (":", "@"):
                if current_delimiter is not None:
                    components.append((current_delimiter, buffer))
                current_delimiter = char
                buffer = ""
            elif current_delimiter is None:
                raise ValueError(
                    f"Invalid target format: '{server_input}'. "
                    "Expected format: host[\\instance][:port][@database]"
                )
            else:
                buffer += char

        if current_delimiter is not None:
            components.append((current_delimiter, buffer))

        return host, components

    @classmethod
    def parse_server(cls, server_input: str, database: Optional[str] = None) -> "Server":
        """
        Parses a server string in the format "host[\\instance][:port][@database]".

        Components after the host may come in any order. Brackets protect
        host names containing delimiters.

        Raises:
            ValueError: If the server input format is invalid

        Examples:
            >>> Server.parse_server("SQL01").port
            1433
            >>> Server.parse_server("SQL01\\\\PROD:1434").instance
            'PROD'
            >>> Server.parse_server("[SQL:01]@appdb").hostname
            'SQL:01'
        """
        if not server_input or not server_input.strip():
            raise ValueError("Server input cannot be null or empty.")

        host, components = cls._split_components(server_input)

        port: Optional[int] = None
        parsed_database = database

        for delimiter, value in components:
            value = value.strip()
            if delimiter == ":":
                if not value:
                    continue
                try:
                    port = int(value)
                except ValueError:
                    raise ValueError(f"Invalid port number: '{value}'")
            elif delimiter == "@" and value:
                parsed_database = value

        return cls(hostname=host, port=port, database=parsed_database)

    def __str__(self) -> str:
        base = f"{self.display_name}:{self.port}"
        if self.database:
            base += f"/{self.database}"
        return base

    def __repr__(self) -> str:
        return (
            f"Server(hostname='{self.hostname}', instance='{self.instance}', "
            f"port={self.port}, database='{self.database}', version='{self.version}')"
        )
