# mssqladmin_ng/core/services/authentication.py
"""
Authentication service for managing SQL Server connections using impacket's TDS.
"""

# Built-in imports
from dataclasses import dataclass
from typing import Optional

# Third party imports
from loguru import logger
from impacket.tds import MSSQL

# Local imports
from ..exceptions import ConnectionFailure
from ..models.server import Server


@dataclass
class Credentials:
    """Login material shared by every instance of a run."""

    username: str = ""
    password: str = ""
    domain: str = ""
    use_windows_auth: bool = False
    hashes: Optional[str] = None
    aes_key: Optional[str] = None
    kerberos_auth: bool = False
    kdc_host: Optional[str] = None


class AuthenticationService:
    """
    Service for authenticating and managing one MSSQL connection.
    """

    def __init__(self, server: Server, credentials: Credentials, browser_timeout: int = 5):
        """
        Initialize the authentication service.

        Args:
            server: The Server instance to authenticate against
            credentials: Login material
            browser_timeout: Seconds to wait for the SQL Browser when resolving a named instance
        """
        self.server = server
        self.connection: Optional[MSSQL] = None
        self._credentials = credentials
        self._browser_timeout = browser_timeout

    def _resolve_port(self) -> int:
        """
        Resolve the TCP port of a named instance through the SQL Browser service.
        Falls back to the configured port.
        """
        if not self.server.instance or self.server.port_explicit:
            return self.server.port

        try:
            browser = MSSQL(self.server.hostname)
            instances = browser.getInstances(self._browser_timeout) or []
        except Exception as e:
            logger.warning(f"SQL Browser query on {self.server.hostname} failed: {e}")
            return self.server.port

        for entry in instances:
            if entry.get("InstanceName", "").upper() == self.server.instance.upper():
                if entry.get("tcp"):
                    port = int(entry["tcp"])
                    logger.debug(f"Instance {self.server.display_name} listens on port {port}")
                    return port

        logger.warning(
            f"Instance {self.server.instance} not advertised by {self.server.hostname}, using port {self.server.port}"
        )
        return self.server.port

    def connect(self) -> bool:
        """
        Establish connection and authenticate to the SQL Server.

        Returns:
            True if authentication was successful; otherwise False
        """
        credentials = self._credentials

        try:
            self.server.port = self._resolve_port()

            self.connection = MSSQL(
                address=self.server.hostname,
                port=self.server.port,
                remoteName=self.server.hostname,
            )
            self.connection.connect()
            logger.debug(
                f"TCP connection established to {self.server.hostname}:{self.server.port}"
            )

            if credentials.kerberos_auth:
                logger.debug("Attempting Kerberos authentication")
                success = self.connection.kerberosLogin(
                    database=self.server.database,
                    username=credentials.username,
                    password=credentials.password or "",
                    domain=credentials.domain or "",
                    hashes=credentials.hashes,
                    aesKey=credentials.aes_key or "",
                    kdcHost=credentials.kdc_host,
                )
            else:
                auth_type = "Windows" if credentials.use_windows_auth else "SQL"
                logger.debug(f"Attempting {auth_type} authentication")
                success = self.connection.login(
                    database=self.server.database,
                    username=credentials.username or "",
                    password=credentials.password or "",
                    domain=credentials.domain or "",
                    hashes=credentials.hashes,
                    useWindowsAuth=credentials.use_windows_auth,
                )

            if not success:
                logger.error(f"Authentication failed on {self.server.display_name}")
                self.disconnect()
                return False

            logger.debug(f"Successfully authenticated to {self.server.display_name}")

            if hasattr(self.connection, "mssql_version"):
                self.server.version = str(self.connection.mssql_version)

            return True

        except Exception as e:
            logger.error(f"Connection error on {self.server.display_name}: {e}")
            self.disconnect()
            return False

    def disconnect(self) -> None:
        """Close the connection if it exists."""
        if self.connection:
            try:
                self.connection.disconnect()
                logger.debug(f"Connection to {self.server.display_name} closed")
            except Exception as e:
                logger.warning(f"Error closing connection: {e}")
            finally:
                self.connection = None

    def __enter__(self) -> "AuthenticationService":
        """
        Context manager entry - establishes connection.

        Raises:
            ConnectionFailure: If connection fails
        """
        if not self.connect():
            raise ConnectionFailure(self.server.display_name)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()
