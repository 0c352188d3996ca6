# mssqladmin_ng/core/services/connection.py
"""
Connection provider opening a DatabaseContext per SQL Server instance.
"""

# Built-in imports
from contextlib import contextmanager
from typing import Iterator, Optional

# Third party imports
from loguru import logger

# Local imports
from .authentication import AuthenticationService, Credentials
from .database import DatabaseContext
from ..models.server import Server


class InstanceConnector:
    """
    Opens connections with a shared set of credentials.

    Actions needing a second instance (copy commands) reach it through the
    connector of their destination context.
    """

    def __init__(self, credentials: Optional[Credentials] = None, browser_timeout: int = 5):
        self.credentials = credentials or Credentials()
        self.browser_timeout = browser_timeout

    @contextmanager
    def open(self, server: Server) -> Iterator[DatabaseContext]:
        """
        Connect to an instance and yield its DatabaseContext.

        Raises:
            ConnectionFailure: If the instance cannot be reached or authenticated against
        """
        logger.debug(f"Connecting to {server.display_name}")
        with AuthenticationService(
            server=server,
            credentials=self.credentials,
            browser_timeout=self.browser_timeout,
        ) as auth_service:
            yield DatabaseContext(auth_service=auth_service, connector=self)
