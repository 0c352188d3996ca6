# mssqladmin_ng/core/exceptions.py


class MssqlAdminError(Exception):
    """Base class for errors raised by mssqladmin-ng."""


class ConnectionFailure(MssqlAdminError):
    """Raised when an instance cannot be reached or authenticated against."""

    def __init__(self, target: str, message: str = "Failed to establish connection"):
        self.target = target
        super().__init__(f"{message} to {target}")


class ActionError(MssqlAdminError):
    """
    Raised for a failed unit of work when exceptions are enabled.

    Attributes:
        target: Identifier of the instance, database or object that failed
    """

    def __init__(self, message: str, target: str = ""):
        self.target = target
        super().__init__(message)
