"""
User service for the current login's identity and role membership.
"""
# Built-in imports
from typing import Dict, Optional, Tuple

# Third party imports
from loguru import logger

# Local imports
from .query import QueryService
from ..utils.sql import quote_literal


class UserService:
    """
    Service for managing user information and role membership.
    """

    def __init__(self, query_service: QueryService):
        self._query_service = query_service

        self._role_cache: Dict[str, bool] = {}

        self.mapped_user: Optional[str] = None
        self.system_user: Optional[str] = None

    def is_admin(self) -> bool:
        """
        Check if the current user has sysadmin privileges.
        """
        return self.is_member_of_role("sysadmin")

    def is_member_of_role(self, role: str) -> bool:
        """
        Check if the current user is a member of a specified server role.
        Results are cached for the lifetime of the connection.
        """
        if role in self._role_cache:
            return self._role_cache[role]

        try:
            result = self._query_service.execute_scalar(
                f"SELECT IS_SRVROLEMEMBER({quote_literal(role)});"
            )
            member = int(result) == 1 if result is not None else False
        except Exception as e:
            logger.warning(f"Error checking role membership for role {role}: {e}")
            return False

        self._role_cache[role] = member
        return member

    def get_info(self) -> Tuple[str, str]:
        """
        Retrieve information about the current user.

        Returns:
            Tuple containing (mapped_user, system_user)
        """
        name = "Unknown"
        logged_in_user_name = "Unknown"

        try:
            rows = self._query_service.execute_table("SELECT USER_NAME() AS U, SYSTEM_USER AS S;")

            if rows:
                row = rows[0]
                name = str(row["U"]) if row.get("U") is not None else "Unknown"
                logged_in_user_name = str(row["S"]) if row.get("S") is not None else "Unknown"
        except Exception as e:
            logger.warning(f"Error retrieving user info: {e}")

        self.mapped_user = name
        self.system_user = logged_in_user_name

        return (name, logged_in_user_name)
