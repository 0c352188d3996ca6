"""
Actions package.
Importing the subpackages registers every action with the factory.
"""

from . import administration, agent, background, backup, execution, performance, security

__all__ = [
    "administration",
    "agent",
    "background",
    "backup",
    "execution",
    "performance",
    "security",
]
