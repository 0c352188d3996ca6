# mssqladmin_ng/core/actions/factory.py
"""
Registry of actions, populated by the @ActionFactory.register decorator.
"""

# Built-in imports
from typing import Callable, Dict, List, Optional, Tuple, Type

# Third party imports
from loguru import logger

# Local imports
from .base import BaseAction


class ActionFactory:
    """
    Maps action names to their classes and descriptions.
    """

    _actions: Dict[str, Tuple[Type[BaseAction], str]] = {}

    @classmethod
    def register(cls, name: str, description: str) -> Callable[[Type[BaseAction]], Type[BaseAction]]:
        """
        Class decorator registering an action under a name.

        Raises:
            ValueError: If the name is already taken by another class
        """

        def decorator(action_class: Type[BaseAction]) -> Type[BaseAction]:
            key = name.lower()
            existing = cls._actions.get(key)
            if existing and existing[0] is not action_class:
                raise ValueError(f"Action '{name}' is already registered by {existing[0].__name__}")
            cls._actions[key] = (action_class, description)
            return action_class

        return decorator

    @classmethod
    def get_action(cls, name: str) -> Optional[BaseAction]:
        """
        Returns a fresh instance of the named action, or None if unknown.
        """
        entry = cls._actions.get(name.lower())
        if entry is None:
            logger.debug(f"No action registered as '{name}'")
            return None
        return entry[0]()

    @classmethod
    def action_exists(cls, name: str) -> bool:
        return name.lower() in cls._actions

    @classmethod
    def list_actions(cls) -> List[str]:
        return sorted(cls._actions)

    @classmethod
    def get_action_description(cls, name: str) -> Optional[str]:
        entry = cls._actions.get(name.lower())
        return entry[1] if entry else None

    @classmethod
    def get_available_actions(cls) -> List[Tuple[str, str, List[str]]]:
        """
        Returns (name, description, arguments) for every registered action.
        """
        return [
            (name, cls._actions[name][1], cls._actions[name][0]().get_arguments())
            for name in cls.list_actions()
        ]
