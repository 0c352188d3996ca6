# mssqladmin_ng/core/utils/helper.py

# Built-in imports
from typing import List, Tuple

# Third party imports
from loguru import logger

# Local imports
from ..actions.factory import ActionFactory
from .formatters import OutputFormatter


def get_all_actions_info() -> List[Tuple[str, str, List[str]]]:
    """
    Get information about all available actions.

    Returns:
        List of tuples: (action_name, description, arguments)
    """
    return ActionFactory.get_available_actions()


def display_all_commands() -> None:
    """
    Display all available commands with descriptions and arguments.
    """
    actions = get_all_actions_info()

    if not actions:
        logger.warning("No actions registered")
        return

    print()
    print("═" * 80)
    print(" Available Commands".ljust(80, "═"))
    print("═" * 80)

    command_rows = [
        {"Command": name, "Description": description, "Arguments": len(arguments)}
        for name, description, arguments in actions
    ]
    print(OutputFormatter.convert_list_of_dicts(command_rows))

    print()
    print("Detailed Usage:")
    print("-" * 80)
    for name, description, arguments in actions:
        print(f"\n  {name.upper()}")
        print(f"    Description: {description}")
        if arguments:
            print("    Arguments:")
            for arg in arguments:
                print(f"      - {arg}")
        else:
            print("    Arguments: None")

    print()
    print("─" * 80)
    print(f"Total: {len(actions)} commands available")
    print("Usage: -a <command> [arguments], or !<command> [arguments] in the terminal")
    print("═" * 80)
    print()


def display_command_help(command_name: str) -> bool:
    """
    Display help for a specific command.

    Returns:
        True if command found, False otherwise
    """
    if not ActionFactory.action_exists(command_name):
        logger.warning(f"Command '{command_name}' not found")
        available = ", ".join(ActionFactory.list_actions())
        logger.info(f"Available commands: {available}")
        return False

    description = ActionFactory.get_action_description(command_name)
    action = ActionFactory.get_action(command_name)

    print()
    print("═" * 80)
    print(f" {command_name.upper()}".ljust(80, "═"))
    print("═" * 80)
    print(f"Description: {description}")
    print()
    print(action.get_help())
    print()

    arguments = action.get_arguments()
    if arguments:
        print("Arguments:")
        for i, arg in enumerate(arguments, 1):
            print(f"  {i}. {arg}")
    else:
        print("Arguments: None")

    print()
    print("═" * 80)
    print()

    return True
