# mssqladmin_ng/core/utils/completions.py

# Third party imports
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

# Local imports
from ..actions.factory import ActionFactory


class ActionCompleter(Completer):
    """
    Suggests registered actions when the input starts with the prefix.
    """

    def __init__(self, prefix: str = "!"):
        self.prefix = prefix

    def get_completions(self, document: Document, complete_event):
        text = document.text_before_cursor

        if not text.startswith(self.prefix):
            return

        command_part = text[len(self.prefix) :].lstrip()

        # Only the action name is completed, not its arguments
        if " " in command_part:
            return

        for action_name in ActionFactory.list_actions():
            if action_name.startswith(command_part.lower()):
                description = ActionFactory.get_action_description(action_name) or ""
                yield Completion(
                    action_name,
                    start_position=-len(command_part),
                    display_meta=description,
                )
