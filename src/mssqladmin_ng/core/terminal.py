# mssqladmin_ng/core/terminal.py

# Built-in imports
import shlex
import threading
from typing import Any, Callable, List, Optional

# Third party imports
from loguru import logger

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import ThreadedAutoSuggest, AutoSuggestFromHistory
from prompt_toolkit.history import ThreadedHistory, InMemoryHistory
from prompt_toolkit.cursor_shapes import CursorShape
from prompt_toolkit.styles import style_from_pygments_cls
from prompt_toolkit.lexers import PygmentsLexer

from pygments.lexers.sql import SqlLexer
from pygments.styles.monokai import MonokaiStyle

# Local imports
from .actions.execution.query import Query
from .actions.factory import ActionFactory
from .exceptions import ActionError
from .runner import InstanceRunner
from .runspaces import Runspace, RunspaceRegistry, registry
from .services.database import DatabaseContext
from .utils import helper, logbook
from .utils.common import yes_no_prompt
from .utils.completions import ActionCompleter
from .utils.formatters import OutputFormatter

SQL_STYLE = style_from_pygments_cls(MonokaiStyle)

KEEPALIVE_RUNSPACE = "terminal-keepalive"


def keep_alive(database_context: DatabaseContext, interval: float) -> Callable[[threading.Event], None]:
    """
    Worker pinging the instance every interval seconds so an idle terminal
    session is not dropped. Returns when stopped or when the connection fails.
    """

    def worker(stop_event: threading.Event) -> None:
        while not stop_event.wait(interval):
            try:
                database_context.query_service.execute_scalar("SELECT 1;")
            except Exception as e:
                logger.warning(f"Keep-alive on {database_context.server.sql_instance} failed: {e}")
                return

    return worker


class Terminal:
    """
    Interactive shell bound to one connected instance.

    Plain input is executed as T-SQL; input starting with the prefix runs a
    registered action (!help, !debug and !format are built in).

    While the prompt is open, a keep-alive worker is registered as the
    "terminal-keepalive" runspace (see !runspaces and !stop-runspace).
    """

    def __init__(
        self,
        database_context: DatabaseContext,
        runner: InstanceRunner,
        log_level: str = "INFO",
        keepalive_interval: float = 60.0,
        runspace_registry: Optional[RunspaceRegistry] = None,
    ):
        self.__database_context = database_context
        self.__runner = runner
        self.__log_level = log_level
        self.__keepalive_interval = keepalive_interval
        self.__registry = runspace_registry if runspace_registry is not None else registry
        self.__keepalive: Optional[Runspace] = None

    def start_keepalive(self) -> Optional[Runspace]:
        """
        Registers and starts the keep-alive runspace. A non-positive interval disables it.
        """
        if self.__keepalive_interval <= 0:
            return None

        runspace = Runspace(
            KEEPALIVE_RUNSPACE, keep_alive(self.__database_context, self.__keepalive_interval)
        )
        self.__registry.register(runspace)
        runspace.start()
        self.__keepalive = runspace
        logger.debug(f"Keep-alive every {self.__keepalive_interval} seconds")
        return runspace

    def stop_keepalive(self) -> None:
        runspace = self.__keepalive
        if runspace is None:
            return

        runspace.stop()
        if KEEPALIVE_RUNSPACE in self.__registry and self.__registry.get(KEEPALIVE_RUNSPACE) is runspace:
            self.__registry.unregister(KEEPALIVE_RUNSPACE)
        self.__keepalive = None

    def __prompt(self) -> str:
        server = self.__database_context.server
        database = self.__database_context.query_service.get_current_database() or "master"
        system_user = self.__database_context.user_service.system_user or "unknown"
        return f"[{system_user}@{server.sql_instance}:{database}]> "

    def execute_action(self, action_name: str, argument_list: List[str]) -> Optional[List[Any]]:
        """
        Execute an action by its registered name and print its records.

        Returns:
            The records produced, or None on error
        """
        action = ActionFactory.get_action(action_name)
        if action is None:
            logger.error(f"Unknown action: {action_name}")
            return None

        return self.run(action, argument_list)

    def run(self, action, argument_list: List[str]) -> Optional[List[Any]]:
        try:
            action.validate_arguments(argument_list=argument_list)
        except ValueError as ve:
            logger.error(f"Argument validation error: {ve}")
            return None

        try:
            records = self.__runner.run_on_context(action, self.__database_context)
        except KeyboardInterrupt:
            print("\r", end="", flush=True)
            logger.warning("Keyboard interruption received during action execution.")
            return None
        except ActionError as e:
            logger.error(str(e))
            return None

        self.__runner.display(records)
        return records

    def __toggle_debug(self) -> None:
        if self.__log_level == "DEBUG":
            self.__log_level = logbook.setup_logging("INFO")
            logger.info("Debug mode disabled")
        else:
            self.__log_level = logbook.setup_logging("DEBUG")
            logger.info("Debug mode enabled")

    def __change_format(self, command_line: str) -> None:
        parts = command_line.split(maxsplit=1)
        if len(parts) == 1:
            logger.info(f"Current format: {OutputFormatter.current_format()}")
            logger.info(f"Available formats: {', '.join(OutputFormatter.get_available_formats())}")
            return

        try:
            OutputFormatter.set_format(parts[1])
            logger.success(f"Output format changed to: {OutputFormatter.current_format()}")
        except ValueError as e:
            logger.error(str(e))

    def handle(self, user_input: str, prefix: str = "!") -> None:
        """Dispatches one line of input."""
        if not user_input.startswith(prefix):
            self.run(Query(), [user_input])
            return

        command_line = user_input[len(prefix) :].strip()
        if not command_line:
            return

        if command_line == "debug":
            self.__toggle_debug()
            return

        if command_line.startswith("format"):
            self.__change_format(command_line)
            return

        try:
            action_name, *args = shlex.split(command_line)
        except ValueError as e:
            logger.error(f"Cannot parse command: {e}")
            return

        if action_name == "help":
            if args:
                helper.display_command_help(args[0])
            else:
                helper.display_all_commands()
            return

        self.execute_action(action_name, args)

    def start(self, prefix: str = "!", multiline: bool = False) -> None:
        if multiline:
            logger.warning("Multiline input mode enabled in terminal, use ESC + ENTER to submit.")

        prompt_session = PromptSession(
            cursor=CursorShape.BLINKING_BEAM,
            multiline=multiline,
            enable_history_search=True,
            wrap_lines=True,
            auto_suggest=ThreadedAutoSuggest(auto_suggest=AutoSuggestFromHistory()),
            history=ThreadedHistory(InMemoryHistory()),
            completer=ActionCompleter(prefix=prefix),
            lexer=PygmentsLexer(SqlLexer),
            style=SQL_STYLE,
        )

        self.start_keepalive()
        try:
            while True:
                try:
                    user_input = prompt_session.prompt(message=self.__prompt())
                    if not user_input:
                        continue
                except EOFError:
                    break
                except KeyboardInterrupt:
                    if prompt_session.app.current_buffer.text:
                        continue

                    logger.warning("Keyboard interrupt detected.")
                    if yes_no_prompt("Exit?", default=True):
                        logger.info("Exiting terminal.")
                        break
                    continue

                self.handle(user_input, prefix=prefix)
        finally:
            self.stop_keepalive()
