# mssqladmin_ng/core/runspaces.py
"""
Named background workers ("runspaces") and the process-wide registry used to
find and stop them.
"""

# Built-in imports
import threading
from enum import Enum
from typing import Callable, Dict, List, Optional

# Third party imports
from loguru import logger


class RunspaceState(Enum):
    NOT_STARTED = "NotStarted"
    RUNNING = "Running"
    STOPPED = "Stopped"
    ABANDONED = "Abandoned"


class Runspace:
    """
    Runs a worker callable in a daemon thread.

    The worker receives a threading.Event and is expected to return once it
    is set. A worker still alive after the stop timeout is abandoned: Python
    threads cannot be killed, the daemon thread dies with the process.
    """

    default_timeout: float = 30.0

    def __init__(
        self,
        name: str,
        worker: Callable[[threading.Event], None],
        timeout: Optional[float] = None,
    ):
        if not name or not name.strip():
            raise ValueError("Runspace name cannot be null or empty.")

        self.name = name.strip()
        self.timeout = timeout if timeout is not None else self.default_timeout
        self._worker = worker
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._state = RunspaceState.NOT_STARTED

    @property
    def state(self) -> RunspaceState:
        if self._state == RunspaceState.RUNNING and not self.is_alive:
            return RunspaceState.STOPPED
        return self._state

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def _run(self) -> None:
        try:
            self._worker(self._stop_event)
        except Exception as e:
            logger.error(f"Runspace '{self.name}' failed: {e}")

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError(f"Runspace '{self.name}' was already started.")

        self._thread = threading.Thread(
            target=self._run, name=f"runspace-{self.name}", daemon=True
        )
        self._state = RunspaceState.RUNNING
        self._thread.start()
        logger.debug(f"Runspace '{self.name}' started")

    def stop(self) -> bool:
        """
        Signal the worker and wait for it up to the timeout.

        Returns:
            True if the worker ended; False if it had to be abandoned
        """
        self._stop_event.set()

        if self._thread is None:
            self._state = RunspaceState.STOPPED
            return True

        self._thread.join(self.timeout)

        if self._thread.is_alive():
            self._state = RunspaceState.ABANDONED
            logger.warning(
                f"Runspace '{self.name}' did not stop within {self.timeout} seconds, abandoning it"
            )
            return False

        self._state = RunspaceState.STOPPED
        logger.debug(f"Runspace '{self.name}' stopped")
        return True


class RunspaceRegistry:
    """
    Maps runspace names (case-insensitive) to their containers.
    """

    def __init__(self):
        self._runspaces: Dict[str, Runspace] = {}

    def register(self, runspace: Runspace) -> Runspace:
        key = runspace.name.lower()
        if key in self._runspaces and self._runspaces[key].is_alive:
            raise ValueError(f"A running runspace named '{runspace.name}' is already registered.")
        self._runspaces[key] = runspace
        return runspace

    def unregister(self, name: str) -> None:
        self._runspaces.pop(name.lower(), None)

    def get(self, name: str) -> Runspace:
        """
        Raises:
            KeyError: If no runspace is registered under that name
        """
        try:
            return self._runspaces[name.lower()]
        except KeyError:
            raise KeyError(f"No runspace named '{name}' is registered.") from None

    def names(self) -> List[str]:
        return [runspace.name for runspace in self._runspaces.values()]

    def all(self) -> List[Runspace]:
        return list(self._runspaces.values())

    def stop(self, name: str) -> bool:
        return self.get(name).stop()

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._runspaces

    def __len__(self) -> int:
        return len(self._runspaces)


registry = RunspaceRegistry()
