"""Abstract user commands and their dispatch onto the application state."""

import logging
from enum import Enum
from typing import Optional, Protocol

from repo_health.pipeline import MessageQueue, run_fetch_cycle, run_organizations_fetch
from repo_health.providers.base import RepositoryProvider
from repo_health.state import AppState, FetchRequest, OrganizationsRequest, Request


logger = logging.getLogger(__name__)


class Command(str, Enum):
    """Everything the input layer can ask the dashboard to do."""

    QUIT = "quit"
    REFRESH = "refresh"
    CYCLE_MODE = "cycle_mode"
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    HOME = "home"
    END = "end"


# Key names as textual reports them
KEY_COMMANDS: dict[str, Command] = {
    "q": Command.QUIT,
    "Q": Command.QUIT,
    "escape": Command.QUIT,
    "r": Command.REFRESH,
    "R": Command.REFRESH,
    "f5": Command.REFRESH,
    "tab": Command.CYCLE_MODE,
    "up": Command.MOVE_UP,
    "k": Command.MOVE_UP,
    "down": Command.MOVE_DOWN,
    "j": Command.MOVE_DOWN,
    "pageup": Command.PAGE_UP,
    "pagedown": Command.PAGE_DOWN,
    "home": Command.HOME,
    "end": Command.END,
}


def command_for_key(key: str) -> Optional[Command]:
    return KEY_COMMANDS.get(key)


class Launcher(Protocol):
    """Runs background requests produced by the state."""

    def start_fetch(self, request: FetchRequest) -> None: ...

    def start_organizations(self, request: OrganizationsRequest) -> None: ...


class InlineLauncher:
    """Runs requests synchronously on the calling thread.

    Used by the non-interactive CLI commands, where there is no render loop
    to keep responsive.
    """

    def __init__(
        self,
        provider: RepositoryProvider,
        queue: MessageQueue,
        item_delay: float = 0.0,
    ) -> None:
        self.provider = provider
        self.queue = queue
        self.item_delay = item_delay

    def start_fetch(self, request: FetchRequest) -> None:
        run_fetch_cycle(
            request.mode,
            self.provider,
            self.queue.send,
            generation=request.generation,
            item_delay=self.item_delay,
        )

    def start_organizations(self, request: OrganizationsRequest) -> None:
        run_organizations_fetch(self.provider, self.queue.send, generation=request.generation)


class Dashboard:
    """Maps commands to state and navigation operations.

    The dashboard owns no data of its own: state lives in `AppState`, and
    background work is handed to the launcher.
    """

    def __init__(self, state: AppState, launcher: Optional[Launcher] = None) -> None:
        self.state = state
        self.launcher = launcher
        self.should_quit = False

    def start(self) -> None:
        """Kick off the initial load."""
        self.launch(self.state.refresh())

    def launch(self, request: Optional[Request]) -> None:
        if request is None:
            return
        if self.launcher is None:
            logger.warning("No launcher configured, dropping %r", request)
            return
        if isinstance(request, FetchRequest):
            self.launcher.start_fetch(request)
        else:
            self.launcher.start_organizations(request)

    def dispatch(self, command: Command) -> bool:
        """Apply one command. Returns False for commands it does not know."""
        state = self.state
        if command == Command.QUIT:
            self.should_quit = True
        elif command == Command.REFRESH:
            self.launch(state.refresh())
        elif command == Command.CYCLE_MODE:
            self.launch(state.cycle_mode())
        elif command == Command.MOVE_UP:
            state.move_up()
        elif command == Command.MOVE_DOWN:
            state.move_down()
        elif command == Command.PAGE_UP:
            state.page_up()
        elif command == Command.PAGE_DOWN:
            state.page_down()
        elif command == Command.HOME:
            state.home()
        elif command == Command.END:
            state.end()
        else:
            return False
        return True

    def handle_key(self, key: str) -> bool:
        command = command_for_key(key)
        if command is None:
            return False
        return self.dispatch(command)

    def tick(self, queue: MessageQueue) -> int:
        """Drain the queue once and apply everything in it."""
        return self.state.apply_all(queue.drain())
