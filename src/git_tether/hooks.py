import logging
from collections.abc import Callable

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)

StartupFunc = Callable[[], None]


class StartupRegistry:
    """Collects callbacks to run once when the host process starts.

    Callbacks run in registration order. The first one to raise aborts the
    startup and its exception propagates to whoever called `run`.
    """

    def __init__(self) -> None:
        self._funcs: list[StartupFunc] = []
        self._ran = False

    def __len__(self) -> int:
        return len(self._funcs)

    def on_startup(self, func: StartupFunc) -> None:
        """Registers a zero-argument callback."""
        self._funcs.append(func)

    def run(self) -> None:
        """Invokes every registered callback exactly once."""
        if self._ran:
            return
        self._ran = True
        logger.debug(f"Running {len(self._funcs)} startup hook(s)")
        for func in self._funcs:
            func()
