"""Logging plugin for Genro Resources.

Logs every dispatched action as ``<verb> <path> -> <route name>`` with its
duration, and actions that raise with the exception class.

Options (dispatcher-wide or per route name):
    - ``enabled``: gate the plugin (default True)
    - ``before``: log "start" before the action (default True)
    - ``after``: log "done in X ms" after the action (default True)
    - ``errors``: log failed actions at WARNING before re-raising (default True)
    - ``log``: send messages to the logger (default True)
    - ``print``: print messages instead (default False)

Example::

    dispatcher = Dispatcher(tree).plug("logging")
    dispatcher.configure("logging", _target="posts.index", before=False)

    class PostsController(CollectionResource):
        @action(logging_after=False)
        def show(self, request):
            return super().show(request)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from genro_resources.core.dispatcher import Dispatcher
from genro_resources.core.route_entry import RouteEntry
from genro_resources.plugins._base_plugin import BasePlugin

_DEFAULTS: dict[str, bool] = {
    "enabled": True,
    "before": True,
    "after": True,
    "errors": True,
    "log": True,
    "print": False,
}


class LoggingPlugin(BasePlugin):
    """Logs controller actions with timing."""

    plugin_code = "logging"
    plugin_description = "Logs controller actions with timing"

    __slots__ = ("_logger",)

    def __init__(self, dispatcher, *, logger: logging.Logger | None = None, **cfg):
        self._logger = logger or logging.getLogger("genro_resources")
        super().__init__(dispatcher, **cfg)

    def configure(  # type: ignore[override]
        self,
        enabled: bool = True,
        before: bool = True,
        after: bool = True,
        errors: bool = True,
        log: bool = True,
        print: bool = False,  # noqa: A002
    ):
        """Set logging options; stored by the configure wrapper."""
        pass

    def settings(self, entry_name: str) -> dict[str, bool]:
        """Effective options for ``entry_name`` (defaults, global, per route)."""
        config = self.configuration(entry_name)
        return {
            key: default if config.get(key) is None else bool(config[key])
            for key, default in _DEFAULTS.items()
        }

    def _emit(self, level: int, message: str, settings: dict[str, bool]) -> None:
        if settings["print"]:
            print(message)
        elif settings["log"]:
            if self._logger.hasHandlers():
                self._logger.log(level, message)
            else:
                print(message)

    def wrap_handler(self, dispatcher, entry: RouteEntry, call_next: Callable):
        """Time the action and log around it."""
        label = str(entry)

        def logged(request: Any) -> Any:
            settings = self.settings(entry.name)
            if settings["before"]:
                self._emit(logging.INFO, f"{label} start", settings)
            started = time.perf_counter()
            try:
                result = call_next(request)
            except Exception as err:
                if settings["errors"]:
                    elapsed = (time.perf_counter() - started) * 1000
                    self._emit(
                        logging.WARNING,
                        f"{label} failed after {elapsed:.2f} ms: {type(err).__name__}",
                        settings,
                    )
                raise
            if settings["after"]:
                elapsed = (time.perf_counter() - started) * 1000
                self._emit(logging.INFO, f"{label} done in {elapsed:.2f} ms", settings)
            return result

        return logged


Dispatcher.register_plugin(LoggingPlugin)
