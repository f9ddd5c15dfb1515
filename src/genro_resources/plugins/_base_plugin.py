"""Plugin contract for the dispatcher.

A plugin is attached to one ``Dispatcher`` with ``plug(code, **config)``. It
may wrap the handler of every route (``wrap_handler``), refuse routes in
``node()``/``describe()`` (``allow_entry``) and expose extra data in
``describe()`` (``entry_metadata``).

Configuration
-------------
Subclasses declare their options as the keyword parameters of
``configure``. ``__init_subclass__`` wraps that method so that a call:

- accepts ``_target`` (``"_all_"``, a route name such as ``posts.destroy``,
  or several names separated by commas) and ``flags``
  (``"print,after:off"``);
- validates the options with ``pydantic.validate_call``;
- stores them in the dispatcher, under the plugin code and target.

``configuration(route_name)`` returns the global options overlaid with the
route's own. Options set with ``@action(<code>_<option>=...)`` land in the
same store when the dispatcher reads the markers.

Example::

    class AuditPlugin(BasePlugin):
        plugin_code = "audit"
        plugin_description = "Records who dispatched each action"

        def configure(self, enabled: bool = True, sink: str = "stdout"):
            pass

        def wrap_handler(self, dispatcher, entry, call_next):
            def audited(request):
                print(f"{entry.name} by {request.user}")
                return call_next(request)
            return audited
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from pydantic import validate_call

__all__ = ["BasePlugin", "parse_flags"]

ALL_TARGETS = "_all_"


def parse_flags(flags: str) -> dict[str, bool]:
    """``"print,after:off"`` -> ``{"print": True, "after": False}``."""
    result: dict[str, bool] = {}
    for item in (part.strip() for part in flags.split(",")):
        if not item:
            continue
        key, _, state = item.partition(":")
        result[key.strip()] = state.strip().lower() != "off"
    return result


def _validated_configure(configure: Callable) -> Callable:
    check = validate_call(configure)

    @wraps(configure)
    def configure_and_store(
        self: BasePlugin, *, _target: str = ALL_TARGETS, flags: str | None = None, **options: Any
    ) -> None:
        if flags:
            options.update(parse_flags(flags))
        targets = [t.strip() for t in _target.split(",") if t.strip()] or [ALL_TARGETS]
        check(self, **options)
        for target in targets:
            self.store_options(target, options)

    return configure_and_store


class BasePlugin:
    """Base class of dispatcher plugins.

    Subclasses set ``plugin_code`` (registration name) and
    ``plugin_description``.
    """

    __slots__ = ("name", "_dispatcher")

    plugin_code: str = ""
    plugin_description: str = ""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "configure" in cls.__dict__:
            cls.configure = _validated_configure(cls.__dict__["configure"])  # type: ignore[method-assign]

    def __init__(self, dispatcher: Any, **config: Any):
        self.name = self.plugin_code
        self._dispatcher = dispatcher
        self._options().setdefault(ALL_TARGETS, {}).setdefault("enabled", True)
        self.configure(**config)

    def _options(self) -> dict[str, dict[str, Any]]:
        return self._dispatcher._plugin_options.setdefault(self.name, {})  # type: ignore[no-any-return]

    def store_options(self, target: str, options: dict[str, Any]) -> None:
        if options:
            self._options().setdefault(target, {}).update(options)

    def configuration(self, entry_name: str | None = None) -> dict[str, Any]:
        """Global options, overlaid with the options of ``entry_name``."""
        options = self._options()
        merged = dict(options.get(ALL_TARGETS, {}))
        if entry_name:
            merged.update(options.get(entry_name, {}))
        return merged

    # hooks

    def configure(self, *, _target: str = ALL_TARGETS, flags: str | None = None) -> None:
        """Declare accepted options as keyword parameters in subclasses."""
        if flags:
            self.store_options(_target, parse_flags(flags))

    def on_decore(self, dispatcher: Any, entry: Any) -> None:  # pragma: no cover
        """Called once per route when the plugin is attached."""

    def wrap_handler(self, dispatcher: Any, entry: Any, call_next: Callable) -> Callable:
        """Return a callable taking the ``ActionRequest``; default is ``call_next``."""
        return call_next

    def allow_entry(self, entry: Any, **filters: Any) -> str:  # pragma: no cover
        """Return "" to allow the route, or an error code to refuse it."""
        return ""

    def entry_metadata(self, dispatcher: Any, entry: Any) -> dict[str, Any]:  # pragma: no cover
        return {}
