"""Dispatcher - binds generated routes to controller actions.

The dispatcher is the seam with the host web framework. It takes a routing
tree (or an already generated route tuple), builds one handler per route
through the plugin pipeline, and either hands them to the host router with
``mount()`` or resolves requests itself with ``match()``/``node()``.

Handlers
--------
``ActionHandler(params=None, attributes=None, user=None)`` converts path
parameters (``{"post_id": "3", "id": "7"}``) to identifiers keyed by
resource (``{"post": "3", "comment": "7"}``), builds an ``ActionRequest`` and
runs the wrapped controller action. One controller instance is created per
node, lazily, through ``factory(controller_class, node)``.

Plugins
-------
``Dispatcher.register_plugin(cls)`` registers a plugin class globally;
``plug(name, **config)`` attaches it. Plugin options declared on controller
actions with ``@action(auth_rule="admin")`` become per-route configuration.
Handlers are rebuilt whenever a plugin is attached.

Resolution
----------
``match(verb, path)`` returns a ``RouteMatch`` for the first route, in
generation order, whose template matches. ``node(verb, path, **filters)``
returns a callable ``ActionNode`` carrying an error code instead of raising,
so the host can map codes to its own exceptions.

Example::

    dispatcher = Dispatcher(tree).plug("logging").plug("auth")
    dispatcher.mount(app.add_route)
    dispatcher.node("GET", "/posts/5", auth_tags="editor")()
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from functools import wraps
from typing import Any

from genro_toolbox import dictExtract

from genro_resources.exceptions import (
    ConfigurationError,
    MethodNotAllowed,
    NotAuthenticated,
    NotAuthorized,
    NotFound,
)
from genro_resources.plugins._base_plugin import BasePlugin

from .controller import ActionRequest
from .generator import generate
from .node import ControllerNode
from .options import RoutingOptions
from .route_entry import RouteEntry
from .tree import RoutingTree

__all__ = ["ActionHandler", "ActionNode", "Dispatcher", "RouteMatch"]

_PLUGIN_REGISTRY: dict[str, type[BasePlugin]] = {}


@dataclass(frozen=True)
class RouteMatch:
    """A route matched by ``Dispatcher.match``."""

    entry: RouteEntry
    ids: dict[str, str] = field(default_factory=dict)


class ActionHandler:
    """Host-facing callable for one route."""

    __slots__ = ("entry", "_dispatcher", "_index")

    def __init__(self, dispatcher: Dispatcher, entry: RouteEntry, index: int) -> None:
        self.entry = entry
        self._dispatcher = dispatcher
        self._index = index

    def __call__(
        self,
        params: dict[str, str] | None = None,
        attributes: dict[str, Any] | None = None,
        user: Any = None,
    ) -> Any:
        mapping = self.entry.params
        ids = {mapping[name]: value for name, value in (params or {}).items() if name in mapping}
        request = ActionRequest(
            entry=self.entry, ids=ids, attributes=dict(attributes or {}), user=user
        )
        return self._dispatcher._handlers[self._index](request)

    def __repr__(self) -> str:
        return f"ActionHandler({self.entry})"


class ActionNode:
    """Result of ``Dispatcher.node``: a resolved route, callable.

    Attributes:
        verb: Requested verb.
        path: Requested path.
        entry: Matched route entry, or None.
        ids: Identifiers extracted from the path, keyed by resource.
        error: None when callable, else "not_found", "method_not_allowed",
            "not_authenticated" or "not_authorized".
    """

    DEFAULT_EXCEPTIONS: dict[str, type[Exception]] = {
        "not_found": NotFound,
        "method_not_allowed": MethodNotAllowed,
        "not_authorized": NotAuthorized,
        "not_authenticated": NotAuthenticated,
    }

    __slots__ = ("verb", "path", "entry", "ids", "error", "allowed", "_dispatcher", "_exceptions")

    def __init__(
        self,
        dispatcher: Dispatcher,
        verb: str,
        path: str,
        *,
        entry: RouteEntry | None = None,
        ids: dict[str, str] | None = None,
        error: str | None = None,
        allowed: tuple[str, ...] = (),
        errors: dict[str, type[Exception]] | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self.verb = verb
        self.path = path
        self.entry = entry
        self.ids = dict(ids or {})
        self.error = error
        self.allowed = allowed
        self._exceptions = dict(self.DEFAULT_EXCEPTIONS)
        if errors:
            self._exceptions.update(errors)

    @property
    def selector(self) -> str:
        return f"{self.verb} {self.path}"

    def __bool__(self) -> bool:
        return self.entry is not None and self.error is None

    def __call__(self, attributes: dict[str, Any] | None = None, user: Any = None) -> Any:
        """Run the matched action.

        Raises:
            Exception mapped to ``error`` when the node is not callable.
        """
        if self.error or self.entry is None:
            code = self.error or "not_found"
            exc_class = self._exceptions.get(code, NotFound)
            if code == "method_not_allowed" and issubclass(exc_class, MethodNotAllowed):
                raise exc_class(self.selector, self.allowed)
            selector = self.entry.name if self.entry is not None else self.selector
            raise exc_class(selector)
        request = ActionRequest(
            entry=self.entry, ids=self.ids, attributes=dict(attributes or {}), user=user
        )
        return self._dispatcher._handlers[self._dispatcher._index_of(self.entry)](request)

    def __repr__(self) -> str:
        if self.entry is None:
            return f"ActionNode({self.selector!r}, error={self.error!r})"
        return f"ActionNode({self.entry.name!r}, ids={self.ids!r})"


def _default_factory(controller: Any, node: ControllerNode) -> Any:
    return controller()


class Dispatcher:
    """Route table with controller handlers and a plugin pipeline."""

    __slots__ = (
        "routes",
        "_factory",
        "_controllers",
        "_handlers",
        "_metadata",
        "_plugins",
        "_plugins_by_name",
        "_plugin_options",
    )

    def __init__(
        self,
        source: RoutingTree | Iterable[RouteEntry],
        *,
        factory: Callable[[Any, ControllerNode], Any] | None = None,
        options: RoutingOptions | None = None,
    ) -> None:
        """Build handlers for every route.

        Args:
            source: Routing tree to generate, or generated route entries.
            factory: ``factory(controller_class, node)`` returning the controller
                instance for a node (default: ``controller_class()``).
            options: Options override used when ``source`` is a tree.

        Raises:
            ConfigurationError: A route has no controller, or the tree is invalid.
        """
        if isinstance(source, RoutingTree):
            routes = generate(source, options)
        else:
            routes = tuple(source)
        for entry in routes:
            if entry.controller is None:
                raise ConfigurationError("route has no controller", node=entry.node)
        self.routes: tuple[RouteEntry, ...] = routes
        self._factory = factory or _default_factory
        self._controllers: dict[int, Any] = {}
        self._handlers: list[Callable[[ActionRequest], Any]] = []
        self._metadata: dict[str, dict[str, Any]] = {}
        self._plugins: list[BasePlugin] = []
        self._plugins_by_name: dict[str, BasePlugin] = {}
        self._plugin_options: dict[str, dict[str, Any]] = {}
        self._read_markers()
        self._rebuild_handlers()

    # ------------------------------------------------------------------
    # Plugin registration
    # ------------------------------------------------------------------
    @classmethod
    def register_plugin(cls, plugin_class: type[BasePlugin], name: str | None = None) -> None:
        """Register a plugin class globally.

        Raises:
            TypeError: If plugin_class is not a BasePlugin subclass.
            ValueError: If plugin_code is missing or name collision occurs.
        """
        if not isinstance(plugin_class, type) or not issubclass(plugin_class, BasePlugin):
            raise TypeError("plugin_class must be a BasePlugin subclass")
        if not getattr(plugin_class, "plugin_code", None):
            raise ValueError(
                f"Plugin {plugin_class.__name__} not following standards: missing plugin_code"
            )
        code = name or plugin_class.plugin_code
        if name is None:
            existing = _PLUGIN_REGISTRY.get(code)
            if existing is not None and existing is not plugin_class:
                raise ValueError(f"Plugin '{code}' already registered")
        _PLUGIN_REGISTRY[code] = plugin_class

    @classmethod
    def available_plugins(cls) -> dict[str, type[BasePlugin]]:
        return dict(_PLUGIN_REGISTRY)

    def plug(self, plugin: str, **config: Any) -> Dispatcher:
        """Attach a registered plugin by name; returns self for chaining."""
        plugin_class = _PLUGIN_REGISTRY.get(plugin)
        if plugin_class is None:
            available = ", ".join(sorted(_PLUGIN_REGISTRY)) or "none"
            raise ValueError(
                f"Unknown plugin '{plugin}'. Register it first. Available plugins: {available}"
            )
        if plugin in self._plugins_by_name:
            raise ValueError(
                f"Plugin '{plugin}' is already attached. Use configure() to update settings."
            )
        instance = plugin_class(self, **config)
        self._plugins.append(instance)
        self._plugins_by_name[instance.name] = instance
        for entry in self.routes:
            instance.on_decore(self, entry)
        self._rebuild_handlers()
        return self

    def iter_plugins(self) -> list[BasePlugin]:
        return list(self._plugins)

    def configure(self, plugin: str, _target: str = "_all_", **config: Any) -> None:
        """Configure an attached plugin globally or for route names (``posts.destroy``)."""
        instance = self._plugins_by_name.get(plugin)
        if instance is None:
            raise AttributeError(f"No plugin named '{plugin}' attached")
        instance.configure(_target=_target, **config)

    def is_plugin_enabled(self, entry_name: str, plugin_name: str) -> bool:
        plugin = self._plugins_by_name.get(plugin_name)
        if plugin is None:
            raise AttributeError(f"No plugin named '{plugin_name}' attached")
        return bool(plugin.configuration(entry_name).get("enabled", True))

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        plugin = self._plugins_by_name.get(name)
        if plugin is None:
            raise AttributeError(f"No plugin named '{name}' attached")
        return plugin

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    def controller_for(self, node: ControllerNode) -> Any:
        """Return the controller instance serving ``node``."""
        controller = self._controllers.get(id(node))
        if controller is None:
            target = node.controller
            controller = self._factory(target, node) if inspect.isclass(target) else target
            self._controllers[id(node)] = controller
        return controller

    def handler(self, entry: RouteEntry) -> ActionHandler:
        return ActionHandler(self, entry, self._index_of(entry))

    def handlers(self) -> list[tuple[RouteEntry, ActionHandler]]:
        return [(entry, ActionHandler(self, entry, i)) for i, entry in enumerate(self.routes)]

    def mount(self, register: Callable[[str, str, Callable[..., Any]], Any]) -> Dispatcher:
        """Register every route with the host: ``register(verb, path, handler)``."""
        for entry, handler in self.handlers():
            register(entry.verb, entry.path, handler)
        return self

    def _index_of(self, entry: RouteEntry) -> int:
        for i, candidate in enumerate(self.routes):
            if candidate is entry:
                return i
        raise NotFound(str(entry))

    def _call_action(self, entry: RouteEntry) -> Callable[[ActionRequest], Any]:
        def call(request: ActionRequest) -> Any:
            return self.controller_for(entry.node).dispatch(entry.action, request)

        return call

    def _rebuild_handlers(self) -> None:
        self._handlers = [self._wrap_handler(entry, self._call_action(entry)) for entry in self.routes]

    def _wrap_handler(self, entry: RouteEntry, call_next: Callable) -> Callable:
        wrapped = call_next
        for plugin in reversed(self._plugins):
            plugin_call = plugin.wrap_handler(self, entry, wrapped)
            wrapped = self._create_wrapper(plugin, entry, plugin_call, wrapped)
        return wrapped

    def _create_wrapper(
        self,
        plugin: BasePlugin,
        entry: RouteEntry,
        plugin_call: Callable,
        next_handler: Callable,
    ) -> Callable:
        @wraps(next_handler)
        def wrapper(request: ActionRequest) -> Any:
            if not self.is_plugin_enabled(entry.name, plugin.name):
                return next_handler(request)
            return plugin_call(request)

        return wrapper

    def _read_markers(self) -> None:
        """Turn ``@action`` markers into per-route plugin config and metadata."""
        seen: set[str] = set()
        for entry in self.routes:
            if entry.name in seen:
                continue
            seen.add(entry.name)
            controller = entry.controller
            markers = getattr(controller, "action_markers", None)
            if markers is None:
                continue
            for action, payload in markers():
                if action != entry.action:
                    continue
                for key, value in payload.items():
                    if key.startswith("meta_"):
                        self._metadata.setdefault(entry.name, {})[key[5:]] = value
                        continue
                    plugin_name, _, plug_key = key.partition("_")
                    if not plug_key:
                        raise ConfigurationError(
                            f"invalid action option {key!r}", node=entry.node
                        )
                    options = self._plugin_options.setdefault(plugin_name, {})
                    options.setdefault(entry.name, {})[plug_key] = value

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    def match(self, verb: str, path: str) -> RouteMatch:
        """Resolve ``verb`` and ``path`` to the first matching route.

        Raises:
            NotFound: No route template matches ``path``.
            MethodNotAllowed: The path matches only under other verbs.
        """
        verb = verb.upper()
        stripped = path.strip("/")
        parts = stripped.split("/") if stripped else []
        allowed: list[str] = []
        for entry in self.routes:
            ids = entry.template.match(parts)
            if ids is None:
                continue
            if entry.verb == verb:
                return RouteMatch(entry, ids)
            if entry.verb not in allowed:
                allowed.append(entry.verb)
        selector = f"{verb} {path}"
        if allowed:
            raise MethodNotAllowed(selector, tuple(allowed))
        raise NotFound(selector)

    def node(
        self,
        verb: str,
        path: str,
        errors: dict[str, type[Exception]] | None = None,
        **kwargs: Any,
    ) -> ActionNode:
        """Resolve a request to a callable ``ActionNode``.

        Args:
            verb: HTTP verb.
            path: Request path.
            errors: Custom exception classes per error code.
            **kwargs: Plugin-prefixed filters (e.g. ``auth_tags="admin"``).
        """
        try:
            found = self.match(verb, path)
        except MethodNotAllowed as err:
            return ActionNode(
                self, verb.upper(), path, error="method_not_allowed", allowed=err.allowed,
                errors=errors,
            )
        except NotFound:
            return ActionNode(self, verb.upper(), path, error="not_found", errors=errors)
        reason = self._entry_invalid_reason(found.entry, **kwargs)
        return ActionNode(
            self,
            verb.upper(),
            path,
            entry=found.entry,
            ids=found.ids,
            error=reason or None,
            errors=errors,
        )

    def _entry_invalid_reason(self, entry: RouteEntry, **filters: Any) -> str:
        filters = {k: v for k, v in filters.items() if v not in (None, False)}
        for plugin in self._plugins:
            if not self.is_plugin_enabled(entry.name, plugin.name):
                continue
            plugin_kwargs = dictExtract(
                filters, f"{plugin.plugin_code}_", slice_prefix=True, pop=False
            )
            result = plugin.allow_entry(entry, **plugin_kwargs)
            if result:
                return result
        return ""

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def describe(self, forbidden: bool = False, **filters: Any) -> list[dict[str, Any]]:
        """Return one dict per route, in order, respecting plugin filters.

        Args:
            forbidden: Include refused routes with a ``forbidden`` reason.
            **filters: Plugin-prefixed filters, as for ``node()``.
        """
        result: list[dict[str, Any]] = []
        for entry in self.routes:
            reason = self._entry_invalid_reason(entry, **filters)
            if reason and not forbidden:
                continue
            controller = entry.controller
            info: dict[str, Any] = {
                "verb": entry.verb,
                "path": entry.path,
                "name": entry.name,
                "action": entry.action,
                "resource": entry.resource,
                "role": entry.node.role.value,
                "controller": getattr(controller, "__name__", type(controller).__name__),
                "metadata": dict(self._metadata.get(entry.name, {})),
            }
            plugins: dict[str, Any] = {}
            for plugin in self._plugins:
                data: dict[str, Any] = {}
                config = plugin.configuration(entry.name)
                if config:
                    data["config"] = config
                meta = plugin.entry_metadata(self, entry)
                if meta:
                    data["metadata"] = meta
                if data:
                    plugins[plugin.name] = data
            if plugins:
                info["plugins"] = plugins
            if reason:
                info["forbidden"] = reason
            result.append(info)
        return result
