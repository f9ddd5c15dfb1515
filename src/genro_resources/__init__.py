"""Genro Resources - Convention-based resource controllers and route generation.

Public API surface for declaring controller hierarchies (collection,
singular, nested and nested weak resources) and generating the equivalent
route table.

Public exports:
    - ``RoutingTree``: Declaration API for controller nodes
    - ``generate``: Ordered, immutable route entries for a tree
    - ``Dispatcher``: Binds generated routes to controller actions
    - ``CollectionResource``, ``SingularResource``, ``NestedResource``,
      ``NestedWeakResource``: Controller base classes per role
    - ``action``: Decorator attaching plugin options to controller actions
    - ``discover_controllers``: Tree from a controllers directory

Plugin registration happens lazily via ``import_module`` to avoid cycles.
Built-in plugins (logging, auth) are auto-registered on first import.

Example::

    from genro_resources import RoutingTree, generate

    tree = RoutingTree()
    posts = tree.collection("posts")
    tree.nested("comments", parent=posts)

    for entry in generate(tree):
        print(entry.verb, entry.path)
"""

from importlib import import_module

__version__ = "0.1.0"

from .core import (
    ActionRequest,
    CollectionResource,
    ControllerNode,
    Dispatcher,
    NestedResource,
    NestedWeakResource,
    Repository,
    ResourceController,
    Role,
    RouteEntry,
    RoutingOptions,
    RoutingTree,
    SingularResource,
    action,
    discover_controllers,
    generate,
    resolve_node,
)
from .exceptions import (
    ConfigurationError,
    DuplicateRouteError,
    MethodNotAllowed,
    NotAuthenticated,
    NotAuthorized,
    NotFound,
)

# Import plugins to trigger auto-registration (lazy to avoid cycles)
for _plugin in ("logging", "auth"):
    import_module(f"{__name__}.plugins.{_plugin}")
del _plugin

__all__ = [
    "ActionRequest",
    "CollectionResource",
    "ConfigurationError",
    "ControllerNode",
    "Dispatcher",
    "DuplicateRouteError",
    "MethodNotAllowed",
    "NestedResource",
    "NestedWeakResource",
    "NotAuthenticated",
    "NotAuthorized",
    "NotFound",
    "Repository",
    "ResourceController",
    "Role",
    "RouteEntry",
    "RoutingOptions",
    "RoutingTree",
    "SingularResource",
    "action",
    "discover_controllers",
    "generate",
    "resolve_node",
]
