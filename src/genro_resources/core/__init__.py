"""Core runtime aggregator for Genro Resources.

Exposes the building blocks from a single module:

    - ``Role`` and the role capability table
    - ``ControllerNode`` / ``resolve_node``: the action-set resolver
    - ``RoutingTree``: the declaration API
    - ``RouteEntry`` / ``generate``: the routing tree generator
    - ``ResourceController`` and the four role controllers
    - ``Dispatcher``: binding of generated routes to controllers
    - ``discover_controllers``: directory-derived trees

Importing this module performs only imports; it does not register plugins.
"""

from .controller import (
    ActionRequest,
    CollectionResource,
    NestedResource,
    NestedWeakResource,
    Repository,
    ResourceController,
    SingularResource,
)
from .decorators import action
from .discovery import discover_controllers
from .dispatcher import ActionHandler, ActionNode, Dispatcher, RouteMatch
from .generator import RouteGenerator, generate
from .inflection import pluralize, resource_name_for, singularize, underscore
from .node import ControllerNode, resolve_node
from .options import RoutingOptions
from .roles import ACTIONS, ROLE_CAPABILITIES, Role, RoleCapability
from .route_entry import PathTemplate, RouteEntry, Segment
from .tree import RoutingTree

__all__ = [
    "ACTIONS",
    "ROLE_CAPABILITIES",
    "ActionHandler",
    "ActionNode",
    "ActionRequest",
    "CollectionResource",
    "ControllerNode",
    "Dispatcher",
    "NestedResource",
    "NestedWeakResource",
    "PathTemplate",
    "Repository",
    "ResourceController",
    "Role",
    "RoleCapability",
    "RouteEntry",
    "RouteGenerator",
    "RouteMatch",
    "RoutingOptions",
    "RoutingTree",
    "Segment",
    "SingularResource",
    "action",
    "discover_controllers",
    "generate",
    "pluralize",
    "resolve_node",
    "resource_name_for",
    "singularize",
    "underscore",
]
