"""Routing tree generator.

``generate(tree)`` walks a ``RoutingTree`` depth first (parents before
children, siblings in declaration order) and emits one ``RouteEntry`` per
(node, verb, action), actions in canonical CRUD order.

Path shapes
-----------
- collection: ``/posts``, member ``/posts/:id``
- singular: ``/profile`` for every action, no identifier
- nested: ``<parent anchor>/comments``, member ``<parent anchor>/comments/:id``
- nested weak: ``<parent anchor>/delete_confirmation``, routed to the parent
  resource

The parent anchor is the parent's member path. A singular parent has no
member path of its own, so its children hang under ``/<plural>/:id``
(``/posts/:id/delete_confirmation``).

Failure
-------
Any malformed node (action outside its role, nested node without a parent,
child of a nested weak node) raises ``ConfigurationError``; two entries with
the same verb and path shape raise ``DuplicateRouteError``. Nothing is
returned in either case and the tree stays open, so the declarations can
be fixed and generated again.

Generation keeps no state between calls: the same tree always yields an
equal tuple.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from genro_resources.exceptions import ConfigurationError, DuplicateRouteError

from .node import ControllerNode
from .options import RoutingOptions
from .roles import ACTION_ROUTES, COLLECTION_SCOPE, Role
from .route_entry import PathTemplate, RouteEntry, Segment

if TYPE_CHECKING:  # pragma: no cover
    from .tree import RoutingTree

__all__ = ["RouteGenerator", "generate"]

logger = logging.getLogger("genro_resources")


class RouteGenerator:
    """Turns a routing tree into an ordered tuple of route entries."""

    __slots__ = ("options",)

    def __init__(self, options: RoutingOptions | None = None) -> None:
        self.options = options

    def generate(self, tree: RoutingTree) -> tuple[RouteEntry, ...]:
        tree.resolve_parents()
        options = self.options or tree.options
        entries: list[RouteEntry] = []
        seen: dict[tuple[str, str], RouteEntry] = {}
        for node in tree.walk():
            self.check_node(node)
            for entry in self.node_routes(node, options):
                key = (entry.verb, entry.template.key())
                previous = seen.get(key)
                if previous is not None:
                    raise DuplicateRouteError(entry.verb, entry.path, previous, entry)
                seen[key] = entry
                entries.append(entry)
        tree.freeze()
        logger.info("Generated %d routes for %d controllers", len(entries), len(tree))
        if logger.isEnabledFor(logging.DEBUG):
            for entry in entries:
                logger.debug("route %s", entry)
        return tuple(entries)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def check_node(self, node: ControllerNode) -> None:
        """Re-check the role rules on ``node`` and its parent relation."""
        capability = node.capability
        refused = set(node.actions) - capability.allowed(node.widened)
        if refused:
            raise ConfigurationError(
                f"action(s) {', '.join(capability.ordered(refused))} not permitted "
                f"for {node.role.value} resources",
                node=node,
            )
        missing = capability.required - node.actions
        if missing:
            raise ConfigurationError(
                f"{node.role.value} resources must include "
                f"{', '.join(capability.ordered(missing))}",
                node=node,
            )
        parent = node.parent
        if node.role.is_nested and parent is None:
            raise ConfigurationError(f"unresolvable parent {node.parent_name!r}", node=node)
        if not node.role.is_nested and parent is not None:
            raise ConfigurationError(f"{node.role.value} resources cannot be nested", node=node)
        if parent is not None and parent.role is Role.NESTED_WEAK:
            raise ConfigurationError(
                f"nested weak resource {parent.name!r} cannot have children", node=node
            )

    # ------------------------------------------------------------------
    # Path synthesis
    # ------------------------------------------------------------------
    def anchor(self, node: ControllerNode) -> PathTemplate:
        """Path the children of ``node`` are mounted under."""
        if node.role is Role.SINGULAR:
            return PathTemplate((Segment(node.plural_name), Segment.param(node.resource_name)))
        return self.member_path(node)

    def collection_path(self, node: ControllerNode) -> PathTemplate:
        parent = node.parent
        base = self.anchor(parent) if parent is not None else PathTemplate()
        return base + node.segment

    def member_path(self, node: ControllerNode) -> PathTemplate:
        path = self.collection_path(node)
        if node.capability.member:
            path = path + Segment.param(node.resource_name)
        return path

    def node_routes(
        self, node: ControllerNode, options: RoutingOptions | None = None
    ) -> list[RouteEntry]:
        """Route entries of a single node, in canonical action order."""
        options = options or self.options or RoutingOptions()
        collection = self.collection_path(node)
        member = self.member_path(node)
        routes: list[RouteEntry] = []
        for action in node.ordered_actions():
            spec = ACTION_ROUTES[action]
            path = collection if spec.scope == COLLECTION_SCOPE else member
            if spec.suffix:
                path = path + spec.suffix
            verbs = options.update_verbs if action == "update" else (spec.verb,)
            for verb in verbs:
                routes.append(RouteEntry(verb, path, action, node, options))
        return routes


def generate(
    tree: RoutingTree, options: RoutingOptions | None = None
) -> tuple[RouteEntry, ...]:
    """Generate the ordered route entries of ``tree``.

    Args:
        tree: The routing tree; it is frozen once generation succeeds.
        options: Overrides ``tree.options`` for this generation.

    Returns:
        Immutable, ordered tuple of ``RouteEntry``.

    Raises:
        ConfigurationError: Malformed node anywhere in the tree.
        DuplicateRouteError: Two entries share verb and path.
    """
    return RouteGenerator(options).generate(tree)
