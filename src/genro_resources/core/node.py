"""ControllerNode and the action-set resolver.

A ``ControllerNode`` is one controller in a routing tree: its resource name,
its role, the exact set of actions it exposes and its place in the nesting.
Nodes are built by ``resolve_node``, which applies the role table from
:mod:`genro_resources.core.roles` and refuses anything the role does not allow.

Ownership
---------
The tree owns its nodes through ``children``. The back reference to the
parent is a weak reference used for lookups only; ``node.parent`` returns
``None`` once the parent is gone.

Naming
------
- ``resource_name``: singular resource identifier (``comment``).
- ``segment``: path segment the node mounts at (``comments`` for plural
  mounts, ``profile`` for singular mounts, the verbatim name for weak nodes).
- ``name``: dotted chain of segments from the root (``posts.comments``),
  used as the prefix of route names.
- ``parent_name``: the parent reference as declared (dotted name, resource
  name or segment); the parent's resource name when only a node was given.
- ``target_resource``: the resource whose records the actions operate on;
  the parent's resource for nested weak nodes, the node's own otherwise.
"""

from __future__ import annotations

import re
import weakref
from collections.abc import Iterable
from typing import Any

from genro_resources.exceptions import ConfigurationError

from .inflection import pluralize, resource_name_for, segment_name_for
from .roles import ACTIONS, Role, RoleCapability, capability_for

__all__ = ["ControllerNode", "resolve_node", "parse_actions"]

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


class ControllerNode:
    """One controller of a routing tree."""

    __slots__ = (
        "resource_name",
        "role",
        "actions",
        "controller",
        "segment",
        "parent_name",
        "widened",
        "metadata",
        "children",
        "_parent_ref",
        "__weakref__",
    )

    def __init__(
        self,
        resource_name: str,
        role: Role,
        actions: frozenset[str],
        *,
        parent: ControllerNode | None = None,
        parent_name: str | None = None,
        controller: Any = None,
        segment: str | None = None,
        widened: bool = False,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self.resource_name = resource_name
        self.role = role
        self.actions = actions
        self.controller = controller
        self.parent_name = parent_name
        self.widened = widened
        self.metadata: dict[str, Any] = dict(metadata or {})
        self.children: list[ControllerNode] = []
        self._parent_ref: weakref.ReferenceType[ControllerNode] | None = None
        self.segment = segment or self._default_segment()
        if parent is not None:
            self.parent = parent

    def _default_segment(self) -> str:
        mount = self.capability.mount
        if mount == "plural":
            return pluralize(self.resource_name)
        return self.resource_name

    # ------------------------------------------------------------------
    # Relations
    # ------------------------------------------------------------------
    @property
    def parent(self) -> ControllerNode | None:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @parent.setter
    def parent(self, node: ControllerNode | None) -> None:
        if node is None:
            self._parent_ref = None
            return
        self._parent_ref = weakref.ref(node)
        if not self.parent_name:
            self.parent_name = node.resource_name

    def answers_to(self, reference: str) -> bool:
        """True when ``reference`` names this node (dotted name, resource or segment)."""
        return reference in (self.name, self.resource_name, self.segment)

    @property
    def lineage(self) -> tuple[ControllerNode, ...]:
        """Nodes from the root down to this node (inclusive)."""
        chain: list[ControllerNode] = []
        node: ControllerNode | None = self
        while node is not None:
            chain.append(node)
            node = node.parent
        return tuple(reversed(chain))

    # ------------------------------------------------------------------
    # Derived names
    # ------------------------------------------------------------------
    @property
    def capability(self) -> RoleCapability:
        return capability_for(self.role)

    @property
    def plural_name(self) -> str:
        return pluralize(self.resource_name)

    @property
    def name(self) -> str:
        return ".".join(node.segment for node in self.lineage)

    @property
    def target_resource(self) -> str:
        if self.role is Role.NESTED_WEAK:
            parent = self.parent
            if parent is not None:
                return parent.target_resource
            return self.parent_name or self.resource_name
        return self.resource_name

    def ordered_actions(self) -> tuple[str, ...]:
        """Return ``actions`` in canonical CRUD order."""
        return self.capability.ordered(self.actions)

    def __repr__(self) -> str:
        return (
            f"ControllerNode({self.resource_name!r}, role={self.role.value}, "
            f"actions={list(self.ordered_actions())})"
        )


def parse_actions(actions: Iterable[str] | str | None) -> frozenset[str] | None:
    """Normalize an action list (iterable or comma-separated string)."""
    if actions is None:
        return None
    if isinstance(actions, str):
        actions = actions.split(",")
    return frozenset(a.strip() for a in actions if a and a.strip())


def resolve_node(
    role: Role | str,
    name: str | None = None,
    *,
    resource: str | None = None,
    parent: ControllerNode | None = None,
    parent_name: str | None = None,
    actions: Iterable[str] | str | None = None,
    widen: bool = False,
    controller: Any = None,
    segment: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> ControllerNode:
    """Build a fully populated ``ControllerNode`` for a controller declaration.

    Args:
        role: One of the four roles (enum member or its value).
        name: Controller name the resource name is derived from
            (``"Comments"`` -> ``"comment"``).
        resource: Explicit resource name, overriding the derived one.
        parent: Enclosing node, for nested roles.
        parent_name: Parent resource name, when the parent node is resolved
            later by the tree.
        actions: Explicit action subset; defaults to the role default.
        widen: Allow a nested resource to expose member actions.
        controller: Controller class bound to the node's routes.
        segment: Explicit path segment, overriding the conventional one.
        metadata: Free-form data carried by the node.

    Returns:
        The node. It is not attached to ``parent.children``; the tree does that.

    Raises:
        ConfigurationError: Unknown role, missing resource identifier, action
            not permitted for the role, required action missing, nested role
            without a parent, or parent given to a top-level role.
    """
    try:
        role = Role(role)
    except ValueError as err:
        raise ConfigurationError(f"unknown role {role!r}", node=name or resource) from err
    capability = capability_for(role)

    resource_name = resource or (resource_name_for(name) if name else None)
    if not resource_name:
        raise ConfigurationError("missing resource identifier")
    if not _IDENTIFIER.match(resource_name):
        raise ConfigurationError(f"invalid resource name {resource_name!r}", node=resource_name)

    if segment is not None and (not segment or "/" in segment or segment.startswith(":")):
        raise ConfigurationError(f"invalid path segment {segment!r}", node=resource_name)
    if segment is None and role is Role.NESTED_WEAK:
        # weak segments keep the declared number: details, not detail
        segment = resource or segment_name_for(name)  # type: ignore[arg-type]

    chosen = parse_actions(actions)
    if chosen is None:
        chosen = capability.default
    unknown = chosen - set(ACTIONS)
    if unknown:
        raise ConfigurationError(
            f"unknown action(s) {', '.join(sorted(unknown))}", node=resource_name
        )
    if widen and role is not Role.NESTED:
        raise ConfigurationError(
            f"only nested resources can be widened, not {role.value} resources",
            node=resource_name,
        )
    allowed = capability.allowed(widen)
    refused = chosen - allowed
    if refused:
        raise ConfigurationError(
            f"action(s) {', '.join(capability.ordered(refused))} not permitted "
            f"for {role.value} resources",
            node=resource_name,
        )
    missing = capability.required - chosen
    if missing:
        raise ConfigurationError(
            f"{role.value} resources must include {', '.join(capability.ordered(missing))}",
            node=resource_name,
        )
    if not chosen:
        raise ConfigurationError("no actions declared", node=resource_name)

    if parent is not None and parent_name and not parent.answers_to(parent_name):
        raise ConfigurationError(
            f"parent {parent.resource_name!r} does not match declared parent {parent_name!r}",
            node=resource_name,
        )
    if role.is_nested and parent is None and not parent_name:
        raise ConfigurationError(
            f"{role.value} resource declared without a parent", node=resource_name
        )
    if not role.is_nested and (parent is not None or parent_name):
        raise ConfigurationError(
            f"{role.value} resources cannot be nested; declare a nested resource instead",
            node=resource_name,
        )

    return ControllerNode(
        resource_name,
        role,
        frozenset(chosen),
        parent=parent,
        parent_name=parent_name,
        controller=controller,
        segment=segment,
        widened=widen,
        metadata=metadata,
    )
