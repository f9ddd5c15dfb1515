# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""RoutingTree - declaration API for controller hierarchies.

The application builds one tree at configuration time, then hands it to
:func:`genro_resources.generate` (or a ``Dispatcher``). Generating freezes the
tree: later declarations raise ``ConfigurationError``.

Declaring
---------
``declare(role, name, parent=..., ...)`` resolves a node with
:func:`resolve_node` and attaches it. Shortcuts exist per role::

    tree = RoutingTree()
    posts = tree.collection("posts")
    tree.nested("comments", parent=posts)
    tree.weak("delete_confirmation", parent="post", actions="new,create")
    tree.singular("profile")

``parent`` is a node or a name. A name that does not match any node yet is
kept and resolved by ``resolve_parents()`` (also run by ``freeze()``), so
children may be declared before their parent. Names match the dotted node
name (``posts.comments``) first, then the resource name (``comment``) or
the segment (``posts``).

Controllers
-----------
``mount(PostsController)`` declares a node from a controller class and
recursively mounts the classes listed in its ``nested`` attribute.
``RoutingTree.from_controllers([...])`` does the same for a list of roots.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

from genro_resources.exceptions import ConfigurationError

from .node import ControllerNode, resolve_node
from .options import RoutingOptions
from .roles import Role

__all__ = ["RoutingTree"]


class RoutingTree:
    """Ordered forest of controller nodes, frozen once generated."""

    __slots__ = ("options", "_declared", "_pending", "_frozen")

    def __init__(self, options: RoutingOptions | dict[str, Any] | None = None, **kwargs: Any):
        if isinstance(options, RoutingOptions):
            if kwargs:
                options = options.model_copy(update=kwargs)
        else:
            options = RoutingOptions(**{**(options or {}), **kwargs})
        self.options: RoutingOptions = options
        self._declared: list[ControllerNode] = []
        self._pending: list[ControllerNode] = []
        self._frozen = False

    # ------------------------------------------------------------------
    # Declaration
    # ------------------------------------------------------------------
    def declare(
        self,
        role: Role | str,
        name: str | None = None,
        *,
        parent: ControllerNode | str | None = None,
        resource: str | None = None,
        actions: Iterable[str] | str | None = None,
        widen: bool = False,
        controller: Any = None,
        segment: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ControllerNode:
        """Declare a controller node and attach it to the tree.

        Args:
            role: Controller role.
            name: Controller name the resource name is derived from.
            parent: Parent node or parent name (nested roles only).
            resource: Explicit resource name.
            actions: Explicit action subset.
            widen: Let a nested resource expose member actions.
            controller: Controller class dispatched to by the node's routes.
            segment: Explicit path segment.
            metadata: Free-form data kept on the node.

        Returns:
            The declared node.

        Raises:
            ConfigurationError: Frozen tree, invalid declaration, parent that is
                a nested weak resource or that belongs to another tree.
        """
        if self._frozen:
            raise ConfigurationError("routing tree is frozen", node=name or resource)
        parent_node: ControllerNode | None = None
        parent_name: str | None = None
        if isinstance(parent, ControllerNode):
            if not any(parent is node for node in self._declared):
                raise ConfigurationError(
                    f"parent {parent.name!r} is not declared in this tree", node=name or resource
                )
            parent_node = parent
        elif parent:
            parent_node = self.find(parent)
            if parent_node is None:
                parent_name = parent
        if parent_node is not None:
            self._check_parent(parent_node, name or resource)

        node = resolve_node(
            role,
            name,
            resource=resource,
            parent=parent_node,
            parent_name=parent_name if parent_node is None else None,
            actions=actions,
            widen=widen,
            controller=controller,
            segment=segment,
            metadata=metadata,
        )
        self._declared.append(node)
        if parent_node is not None:
            self._attach(parent_node, node)
        elif node.role.is_nested:
            self._pending.append(node)
        return node

    def collection(self, name: str | None = None, **kwargs: Any) -> ControllerNode:
        return self.declare(Role.COLLECTION, name, **kwargs)

    def singular(self, name: str | None = None, **kwargs: Any) -> ControllerNode:
        return self.declare(Role.SINGULAR, name, **kwargs)

    def nested(self, name: str | None = None, **kwargs: Any) -> ControllerNode:
        return self.declare(Role.NESTED, name, **kwargs)

    def weak(self, name: str | None = None, **kwargs: Any) -> ControllerNode:
        return self.declare(Role.NESTED_WEAK, name, **kwargs)

    def mount(
        self, controller: type, parent: ControllerNode | str | None = None
    ) -> ControllerNode:
        """Declare ``controller`` and the controllers listed in its ``nested``."""
        options = controller.node_options()  # type: ignore[attr-defined]
        declared_parent = options.pop("parent_name", None)
        node = self.declare(
            options.pop("role"),
            parent=parent if parent is not None else declared_parent,
            controller=controller,
            **options,
        )
        mounted_under = node.parent
        if (
            parent is not None
            and declared_parent
            and mounted_under is not None
            and not mounted_under.answers_to(declared_parent)
        ):
            raise ConfigurationError(
                f"controller declares parent {declared_parent!r} "
                f"but is mounted under {mounted_under.name!r}",
                node=node,
            )
        for child in getattr(controller, "nested", ()) or ():
            self.mount(child, parent=node)
        return node

    @classmethod
    def from_controllers(
        cls,
        controllers: Iterable[type],
        options: RoutingOptions | dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> RoutingTree:
        """Build a tree by mounting each controller in order."""
        tree = cls(options, **kwargs)
        for controller in controllers:
            tree.mount(controller)
        return tree

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def find(self, name: str) -> ControllerNode | None:
        """Return the node named ``name`` (dotted name, then resource name)."""
        for node in self._declared:
            if node.name == name and self._is_placed(node):
                return node
        matches = [
            node for node in self._declared if node.answers_to(name) and self._is_placed(node)
        ]
        if len(matches) > 1:
            raise ConfigurationError(
                f"ambiguous parent reference {name!r} "
                f"({', '.join(node.name for node in matches)})"
            )
        return matches[0] if matches else None

    @property
    def roots(self) -> tuple[ControllerNode, ...]:
        return tuple(
            node for node in self._declared if node.parent is None and not node.role.is_nested
        )

    def walk(self) -> Iterator[ControllerNode]:
        """Yield placed nodes depth first, parents before children."""
        stack = list(reversed(self.roots))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def __iter__(self) -> Iterator[ControllerNode]:
        return self.walk()

    def __len__(self) -> int:
        return len(self._declared)

    # ------------------------------------------------------------------
    # Freezing
    # ------------------------------------------------------------------
    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> RoutingTree:
        """Resolve pending parent names and make the tree read-only.

        Raises:
            ConfigurationError: A pending parent name cannot be resolved.
        """
        if self._frozen:
            return self
        self.resolve_parents()
        for node in self._declared:
            node.children = tuple(node.children)  # type: ignore[assignment]
        self._frozen = True
        return self

    def resolve_parents(self) -> RoutingTree:
        """Attach the nodes declared with a parent name; the tree stays open.

        Raises:
            ConfigurationError: A pending parent name cannot be resolved.
        """
        while self._pending:
            progressed = False
            for node in list(self._pending):
                reference = node.parent_name
                parent = self.find(reference)
                if parent is None:
                    continue
                self._check_parent(parent, node)
                node.parent = parent
                self._attach(parent, node)
                self._pending.remove(node)
                progressed = True
            if not progressed:
                node = self._pending[0]
                reference = node.parent_name
                raise ConfigurationError(f"unresolvable parent {reference!r}", node=node)
        return self

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _is_placed(self, node: ControllerNode) -> bool:
        return not any(node is pending for pending in self._pending)

    def _check_parent(self, parent: ControllerNode, child: Any) -> None:
        if parent.role is Role.NESTED_WEAK:
            raise ConfigurationError(
                f"nested weak resource {parent.name!r} cannot have children", node=child
            )

    def _attach(self, parent: ControllerNode, node: ControllerNode) -> None:
        order = {id(n): i for i, n in enumerate(self._declared)}
        children = list(parent.children)
        children.append(node)
        children.sort(key=lambda n: order[id(n)])
        parent.children = children
