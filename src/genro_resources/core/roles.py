# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Controller roles and the CRUD action table.

Each role is a named capability set: which actions a controller of that role
exposes by default, which it may expose at all, and how its paths are shaped.
The table is data, so "which actions does this resource support" stays an
explicit, inspectable property instead of something implied by a class chain.

Actions and routes
------------------
``ACTIONS`` fixes the canonical order used when emitting routes::

    index   GET     <collection>
    new     GET     <collection>/new
    create  POST    <collection>
    show    GET     <member>
    edit    GET     <member>/edit
    update  PATCH   <member>          (PUT too, see RoutingOptions)
    destroy DELETE  <member>

``new`` precedes ``show`` so ``/posts/new`` is registered before
``/posts/:id`` and never shadowed by it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

__all__ = [
    "ACTIONS",
    "ACTION_ROUTES",
    "ActionRoute",
    "Role",
    "RoleCapability",
    "ROLE_CAPABILITIES",
    "capability_for",
]

ACTIONS: tuple[str, ...] = ("index", "new", "create", "show", "edit", "update", "destroy")

COLLECTION_SCOPE = "collection"
MEMBER_SCOPE = "member"


@dataclass(frozen=True)
class ActionRoute:
    """Path shape and verb of a single CRUD action."""

    verb: str
    scope: str
    suffix: str | None = None


ACTION_ROUTES: dict[str, ActionRoute] = {
    "index": ActionRoute("GET", COLLECTION_SCOPE),
    "new": ActionRoute("GET", COLLECTION_SCOPE, "new"),
    "create": ActionRoute("POST", COLLECTION_SCOPE),
    "show": ActionRoute("GET", MEMBER_SCOPE),
    "edit": ActionRoute("GET", MEMBER_SCOPE, "edit"),
    "update": ActionRoute("PATCH", MEMBER_SCOPE),
    "destroy": ActionRoute("DELETE", MEMBER_SCOPE),
}


class Role(str, Enum):
    """The four controller roles."""

    COLLECTION = "collection"
    SINGULAR = "singular"
    NESTED = "nested"
    NESTED_WEAK = "nested_weak"

    @property
    def is_nested(self) -> bool:
        return self in (Role.NESTED, Role.NESTED_WEAK)


@dataclass(frozen=True)
class RoleCapability:
    """Action rules and mount rule for one role.

    Attributes:
        role: The role described.
        default: Actions exposed when the declaration does not list any.
        permitted: Actions the role may expose.
        widened: Actions permitted once the declaration is explicitly widened.
        required: Actions every declaration of the role must keep.
        mount: ``"plural"`` (``/posts``), ``"singular"`` (``/profile``) or
            ``"static"`` (segment used verbatim, no identifier).
        member: Whether the role addresses records by identifier.
    """

    role: Role
    default: frozenset[str]
    permitted: frozenset[str]
    widened: frozenset[str]
    required: frozenset[str]
    mount: str
    member: bool

    def allowed(self, widen: bool = False) -> frozenset[str]:
        return self.widened if widen else self.permitted

    def ordered(self, actions: frozenset[str] | set[str]) -> tuple[str, ...]:
        return tuple(action for action in ACTIONS if action in actions)


_ALL = frozenset(ACTIONS)
_SINGULAR = _ALL - {"index"}
_NESTED = frozenset({"new", "create", "index"})
_WEAK = frozenset({"new", "create", "destroy"})

ROLE_CAPABILITIES: dict[Role, RoleCapability] = {
    Role.COLLECTION: RoleCapability(
        Role.COLLECTION,
        default=_ALL,
        permitted=_ALL,
        widened=_ALL,
        required=frozenset({"index"}),
        mount="plural",
        member=True,
    ),
    Role.SINGULAR: RoleCapability(
        Role.SINGULAR,
        default=_SINGULAR,
        permitted=_SINGULAR,
        widened=_SINGULAR,
        required=frozenset(),
        mount="singular",
        member=False,
    ),
    Role.NESTED: RoleCapability(
        Role.NESTED,
        default=_NESTED,
        permitted=_NESTED,
        widened=_ALL,
        required=frozenset(),
        mount="plural",
        member=True,
    ),
    Role.NESTED_WEAK: RoleCapability(
        Role.NESTED_WEAK,
        default=frozenset({"new", "create"}),
        permitted=_WEAK,
        widened=_WEAK,
        required=frozenset(),
        mount="static",
        member=False,
    ),
}


def capability_for(role: Role | str) -> RoleCapability:
    """Return the capability record of ``role`` (enum member or value)."""
    return ROLE_CAPABILITIES[Role(role)]
