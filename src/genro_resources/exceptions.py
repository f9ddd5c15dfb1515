# Copyright 2025 Softwell S.r.l. - All Rights Reserved
# SPDX-License-Identifier: Apache-2.0
"""Exceptions for Genro Resources.

Two families live here:

- configuration errors, raised while a routing tree is declared or
  generated (``ConfigurationError``, ``DuplicateRouteError``). They are fatal
  to application startup.
- dispatch errors, raised when a generated route is resolved or invoked
  (``NotFound``, ``MethodNotAllowed``, ``NotAuthorized``, ``NotAuthenticated``).
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "ConfigurationError",
    "DuplicateRouteError",
    "NotFound",
    "MethodNotAllowed",
    "NotAuthorized",
    "NotAuthenticated",
]


class ConfigurationError(Exception):
    """Raised when a routing tree or a controller declaration is malformed.

    Attributes:
        node: The offending node (or resource name) when known.
        rule: Short description of the violated rule.
    """

    def __init__(self, rule: str, node: Any = None) -> None:
        self.rule = rule
        self.node = node
        label = getattr(node, "name", node)
        if label:
            super().__init__(f"{label}: {rule}")
        else:
            super().__init__(rule)


class DuplicateRouteError(ConfigurationError):
    """Raised when two generated routes resolve to the same verb and path.

    Attributes:
        verb: HTTP verb shared by both routes.
        path: Rendered path shared by both routes.
        first: Route entry declared first.
        second: Route entry that collided with it.
    """

    def __init__(self, verb: str, path: str, first: Any, second: Any) -> None:
        self.verb = verb
        self.path = path
        self.first = first
        self.second = second
        super().__init__(
            f"duplicate route {verb} {path} "
            f"({getattr(first, 'name', first)} and {getattr(second, 'name', second)})",
            node=getattr(second, "node", None),
        )


class NotFound(Exception):
    """Raised when no generated route matches a request.

    Attributes:
        selector: The requested "VERB path".
    """

    def __init__(self, selector: str) -> None:
        self.selector = selector
        super().__init__(f"Route '{selector}' not found")


class MethodNotAllowed(Exception):
    """Raised when the path exists but not for the requested verb (405).

    Attributes:
        selector: The requested "VERB path".
        allowed: Verbs registered for that path.
    """

    def __init__(self, selector: str, allowed: tuple[str, ...] = ()) -> None:
        self.selector = selector
        self.allowed = allowed
        super().__init__(f"Method not allowed for '{selector}' (allowed: {', '.join(allowed)})")


class NotAuthorized(Exception):
    """Raised when access to an existing route or record is denied (403).

    Attributes:
        selector: Route name or "action on resource" description.
    """

    def __init__(self, selector: str) -> None:
        self.selector = selector
        super().__init__(f"Access to '{selector}' denied")


class NotAuthenticated(Exception):
    """Raised when a route requires credentials and none were provided (401).

    Attributes:
        selector: Route name.
    """

    def __init__(self, selector: str) -> None:
        self.selector = selector
        super().__init__(f"Authentication required for '{selector}'")
