"""Decorator helpers for marking controller actions.

This module contains only marker helpers; nothing is registered at
decoration time.

``action(**kwargs)``
    Stores plugin options on the function under ``_action_decorator_kw``.
    Keys are plugin-scoped (``auth_rule``, ``logging_after``) or ``meta_*``.
    Stacking decorators merges the payloads, innermost first.

The dispatcher reads the markers when it builds handlers and turns them into
per-route plugin configuration.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

__all__ = ["action", "ACTION_MARKER"]

ACTION_MARKER = "_action_decorator_kw"


def action(**kwargs: Any) -> Callable[[Callable], Callable]:
    """Attach plugin options to a controller action.

    Example::

        class PostsController(CollectionResource):
            @action(auth_rule="admin")
            def destroy(self, request):
                return super().destroy(request)
    """

    def decorator(func: Callable) -> Callable:
        payload = dict(getattr(func, ACTION_MARKER, {}))
        payload.update(kwargs)
        setattr(func, ACTION_MARKER, payload)  # noqa: B010
        return func

    return decorator
