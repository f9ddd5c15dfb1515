# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""AuthPlugin - tag rules on generated routes.

A route carries a rule when its controller action is marked with
``@action(auth_rule="...")`` or when the dispatcher is configured with
``configure("auth", _target="<route name>", rule="...")``. Routes without a
rule are public.

The caller's tags are passed as ``auth_tags`` to ``node()``/``describe()``,
either a comma-separated string or an iterable. The plugin answers with an
error code that ``ActionNode`` maps to an exception:

    - no rule, or rule satisfied:  ""                   (callable)
    - rule but no tags:            "not_authenticated"  (NotAuthenticated)
    - tags that fail the rule:     "not_authorized"     (NotAuthorized)

Rules use ``genro_toolbox.tags_match`` syntax: ``|`` OR, ``&`` AND,
``!`` NOT, parentheses for grouping. Commas are reserved for tag lists.

Example::

    class PostsController(CollectionResource):
        @action(auth_rule="admin|editor")
        def destroy(self, request):
            return super().destroy(request)

    dispatcher = Dispatcher(tree).plug("auth")
    dispatcher.configure("auth", _target="posts.update", rule="editor")
    dispatcher.node("DELETE", "/posts/5", auth_tags="editor")()

Record-level decisions (may this user edit *this* post) stay with the
controller's ``policy`` collaborator.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from genro_toolbox import tags_match

from genro_resources.core.dispatcher import Dispatcher
from genro_resources.core.route_entry import RouteEntry

from ._base_plugin import BasePlugin

__all__ = ["AuthPlugin"]


def _tag_set(tags: str | Iterable[str] | None) -> set[str]:
    if not tags:
        return set()
    if isinstance(tags, str):
        tags = tags.split(",")
    return {tag.strip() for tag in tags if tag and tag.strip()}


class AuthPlugin(BasePlugin):
    """Tag-based access control for routes."""

    plugin_code = "auth"
    plugin_description = "Tag-based access control for generated routes"

    def configure(
        self,
        *,
        rule: str = "",
        enabled: bool = True,
        _target: str = "_all_",
        flags: str | None = None,
    ) -> None:
        """Set the rule of every route (``_target="_all_"``) or of named routes.

        Raises:
            ValueError: ``rule`` contains a comma.
        """
        if "," in rule:
            raise ValueError(
                f"Comma not allowed in auth rule {rule!r}: "
                "write 'admin|editor' for OR, 'admin&editor' for AND"
            )

    def rule_for(self, entry: RouteEntry) -> str:
        return self.configuration(entry.name).get("rule") or ""

    def allow_entry(self, entry: RouteEntry, **filters: Any) -> str:
        rule = self.rule_for(entry)
        if not rule:
            return ""
        tags = _tag_set(filters.get("tags"))
        if not tags:
            return "not_authenticated"
        return "" if tags_match(rule, tags) else "not_authorized"

    def entry_metadata(self, dispatcher: Any, entry: RouteEntry) -> dict[str, Any]:
        rule = self.rule_for(entry)
        return {"rule": rule} if rule else {}


Dispatcher.register_plugin(AuthPlugin)
