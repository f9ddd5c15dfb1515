"""Route entries emitted by the generator.

``Segment``
    One path segment: a literal (``posts``) or a parameter identifying a
    record of some resource (``post``).

``PathTemplate``
    Ordered segments. Rendering names parameters by position: the last one
    is ``:id`` (``RoutingOptions.member_param``), earlier ones are
    ``:<resource>_id``. ``key()`` drops parameter names so two templates that
    would match the same requests compare equal.

``RouteEntry``
    Immutable (verb, path template, action, node) record. Consumed by the
    dispatcher or directly by a host router.

Example::

    GET /posts/:post_id/comments/:id  -> posts.comments.show
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .options import RoutingOptions

if TYPE_CHECKING:  # pragma: no cover
    from .node import ControllerNode

__all__ = ["Segment", "PathTemplate", "RouteEntry"]

_DEFAULT_OPTIONS = RoutingOptions()


@dataclass(frozen=True)
class Segment:
    """A literal path segment, or a parameter when ``resource`` is set."""

    text: str
    resource: str | None = None

    @classmethod
    def param(cls, resource: str) -> Segment:
        return cls(resource, resource)

    @property
    def is_param(self) -> bool:
        return self.resource is not None


@dataclass(frozen=True)
class PathTemplate:
    """Ordered sequence of literal and parameter segments."""

    segments: tuple[Segment, ...] = ()

    def __add__(self, other: PathTemplate | Segment | str) -> PathTemplate:
        if isinstance(other, PathTemplate):
            return PathTemplate(self.segments + other.segments)
        if isinstance(other, str):
            other = Segment(other)
        return PathTemplate(self.segments + (other,))

    def param_names(self, options: RoutingOptions = _DEFAULT_OPTIONS) -> list[str | None]:
        """Rendered parameter name per segment (``None`` for literals)."""
        positions = [i for i, seg in enumerate(self.segments) if seg.is_param]
        names: list[str | None] = [None] * len(self.segments)
        for i in positions:
            if i == positions[-1]:
                names[i] = options.member_param
            else:
                names[i] = f"{self.segments[i].resource}{options.param_suffix}"
        return names

    def render(self, options: RoutingOptions = _DEFAULT_OPTIONS) -> str:
        names = self.param_names(options)
        parts = [
            f":{name}" if name is not None else seg.text
            for seg, name in zip(self.segments, names)
        ]
        return "/" + "/".join(parts)

    def key(self) -> str:
        return "/" + "/".join(":" if seg.is_param else seg.text for seg in self.segments)

    def params(self, options: RoutingOptions = _DEFAULT_OPTIONS) -> dict[str, str]:
        """Map rendered parameter names to the resource they identify."""
        return {
            name: seg.resource  # type: ignore[misc]
            for seg, name in zip(self.segments, self.param_names(options))
            if name is not None
        }

    def match(self, parts: list[str]) -> dict[str, str] | None:
        """Match split path ``parts``; return resource -> identifier or None."""
        if len(parts) != len(self.segments):
            return None
        ids: dict[str, str] = {}
        for seg, part in zip(self.segments, parts):
            if seg.is_param:
                if not part:
                    return None
                ids[seg.resource] = part  # type: ignore[index]
            elif seg.text != part:
                return None
        return ids


@dataclass(frozen=True)
class RouteEntry:
    """One (verb, path template, action) registration.

    Attributes:
        verb: HTTP verb.
        template: Path template.
        action: CRUD action the route dispatches to.
        node: Owning controller node.
        options: Options the path is rendered with.
    """

    verb: str
    template: PathTemplate
    action: str
    node: ControllerNode = field(compare=False)
    options: RoutingOptions = field(default=_DEFAULT_OPTIONS, compare=False)

    @property
    def path(self) -> str:
        return self.template.render(self.options)

    @property
    def name(self) -> str:
        return f"{self.node.name}.{self.action}"

    @property
    def resource(self) -> str:
        """Resource type the action operates on."""
        return self.node.target_resource

    @property
    def controller(self) -> Any:
        return self.node.controller

    @property
    def params(self) -> dict[str, str]:
        return self.template.params(self.options)

    def as_tuple(self) -> tuple[str, str, str]:
        return (self.verb, self.path, self.name)

    def __str__(self) -> str:
        return f"{self.verb} {self.path} -> {self.name}"
