# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Resource controllers.

Controllers implement the CRUD actions once, in terms of a few overridable
lookup hooks and two collaborators supplied by the application:

- ``repository`` (persistence): a :class:`Repository` for the resource the
  controller operates on. Nested controllers also get a
  ``parent_repository`` to load the enclosing record.
- ``policy`` (authorization): a callable ``policy(action, record, request)``
  returning a truthy value when the action is allowed. ``authorize()`` calls
  it before every action touches a record; the policy logic itself belongs
  to the application.

Roles
-----
Each role class combines the action capabilities it needs::

    CollectionResource   index new create show edit update destroy
    SingularResource           new create show edit update destroy
    NestedResource       index new create (+ member actions when widened)
    NestedWeakResource         new create destroy, on the parent record

Class attributes describe the routing node (``resource_name``,
``parent_name``, ``actions``, ``widen``, ``segment``, ``nested``); by default
the resource name comes from the class name (``CommentsController`` ->
``comment``).

Example::

    class PostsController(CollectionResource):
        nested = (CommentsController,)

    class CommentsController(NestedResource):
        parent_name = "post"
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from genro_resources.exceptions import ConfigurationError, NotAuthorized, NotFound

from .decorators import ACTION_MARKER
from .inflection import resource_name_for
from .roles import ACTIONS, Role

if TYPE_CHECKING:  # pragma: no cover
    from .route_entry import RouteEntry

__all__ = [
    "ActionRequest",
    "Repository",
    "ResourceController",
    "CollectionResource",
    "SingularResource",
    "NestedResource",
    "NestedWeakResource",
]


@dataclass
class ActionRequest:
    """Input of a controller action.

    Attributes:
        entry: Route entry being dispatched.
        ids: Record identifiers from the path, keyed by resource name.
        attributes: Submitted attributes (create/update payload).
        user: Current user, passed through to the policy and repositories.
    """

    entry: RouteEntry | None = None
    ids: dict[str, str] = field(default_factory=dict)
    attributes: dict[str, Any] = field(default_factory=dict)
    user: Any = None

    @property
    def action(self) -> str | None:
        return self.entry.action if self.entry is not None else None


class Repository(ABC):
    """Persistence collaborator for one resource type."""

    @abstractmethod
    def all(self, scope: Any = None) -> Any:
        """Return the records visible in ``scope`` (parent record or None)."""

    @abstractmethod
    def get(self, ident: Any, scope: Any = None) -> Any:
        """Return the record identified by ``ident`` or None."""

    @abstractmethod
    def build(self, attributes: dict[str, Any], scope: Any = None) -> Any:
        """Return a new, unsaved record."""

    @abstractmethod
    def save(self, record: Any) -> Any:
        """Persist ``record`` and return it."""

    @abstractmethod
    def delete(self, record: Any) -> None:
        """Remove ``record``."""


class ResourceController:
    """Base class of every resource controller."""

    role: ClassVar[Role | None] = None
    resource_name: ClassVar[str | None] = None
    parent_name: ClassVar[str | None] = None
    actions: ClassVar[tuple[str, ...] | str | None] = None
    widen: ClassVar[bool] = False
    segment: ClassVar[str | None] = None
    nested: ClassVar[tuple[type[ResourceController], ...]] = ()
    permitted: ClassVar[tuple[str, ...] | None] = None

    def __init__(
        self,
        repository: Repository | None = None,
        *,
        parent_repository: Repository | None = None,
        policy: Any = None,
    ) -> None:
        self.repository = repository
        self.parent_repository = parent_repository
        self.policy = policy

    # ------------------------------------------------------------------
    # Node description
    # ------------------------------------------------------------------
    @classmethod
    def controller_name(cls) -> str:
        return cls.__name__

    @classmethod
    def node_options(cls) -> dict[str, Any]:
        """Keyword arguments describing this controller's routing node."""
        if cls.role is None:
            raise ConfigurationError("controller has no role", node=cls.__name__)
        return {
            "role": cls.role,
            "name": cls.controller_name(),
            "resource": cls.resource_name,
            "parent_name": cls.parent_name,
            "actions": cls.actions,
            "widen": cls.widen,
            "segment": cls.segment,
        }

    @classmethod
    def action_markers(cls) -> Iterator[tuple[str, dict[str, Any]]]:
        """Yield ``(action, options)`` for actions marked with ``@action``."""
        seen: set[str] = set()
        for base in cls.__mro__:
            for name, value in vars(base).items():
                if name not in ACTIONS or name in seen or not callable(value):
                    continue
                seen.add(name)
                marker = getattr(value, ACTION_MARKER, None)
                if marker:
                    yield name, dict(marker)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def dispatch(self, action: str, request: ActionRequest) -> Any:
        """Run ``action`` (one of the CRUD actions) for ``request``."""
        handler = getattr(self, action, None) if action in ACTIONS else None
        if handler is None:
            raise NotFound(f"{type(self).__name__}.{action}")
        return handler(request)

    # ------------------------------------------------------------------
    # Lookup hooks
    # ------------------------------------------------------------------
    @classmethod
    def own_resource(cls) -> str:
        return cls.resource_name or resource_name_for(cls.controller_name())

    def target_resource(self, request: ActionRequest) -> str | None:
        if request.entry is not None:
            return request.entry.resource
        if self.role is Role.NESTED_WEAK:
            return self.parent_name
        return self.own_resource()

    def find_scope(self, request: ActionRequest) -> Any:
        """Scope records are looked up in; None for top-level resources."""
        return None

    def find_resource(self, request: ActionRequest) -> Any:
        """Load the record the request addresses, raising NotFound if missing."""
        resource = self.target_resource(request)
        ident = request.ids.get(resource) if resource else None
        record = self._require_repository().get(ident, self.find_scope(request))
        if record is None:
            raise NotFound(f"{resource} {ident}" if ident is not None else str(resource))
        return record

    def build_resource(self, request: ActionRequest) -> Any:
        return self._require_repository().build(
            self.permitted_attributes(request), self.find_scope(request)
        )

    def permitted_attributes(self, request: ActionRequest) -> dict[str, Any]:
        """Filter submitted attributes through ``permitted`` when set."""
        if self.permitted is None:
            return dict(request.attributes)
        return {k: v for k, v in request.attributes.items() if k in self.permitted}

    def assign_attributes(self, record: Any, attributes: dict[str, Any]) -> Any:
        if isinstance(record, dict):
            record.update(attributes)
        else:
            for key, value in attributes.items():
                setattr(record, key, value)
        return record

    def authorize(self, action: str, record: Any, request: ActionRequest) -> None:
        """Ask the policy collaborator whether ``action`` may run on ``record``.

        Raises:
            NotAuthorized: The policy refused the action.
        """
        if self.policy is None:
            return
        if not self.policy(action, record, request):
            raise NotAuthorized(f"{action} {self.target_resource(request)}")

    def load_enclosing(self, resource: str | None, request: ActionRequest) -> Any:
        """Load the enclosing ``resource`` record through ``parent_repository``."""
        ident = request.ids.get(resource) if resource else None
        if self.parent_repository is None:
            raise ConfigurationError(
                f"{type(self).__name__} has no parent repository", node=self.resource_name
            )
        record = self.parent_repository.get(ident)
        if record is None:
            raise NotFound(f"{resource} {ident}")
        return record

    def _require_repository(self) -> Repository:
        if self.repository is None:
            raise ConfigurationError(
                f"{type(self).__name__} has no repository", node=self.resource_name
            )
        return self.repository


class _IndexAction:
    def index(self: Any, request: ActionRequest) -> Any:
        self.authorize("index", None, request)
        return self._require_repository().all(self.find_scope(request))


class _BuildActions:
    def new(self: Any, request: ActionRequest) -> Any:
        record = self.build_resource(request)
        self.authorize("new", record, request)
        return record

    def create(self: Any, request: ActionRequest) -> Any:
        record = self.build_resource(request)
        self.authorize("create", record, request)
        return self._require_repository().save(record)


class _MemberActions:
    def show(self: Any, request: ActionRequest) -> Any:
        record = self.find_resource(request)
        self.authorize("show", record, request)
        return record

    def edit(self: Any, request: ActionRequest) -> Any:
        record = self.find_resource(request)
        self.authorize("edit", record, request)
        return record

    def update(self: Any, request: ActionRequest) -> Any:
        record = self.find_resource(request)
        self.authorize("update", record, request)
        self.assign_attributes(record, self.permitted_attributes(request))
        return self._require_repository().save(record)

    def destroy(self: Any, request: ActionRequest) -> Any:
        record = self.find_resource(request)
        self.authorize("destroy", record, request)
        self._require_repository().delete(record)
        return record


class CollectionResource(_IndexAction, _BuildActions, _MemberActions, ResourceController):
    """Full index + CRUD controller over a pluralized path."""

    role = Role.COLLECTION


class SingularResource(_BuildActions, _MemberActions, ResourceController):
    """Controller for one implicitly identified record (no index).

    The repository receives ``ident=None`` and the current user as scope,
    and resolves the record from them.
    """

    role = Role.SINGULAR

    def find_scope(self, request: ActionRequest) -> Any:
        return request.user


class NestedResource(_IndexAction, _BuildActions, _MemberActions, ResourceController):
    """Resource scoped under its parent's member path.

    Records are looked up within the parent record loaded by
    ``find_parent``.
    """

    role = Role.NESTED

    def parent_resource(self, request: ActionRequest) -> str | None:
        if request.entry is not None and request.entry.node.parent is not None:
            return request.entry.node.parent.target_resource
        return self.parent_name

    def find_parent(self, request: ActionRequest) -> Any:
        return self.load_enclosing(self.parent_resource(request), request)

    def find_scope(self, request: ActionRequest) -> Any:
        return self.find_parent(request)


class NestedWeakResource(ResourceController, ABC):
    """Path segment acting on the parent record itself.

    ``repository`` is the parent resource's repository. ``new`` returns the
    parent record; ``create`` and ``destroy`` authorize the qualified action
    (``delete_confirmation.create``) on the parent record, then call
    ``perform``, which every subclass must implement.

    Under a nested parent (``/posts/:post_id/comments/:id/confirmation``)
    the parent record is looked up within the grandparent record, loaded
    through ``parent_repository``.
    """

    role = Role.NESTED_WEAK

    def qualified_action(self, action: str, request: ActionRequest) -> str:
        if request.entry is not None:
            return f"{request.entry.node.resource_name}.{action}"
        return f"{self.own_resource()}.{action}"

    def scope_resource(self, request: ActionRequest) -> str | None:
        """Resource enclosing the parent record; None when the parent is top level."""
        if request.entry is None:
            return None
        parent = request.entry.node.parent
        if parent is None or parent.role is not Role.NESTED or parent.parent is None:
            return None
        return parent.parent.target_resource

    def find_scope(self, request: ActionRequest) -> Any:
        resource = self.scope_resource(request)
        if resource is None:
            return None
        return self.load_enclosing(resource, request)

    def find_parent(self, request: ActionRequest) -> Any:
        return self.find_resource(request)

    def new(self, request: ActionRequest) -> Any:
        record = self.find_parent(request)
        self.authorize(self.qualified_action("new", request), record, request)
        return record

    def create(self, request: ActionRequest) -> Any:
        record = self.find_parent(request)
        self.authorize(self.qualified_action("create", request), record, request)
        return self.perform("create", record, request)

    def destroy(self, request: ActionRequest) -> Any:
        record = self.find_parent(request)
        self.authorize(self.qualified_action("destroy", request), record, request)
        return self.perform("destroy", record, request)

    @abstractmethod
    def perform(self, action: str, record: Any, request: ActionRequest) -> Any:
        """Apply the weak action (``create`` or ``destroy``) to the parent record."""
