# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Tests for the CRUD controller roles."""

from __future__ import annotations

import pytest

from genro_resources import (
    ActionRequest,
    CollectionResource,
    ConfigurationError,
    Dispatcher,
    NestedResource,
    NestedWeakResource,
    NotAuthorized,
    NotFound,
    Repository,
    Role,
    RoutingTree,
    SingularResource,
    action,
)


class MemoryRepository(Repository):
    """Dict-backed repository; records are dicts with ``id`` and ``parent``."""

    def __init__(self, *records):
        self.records = {str(record["id"]): dict(record) for record in records}
        self.deleted = []

    def all(self, scope=None):
        return [
            record
            for record in self.records.values()
            if scope is None or record.get("parent") == scope["id"]
        ]

    def get(self, ident, scope=None):
        record = self.records.get(str(ident))
        if record is None:
            return None
        if scope is not None and record.get("parent") != scope["id"]:
            return None
        return record

    def build(self, attributes, scope=None):
        record = dict(attributes)
        if scope is not None:
            record["parent"] = scope["id"]
        return record

    def save(self, record):
        record.setdefault("id", str(len(self.records) + 1))
        self.records[record["id"]] = record
        return record

    def delete(self, record):
        self.records.pop(record["id"])
        self.deleted.append(record)


class ProfileRepository(MemoryRepository):
    """One profile per user, keyed by user name."""

    def get(self, ident, scope=None):
        return self.records.get(scope)


class PostsController(CollectionResource):
    permitted = ("title", "body")


class CommentsController(NestedResource):
    parent_name = "post"
    widen = True
    actions = ("index", "create", "show", "destroy")


class DeleteConfirmationController(NestedWeakResource):
    parent_name = "post"

    def perform(self, action, record, request):
        record["archived"] = True
        return record


class ProfileController(SingularResource):
    pass


class Policy:
    """Records every call; refuses the actions listed in ``deny``."""

    def __init__(self, *deny):
        self.deny = set(deny)
        self.calls = []

    def __call__(self, action, record, request):
        self.calls.append((action, record, request.user))
        return action not in self.deny


@pytest.fixture
def posts():
    return MemoryRepository({"id": "1", "title": "Hello"}, {"id": "2", "title": "World"})


@pytest.fixture
def comments():
    return MemoryRepository(
        {"id": "10", "parent": "1", "text": "first"},
        {"id": "11", "parent": "2", "text": "other post"},
    )


@pytest.fixture
def policy():
    return Policy()


@pytest.fixture
def dispatcher(posts, comments, policy):
    repositories = {"post": posts, "comment": comments}

    def factory(controller, node):
        parent = node.parent
        return controller(
            repositories[node.target_resource],
            parent_repository=repositories[parent.target_resource] if parent else None,
            policy=policy,
        )

    tree = RoutingTree()
    node = tree.mount(PostsController)
    tree.mount(CommentsController, parent=node)
    tree.mount(DeleteConfirmationController, parent=node)
    return Dispatcher(tree, factory=factory)


class TestCollectionResource:
    def test_index(self, dispatcher):
        titles = [r["title"] for r in dispatcher.node("GET", "/posts")()]
        assert titles == ["Hello", "World"]

    def test_show(self, dispatcher):
        assert dispatcher.node("GET", "/posts/2")()["title"] == "World"

    def test_show_missing_record(self, dispatcher):
        with pytest.raises(NotFound, match="post 99"):
            dispatcher.node("GET", "/posts/99")()

    def test_new_builds_unsaved_record(self, dispatcher, posts):
        record = dispatcher.node("GET", "/posts/new")(attributes={"title": "Draft"})
        assert record == {"title": "Draft"}
        assert len(posts.records) == 2

    def test_create_filters_attributes(self, dispatcher, posts):
        record = dispatcher.node("POST", "/posts")(attributes={"title": "New", "admin": True})
        assert record == {"title": "New", "id": "3"}
        assert posts.records["3"] is record

    def test_update(self, dispatcher, posts):
        dispatcher.node("PATCH", "/posts/1")(attributes={"title": "Changed"})
        assert posts.records["1"]["title"] == "Changed"

    def test_destroy(self, dispatcher, posts):
        dispatcher.node("DELETE", "/posts/1")()
        assert "1" not in posts.records
        assert posts.deleted[0]["title"] == "Hello"


class TestPolicy:
    def test_policy_sees_action_record_and_user(self, dispatcher, policy, posts):
        dispatcher.node("GET", "/posts/1")(user="alice")
        assert policy.calls == [("show", posts.records["1"], "alice")]

    def test_index_is_authorized_without_record(self, dispatcher, policy):
        dispatcher.node("GET", "/posts")()
        assert policy.calls == [("index", None, None)]

    def test_refused_action_does_not_touch_the_record(self, dispatcher, policy, posts):
        policy.deny.add("destroy")
        with pytest.raises(NotAuthorized, match="destroy post"):
            dispatcher.node("DELETE", "/posts/1")()
        assert "1" in posts.records

    def test_controller_without_policy_allows_everything(self, posts):
        controller = PostsController(posts)
        request = ActionRequest(ids={"post": "1"})
        assert controller.dispatch("show", request)["title"] == "Hello"


class TestNestedResource:
    def test_index_is_scoped_to_parent(self, dispatcher):
        records = dispatcher.node("GET", "/posts/1/comments")()
        assert [r["text"] for r in records] == ["first"]

    def test_create_links_parent(self, dispatcher, comments):
        record = dispatcher.node("POST", "/posts/2/comments")(attributes={"text": "hi"})
        assert record["parent"] == "2"
        assert comments.records[record["id"]] is record

    def test_member_lookup_is_scoped(self, dispatcher):
        assert dispatcher.node("GET", "/posts/1/comments/10")()["text"] == "first"
        with pytest.raises(NotFound, match="comment 11"):
            dispatcher.node("GET", "/posts/1/comments/11")()

    def test_missing_parent(self, dispatcher):
        with pytest.raises(NotFound, match="post 7"):
            dispatcher.node("GET", "/posts/7/comments")()

    def test_missing_parent_repository(self, comments):
        controller = CommentsController(comments)
        with pytest.raises(ConfigurationError, match="no parent repository"):
            controller.dispatch("index", ActionRequest(ids={"post": "1"}))


class TestNestedWeakResource:
    def test_new_returns_parent_record(self, dispatcher, posts, policy):
        record = dispatcher.node("GET", "/posts/1/delete_confirmation/new")()
        assert record is posts.records["1"]
        assert policy.calls[0][0] == "delete_confirmation.new"

    def test_create_performs_on_parent(self, dispatcher, posts, policy):
        dispatcher.node("POST", "/posts/2/delete_confirmation")()
        assert posts.records["2"]["archived"] is True
        assert policy.calls == [("delete_confirmation.create", posts.records["2"], None)]

    def test_refused_weak_action(self, dispatcher, policy, posts):
        policy.deny.add("delete_confirmation.create")
        with pytest.raises(NotAuthorized):
            dispatcher.node("POST", "/posts/2/delete_confirmation")()
        assert "archived" not in posts.records["2"]

    def test_perform_is_required(self, posts):
        class ArchiveController(NestedWeakResource):
            parent_name = "post"

        with pytest.raises(TypeError, match="perform"):
            ArchiveController(posts)

    def test_direct_dispatch_qualifies_action(self, posts):
        policy = Policy()
        DeleteConfirmationController(posts, policy=policy).dispatch(
            "new", ActionRequest(ids={"post": "1"})
        )
        assert policy.calls[0][0] == "delete_confirmation.new"


class ConfirmationController(NestedWeakResource):
    def perform(self, action, record, request):
        record["confirmed"] = True
        return record


class TestWeakUnderNestedResource:
    @pytest.fixture
    def deep(self, posts, comments, policy):
        repositories = {"post": posts, "comment": comments}

        def factory(controller, node):
            enclosing = node.parent.parent if node.role is Role.NESTED_WEAK else node.parent
            return controller(
                repositories[node.target_resource],
                parent_repository=repositories[enclosing.target_resource] if enclosing else None,
                policy=policy,
            )

        tree = RoutingTree()
        post = tree.mount(PostsController)
        comment = tree.mount(CommentsController, parent=post)
        tree.mount(ConfirmationController, parent=comment)
        return Dispatcher(tree, factory=factory)

    def test_acts_on_record_within_grandparent(self, deep, comments, policy):
        record = deep.node("POST", "/posts/1/comments/10/confirmation")()
        assert record is comments.records["10"]
        assert record["confirmed"] is True
        assert policy.calls[0][0] == "confirmation.create"

    def test_record_of_another_grandparent_is_not_found(self, deep, comments):
        with pytest.raises(NotFound, match="comment 11"):
            deep.node("GET", "/posts/1/comments/11/confirmation/new")()
        with pytest.raises(NotFound, match="comment 11"):
            deep.node("POST", "/posts/1/comments/11/confirmation")()
        assert "confirmed" not in comments.records["11"]

    def test_missing_grandparent(self, deep):
        with pytest.raises(NotFound, match="post 9"):
            deep.node("GET", "/posts/9/comments/10/confirmation/new")()


class TestSingularResource:
    @pytest.fixture
    def profiles(self):
        return ProfileRepository({"id": "alice", "bio": "hi"})

    @pytest.fixture
    def singular(self, profiles):
        tree = RoutingTree()
        tree.mount(ProfileController)
        return Dispatcher(tree, factory=lambda controller, node: controller(profiles))

    def test_show_uses_current_user(self, singular):
        assert singular.node("GET", "/profile")(user="alice")["bio"] == "hi"

    def test_show_without_record(self, singular):
        with pytest.raises(NotFound):
            singular.node("GET", "/profile")(user="bob")

    def test_no_index_route(self, singular):
        assert [entry.action for entry in singular.routes] == [
            "new",
            "create",
            "show",
            "edit",
            "update",
            "destroy",
        ]


class TestControllerClass:
    def test_node_options(self):
        assert CommentsController.node_options() == {
            "role": CommentsController.role,
            "name": "CommentsController",
            "resource": None,
            "parent_name": "post",
            "actions": ("index", "create", "show", "destroy"),
            "widen": True,
            "segment": None,
        }

    def test_action_markers(self):
        class MarkedController(CollectionResource):
            @action(auth_rule="admin", meta_label="Remove")
            def destroy(self, request):
                return super().destroy(request)

        assert dict(MarkedController.action_markers()) == {
            "destroy": {"auth_rule": "admin", "meta_label": "Remove"}
        }

    def test_stacked_markers_merge(self):
        @action(logging_after=False)
        @action(auth_rule="admin")
        def destroy(self, request):
            return None

        assert destroy._action_decorator_kw == {"auth_rule": "admin", "logging_after": False}

    def test_unknown_action(self, posts):
        with pytest.raises(NotFound):
            PostsController(posts).dispatch("publish", ActionRequest())

    def test_unsupported_role_action(self, posts):
        with pytest.raises(NotFound):
            ProfileController(posts).dispatch("index", ActionRequest())

    def test_missing_repository(self):
        with pytest.raises(ConfigurationError, match="has no repository"):
            PostsController().dispatch("index", ActionRequest())
