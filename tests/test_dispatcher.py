"""Tests for the Dispatcher: matching, mounting, handlers and introspection."""

from __future__ import annotations

import pytest

from genro_resources import (
    CollectionResource,
    ConfigurationError,
    Dispatcher,
    MethodNotAllowed,
    NestedResource,
    NotFound,
    RoutingTree,
    action,
    generate,
)
from genro_resources.core.dispatcher import ActionNode


class EchoMixin:
    """Answers every action with what the controller received."""

    def dispatch(self, action, request):
        return {"action": request.action, "ids": request.ids, "user": request.user}


class PostsController(EchoMixin, CollectionResource):
    @action(meta_summary="Remove a post")
    def destroy(self, request):
        return super().destroy(request)


class CommentsController(EchoMixin, NestedResource):
    parent_name = "post"
    widen = True
    actions = ("index", "show")


@pytest.fixture
def tree():
    tree = RoutingTree()
    posts = tree.mount(PostsController)
    tree.mount(CommentsController, parent=posts)
    return tree


@pytest.fixture
def dispatcher(tree):
    return Dispatcher(tree)


class TestMatch:
    def test_collection_route(self, dispatcher):
        found = dispatcher.match("GET", "/posts")
        assert found.entry.name == "posts.index"
        assert found.ids == {}

    def test_new_wins_over_member(self, dispatcher):
        assert dispatcher.match("GET", "/posts/new").entry.action == "new"

    def test_member_route_ids(self, dispatcher):
        found = dispatcher.match("get", "/posts/5/")
        assert found.entry.action == "show"
        assert found.ids == {"post": "5"}

    def test_nested_ids_keyed_by_resource(self, dispatcher):
        found = dispatcher.match("GET", "/posts/5/comments/9")
        assert found.entry.name == "posts.comments.show"
        assert found.ids == {"post": "5", "comment": "9"}

    def test_method_not_allowed(self, dispatcher):
        with pytest.raises(MethodNotAllowed) as excinfo:
            dispatcher.match("DELETE", "/posts")
        assert excinfo.value.allowed == ("GET", "POST")

    def test_not_found(self, dispatcher):
        with pytest.raises(NotFound, match="GET /tags"):
            dispatcher.match("GET", "/tags")


class TestNode:
    def test_callable_node(self, dispatcher):
        node = dispatcher.node("GET", "/posts/5/comments")
        assert node
        assert node(user="alice") == {
            "action": "index",
            "ids": {"post": "5"},
            "user": "alice",
        }

    def test_not_found_node(self, dispatcher):
        node = dispatcher.node("GET", "/missing")
        assert not node
        assert node.error == "not_found"
        with pytest.raises(NotFound):
            node()

    def test_method_not_allowed_node(self, dispatcher):
        node = dispatcher.node("PUT", "/posts/1")
        assert node.error == "method_not_allowed"
        assert node.allowed == ("GET", "PATCH", "DELETE")
        with pytest.raises(MethodNotAllowed):
            node()

    def test_custom_exceptions(self, dispatcher):
        class Missing(Exception):
            pass

        node = dispatcher.node("GET", "/missing", errors={"not_found": Missing})
        with pytest.raises(Missing):
            node()

    def test_repr(self, dispatcher):
        assert repr(dispatcher.node("GET", "/posts")) == "ActionNode('posts.index', ids={})"
        assert isinstance(dispatcher.node("GET", "/x"), ActionNode)


class TestMount:
    def test_mount_registers_in_generation_order(self, dispatcher, tree):
        registered = []
        dispatcher.mount(lambda verb, path, handler: registered.append((verb, path, handler)))
        assert [(verb, path) for verb, path, _ in registered] == [
            (entry.verb, entry.path) for entry in generate(tree)
        ]

    def test_handler_maps_rendered_params(self, dispatcher):
        handlers = {}
        dispatcher.mount(lambda verb, path, handler: handlers.setdefault((verb, path), handler))
        handler = handlers[("GET", "/posts/:post_id/comments/:id")]
        result = handler({"post_id": "3", "id": "7", "format": "json"}, user="bob")
        assert result == {"action": "show", "ids": {"post": "3", "comment": "7"}, "user": "bob"}

    def test_handler_for_entry(self, dispatcher):
        entry = dispatcher.routes[0]
        assert dispatcher.handler(entry)()["action"] == "index"
        assert repr(dispatcher.handler(entry)) == "ActionHandler(GET /posts -> posts.index)"

    def test_one_controller_per_node(self, dispatcher):
        entries = dispatcher.routes
        assert dispatcher.controller_for(entries[0].node) is dispatcher.controller_for(
            entries[1].node
        )

    def test_factory_receives_class_and_node(self, tree):
        seen = []

        def factory(controller, node):
            seen.append((controller.__name__, node.name))
            return controller()

        dispatcher = Dispatcher(tree, factory=factory)
        dispatcher.node("GET", "/posts/1/comments")()
        assert seen == [("CommentsController", "posts.comments")]

    def test_routes_without_controller_are_rejected(self):
        tree = RoutingTree()
        tree.collection("posts")
        with pytest.raises(ConfigurationError, match="route has no controller"):
            Dispatcher(tree)

    def test_dispatcher_from_generated_routes(self, tree):
        dispatcher = Dispatcher(generate(tree))
        assert dispatcher.match("GET", "/posts").entry.name == "posts.index"


class TestDescribe:
    def test_describe_lists_routes_in_order(self, dispatcher):
        described = dispatcher.describe()
        assert [item["name"] for item in described[:2]] == ["posts.index", "posts.new"]
        assert described[-1] == {
            "verb": "GET",
            "path": "/posts/:post_id/comments/:id",
            "name": "posts.comments.show",
            "action": "show",
            "resource": "comment",
            "role": "nested",
            "controller": "CommentsController",
            "metadata": {},
        }

    def test_metadata_from_action_marker(self, dispatcher):
        destroy = next(item for item in dispatcher.describe() if item["action"] == "destroy")
        assert destroy["metadata"] == {"summary": "Remove a post"}

    def test_invalid_marker_key(self):
        class BrokenController(EchoMixin, CollectionResource):
            @action(nounderscore=True)
            def show(self, request):
                return None

        tree = RoutingTree()
        tree.mount(BrokenController)
        with pytest.raises(ConfigurationError, match="invalid action option"):
            Dispatcher(tree)
