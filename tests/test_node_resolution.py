# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Tests for role capabilities and the action-set resolver."""

from __future__ import annotations

import gc

import pytest

from genro_resources import ConfigurationError, Role, resolve_node
from genro_resources.core.node import parse_actions
from genro_resources.core.roles import ACTIONS, capability_for


@pytest.fixture
def posts():
    return resolve_node(Role.COLLECTION, "posts")


class TestRoleDefaults:
    """Each role exposes its default action set when none is declared."""

    def test_collection_exposes_every_action(self):
        node = resolve_node(Role.COLLECTION, "posts")
        assert node.actions == frozenset(ACTIONS)
        assert node.ordered_actions() == ACTIONS

    def test_singular_never_exposes_index(self):
        node = resolve_node(Role.SINGULAR, "profile")
        assert "index" not in node.actions
        assert node.ordered_actions() == ("new", "create", "show", "edit", "update", "destroy")

    def test_nested_defaults_to_collection_actions(self, posts):
        node = resolve_node(Role.NESTED, "comments", parent=posts)
        assert node.ordered_actions() == ("index", "new", "create")

    def test_weak_defaults_to_new_and_create(self, posts):
        node = resolve_node(Role.NESTED_WEAK, "delete_confirmation", parent=posts)
        assert node.ordered_actions() == ("new", "create")

    def test_role_accepts_string_value(self):
        node = resolve_node("collection", "posts")
        assert node.role is Role.COLLECTION

    def test_capability_table_is_inspectable(self):
        assert capability_for(Role.NESTED).allowed(widen=True) == frozenset(ACTIONS)
        assert capability_for("nested_weak").permitted == frozenset({"new", "create", "destroy"})
        assert capability_for(Role.COLLECTION).required == frozenset({"index"})


class TestActionRestrictions:
    def test_singular_with_index_is_rejected(self):
        with pytest.raises(ConfigurationError, match="index not permitted"):
            resolve_node(Role.SINGULAR, "profile", actions=["index", "show"])

    def test_collection_must_keep_index(self):
        with pytest.raises(ConfigurationError, match="must include index"):
            resolve_node(Role.COLLECTION, "posts", actions=["show"])

    def test_collection_subset_with_index(self):
        node = resolve_node(Role.COLLECTION, "posts", actions=["show", "index"])
        assert node.ordered_actions() == ("index", "show")

    def test_nested_member_actions_need_widening(self, posts):
        with pytest.raises(ConfigurationError, match="show not permitted"):
            resolve_node(Role.NESTED, "comments", parent=posts, actions=["index", "show"])

    def test_widened_nested_accepts_member_actions(self, posts):
        node = resolve_node(
            Role.NESTED, "comments", parent=posts, actions=["index", "show"], widen=True
        )
        assert node.widened is True
        assert node.ordered_actions() == ("index", "show")

    def test_only_nested_can_be_widened(self):
        with pytest.raises(ConfigurationError, match="only nested resources"):
            resolve_node(Role.COLLECTION, "posts", widen=True)

    def test_weak_rejects_index(self, posts):
        with pytest.raises(ConfigurationError, match="not permitted"):
            resolve_node(Role.NESTED_WEAK, "delete_confirmation", parent=posts, actions="index")

    def test_weak_may_expose_destroy(self, posts):
        node = resolve_node(
            Role.NESTED_WEAK, "delete_confirmation", parent=posts, actions="new, destroy"
        )
        assert node.ordered_actions() == ("new", "destroy")

    def test_unknown_action(self):
        with pytest.raises(ConfigurationError, match="unknown action"):
            resolve_node(Role.COLLECTION, "posts", actions=["index", "publish"])

    def test_empty_action_set(self, posts):
        with pytest.raises(ConfigurationError, match="no actions"):
            resolve_node(Role.NESTED, "comments", parent=posts, actions=[])


class TestNaming:
    def test_resource_name_derived_from_controller_name(self, posts):
        node = resolve_node(Role.NESTED, "CommentsController", parent=posts)
        assert node.resource_name == "comment"
        assert node.segment == "comments"
        assert node.plural_name == "comments"

    def test_explicit_resource_overrides_name(self, posts):
        node = resolve_node(Role.NESTED, "Comments", parent=posts, resource="remark")
        assert node.resource_name == "remark"
        assert node.segment == "remarks"

    def test_singular_segment_is_not_pluralized(self):
        assert resolve_node(Role.SINGULAR, "profile").segment == "profile"

    def test_weak_segment_is_verbatim(self, posts):
        node = resolve_node(Role.NESTED_WEAK, "delete_confirmation", parent=posts)
        assert node.segment == "delete_confirmation"

    def test_weak_segment_is_not_singularized(self, posts):
        node = resolve_node(Role.NESTED_WEAK, "details", parent=posts)
        assert node.segment == "details"
        assert node.resource_name == "detail"
        assert node.name == "posts.details"

    def test_explicit_segment(self):
        node = resolve_node(Role.COLLECTION, "posts", segment="articles")
        assert node.segment == "articles"
        assert node.resource_name == "post"

    def test_missing_resource_identifier(self):
        with pytest.raises(ConfigurationError, match="missing resource identifier"):
            resolve_node(Role.COLLECTION)

    def test_invalid_resource_name(self):
        with pytest.raises(ConfigurationError, match="invalid resource name"):
            resolve_node(Role.COLLECTION, resource="blog-post")

    @pytest.mark.parametrize("segment", ["", "a/b", ":id"])
    def test_invalid_segment(self, segment):
        with pytest.raises(ConfigurationError, match="invalid path segment"):
            resolve_node(Role.COLLECTION, "posts", segment=segment)

    def test_unknown_role(self):
        with pytest.raises(ConfigurationError, match="unknown role"):
            resolve_node("resourceful", "posts")


class TestParentRelation:
    def test_nested_without_parent_is_rejected(self):
        with pytest.raises(ConfigurationError, match="without a parent"):
            resolve_node(Role.NESTED, "comments")

    def test_weak_without_parent_is_rejected(self):
        with pytest.raises(ConfigurationError, match="without a parent"):
            resolve_node(Role.NESTED_WEAK, "delete_confirmation")

    def test_parent_name_is_enough_for_nested(self):
        node = resolve_node(Role.NESTED, "comments", parent_name="post")
        assert node.parent is None
        assert node.parent_name == "post"

    def test_top_level_role_cannot_have_parent(self, posts):
        with pytest.raises(ConfigurationError, match="cannot be nested"):
            resolve_node(Role.COLLECTION, "tags", parent=posts)

    def test_parent_mismatch(self, posts):
        with pytest.raises(ConfigurationError, match="does not match"):
            resolve_node(Role.NESTED, "comments", parent=posts, parent_name="article")

    def test_parent_sets_parent_name(self, posts):
        node = resolve_node(Role.NESTED, "comments", parent=posts)
        assert node.parent is posts
        assert node.parent_name == "post"
        assert node.name == "posts.comments"
        assert node.lineage == (posts, node)

    @pytest.mark.parametrize("reference", ["posts", "post"])
    def test_declared_parent_reference_is_kept(self, posts, reference):
        node = resolve_node(Role.NESTED, "comments", parent=posts, parent_name=reference)
        assert node.parent is posts
        assert node.parent_name == reference

    def test_resolver_does_not_attach_children(self, posts):
        resolve_node(Role.NESTED, "comments", parent=posts)
        assert posts.children == []

    def test_parent_reference_is_weak(self):
        parent = resolve_node(Role.COLLECTION, "posts")
        child = resolve_node(Role.NESTED, "comments", parent=parent)
        del parent
        gc.collect()
        assert child.parent is None

    def test_weak_target_resource_is_parent_resource(self, posts):
        node = resolve_node(Role.NESTED_WEAK, "delete_confirmation", parent=posts)
        assert node.resource_name == "delete_confirmation"
        assert node.target_resource == "post"


def test_parse_actions():
    assert parse_actions(None) is None
    assert parse_actions("new, create,") == frozenset({"new", "create"})
    assert parse_actions(["show"]) == frozenset({"show"})
