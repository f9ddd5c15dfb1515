from __future__ import annotations
from genro_resources import (
    CollectionResource,
    Dispatcher,
    NestedResource,
    NestedWeakResource,
    Repository,
    RoutingTree,
)
from genro_resources.exceptions import NotAuthorized


class DictRepository(Repository):
    def __init__(self, **records):
        self.records = records

    def all(self, scope=None):
        if scope is None:
            return list(self.records.values())
        return [r for r in self.records.values() if r.get("post") == scope["id"]]

    def get(self, ident, scope=None):
        return self.records.get(ident)

    def build(self, attributes, scope=None):
        record = dict(attributes)
        if scope is not None:
            record["post"] = scope["id"]
        return record

    def save(self, record):
        record.setdefault("id", str(len(self.records) + 1))
        self.records[record["id"]] = record
        return record

    def delete(self, record):
        self.records.pop(record["id"], None)


class CommentsController(NestedResource):
    parent_name = "post"


class DeleteConfirmationController(NestedWeakResource):
    def perform(self, action, record, request):
        self.repository.delete(record)
        return {"deleted": record["id"]}


class PostsController(CollectionResource):
    permitted = ("title",)
    nested = (CommentsController, DeleteConfirmationController)


def only_authors(action, record, request):
    """Policy: everybody reads, only the author changes things."""
    if action in ("index", "show", "new", "delete_confirmation.new"):
        return True
    return record is not None and record.get("author") == request.user


if __name__ == "__main__":
    posts = DictRepository(**{"1": {"id": "1", "title": "Hello", "author": "ann"}})
    comments = DictRepository()
    repositories = {"post": posts, "comment": comments}

    def factory(controller, node):
        parent = node.parent
        return controller(
            repositories[node.target_resource],
            parent_repository=repositories[parent.target_resource] if parent else None,
            policy=only_authors,
        )

    tree = RoutingTree.from_controllers([PostsController])
    dispatcher = Dispatcher(tree, factory=factory).plug("logging", print=True)

    print("--- Route table ---")
    for item in dispatcher.describe():
        print(f"{item['verb']:6} {item['path']:40} {item['name']}")

    print("\n--- Nested create ---")
    created = dispatcher.node("POST", "/posts/1/comments")(
        attributes={"text": "Nice post", "author": "bob"}, user="bob"
    )
    print(f"Result: {created}")
    print(f"Comments of post 1: {dispatcher.node('GET', '/posts/1/comments')()}")

    print("\n--- Weak resource, wrong user ---")
    try:
        dispatcher.node("POST", "/posts/1/delete_confirmation")(user="bob")
    except NotAuthorized:
        print("Caught expected: NotAuthorized (403)")

    print("\n--- Weak resource, author ---")
    print(f"Result: {dispatcher.node('POST', '/posts/1/delete_confirmation')(user='ann')}")
