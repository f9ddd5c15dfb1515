from __future__ import annotations
from genro_resources import CollectionResource, Dispatcher, RoutingTree, SingularResource, action
from genro_resources.exceptions import NotAuthenticated, NotAuthorized


class ReportsController(CollectionResource):
    actions = ("index", "show", "destroy")

    def dispatch(self, action, request):
        # No repository here: answer with what would run
        return {"action": action, "ids": request.ids}

    # Only admins may remove reports
    @action(auth_rule="admin")
    def destroy(self, request):
        return super().destroy(request)


class SettingsController(SingularResource):
    resource_name = "settings"
    actions = ("show", "update")

    def dispatch(self, action, request):
        return {"settings": action}


if __name__ == "__main__":
    tree = RoutingTree.from_controllers([ReportsController, SettingsController])
    dispatcher = Dispatcher(tree).plug("auth")
    # Rules can also be set from configuration, per route name
    dispatcher.configure("auth", _target="settings.update", rule="admin|owner")

    print("--- 1. Public route ---")
    print(f"Result: {dispatcher.node('GET', '/reports/7')()}")

    print("\n--- 2. Admin route WITHOUT tags ---")
    try:
        dispatcher.node("DELETE", "/reports/7")()
    except NotAuthenticated:
        print("Caught expected: NotAuthenticated (401)")

    print("\n--- 3. Admin route WITH 'user' tag ---")
    try:
        dispatcher.node("DELETE", "/reports/7", auth_tags="user")()
    except NotAuthorized:
        print("Caught expected: NotAuthorized (403)")

    print("\n--- 4. Configured rule WITH 'owner' tag ---")
    print(f"Result: {dispatcher.node('PATCH', '/settings', auth_tags='owner')()}")

    print("\n--- 5. Routes visible to a 'user' ---")
    for item in dispatcher.describe(auth_tags="user"):
        print(f"{item['verb']:6} {item['path']}")
