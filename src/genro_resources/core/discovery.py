"""Directory-derived routing trees.

Mirrors a folder of controller modules into a ``RoutingTree``::

    controllers/
        posts.py                  PostsController(CollectionResource)
        posts/
            comments.py           CommentsController(NestedResource)
            delete_confirmation.py
        profile.py                ProfileController(SingularResource)

- Every ``*.py`` file not starting with ``_`` defines exactly one
  ``ResourceController`` subclass (classes imported from elsewhere are
  ignored).
- A folder named after a module holds the controllers nested under it.
- Files and folders are visited in sorted order, files first, so the tree
  (and the routes) do not depend on filesystem ordering.
- A folder without its module leaves its controllers without a parent:
  ``ConfigurationError``.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Any

from genro_resources.exceptions import ConfigurationError

from .controller import ResourceController
from .node import ControllerNode
from .options import RoutingOptions
from .tree import RoutingTree

__all__ = ["discover_controllers", "load_controller"]

logger = logging.getLogger("genro_resources")


def discover_controllers(
    directory: str | Path,
    options: RoutingOptions | dict[str, Any] | None = None,
    **kwargs: Any,
) -> RoutingTree:
    """Walk ``directory`` and declare one node per controller module.

    Args:
        directory: Root controllers directory.
        options: Routing options for the returned tree.

    Returns:
        An unfrozen ``RoutingTree``.

    Raises:
        FileNotFoundError: ``directory`` does not exist.
        ConfigurationError: A module defines zero or several controllers, or
            a folder has no parent module.
    """
    root = Path(directory).resolve()
    if not root.is_dir():
        raise FileNotFoundError(f"Controllers directory not found: {root}")
    tree = RoutingTree(options, **kwargs)
    _walk_directory(root, root, tree, parent=None)
    return tree


def _walk_directory(
    directory: Path, root: Path, tree: RoutingTree, *, parent: ControllerNode | None
) -> None:
    declared: dict[str, ControllerNode] = {}
    for item in sorted(directory.iterdir()):
        if not item.is_file() or item.suffix != ".py" or item.name.startswith("_"):
            continue
        controller = load_controller(item, root)
        node = tree.mount(controller, parent=parent)
        declared[item.stem] = node
        logger.debug("discovered %s -> %s", item.relative_to(root), node.name)

    for item in sorted(directory.iterdir()):
        if not item.is_dir() or item.name.startswith(("_", ".")):
            continue
        owner = declared.get(item.name)
        if owner is None:
            raise ConfigurationError(
                f"folder {str(item.relative_to(root))!r} has no controller module "
                f"{item.name}.py to nest under",
                node=item.name,
            )
        _walk_directory(item, root, tree, parent=owner)


def load_controller(path: Path, root: Path | None = None) -> type[ResourceController]:
    """Import ``path`` and return the single controller class it defines."""
    module = _load_module(path, root)
    found = [
        value
        for value in vars(module).values()
        if inspect.isclass(value)
        and issubclass(value, ResourceController)
        and value.__module__ == module.__name__
        and value.role is not None
    ]
    if len(found) != 1:
        raise ConfigurationError(
            f"module {path.name} must define exactly one controller, found {len(found)}",
            node=path.stem,
        )
    return found[0]


def _load_module(path: Path, root: Path | None) -> ModuleType:
    relative = path.relative_to(root) if root is not None else Path(path.name)
    module_name = "genro_resources_controllers." + ".".join(relative.with_suffix("").parts)
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ConfigurationError(f"cannot load controller module {path}", node=path.stem)
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        sys.modules.pop(module_name, None)
        raise
    return module
