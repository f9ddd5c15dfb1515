"""Naming conventions for resource controllers.

Pure string helpers used to derive resource names from controller names.
Nothing here inspects classes: callers pass the name they want inflected,
so every rule can be exercised in isolation and overridden by passing an
explicit ``resource_name`` to the controller or declaration.

``pluralize(word)`` / ``singularize(word)``
    English inflection with an irregular table and a set of uncountable
    words. Underscored words inflect their last part only.

``underscore(name)``
    ``DeleteConfirmation`` -> ``delete_confirmation``.

``resource_name_for(controller_name)``
    ``CommentsController`` -> ``comment``.
"""

from __future__ import annotations

import re

__all__ = ["pluralize", "singularize", "underscore", "segment_name_for", "resource_name_for"]

_IRREGULAR: dict[str, str] = {
    "person": "people",
    "man": "men",
    "woman": "women",
    "child": "children",
    "mouse": "mice",
    "goose": "geese",
    "tooth": "teeth",
    "foot": "feet",
    "ox": "oxen",
}
_IRREGULAR_PLURALS: dict[str, str] = {plural: singular for singular, plural in _IRREGULAR.items()}

_UNCOUNTABLE = frozenset(
    {
        "equipment",
        "information",
        "rice",
        "money",
        "species",
        "series",
        "fish",
        "sheep",
        "news",
        "metadata",
        "feedback",
    }
)

# (pattern, replacement) applied first match wins
_PLURAL_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(quiz)$"), r"\1zes"),
    (re.compile(r"(matr|vert|ind)(?:ix|ex)$"), r"\1ices"),
    (re.compile(r"(x|ch|ss|sh|zz)$"), r"\1es"),
    (re.compile(r"([^aeiouy]|qu)y$"), r"\1ies"),
    (re.compile(r"(?:([^f])fe|([lr])f)$"), r"\1\2ves"),
    (re.compile(r"sis$"), "ses"),
    (re.compile(r"([ti])um$"), r"\1a"),
    (re.compile(r"(buffal|tomat|potat|her)o$"), r"\1oes"),
    (re.compile(r"(alias|status|bus)$"), r"\1es"),
    (re.compile(r"s$"), "s"),
    (re.compile(r"$"), "s"),
]

_SINGULAR_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(quiz)zes$"), r"\1"),
    (re.compile(r"(matr)ices$"), r"\1ix"),
    (re.compile(r"(vert|ind)ices$"), r"\1ex"),
    (re.compile(r"(alias|status|bus)es$"), r"\1"),
    (re.compile(r"(buffal|tomat|potat|her)oes$"), r"\1o"),
    (re.compile(r"(x|ch|ss|sh|zz)es$"), r"\1"),
    (re.compile(r"([^aeiouy]|qu)ies$"), r"\1y"),
    (re.compile(r"([lr])ves$"), r"\1f"),
    (re.compile(r"([^f])ves$"), r"\1fe"),
    (re.compile(r"(analy|ba|diagno|parenthe|progno|synop|the)ses$"), r"\1sis"),
    (re.compile(r"([ti])a$"), r"\1um"),
    (re.compile(r"(ss|us)$"), r"\1"),
    (re.compile(r"s$"), ""),
]

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def _split_last(word: str) -> tuple[str, str]:
    head, sep, last = word.rpartition("_")
    return head + sep, last


def _inflect(word: str, irregular: dict[str, str], rules: list[tuple[re.Pattern[str], str]]) -> str:
    if not word:
        return word
    head, last = _split_last(word)
    lowered = last.lower()
    if lowered in _UNCOUNTABLE:
        return word
    if lowered in irregular:
        replacement = irregular[lowered]
        if last[:1].isupper():
            replacement = replacement.capitalize()
        return head + replacement
    for pattern, replacement in rules:
        if pattern.search(last):
            return head + pattern.sub(replacement, last, count=1)
    return word


def pluralize(word: str) -> str:
    """Return the plural form of ``word`` (``comment`` -> ``comments``)."""
    if word.lower() in _IRREGULAR_PLURALS.keys() - _IRREGULAR.keys():
        return word
    return _inflect(word, _IRREGULAR, _PLURAL_RULES)


def singularize(word: str) -> str:
    """Return the singular form of ``word`` (``categories`` -> ``category``)."""
    _, last = _split_last(word)
    if last.lower() in _IRREGULAR:
        return word
    return _inflect(word, _IRREGULAR_PLURALS, _SINGULAR_RULES)


def underscore(name: str) -> str:
    """Convert a CamelCase identifier to snake_case."""
    return _CAMEL_BOUNDARY.sub("_", name).replace("-", "_").lower()


def segment_name_for(controller_name: str, *, suffix: str = "Controller") -> str:
    """Strip ``suffix`` and underscore ``controller_name``, keeping its number."""
    name = controller_name.strip()
    if suffix and name.endswith(suffix) and name != suffix:
        name = name[: -len(suffix)]
    return underscore(name)


def resource_name_for(controller_name: str, *, suffix: str = "Controller") -> str:
    """Derive the singular resource name from a controller name.

    Args:
        controller_name: Class or module name (``CommentsController``,
            ``Comments``, ``comments``).
        suffix: Trailing marker stripped before inflection.

    Returns:
        The singular, underscored resource name (``comment``).
    """
    return singularize(segment_name_for(controller_name, suffix=suffix))
