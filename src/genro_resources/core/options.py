"""Routing options shared by the tree, the generator and the dispatcher.

``RoutingOptions`` is a frozen pydantic model so options are validated once,
when the tree is created, and can be handed around without copying.

Fields:
    - ``update_verbs``: verbs emitted for ``update`` (default ``("PATCH",)``;
      ``("PATCH", "PUT")`` emits both, PATCH first).
    - ``member_param``: name of the last identifier in a path (default ``id``).
    - ``param_suffix``: suffix of ancestor identifiers (default ``_id``, giving
      ``:post_id``).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

__all__ = ["RoutingOptions", "UPDATE_VERBS"]

UPDATE_VERBS = ("PATCH", "PUT")


class RoutingOptions(BaseModel):
    """Validated, immutable routing options."""

    model_config = ConfigDict(frozen=True)

    update_verbs: tuple[str, ...] = ("PATCH",)
    member_param: str = "id"
    param_suffix: str = "_id"

    @field_validator("update_verbs", mode="before")
    @classmethod
    def _normalize_verbs(cls, value):
        if isinstance(value, str):
            value = value.split(",")
        verbs: list[str] = []
        for verb in value:
            verb = str(verb).strip().upper()
            if verb and verb not in verbs:
                verbs.append(verb)
        return tuple(verbs)

    @field_validator("update_verbs")
    @classmethod
    def _check_verbs(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("update_verbs cannot be empty")
        unknown = [verb for verb in value if verb not in UPDATE_VERBS]
        if unknown:
            raise ValueError(f"Unsupported update verbs: {', '.join(unknown)}")
        return value

    @field_validator("member_param")
    @classmethod
    def _check_param(cls, value: str) -> str:
        if not value.isidentifier():
            raise ValueError(f"member_param must be an identifier, got {value!r}")
        return value
