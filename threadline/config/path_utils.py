"""Dot-path access to nested config values (used by `threadline config`)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, get_args, get_origin

from pydantic import BaseModel
from pydantic.fields import FieldInfo

from threadline.config.loader import camel_to_snake

if TYPE_CHECKING:
    from threadline.config.schema import Config


def _field_name(model_cls: type[BaseModel], segment: str) -> str | None:
    """Accept both snake_case and camelCase spellings of a field."""
    fields = model_cls.model_fields
    for candidate in (segment, camel_to_snake(segment)):
        if candidate in fields:
            return candidate
    return None


def _resolve(config: BaseModel, path: str) -> tuple[BaseModel, str, FieldInfo]:
    """Return (owning model, field name, field info) for a dot-path.

    Raises ValueError on unknown segments or when traversing a leaf.
    """
    if not path:
        raise ValueError("Empty path")

    segments = path.split(".")
    owner = config
    for depth, segment in enumerate(segments):
        name = _field_name(type(owner), segment)
        if name is None:
            known = ", ".join(type(owner).model_fields)
            raise ValueError(f"Unknown field '{segment}' on {type(owner).__name__}. Available: {known}")

        if depth == len(segments) - 1:
            return owner, name, type(owner).model_fields[name]

        child = getattr(owner, name)
        if not isinstance(child, BaseModel):
            raise ValueError(f"'{'.'.join(segments[:depth + 1])}' is a value, not a section")
        owner = child

    raise ValueError("Empty path")


def get_by_path(config: "Config", path: str) -> Any:
    """Get the value at a dot-path such as ``context.max_context_chars``."""
    owner, name, _ = _resolve(config, path)
    return getattr(owner, name)


def set_by_path(config: "Config", path: str, value: Any) -> None:
    """Set the value at a dot-path, coercing CLI strings to the field type.

    The owning section is re-validated so range and cross-field checks
    (e.g. ``head_ratio + tail_ratio < 1``) still apply.

    Raises:
        ValueError: If the path is invalid or validation fails.
    """
    owner, name, info = _resolve(config, path)
    candidate = owner.model_dump()
    candidate[name] = _coerce(value, info)

    try:
        validated = type(owner).model_validate(candidate)
    except Exception as e:
        raise ValueError(f"Validation failed for '{path}': {e}") from e

    setattr(owner, name, getattr(validated, name))


def _coerce(value: Any, info: FieldInfo) -> Any:
    """Convert a string to the field's scalar type; other values pass through."""
    if not isinstance(value, str):
        return value

    annotation = info.annotation
    args = get_args(annotation)
    if get_origin(annotation) is list:
        return [item.strip() for item in value.split(",") if item.strip()]
    if type(None) in args:
        if value.lower() in ("none", "null", ""):
            return None
        annotation = next(a for a in args if a is not type(None))

    if annotation is bool:
        lowered = value.lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
        raise ValueError(f"Cannot convert '{value}' to bool")
    if annotation is int:
        return int(value)
    if annotation is float:
        return float(value)
    return value


def get_all_paths(model: BaseModel, prefix: str = "") -> dict[str, Any]:
    """Flatten a nested model into {dot_path: value} for all leaf fields."""
    result: dict[str, Any] = {}
    for name in type(model).model_fields:
        path = f"{prefix}.{name}" if prefix else name
        value = getattr(model, name)
        if isinstance(value, BaseModel):
            result.update(get_all_paths(value, path))
        else:
            result[path] = value
    return result
