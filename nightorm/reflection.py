"""Column mapping for dataclass models.

A model is a dataclass. Each field maps to a column named by the ``db``
entry of its metadata (``field(metadata={"db": "id,primary"})``); the part
before the first comma is the column name, ``"-"`` excludes the field, and a
field without a tag maps to its lower-cased name. Fields whose names start
with an underscore are private and never mapped.
"""

from __future__ import annotations

import dataclasses
import types
import typing
from typing import Any, Union

TAG = "db"

_UNION_TYPES: tuple[Any, ...] = (Union, types.UnionType)
_NUMERIC = (int, float)
_BUILTIN_TYPES: dict[str, type] = {
    "int": int,
    "float": float,
    "bool": bool,
    "str": str,
    "bytes": bytes,
    "bytearray": bytearray,
    "complex": complex,
    "list": list,
    "dict": dict,
    "tuple": tuple,
    "set": set,
    "frozenset": frozenset,
    "object": object,
}


class ReflectionError(ValueError):
    """Raised when a model cannot be inspected or modified as requested."""


def _require_instance(obj: Any) -> None:
    if obj is None:
        raise ReflectionError("object cannot be None")
    if not dataclasses.is_dataclass(obj) or isinstance(obj, type):
        raise ReflectionError("object must be a dataclass instance")


def _tag(f: dataclasses.Field, tag_name: str = TAG) -> str:
    return str(f.metadata.get(tag_name, ""))


def _column_for(f: dataclasses.Field) -> str | None:
    tag = _tag(f)
    if tag == "-":
        return None
    return tag.split(",")[0] or f.name.lower()


def _is_private(f: dataclasses.Field) -> bool:
    return f.name.startswith("_")


def _resolve(annotation: Any) -> Any:
    """Turn a field annotation into a type; unknown string annotations give None."""
    if not isinstance(annotation, str):
        return annotation
    text = annotation.strip()
    if text.startswith("Optional[") and text.endswith("]"):
        parts = [text[len("Optional["):-1].strip(), "None"]
    else:
        parts = [part.strip() for part in text.split("|")]
    resolved: list[Any] = []
    for part in parts:
        if part == "None":
            resolved.append(type(None))
            continue
        found = _BUILTIN_TYPES.get(part.split("[", 1)[0].strip())
        if found is None:
            return None
        resolved.append(found)
    if len(resolved) == 1:
        return resolved[0]
    return Union[tuple(resolved)]


def _field_hints(cls: Any) -> dict[str, Any]:
    """Map each dataclass field name to its resolved type, where known."""
    return {f.name: _resolve(f.type) for f in dataclasses.fields(cls)}


def _matches(value: Any, hint: Any) -> bool:
    if hint is type(None):
        return value is None
    origin = typing.get_origin(hint) or hint
    return isinstance(origin, type) and isinstance(value, origin)


def _coerce(value: Any, hint: Any) -> Any:
    if hint is None or hint is Any:
        return value
    if typing.get_origin(hint) in _UNION_TYPES:
        members = typing.get_args(hint)
        if any(_matches(value, member) for member in members):
            return value
        for member in members:
            if member is type(None):
                continue
            try:
                return _coerce(value, member)
            except ReflectionError:
                continue
        raise ReflectionError("value type is incompatible with the field type")
    target = typing.get_origin(hint) or hint
    if not isinstance(target, type):
        return value
    if isinstance(value, target):
        return value
    if target in _NUMERIC and isinstance(value, _NUMERIC) and not isinstance(value, bool):
        return target(value)
    if target is str and isinstance(value, (bytes, bytearray)):
        return bytes(value).decode()
    if target is bytes and isinstance(value, str):
        return value.encode()
    raise ReflectionError("value type is incompatible with the field type")


def get_struct_fields(obj: Any) -> dict[str, Any]:
    """Return the mapped columns of a model instance with their current values."""
    _require_instance(obj)
    fields: dict[str, Any] = {}
    for f in dataclasses.fields(obj):
        if _is_private(f):
            continue
        column = _column_for(f)
        if column is None:
            continue
        fields[column] = getattr(obj, f.name)
    return fields


def set_struct_field(obj: Any, field_name: str, value: Any) -> None:
    """Set the field mapped to column ``field_name``, converting numbers where needed."""
    _require_instance(obj)
    frozen = obj.__dataclass_params__.frozen
    hints = _field_hints(type(obj))
    for f in dataclasses.fields(obj):
        if _column_for(f) != field_name:
            continue
        if frozen or _is_private(f):
            raise ReflectionError("field cannot be set")
        setattr(obj, f.name, _coerce(value, hints.get(f.name)))
        return
    raise ReflectionError(f"field not found: {field_name}")


def get_tag_name(struct_type: Any, field_name: str, tag_name: str) -> str:
    """Return the name part of a field's tag, or an empty string."""
    if not dataclasses.is_dataclass(struct_type):
        return ""
    for f in dataclasses.fields(struct_type):
        if f.name == field_name:
            return _tag(f, tag_name).split(",")[0]
    return ""


def get_primary_key_field(obj: Any) -> tuple[str, Any]:
    """Return the primary-key column and its value.

    A field tagged with ``,primary`` wins; otherwise a field named ``id``
    in any case is used.
    """
    _require_instance(obj)
    fields = dataclasses.fields(obj)
    for f in fields:
        tag = _tag(f)
        if ",primary" in tag:
            column = tag.split(",")[0] or f.name.lower()
            return column, getattr(obj, f.name)
    for f in fields:
        if f.name.lower() == "id":
            column = _tag(f).split(",")[0]
            if column in ("", "-"):
                column = "id"
            return column, getattr(obj, f.name)
    raise ReflectionError("primary key not found")