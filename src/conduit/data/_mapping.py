"""Row-to-dataclass mapping with type coercion.

Converts raw database rows (dicts) into typed frozen dataclasses.
Uses dataclass field introspection — no metaclass magic, no descriptors.

Fields annotated as ``int`` coerce string values like ``"45"`` to ``45``,
and empty strings to ``0``; SQLite is loose about column affinity, the
dataclass is not.
"""

import dataclasses
import types
import typing
from typing import Any, TypeVar, get_args, get_origin

T = TypeVar("T")

_COERCIBLE: dict[type, Any] = {
    int: lambda v: int(v) if v != "" else 0,
    float: lambda v: float(v) if v != "" else 0.0,
    bool: lambda v: bool(int(v)) if isinstance(v, str) else bool(v),
    str: str,
}


def _build_coercion_map(cls: type) -> dict[str, type | None]:
    """Build a {field_name: target_type} map for coercible fields.

    Returns ``None`` for fields that don't need coercion (complex types,
    generics, etc.). Annotations are resolved with ``get_type_hints`` so
    modules using postponed evaluation work too.
    """
    hints = typing.get_type_hints(cls)
    result: dict[str, type | None] = {}
    for f in dataclasses.fields(cls):
        annotation = hints.get(f.name, f.type)
        # Unwrap Optional (X | None) — coerce to the non-None branch
        origin = get_origin(annotation)
        if origin is types.UnionType or origin is typing.Union:
            args = [a for a in get_args(annotation) if a is not type(None)]
            annotation = args[0] if len(args) == 1 else None
        result[f.name] = annotation if annotation in _COERCIBLE else None
    return result


def _coerce(value: Any, target: type | None) -> Any:
    if target is None or value is None or isinstance(value, target):
        return value
    return _COERCIBLE[target](value)


def map_rows(cls: type[T], rows: list[dict[str, Any]]) -> list[T]:
    """Map dict rows to frozen dataclass instances.

    Extra columns are ignored; missing required fields raise ``TypeError``.
    """
    if not dataclasses.is_dataclass(cls):
        msg = f"{cls.__name__} is not a dataclass — conduit.data requires dataclasses"
        raise TypeError(msg)

    coercion = _build_coercion_map(cls)
    return [
        cls(**{k: _coerce(v, coercion[k]) for k, v in row.items() if k in coercion})
        for row in rows
    ]
