"""Raw field values recovered from the asset store and safe coercion helpers.

A raw record maps field names to loosely typed values. Numeric fields may arrive as
``int`` or ``float`` (the store's int/long and float/double collapse onto these), or
as strings; callers always go through the coercion helpers below instead of
assuming a single representation. Every helper is total and returns ``None`` when a
value cannot be converted.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Sequence, Union

from pydantic import BaseModel, ConfigDict


class AssetRef(BaseModel):
    """Opaque handle to another asset (sprite, texture, prefab, script)."""

    model_config = ConfigDict(frozen=True)

    path_id: int = 0
    file_id: int = 0
    type_name: str = ""
    name: str = ""

    def __str__(self) -> str:
        label = self.name or self.type_name or "asset"
        return f"{label}#{self.file_id}:{self.path_id}"


RawScalar = Union[str, int, float, bool, None]
RawValue = Union[RawScalar, List[Any], Dict[str, Any], AssetRef]
RawRecord = Mapping[str, RawValue]

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


def is_integer_value(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_float_value(value: Any) -> bool:
    return isinstance(value, float)


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def to_int(value: Any) -> int | None:
    """Coerce a raw value to ``int``; floats are rounded to the nearest integer."""
    if is_integer_value(value):
        return value
    if is_float_value(value):
        return round_half_away(value) if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        parsed = to_float(text)
        if parsed is None or not math.isfinite(parsed):
            return None
        return round_half_away(parsed)
    return None


def to_float(value: Any) -> float | None:
    """Coerce a raw value to ``float``."""
    if is_float_value(value):
        return value
    if is_integer_value(value):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return float(text)
        except ValueError:
            return None
    return None


def to_bool(value: Any) -> bool | None:
    """Coerce a raw value to ``bool``."""
    if isinstance(value, bool):
        return value
    if is_integer_value(value):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return None


def to_str(value: Any) -> str | None:
    """Coerce a scalar raw value to ``str``; containers yield ``None``."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float)):
        return str(value)
    if isinstance(value, AssetRef):
        return str(value)
    return None


def is_integral_field(field_name: str, suffixes: Sequence[str]) -> bool:
    return any(field_name.endswith(suffix) for suffix in suffixes)


def coerce_number(
    field_name: str, value: Any, integral_suffixes: Sequence[str] = ("Level", "Count")
) -> int | float | None:
    """Coerce a numeric field according to its semantics.

    Fields whose name ends in one of ``integral_suffixes`` prefer integer-typed values
    and round floats; every other field is treated as continuous and prefers floats.
    """
    if is_integral_field(field_name, integral_suffixes):
        return to_int(value)
    return to_float(value)


def first_text(record: RawRecord, names: Sequence[str]) -> str | None:
    """Return the first non-blank string coercion among ``names``."""
    for name in names:
        text = to_str(record.get(name))
        if text and text.strip():
            return text
    return None


def get_path(record: Any, *path: str) -> Any:
    """Walk nested mappings, returning ``None`` as soon as a step is missing."""
    current = record
    for step in path:
        if not isinstance(current, Mapping) or step not in current:
            return None
        current = current[step]
    return current


def string_list(value: Any) -> List[str]:
    """Flatten a list-like raw value into its non-empty string items."""
    if not isinstance(value, (list, tuple)):
        return []
    items: List[str] = []
    for item in value:
        text = to_str(item)
        if text:
            items.append(text)
    return items


def _is_serializable_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, bool, int, float))


def sanitize_raw_data(record: RawRecord | None) -> Dict[str, Any]:
    """Return a flat, serializable copy of a raw record for diagnostics.

    Scalars are kept as-is, list-like values become lists of scalars (non-scalar items
    stringified) and any other value is stringified.
    """
    if not record:
        return {}

    sanitized: Dict[str, Any] = {}
    for key, value in record.items():
        if _is_serializable_scalar(value):
            sanitized[key] = value
        elif isinstance(value, (list, tuple, set, frozenset)):
            sanitized[key] = [
                item if _is_serializable_scalar(item) else str(item) for item in value
            ]
        else:
            sanitized[key] = str(value)
    return sanitized
