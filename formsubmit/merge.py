"""Normalization and merging of field error mappings.

Both sync and async error snapshots are materialized into plain dicts at
the boundary, so merging never needs to know which container a caller
used.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel


def normalize_errors(errors: Any) -> dict[str, Any]:
    """Materialize an error snapshot into a plain dict.

    Args:
        errors: None, any Mapping (including read-only or immutable
            mapping types), or a pydantic model.

    Returns:
        A new dict with the same top-level entries. Nested values are
        kept as-is.

    Raises:
        TypeError: If errors is not a supported mapping shape.
    """
    if errors is None:
        return {}
    if isinstance(errors, BaseModel):
        return errors.model_dump()
    if isinstance(errors, Mapping):
        return dict(errors.items())
    raise TypeError(f"Error snapshot must be a mapping, got {type(errors).__name__}")


def merge_errors(base: Any, override: Any) -> dict[str, Any]:
    """Right-biased shallow merge of two error mappings.

    On key collision the value from ``override`` wins. Neither input is
    mutated.
    """
    merged = normalize_errors(base)
    merged.update(normalize_errors(override))
    return merged
