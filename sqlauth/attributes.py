"""
sqlauth/attributes.py -- Fold a result set into a multi-valued attribute map.

A query may return several rows for one identity (e.g. one row per group
membership). Every column becomes an attribute; values from all rows are
collected under it, NULLs skipped, duplicates dropped, first-seen order kept
for both names and values.

Nothing is filtered by name. If the query selects the password column, it
comes out as an attribute like any other -- keep sensitive columns out of
the SELECT list.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from sqlauth.models import AttributeMap


def to_attribute_value(value: Any) -> str:
    """Render a column value as its canonical string form.

    bytes decode as UTF-8, True as "1" and False as the empty string,
    everything else via str().
    """
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def reduce_rows(rows: Iterable[Mapping[str, Any]]) -> AttributeMap:
    """Collapse rows into {column: [distinct string values]}.

    Deterministic: the same row sequence always yields the same map, key
    order and per-key value order included.
    """
    attributes: AttributeMap = {}
    for row in rows:
        for name, value in row.items():
            if value is None:
                continue
            value = to_attribute_value(value)
            values = attributes.setdefault(name, [])
            if value not in values:
                values.append(value)
    return attributes
