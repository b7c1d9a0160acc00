"""Structural diff over nested JSON-like records.

The diff is flat: every change is reported under the dotted path of the leaf
that changed.  Mappings are walked key by key; lists are compared as whole
values and never walked element by element.

List equality is deep value equality as JSON would see it, except that
objects inside lists must also agree on key order: two lists holding objects
with the same pairs in a different key order are reported as different.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from typing import Any

from ordertrack.models.history import MISSING, Diff, DiffEntry, Record


def diff(old: Record | None, new: Record | None) -> Diff:
    """Return every leaf-level change between *old* and *new*.

    ``None`` on either side is treated as an empty record.  Values are never
    coerced: ``"1"`` and ``1`` differ, as do ``True`` and ``1``.
    """
    changes: Diff = {}
    _walk(old or {}, new or {}, "", changes)
    return changes


def _walk(old: dict[str, Any], new: dict[str, Any], path: str, changes: Diff) -> None:
    # union of keys, old side first
    keys = list(old)
    keys.extend(key for key in new if key not in old)

    for key in keys:
        current_path = f"{path}.{key}" if path else key
        old_val = old.get(key, MISSING)
        new_val = new.get(key, MISSING)

        if _identical(old_val, new_val):
            continue

        if _is_mapping(old_val) and _is_mapping(new_val):
            _walk(old_val, new_val, current_path, changes)
        elif isinstance(old_val, list) and isinstance(new_val, list):
            if not _lists_equal(old_val, new_val):
                changes[current_path] = DiffEntry(old=old_val, new=new_val)
        else:
            # primitives, nulls, missing keys and type mismatches
            changes[current_path] = DiffEntry(old=old_val, new=new_val)


def _is_mapping(value: Any) -> bool:
    return isinstance(value, dict)


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _identical(a: Any, b: Any) -> bool:
    """Strict identity: same object, or the same primitive without coercion.

    Follows same-value semantics for numbers: NaN equals NaN, and ``0`` and
    ``-0.0`` differ.
    """
    if a is b:
        return True
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if _is_number(a) and _is_number(b):
        if isinstance(a, float) and isinstance(b, float) and math.isnan(a) and math.isnan(b):
            return True
        if a == 0 and b == 0:
            return math.copysign(1.0, a) == math.copysign(1.0, b)
        return a == b
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    return False


def _lists_equal(a: list[Any], b: list[Any]) -> bool:
    return len(a) == len(b) and all(_json_equal(x, y) for x, y in zip(a, b, strict=True))


def _json_equal(a: Any, b: Any) -> bool:
    """Deep equality of values as they would serialise to JSON.

    Mappings must hold the same keys in the same order.  Numbers compare by
    value, so ``1`` equals ``1.0`` and ``0`` equals ``-0.0``.
    """
    if _is_mapping(a) and _is_mapping(b):
        return list(a) == list(b) and all(_json_equal(a[key], b[key]) for key in a)
    if isinstance(a, list) and isinstance(b, list):
        return _lists_equal(a, b)
    if _is_number(a) and _is_number(b):
        return a == b or (isinstance(a, float) and isinstance(b, float) and math.isnan(a) and math.isnan(b))
    return _identical(a, b)


def diff_by_key(
    old_records: Iterable[Record],
    new_records: Iterable[Record],
    key_fn: Callable[[Record], str],
) -> dict[str, Diff]:
    """Diff two record collections matched by entity key.

    Records present on only one side are skipped; entities whose diff is
    empty are omitted from the result.
    """
    new_by_key = {key_fn(record): record for record in new_records}
    result: dict[str, Diff] = {}
    for old_record in old_records:
        key = key_fn(old_record)
        new_record = new_by_key.get(key)
        if new_record is None:
            continue
        changes = diff(old_record, new_record)
        if changes:
            result[key] = changes
    return result
