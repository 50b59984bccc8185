"""
Flat equality matching.

Values are compared structurally but strictly: booleans only equal
booleans, numbers compare by value, mappings ignore key order, and no
other type coercion happens. `canonical_key` produces a hashable form
that agrees with `strict_equal` on string-keyed (JSON) values, so the
reconciler can use set lookups.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping, Sequence

from .document import ID_FIELD

_MISSING = object()


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_sequence(value: object) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def strict_equal(a: object, b: object) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a is b
    if _is_number(a) or _is_number(b):
        return _is_number(a) and _is_number(b) and a == b
    if a is None or b is None:
        return a is None and b is None
    if isinstance(a, str) or isinstance(b, str):
        return isinstance(a, str) and isinstance(b, str) and a == b
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if a.keys() != b.keys():
            return False
        return all(strict_equal(a[k], b[k]) for k in a)
    if _is_sequence(a) and _is_sequence(b):
        if len(a) != len(b):
            return False
        return all(strict_equal(x, y) for x, y in zip(a, b))
    return False


def matches(doc: Mapping[str, object], query: Mapping[str, object] | None) -> bool:
    """
    True iff every field in `query` is present in `doc` with a strictly
    equal value. An empty query matches everything.
    """
    if not query:
        return True
    for field, expected in query.items():
        actual = doc.get(field, _MISSING)
        if actual is _MISSING or not strict_equal(actual, expected):
            return False
    return True


def is_subset_duplicate(candidate: Mapping[str, object], docs: Iterable[Mapping[str, object]]) -> bool:
    """
    True iff some existing document's body agrees with `candidate` on
    every field `candidate` defines. Existing ids are excluded from the
    comparison, so a candidate carrying an `id` never qualifies.
    """
    for existing in docs:
        body = {k: v for k, v in existing.items() if k != ID_FIELD}
        if matches(body, candidate):
            return True
    return False


def canonical_key(value: object) -> Hashable:
    if isinstance(value, bool):
        return ("bool", value)
    if _is_number(value):
        return ("num", value)
    if value is None:
        return ("null",)
    if isinstance(value, str):
        return ("str", value)
    if isinstance(value, Mapping):
        return ("map", tuple(sorted((k, canonical_key(v)) for k, v in value.items())))
    if _is_sequence(value):
        return ("seq", tuple(canonical_key(v) for v in value))
    # Not JSON-compatible; fall back to identity so it never collides.
    return ("obj", id(value))


def body_key(doc: Mapping[str, object]) -> Hashable:
    """Canonical key of a document's body, ignoring its id."""
    return canonical_key({k: v for k, v in doc.items() if k != ID_FIELD})
