"""
Document validation, id handling and id generation.

A stored document is the pair (id, body): the id lives only in the file
name, the body is everything else.
"""

from __future__ import annotations

import copy
import os
import random
import string
import time
from collections.abc import Mapping

from .errors import DocumentValidationError

ID_FIELD = "id"

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LENGTH = 9

_random = random.SystemRandom()


def normalize_document(doc: Mapping[str, object]) -> dict[str, object]:
    """
    Ensure the document is a string-keyed mapping, at every depth, and
    return a deep copy.

    The id is left alone here; see `assign_id`.
    """
    if not isinstance(doc, Mapping):
        raise DocumentValidationError("document must be a mapping")

    _check_keys(doc)
    try:
        return copy.deepcopy(dict(doc))
    except (TypeError, copy.Error) as exc:
        raise DocumentValidationError(f"document cannot be copied: {exc}") from exc


def _check_keys(value: object, path: tuple[int, ...] = ()) -> None:
    if not isinstance(value, (Mapping, list, tuple)):
        return
    if id(value) in path:
        raise DocumentValidationError("document contains a circular reference")
    path = path + (id(value),)
    if isinstance(value, Mapping):
        for key, item in value.items():
            if not isinstance(key, str):
                raise DocumentValidationError("document keys must be strings")
            _check_keys(item, path)
    else:
        for item in value:
            _check_keys(item, path)


def generate_id() -> str:
    """
    `<milliseconds since epoch>-<9 random base36 chars>`.

    Practically unique; collisions are not checked.
    """
    millis = time.time_ns() // 1_000_000
    suffix = "".join(_random.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
    return f"{millis}-{suffix}"


def validate_id(doc_id: object) -> str:
    if not isinstance(doc_id, str):
        raise DocumentValidationError(f"document id must be a string, got {type(doc_id).__name__}")
    if not doc_id or doc_id in (".", ".."):
        raise DocumentValidationError(f"invalid document id: {doc_id!r}")
    separators = {"/", "\\", os.sep} | ({os.altsep} if os.altsep else set())
    if any(sep in doc_id for sep in separators) or "\x00" in doc_id:
        raise DocumentValidationError(f"document id must not contain path separators: {doc_id!r}")
    return doc_id


def assign_id(doc: dict[str, object]) -> dict[str, object]:
    """
    Reuse a non-empty caller-supplied id, otherwise generate one.
    """
    doc_id = doc.get(ID_FIELD)
    if doc_id is None or doc_id == "":
        doc[ID_FIELD] = generate_id()
    else:
        doc[ID_FIELD] = validate_id(doc_id)
    return doc


def split_id(doc: Mapping[str, object]) -> tuple[str, dict[str, object]]:
    body = {k: v for k, v in doc.items() if k != ID_FIELD}
    return validate_id(doc.get(ID_FIELD)), body


def join_id(doc_id: str, body: Mapping[str, object]) -> dict[str, object]:
    """Reattach an id to a body; the id always wins over a stray body field."""
    doc = dict(body)
    doc[ID_FIELD] = doc_id
    return doc
