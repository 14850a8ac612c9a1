"""Deterministic content hashes for deduplicating competing proposals."""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING

from crowdpoi.domain.model import is_empty

if TYPE_CHECKING:
    from collections.abc import Mapping

    from crowdpoi.domain.model import FieldValue


def normalize_fields(fields: Mapping[str, FieldValue | None]) -> dict[str, FieldValue]:
    """Drop empty values and order the remaining keys lexicographically."""

    normalized: dict[str, FieldValue] = {}
    for key in sorted(fields):
        value = fields[key]
        if value is None or is_empty(value):
            continue
        normalized[key] = value
    return normalized


def serialize_fields(fields: Mapping[str, FieldValue | None]) -> str:
    return json.dumps(
        normalize_fields(fields),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def fingerprint(target_id: str, fields: Mapping[str, FieldValue | None]) -> str:
    """Return the dedup key for a proposed change.

    Two calls with the same target and the same meaningful values produce the same
    digest regardless of key order or extra ``None``/empty-string entries. MD5 is
    used for its width (128 bits), not for any security property.
    """

    payload = f"{target_id}:{serialize_fields(fields)}"
    return hashlib.md5(payload.encode("utf-8"), usedforsecurity=False).hexdigest()
