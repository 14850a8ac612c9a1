from __future__ import annotations

from crowdpoi.domain.fingerprint import fingerprint, normalize_fields, serialize_fields


def test_fingerprint_ignores_key_order() -> None:
    a = fingerprint("poi_1", {"telephone": "0123", "hasWifi": True})
    b = fingerprint("poi_1", {"hasWifi": True, "telephone": "0123"})

    assert a == b
    assert len(a) == 32


def test_fingerprint_ignores_empty_values() -> None:
    base = fingerprint("poi_1", {"telephone": "0123"})

    assert fingerprint("poi_1", {"telephone": "0123", "email": None}) == base
    assert fingerprint("poi_1", {"telephone": "0123", "email": ""}) == base


def test_fingerprint_depends_on_target_and_values() -> None:
    base = fingerprint("poi_1", {"telephone": "0123"})

    assert fingerprint("poi_2", {"telephone": "0123"}) != base
    assert fingerprint("poi_1", {"telephone": "0124"}) != base
    assert fingerprint("poi_1", {"hasWifi": True}) != fingerprint("poi_1", {"hasWifi": "true"})


def test_normalize_fields_sorts_and_drops_empty() -> None:
    normalized = normalize_fields({"website": "https://x.org", "email": "", "capacity": 0})

    assert list(normalized) == ["capacity", "website"]
    assert normalized["capacity"] == 0


def test_serialize_fields_is_compact_and_keeps_unicode() -> None:
    assert serialize_fields({"notes": "Trường học", "hasWifi": False}) == (
        '{"hasWifi":false,"notes":"Trường học"}'
    )
