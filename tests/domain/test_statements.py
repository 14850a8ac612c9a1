from __future__ import annotations

from datetime import UTC, datetime

import pytest

from crowdpoi.domain.model import LiteralKind, ProposalStatus
from crowdpoi.domain.statements import (
    GraphAreas,
    compile_insert_staging,
    compile_list_pending,
    compile_merge_to_canonical,
    compile_status_update,
    escape_string,
    is_local_name,
    mappable_fields,
    render_literal,
)

AREAS = GraphAreas(staging="http://example.org/g/pending", canonical="http://example.org/g/main")


@pytest.mark.parametrize(
    ("value", "kind", "expected"),
    [
        (True, LiteralKind.BOOLEAN, '"true"^^xsd:boolean'),
        (False, LiteralKind.BOOLEAN, '"false"^^xsd:boolean'),
        (120, LiteralKind.INTEGER, '"120"^^xsd:integer'),
        ("low", LiteralKind.ENUM, '"low"'),
        ('say "hi"\n', LiteralKind.STRING, '"say \\"hi\\"\\n"'),
    ],
)
def test_render_literal(value: object, kind: LiteralKind, expected: str) -> None:
    assert render_literal(value, kind) == expected  # type: ignore[arg-type]


def test_escape_string_escapes_backslash_first() -> None:
    assert escape_string('a\\"b') == 'a\\\\\\"b'


def test_is_local_name() -> None:
    assert is_local_name("poi_1")
    assert is_local_name("school-42")
    assert not is_local_name("")
    assert not is_local_name("poi 1")
    assert not is_local_name("poi>1")
    assert not is_local_name("-leading")


def test_mappable_fields_skips_unknown_and_empty_in_vocabulary_order() -> None:
    present = mappable_fields({"notes": "x", "foo": "bar", "telephone": "0123", "email": ""})

    assert [poi_field.value for poi_field, _, _ in present] == ["telephone", "notes"]


def test_compile_insert_staging_links_report_to_target() -> None:
    statement = compile_insert_staging(
        "report_abc",
        "poi_1",
        "alice",
        {"telephone": "0123", "hasWifi": True, "unknown": "ignored"},
        datetime(2025, 1, 2, 3, 4, 5, tzinfo=UTC),
        areas=AREAS,
    )

    assert "INSERT DATA" in statement
    assert f"GRAPH <{AREAS.staging}>" in statement
    assert "ext:report_abc a ext:UpdateReport ;" in statement
    assert "ext:refTarget ex:poi_1 ;" in statement
    assert 'ext:reportedByUserID "alice" ;' in statement
    assert '"2025-01-02T03:04:05+00:00"^^xsd:dateTime' in statement
    assert 'ext:status "pending" .' in statement
    assert 'ext:report_abc schema:telephone "0123" .' in statement
    assert 'ext:report_abc ext:hasWifi "true"^^xsd:boolean .' in statement
    assert "ignored" not in statement
    assert AREAS.canonical not in statement


def test_compile_merge_replaces_only_proposed_predicates() -> None:
    statement = compile_merge_to_canonical(
        "report_abc",
        "poi_1",
        {"telephone": "0123", "capacity": 40},
        areas=AREAS,
    )

    assert "# promote ext:report_abc" in statement
    assert "ex:poi_1 schema:telephone ?old_telephone ." in statement
    assert "ex:poi_1 schema:maximumAttendeeCapacity ?old_capacity ." in statement
    assert "OPTIONAL { ex:poi_1 schema:telephone ?old_telephone . }" in statement
    assert 'ex:poi_1 schema:telephone "0123" .' in statement
    assert 'ex:poi_1 schema:maximumAttendeeCapacity "40"^^xsd:integer .' in statement
    assert "ex:poi_1 a ?type ." in statement
    assert "schema:email" not in statement
    assert AREAS.staging not in statement


def test_compile_status_update_targets_staging_graph() -> None:
    statement = compile_status_update("report_abc", ProposalStatus.APPROVED, areas=AREAS)

    assert 'ext:report_abc ext:status "approved" .' in statement
    assert "ext:report_abc ext:status ?oldStatus ." in statement
    assert AREAS.canonical not in statement


def test_compile_list_pending_filters() -> None:
    statement = compile_list_pending("poi_1", areas=AREAS, limit=10)

    assert statement.lstrip().startswith("PREFIX")
    assert "FILTER(?target = ex:poi_1)" in statement
    assert 'FILTER(?status = "pending")' in statement
    assert "ORDER BY DESC(?timestamp)" in statement
    assert statement.rstrip().endswith("LIMIT 10")

    unfiltered = compile_list_pending(areas=AREAS, status=None)
    assert "FILTER" not in unfiltered
