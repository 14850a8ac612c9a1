"""SPARQL statement compiler for staging and promoting proposals.

All functions are pure: they render text from the fixed field vocabulary and never
touch a graph store. Unknown field names and empty values are skipped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC
from logging import getLogger
from typing import TYPE_CHECKING, Final

from crowdpoi.domain.model import (
    FIELD_SCHEMA,
    FieldSpec,
    LiteralKind,
    PoiField,
    ProposalStatus,
    is_empty,
)

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from crowdpoi.domain.model import FieldValue

log = getLogger(__name__)

PREFIXES: Final[str] = """\
PREFIX ex: <http://opendatafithou.org/poi/>
PREFIX ext: <http://opendatafithou.org/ext/>
PREFIX schema: <http://schema.org/>
PREFIX rdfs: <http://www.w3.org/2000/01/rdf-schema#>
PREFIX xsd: <http://www.w3.org/2001/XMLSchema#>"""

LIST_PAGE_SIZE: Final[int] = 100

# Local part of a prefixed name (ex:<target>, ext:<report>).
LOCAL_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_\-]*$")


@dataclass(frozen=True, slots=True)
class GraphAreas:
    """Named graphs holding unmerged reports and the authoritative POI data."""

    staging: str
    canonical: str


def is_local_name(value: str) -> bool:
    return bool(LOCAL_NAME_PATTERN.match(value))


def escape_string(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )


def render_literal(value: FieldValue, kind: LiteralKind) -> str:
    match kind:
        case LiteralKind.BOOLEAN:
            return f'"{"true" if value else "false"}"^^xsd:boolean'
        case LiteralKind.INTEGER:
            return f'"{int(value)}"^^xsd:integer'
        case LiteralKind.STRING | LiteralKind.ENUM:
            return f'"{escape_string(str(value))}"'


def mappable_fields(
    fields: Mapping[str, FieldValue | None],
) -> list[tuple[PoiField, FieldSpec, FieldValue]]:
    """Vocabulary fields present with a non-empty value, in vocabulary order."""

    present: list[tuple[PoiField, FieldSpec, FieldValue]] = []
    for poi_field, spec in FIELD_SCHEMA.items():
        value = fields.get(poi_field.value)
        if value is None or is_empty(value):
            continue
        present.append((poi_field, spec, value))
    return present


def _data_triples(subject: str, fields: Mapping[str, FieldValue | None]) -> list[str]:
    return [
        f"{subject} {spec.predicate} {render_literal(value, spec.kind)} ."
        for _, spec, value in mappable_fields(fields)
    ]


def _indent(lines: list[str], depth: int) -> str:
    pad = "  " * depth
    return "\n".join(f"{pad}{line}" for line in lines)


def compile_insert_staging(
    report_ref: str,
    target: str,
    proposer_user_id: str,
    fields: Mapping[str, FieldValue | None],
    timestamp: datetime,
    *,
    areas: GraphAreas,
) -> str:
    """Create a pending report in the staging graph, linked to its target."""

    reported_at = timestamp.astimezone(UTC).isoformat()
    header = [
        f"ext:{report_ref} a ext:UpdateReport ;",
        f"  ext:refTarget ex:{target} ;",
        f'  ext:reportedByUserID "{escape_string(proposer_user_id)}" ;',
        f'  ext:reportedAt "{reported_at}"^^xsd:dateTime ;',
        f'  ext:status "{ProposalStatus.PENDING}" .',
    ]
    body = header + _data_triples(f"ext:{report_ref}", fields)
    statement = (
        f"{PREFIXES}\n\n"
        "INSERT DATA {\n"
        f"  GRAPH <{areas.staging}> {{\n"
        f"{_indent(body, 2)}\n"
        "  }\n"
        "}\n"
    )
    log.debug("Compiled staging insert for %s: %s", report_ref, statement)
    return statement


def compile_merge_to_canonical(
    report_ref: str,
    target: str,
    fields: Mapping[str, FieldValue | None],
    *,
    areas: GraphAreas,
) -> str:
    """Replace the values of exactly the proposed predicates on a canonical entity.

    Predicates not present in ``fields`` are untouched. The WHERE clause requires the
    target to already be typed in the canonical graph, so an unknown target matches
    nothing and the statement is a no-op. Re-applying the statement is harmless.
    """

    subject = f"ex:{target}"
    present = mappable_fields(fields)
    delete_patterns = [
        f"{subject} {spec.predicate} ?old_{poi_field.value} ." for poi_field, spec, _ in present
    ]
    optional_bindings = [
        f"OPTIONAL {{ {subject} {spec.predicate} ?old_{poi_field.value} . }}"
        for poi_field, spec, _ in present
    ]
    insert_triples = _data_triples(subject, fields)
    where = [f"{subject} a ?type .", *optional_bindings]
    statement = (
        f"{PREFIXES}\n\n"
        f"# promote ext:{report_ref}\n"
        "DELETE {\n"
        f"  GRAPH <{areas.canonical}> {{\n"
        f"{_indent(delete_patterns, 2)}\n"
        "  }\n"
        "}\n"
        "INSERT {\n"
        f"  GRAPH <{areas.canonical}> {{\n"
        f"{_indent(insert_triples, 2)}\n"
        "  }\n"
        "}\n"
        "WHERE {\n"
        f"  GRAPH <{areas.canonical}> {{\n"
        f"{_indent(where, 2)}\n"
        "  }\n"
        "}\n"
    )
    log.debug("Compiled canonical merge for %s: %s", report_ref, statement)
    return statement


def compile_status_update(
    report_ref: str,
    new_status: ProposalStatus,
    *,
    areas: GraphAreas,
) -> str:
    """Replace the status tag of a staged report."""

    subject = f"ext:{report_ref}"
    return (
        f"{PREFIXES}\n\n"
        "DELETE {\n"
        f"  GRAPH <{areas.staging}> {{ {subject} ext:status ?oldStatus . }}\n"
        "}\n"
        "INSERT {\n"
        f'  GRAPH <{areas.staging}> {{ {subject} ext:status "{new_status}" . }}\n'
        "}\n"
        "WHERE {\n"
        f"  GRAPH <{areas.staging}> {{ {subject} ext:status ?oldStatus . }}\n"
        "}\n"
    )


def compile_list_pending(
    target: str | None = None,
    *,
    areas: GraphAreas,
    status: ProposalStatus | None = ProposalStatus.PENDING,
    limit: int = LIST_PAGE_SIZE,
) -> str:
    """Read-only listing of staged reports, newest first."""

    filters: list[str] = []
    if target is not None:
        filters.append(f"FILTER(?target = ex:{target})")
    if status is not None:
        filters.append(f'FILTER(?status = "{status}")')
    pattern = [
        "?report a ext:UpdateReport ;",
        "  ext:refTarget ?target ;",
        "  ext:reportedByUserID ?userId ;",
        "  ext:reportedAt ?timestamp ;",
        "  ext:status ?status .",
        *filters,
    ]
    return (
        f"{PREFIXES}\n\n"
        "SELECT ?report ?target ?userId ?timestamp ?status\n"
        "WHERE {\n"
        f"  GRAPH <{areas.staging}> {{\n"
        f"{_indent(pattern, 2)}\n"
        "  }\n"
        "}\n"
        "ORDER BY DESC(?timestamp)\n"
        f"LIMIT {limit}\n"
    )
