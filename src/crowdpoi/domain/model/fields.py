"""Fixed vocabulary of correctable POI fields.

Each field maps to exactly one destination predicate in the graph vocabulary and one
literal kind. Names outside this table are carried in proposals (and fingerprints)
but never rendered into graph statements.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Final

from crowdpoi.domain.model.enums import LiteralKind

type FieldValue = str | bool | int | float


class PoiField(StrEnum):
    # contact
    TELEPHONE = "telephone"
    EMAIL = "email"
    WEBSITE = "website"
    # hours
    OPENING_HOURS = "openingHours"
    # amenities
    HAS_WIFI = "hasWifi"
    WHEELCHAIR_ACCESSIBLE = "wheelchairAccessible"
    PARKING = "parking"
    AIR_CONDITIONING = "airConditioning"
    PETS_ALLOWED = "petsAllowed"
    RESERVATION_REQUIRED = "reservationRequired"
    CAPACITY = "capacity"
    # pricing
    PRICE_LEVEL = "priceLevel"
    PAYMENT_METHODS = "paymentMethods"
    # free text
    DESCRIPTION = "description"
    NOTES = "notes"


@dataclass(frozen=True, slots=True)
class FieldSpec:
    predicate: str
    kind: LiteralKind
    choices: frozenset[str] = field(default_factory=frozenset)

    def accepts(self, value: FieldValue) -> bool:
        match self.kind:
            case LiteralKind.BOOLEAN:
                return isinstance(value, bool)
            case LiteralKind.INTEGER:
                return isinstance(value, int) and not isinstance(value, bool)
            case LiteralKind.ENUM:
                return isinstance(value, str) and value in self.choices
            case LiteralKind.STRING:
                return isinstance(value, str)


PRICE_LEVELS: Final[frozenset[str]] = frozenset({"free", "low", "medium", "high"})

FIELD_SCHEMA: Final[Mapping[PoiField, FieldSpec]] = MappingProxyType(
    {
        PoiField.TELEPHONE: FieldSpec("schema:telephone", LiteralKind.STRING),
        PoiField.EMAIL: FieldSpec("schema:email", LiteralKind.STRING),
        PoiField.WEBSITE: FieldSpec("schema:url", LiteralKind.STRING),
        PoiField.OPENING_HOURS: FieldSpec("schema:openingHours", LiteralKind.STRING),
        PoiField.HAS_WIFI: FieldSpec("ext:hasWifi", LiteralKind.BOOLEAN),
        PoiField.WHEELCHAIR_ACCESSIBLE: FieldSpec(
            "schema:wheelchairAccessible", LiteralKind.BOOLEAN
        ),
        PoiField.PARKING: FieldSpec("ext:hasParking", LiteralKind.BOOLEAN),
        PoiField.AIR_CONDITIONING: FieldSpec("ext:hasAirConditioning", LiteralKind.BOOLEAN),
        PoiField.PETS_ALLOWED: FieldSpec("ext:petsAllowed", LiteralKind.BOOLEAN),
        PoiField.RESERVATION_REQUIRED: FieldSpec("ext:reservationRequired", LiteralKind.BOOLEAN),
        PoiField.CAPACITY: FieldSpec("schema:maximumAttendeeCapacity", LiteralKind.INTEGER),
        PoiField.PRICE_LEVEL: FieldSpec("schema:priceRange", LiteralKind.ENUM, PRICE_LEVELS),
        PoiField.PAYMENT_METHODS: FieldSpec("schema:paymentAccepted", LiteralKind.STRING),
        PoiField.DESCRIPTION: FieldSpec("schema:description", LiteralKind.STRING),
        PoiField.NOTES: FieldSpec("rdfs:comment", LiteralKind.STRING),
    }
)


def lookup_field(name: str) -> FieldSpec | None:
    """Return the spec for a vocabulary field name, or ``None`` for unknown names."""

    try:
        return FIELD_SCHEMA[PoiField(name)]
    except ValueError:
        return None


def is_empty(value: object) -> bool:
    return value is None or value == ""
