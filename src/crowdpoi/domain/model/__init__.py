"""Domain model for crowdsourced POI corrections."""

from __future__ import annotations

from .contribution import Proposal, Vote, new_report_reference
from .entity import Entity, new_id, utcnow
from .enums import LiteralKind, Outcome, ProposalStatus, VoteType
from .fields import (
    FIELD_SCHEMA,
    PRICE_LEVELS,
    FieldSpec,
    FieldValue,
    PoiField,
    is_empty,
    lookup_field,
)

__all__ = [
    "FIELD_SCHEMA",
    "PRICE_LEVELS",
    "Entity",
    "FieldSpec",
    "FieldValue",
    "LiteralKind",
    "Outcome",
    "PoiField",
    "Proposal",
    "ProposalStatus",
    "Vote",
    "VoteType",
    "is_empty",
    "lookup_field",
    "new_id",
    "new_report_reference",
    "utcnow",
]
