"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ProposalStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class VoteType(StrEnum):
    UP = "up"
    DOWN = "down"


class Outcome(StrEnum):
    """Result of a submit/vote request as reported to callers."""

    NEW = "new"
    VOTED = "voted"
    AUTO_MERGED = "auto-merged"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"


class LiteralKind(StrEnum):
    """How a field value is typed when rendered into a graph statement."""

    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    ENUM = "enum"
