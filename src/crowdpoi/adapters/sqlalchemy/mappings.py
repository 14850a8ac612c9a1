"""SQLAlchemy mapping metadata for the contribution ledger."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
    text,
)
from sqlalchemy.orm import configure_mappers

from crowdpoi.domain.model import Proposal, ProposalStatus, Vote, VoteType

if TYPE_CHECKING:
    from enum import StrEnum

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]

# Partial index predicate; must stay in sync with the stored ProposalStatus values.
PENDING_PREDICATE = "status = 'pending'"


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _enum_values(enum_cls: type[StrEnum]) -> list[str]:
    return [member.value for member in enum_cls]


def _status_enum() -> Enum:
    return Enum(
        ProposalStatus,
        native_enum=False,
        length=16,
        values_callable=_enum_values,
        name="proposal_status",
    )


def _vote_type_enum() -> Enum:
    return Enum(
        VoteType,
        native_enum=False,
        length=8,
        values_callable=_enum_values,
        name="vote_type",
    )


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

proposal_table = Table(
    "proposal",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("target_id", String(255), nullable=False),
    Column("proposer_user_id", String(100), nullable=False),
    Column("fingerprint", String(32), nullable=False),
    Column("proposed_fields", JSON, nullable=False),
    Column("report_reference", String(64), nullable=False),
    Column("threshold", Integer, nullable=False),
    Column("status", _status_enum(), nullable=False),
    Column("upvotes", Integer, nullable=False, default=1),
    Column("downvotes", Integer, nullable=False, default=0),
    Column("auto_merged", Boolean, nullable=False, default=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=True),
    Column("approved_at", UTCDateTime(), nullable=True),
    Column("rejected_at", UTCDateTime(), nullable=True),
    UniqueConstraint("report_reference", name="uq_proposal_report_reference"),
    Index("ix_proposal_target_status", "target_id", "status"),
    Index("ix_proposal_status_created_at", "status", "created_at"),
    # One pending proposal per (target, fingerprint); approved/rejected rows may repeat.
    Index(
        "uq_proposal_pending_fingerprint",
        "target_id",
        "fingerprint",
        unique=True,
        sqlite_where=text(PENDING_PREDICATE),
        postgresql_where=text(PENDING_PREDICATE),
    ),
)

vote_table = Table(
    "vote",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "proposal_id",
        UUIDColumnType,
        ForeignKey("proposal.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("user_id", String(100), nullable=False),
    Column("vote_type", _vote_type_enum(), nullable=False),
    Column("voter_ip", String(45), nullable=True),
    Column("comment", Text, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    UniqueConstraint("proposal_id", "user_id", name="uq_vote_proposal_user"),
    Index("ix_vote_user_id", "user_id"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the ledger entities."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Proposal, proposal_table)
    mapper_registry.map_imperatively(Vote, vote_table)

    configure_mappers()
    return mapper_registry

