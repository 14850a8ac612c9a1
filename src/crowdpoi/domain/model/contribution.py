"""Proposals and votes: the two entities owned by the contribution ledger."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from crowdpoi.domain.errors import ProposalNotPendingError
from crowdpoi.domain.model.entity import Entity, utcnow
from crowdpoi.domain.model.enums import ProposalStatus, VoteType

if TYPE_CHECKING:
    from datetime import datetime

    from crowdpoi.domain.model.fields import FieldValue


def new_report_reference() -> str:
    """Opaque staging-area identifier for a proposal's graph representation."""

    return f"report_{uuid4().hex}"


@dataclass(eq=False, kw_only=True)
class Proposal(Entity):
    """A candidate change to one POI, tracked until approved or rejected."""

    target_id: str
    proposer_user_id: str
    fingerprint: str
    proposed_fields: dict[str, FieldValue]
    report_reference: str = field(default_factory=new_report_reference)
    # Copied from configuration at creation; later threshold changes never apply.
    threshold: int
    status: ProposalStatus = ProposalStatus.PENDING
    upvotes: int = 1
    downvotes: int = 0
    auto_merged: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == ProposalStatus.PENDING

    @property
    def reached_threshold(self) -> bool:
        return self.upvotes >= self.threshold

    def ensure_pending(self) -> None:
        if not self.is_pending:
            raise ProposalNotPendingError(
                f"Proposal {self.id} has already been processed ({self.status})"
            )

    def approve(self, *, auto_merged: bool, at: datetime | None = None) -> None:
        self.ensure_pending()
        moment = at or utcnow()
        self.status = ProposalStatus.APPROVED
        self.auto_merged = auto_merged
        self.approved_at = moment
        self.updated_at = moment

    def reject(self, *, at: datetime | None = None) -> None:
        self.ensure_pending()
        moment = at or utcnow()
        self.status = ProposalStatus.REJECTED
        self.rejected_at = moment
        self.updated_at = moment


@dataclass(eq=False, kw_only=True)
class Vote(Entity):
    """One user's vote on one proposal. Created once, never mutated."""

    proposal_id: UUID
    user_id: str
    vote_type: VoteType
    voter_ip: str | None = None
    comment: str | None = None
    created_at: datetime = field(default_factory=utcnow)
