"""Contribution ledger: the single source of truth for proposals and votes.

A ledger wraps the repositories of exactly one unit of work; every call made
through it participates in that unit's transaction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from crowdpoi.domain.model import Proposal, ProposalStatus, Vote, VoteType, new_report_reference

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from crowdpoi.domain.model import FieldValue
    from crowdpoi.domain.ports import ContributionRepositories


class ContributionLedger:
    def __init__(self, repositories: ContributionRepositories) -> None:
        self._proposals = repositories.proposals
        self._votes = repositories.votes

    def get(self, proposal_id: UUID, *, lock: bool = False) -> Proposal | None:
        return self._proposals.get(proposal_id, lock=lock)

    def find_pending_by_target_and_fingerprint(
        self,
        target_id: str,
        fingerprint: str,
    ) -> Proposal | None:
        return self._proposals.find_pending(target_id, fingerprint, lock=True)

    def create_proposal(
        self,
        *,
        target_id: str,
        proposer_user_id: str,
        fields: Mapping[str, FieldValue],
        fingerprint: str,
        threshold: int,
        report_reference: str | None = None,
        voter_ip: str | None = None,
    ) -> Proposal:
        """Create a pending proposal; the proposer's submission is its first upvote.

        ``report_reference`` names the proposal's staged report and is generated when
        omitted.
        """

        proposal = Proposal(
            report_reference=report_reference or new_report_reference(),
            target_id=target_id,
            proposer_user_id=proposer_user_id,
            fingerprint=fingerprint,
            proposed_fields=dict(fields),
            threshold=threshold,
            upvotes=1,
            downvotes=0,
        )
        self._proposals.add(proposal)
        self._votes.add(
            Vote(
                proposal_id=proposal.id,
                user_id=proposer_user_id,
                vote_type=VoteType.UP,
                voter_ip=voter_ip,
            )
        )
        return proposal

    def find_vote(self, proposal_id: UUID, user_id: str) -> Vote | None:
        return self._votes.find(proposal_id, user_id)

    def record_vote(
        self,
        proposal_id: UUID,
        user_id: str,
        vote_type: VoteType,
        *,
        ip: str | None = None,
        comment: str | None = None,
    ) -> Vote:
        vote = Vote(
            proposal_id=proposal_id,
            user_id=user_id,
            vote_type=vote_type,
            voter_ip=ip,
            comment=comment,
        )
        self._votes.add(vote)
        return vote

    def increment_vote_counter(self, proposal: Proposal, vote_type: VoteType) -> None:
        self._proposals.increment(proposal, vote_type)

    def mark_approved(self, proposal: Proposal, *, auto_merged: bool) -> bool:
        """Move a pending proposal to approved.

        Returns ``False`` if a concurrent transaction already decided it; ``proposal``
        then reflects the stored state.
        """

        proposal.approve(auto_merged=auto_merged)
        return self._proposals.save_transition(proposal)

    def mark_rejected(self, proposal: Proposal) -> bool:
        proposal.reject()
        return self._proposals.save_transition(proposal)

    def list_by_filter(
        self,
        *,
        target_id: str | None = None,
        status: ProposalStatus | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Proposal], int]:
        """Page through proposals, newest first; status defaults to pending."""

        return self._proposals.page(
            target_id=target_id,
            status=status or ProposalStatus.PENDING,
            offset=(page - 1) * limit,
            limit=limit,
        )

    def list_votes(self, proposal_id: UUID) -> list[Vote]:
        return self._votes.list_for(proposal_id)
