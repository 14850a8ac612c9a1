"""Consensus state machine for crowdsourced POI corrections.

Lifecycle: ``no proposal -> pending -> approved``, with ``pending -> rejected``
reachable only through an explicit :meth:`ConsensusService.reject`. Only upvotes
count towards the threshold; downvotes are recorded but never drive a transition.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from crowdpoi.domain.errors import (
    ConcurrentSubmissionError,
    ContributionError,
    DependencyError,
    DuplicateVoteError,
    ProposalNotFoundError,
    ProposalNotPendingError,
)
from crowdpoi.domain.fingerprint import fingerprint, normalize_fields
from crowdpoi.domain.ledger import ContributionLedger
from crowdpoi.domain.model import Outcome, Proposal, ProposalStatus, VoteType
from crowdpoi.domain.validation import (
    parse_proposal_id,
    parse_status,
    parse_vote_type,
    validate_comment,
    validate_fields,
    validate_page,
    validate_target_id,
    validate_user_id,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from uuid import UUID

    from crowdpoi.domain.graph_merge import GraphMergeCoordinator
    from crowdpoi.domain.model import FieldValue, Vote
    from crowdpoi.domain.ports import ContributionUnitOfWork

log = getLogger(__name__)

DEFAULT_THRESHOLD: Final[int] = 5
DEFAULT_PAGE_SIZE: Final[int] = 20
MAX_PAGE_SIZE: Final[int] = 100

_MESSAGES: Final[dict[Outcome, str]] = {
    Outcome.NEW: "New proposal created",
    Outcome.VOTED: "Your vote has been recorded",
    Outcome.AUTO_MERGED: "Proposal reached the threshold and was merged",
    Outcome.DUPLICATE: "You have already voted on this proposal",
    Outcome.REJECTED: "Proposal rejected",
}


@dataclass(frozen=True, slots=True)
class ConsensusResult:
    """Response envelope for submit, vote and moderation calls."""

    success: bool
    message: str
    outcome: Outcome
    proposal_id: UUID
    current_votes: int
    required_votes: int

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "message": self.message,
            "status": self.outcome.value,
            "contributionId": str(self.proposal_id),
            "currentVotes": self.current_votes,
            "requiredVotes": self.required_votes,
        }


@dataclass(frozen=True, slots=True)
class ProposalPage:
    items: list[Proposal]
    total_count: int
    page: int
    limit: int


class ConsensusService:
    """Entry point for submitting, voting on and listing proposals.

    Each operation runs in one unit of work. Graph writes happen before the commit,
    so a graph store failure rolls the ledger back with it. Anything that is not a
    :class:`ContributionError` is logged and re-raised as :class:`DependencyError`.
    """

    def __init__(
        self,
        *,
        unit_of_work_factory: Callable[[], ContributionUnitOfWork],
        graph_merge: GraphMergeCoordinator,
        threshold: int = DEFAULT_THRESHOLD,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self._uow_factory = unit_of_work_factory
        self._graph = graph_merge
        self._threshold = threshold
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size

    @property
    def threshold(self) -> int:
        return self._threshold

    # Commands -------------------------------------------------------------------

    def submit_or_vote(
        self,
        user_id: str,
        target_id: str,
        fields: Mapping[str, FieldValue | None],
        client_ip: str | None = None,
    ) -> ConsensusResult:
        """Create a proposal for ``(target_id, fields)`` or upvote the matching one.

        A repeated call by the same user is reported with ``success=False`` and
        outcome ``duplicate`` instead of raising.
        """

        user = validate_user_id(user_id)
        target = validate_target_id(target_id)
        normalized = normalize_fields(validate_fields(fields))
        key = fingerprint(target, normalized)
        log.info("User %s submitting update for %s (fingerprint %s)", user, target, key)

        try:
            return self._guarded(
                "submit", lambda: self._submit_once(user, target, normalized, key, client_ip)
            )
        except ConcurrentSubmissionError:
            # Another request created the same pending proposal; it now exists, so the
            # replay becomes a vote.
            log.info("Concurrent submission for %s/%s; retrying as vote", target, key)
            return self._guarded(
                "submit", lambda: self._submit_once(user, target, normalized, key, client_ip)
            )

    def vote(
        self,
        user_id: str,
        proposal_id: UUID | str,
        vote_type: VoteType | str,
        comment: str | None = None,
        client_ip: str | None = None,
    ) -> ConsensusResult:
        """Record an explicit up or down vote on a pending proposal."""

        user = validate_user_id(user_id)
        pid = parse_proposal_id(proposal_id)
        kind = parse_vote_type(vote_type)
        note = validate_comment(comment)
        log.info("User %s voting %s on %s", user, kind, pid)
        return self._guarded("vote", lambda: self._vote_once(user, pid, kind, note, client_ip))

    def promote(self, proposal_id: UUID | str) -> ConsensusResult:
        """Approve a proposal explicitly; a no-op for already-approved proposals."""

        pid = parse_proposal_id(proposal_id)
        return self._guarded("promote", lambda: self._promote_once(pid))

    def reject(self, proposal_id: UUID | str) -> ConsensusResult:
        """Move a pending proposal to ``rejected`` (moderator action)."""

        pid = parse_proposal_id(proposal_id)
        return self._guarded("reject", lambda: self._reject_once(pid))

    # Queries --------------------------------------------------------------------

    def list_pending(
        self,
        target_id: str | None = None,
        status: ProposalStatus | str | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> ProposalPage:
        target = validate_target_id(target_id) if target_id is not None else None
        parsed_status = parse_status(status)
        page, size = validate_page(
            page,
            limit if limit is not None else self._default_page_size,
            max_limit=self._max_page_size,
        )

        def run() -> ProposalPage:
            with self._uow_factory() as uow:
                ledger = ContributionLedger(uow.repositories)
                items, total = ledger.list_by_filter(
                    target_id=target, status=parsed_status, page=page, limit=size
                )
            return ProposalPage(items=items, total_count=total, page=page, limit=size)

        return self._guarded("list", run)

    def get_detail(self, proposal_id: UUID | str) -> Proposal:
        pid = parse_proposal_id(proposal_id)

        def run() -> Proposal:
            with self._uow_factory() as uow:
                proposal = ContributionLedger(uow.repositories).get(pid)
            if proposal is None:
                raise ProposalNotFoundError(f"Proposal {pid} does not exist")
            return proposal

        return self._guarded("detail", run)

    def list_votes(self, proposal_id: UUID | str) -> list[Vote]:
        pid = parse_proposal_id(proposal_id)

        def run() -> list[Vote]:
            with self._uow_factory() as uow:
                ledger = ContributionLedger(uow.repositories)
                if ledger.get(pid) is None:
                    raise ProposalNotFoundError(f"Proposal {pid} does not exist")
                return ledger.list_votes(pid)

        return self._guarded("votes", run)

    # Transactions ---------------------------------------------------------------

    def _submit_once(
        self,
        user_id: str,
        target_id: str,
        fields: dict[str, FieldValue],
        key: str,
        client_ip: str | None,
    ) -> ConsensusResult:
        with self._uow_factory() as uow:
            ledger = ContributionLedger(uow.repositories)
            proposal = ledger.find_pending_by_target_and_fingerprint(target_id, key)

            if proposal is None:
                proposal = ledger.create_proposal(
                    target_id=target_id,
                    proposer_user_id=user_id,
                    fields=fields,
                    fingerprint=key,
                    threshold=self._threshold,
                    voter_ip=client_ip,
                )
                self._graph.stage(proposal)
                outcome = Outcome.NEW
                log.info("Created proposal %s for %s", proposal.id, target_id)
            else:
                duplicate = _result(proposal, Outcome.DUPLICATE, success=False)
                if ledger.find_vote(proposal.id, user_id) is not None:
                    uow.rollback()
                    log.info("User %s already voted on %s", user_id, proposal.id)
                    return duplicate
                try:
                    ledger.record_vote(proposal.id, user_id, VoteType.UP, ip=client_ip)
                except DuplicateVoteError:
                    uow.rollback()
                    log.info("User %s raced a vote on %s", user_id, proposal.id)
                    return duplicate
                ledger.increment_vote_counter(proposal, VoteType.UP)
                outcome = Outcome.VOTED
                log.info("Upvotes %s/%s on %s", proposal.upvotes, proposal.threshold, proposal.id)

            if self._crossed_threshold(ledger, proposal):
                outcome = Outcome.AUTO_MERGED
            uow.commit()
        return _result(proposal, outcome)

    def _vote_once(
        self,
        user_id: str,
        proposal_id: UUID,
        vote_type: VoteType,
        comment: str | None,
        client_ip: str | None,
    ) -> ConsensusResult:
        with self._uow_factory() as uow:
            ledger = ContributionLedger(uow.repositories)
            proposal = ledger.get(proposal_id, lock=True)
            if proposal is None:
                raise ProposalNotFoundError(f"Proposal {proposal_id} does not exist")
            proposal.ensure_pending()
            if ledger.find_vote(proposal.id, user_id) is not None:
                raise DuplicateVoteError

            ledger.record_vote(proposal.id, user_id, vote_type, ip=client_ip, comment=comment)
            ledger.increment_vote_counter(proposal, vote_type)
            outcome = Outcome.VOTED
            if self._crossed_threshold(ledger, proposal):
                outcome = Outcome.AUTO_MERGED
            uow.commit()
        return _result(proposal, outcome)

    def _promote_once(self, proposal_id: UUID) -> ConsensusResult:
        with self._uow_factory() as uow:
            ledger = ContributionLedger(uow.repositories)
            proposal = ledger.get(proposal_id, lock=True)
            if proposal is None:
                raise ProposalNotFoundError(f"Proposal {proposal_id} does not exist")
            if proposal.is_pending and self._approve(ledger, proposal, auto_merged=False):
                uow.commit()
                log.info("Proposal %s approved by moderator", proposal.id)
                return _result(
                    proposal, Outcome.AUTO_MERGED, message="Proposal approved and merged"
                )
        if proposal.status != ProposalStatus.APPROVED:
            raise ProposalNotPendingError(
                f"Proposal {proposal.id} has already been processed ({proposal.status})"
            )
        return _result(proposal, Outcome.AUTO_MERGED, message="Proposal already approved")

    def _reject_once(self, proposal_id: UUID) -> ConsensusResult:
        with self._uow_factory() as uow:
            ledger = ContributionLedger(uow.repositories)
            proposal = ledger.get(proposal_id, lock=True)
            if proposal is None:
                raise ProposalNotFoundError(f"Proposal {proposal_id} does not exist")
            proposal.ensure_pending()
            if not ledger.mark_rejected(proposal):
                raise ProposalNotPendingError(
                    f"Proposal {proposal.id} was processed concurrently ({proposal.status})"
                )
            self._graph.reject(proposal)
            uow.commit()
        log.info("Proposal %s rejected", proposal.id)
        return _result(proposal, Outcome.REJECTED)

    def _crossed_threshold(self, ledger: ContributionLedger, proposal: Proposal) -> bool:
        """Promote inside the caller's unit of work when upvotes reach the threshold."""

        if not (proposal.is_pending and proposal.reached_threshold):
            return False
        log.info("Threshold reached for %s; auto-merging", proposal.id)
        return self._approve(ledger, proposal, auto_merged=True)

    def _approve(
        self, ledger: ContributionLedger, proposal: Proposal, *, auto_merged: bool
    ) -> bool:
        # Claim the ledger row before touching the graph; only the winner merges.
        if not ledger.mark_approved(proposal, auto_merged=auto_merged):
            log.info("Proposal %s was decided concurrently (%s)", proposal.id, proposal.status)
            return False
        self._graph.promote(proposal)
        return True

    def _guarded[T](self, operation: str, func: Callable[[], T]) -> T:
        try:
            return func()
        except ContributionError:
            raise
        except Exception as exc:
            log.exception("Unexpected failure during %s", operation)
            raise DependencyError(f"Could not complete {operation}: {exc}") from exc


def _result(
    proposal: Proposal,
    outcome: Outcome,
    *,
    success: bool = True,
    message: str | None = None,
) -> ConsensusResult:
    return ConsensusResult(
        success=success,
        message=message or _MESSAGES[outcome],
        outcome=outcome,
        proposal_id=proposal.id,
        current_votes=proposal.upvotes,
        required_votes=proposal.threshold,
    )
