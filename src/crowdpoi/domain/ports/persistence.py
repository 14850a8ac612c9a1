"""Ports for persisting ledger entities."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from crowdpoi.domain.model import Proposal, ProposalStatus, Vote, VoteType

if TYPE_CHECKING:
    from uuid import UUID


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class ProposalRepository(Repository[Proposal], Protocol):
    """Persistence contract for proposals."""

    def get(self, proposal_id: UUID, *, lock: bool = False) -> Proposal | None: ...

    def find_pending(
        self,
        target_id: str,
        fingerprint: str,
        *,
        lock: bool = False,
    ) -> Proposal | None: ...

    def increment(self, proposal: Proposal, vote_type: VoteType) -> None: ...

    def save_transition(self, proposal: Proposal) -> bool:
        """Store a status change if the proposal is still pending; report success."""
        ...

    def page(
        self,
        *,
        target_id: str | None,
        status: ProposalStatus,
        offset: int,
        limit: int,
    ) -> tuple[list[Proposal], int]: ...


@runtime_checkable
class VoteRepository(Repository[Vote], Protocol):
    """Persistence contract for votes. ``add`` raises ``DuplicateVoteError`` on conflict."""

    def find(self, proposal_id: UUID, user_id: str) -> Vote | None: ...

    def list_for(self, proposal_id: UUID) -> list[Vote]: ...
