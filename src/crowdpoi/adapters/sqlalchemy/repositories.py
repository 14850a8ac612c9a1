"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from crowdpoi.adapters.sqlalchemy.mappings import proposal_table, vote_table
from crowdpoi.domain.errors import ConcurrentSubmissionError, DuplicateVoteError, LedgerError
from crowdpoi.domain.model import Proposal, ProposalStatus, Vote, VoteType, utcnow

if TYPE_CHECKING:
    from collections.abc import Iterator
    from uuid import UUID

    from sqlalchemy.orm import Session

# Columns written by SQL-side updates; re-read so a stale status is never acted on.
_STATE_ATTRIBUTES = [
    "upvotes",
    "downvotes",
    "status",
    "auto_merged",
    "approved_at",
    "rejected_at",
    "updated_at",
]


@contextmanager
def ledger_errors(action: str) -> Iterator[None]:
    """Re-raise driver failures as ``LedgerError``; integrity errors pass through."""

    try:
        yield
    except IntegrityError:
        raise
    except SQLAlchemyError as exc:
        raise LedgerError(f"Ledger failed to {action}: {exc}") from exc


class SqlAlchemyProposalRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Proposal) -> None:
        # Flush eagerly so the pending-fingerprint index rejects a concurrent twin here.
        self.session.add(entity)
        try:
            with ledger_errors("store proposal"):
                self.session.flush()
        except IntegrityError as exc:
            raise ConcurrentSubmissionError(
                f"A pending proposal for {entity.target_id} with the same fields already exists"
            ) from exc

    def get(self, proposal_id: UUID, *, lock: bool = False) -> Proposal | None:
        stmt = select(Proposal).where(proposal_table.c.id == proposal_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def find_pending(
        self,
        target_id: str,
        fingerprint: str,
        *,
        lock: bool = False,
    ) -> Proposal | None:
        stmt = (
            select(Proposal)
            .where(proposal_table.c.target_id == target_id)
            .where(proposal_table.c.fingerprint == fingerprint)
            .where(proposal_table.c.status == ProposalStatus.PENDING)
            .limit(1)
        )
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def increment(self, proposal: Proposal, vote_type: VoteType) -> None:
        """Bump a counter in SQL so concurrent voters never lose an update."""

        column = (
            proposal_table.c.upvotes if vote_type is VoteType.UP else proposal_table.c.downvotes
        )
        stmt = (
            update(proposal_table)
            .where(proposal_table.c.id == proposal.id)
            .values({column.key: column + 1, "updated_at": utcnow()})
        )
        with ledger_errors("count vote"):
            self.session.execute(stmt)
            self.session.refresh(proposal, _STATE_ATTRIBUTES)

    def save_transition(self, proposal: Proposal) -> bool:
        """Persist a status change only if the stored row is still pending.

        Returns ``False`` when another transaction already moved the proposal on; the
        in-memory change is then discarded in favour of the stored state.
        """

        stmt = (
            update(proposal_table)
            .where(proposal_table.c.id == proposal.id)
            .where(proposal_table.c.status == ProposalStatus.PENDING)
            .values(
                status=proposal.status,
                auto_merged=proposal.auto_merged,
                approved_at=proposal.approved_at,
                rejected_at=proposal.rejected_at,
                updated_at=proposal.updated_at,
            )
        )
        # The dirty instance must not be flushed unconditionally ahead of the guarded update.
        with self.session.no_autoflush, ledger_errors("update proposal"):
            result = self.session.execute(stmt)
            self.session.refresh(proposal, _STATE_ATTRIBUTES)
        return result.rowcount == 1

    def page(
        self,
        *,
        target_id: str | None,
        status: ProposalStatus,
        offset: int,
        limit: int,
    ) -> tuple[list[Proposal], int]:
        conditions = [proposal_table.c.status == status]
        if target_id is not None:
            conditions.append(proposal_table.c.target_id == target_id)

        count_stmt = select(func.count()).select_from(proposal_table).where(*conditions)
        total = self.session.execute(count_stmt).scalar_one()

        stmt = (
            select(Proposal)
            .where(*conditions)
            .order_by(proposal_table.c.created_at.desc(), proposal_table.c.id)
            .offset(offset)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars()), int(total)


class SqlAlchemyVoteRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Vote) -> None:
        self.session.add(entity)
        try:
            with ledger_errors("store vote"):
                self.session.flush()
        except IntegrityError as exc:
            raise DuplicateVoteError from exc

    def find(self, proposal_id: UUID, user_id: str) -> Vote | None:
        stmt = (
            select(Vote)
            .where(vote_table.c.proposal_id == proposal_id)
            .where(vote_table.c.user_id == user_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for(self, proposal_id: UUID) -> list[Vote]:
        stmt = (
            select(Vote)
            .where(vote_table.c.proposal_id == proposal_id)
            .order_by(vote_table.c.created_at, vote_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())
