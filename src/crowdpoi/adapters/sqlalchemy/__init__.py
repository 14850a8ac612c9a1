"""SQLAlchemy adapter package for the contribution ledger."""

from __future__ import annotations

from .mappings import mapper_registry, proposal_table, start_mappers, vote_table
from .repositories import SqlAlchemyProposalRepository, SqlAlchemyVoteRepository
from .unit_of_work import (
    SqlAlchemyContributionUnitOfWork,
    StartupError,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyContributionUnitOfWork",
    "SqlAlchemyProposalRepository",
    "SqlAlchemyVoteRepository",
    "StartupError",
    "mapper_registry",
    "proposal_table",
    "shutdown",
    "start_mappers",
    "startup",
    "vote_table",
]
