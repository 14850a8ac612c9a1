"""Domain port definitions for adapters."""

from __future__ import annotations

from .graph_store import Binding, GraphStore
from .persistence import ProposalRepository, Repository, VoteRepository
from .unit_of_work import (
    ContributionRepositories,
    ContributionUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "Binding",
    "ContributionRepositories",
    "ContributionUnitOfWork",
    "GraphStore",
    "ProposalRepository",
    "Repository",
    "RepositoryCollection",
    "UnitOfWork",
    "VoteRepository",
]
