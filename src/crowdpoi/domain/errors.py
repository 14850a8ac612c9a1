"""Error taxonomy surfaced by the contribution workflow.

Every failure that leaves a service operation is one of four kinds: validation
(rejected before any unit of work opens), conflict (rejected without mutating the
ledger), not-found, or dependency (storage or graph store failure; the whole
operation was rolled back and the identical request may be retried).
"""

from __future__ import annotations

from enum import StrEnum
from typing import ClassVar


class ErrorKind(StrEnum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    DEPENDENCY = "dependency"


class ContributionError(Exception):
    """Base class for all structured contribution failures."""

    kind: ClassVar[ErrorKind]

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ContributionError):
    kind = ErrorKind.VALIDATION


class ConflictError(ContributionError):
    kind = ErrorKind.CONFLICT


class DuplicateVoteError(ConflictError):
    """Raised when a user votes twice on the same proposal."""

    def __init__(self, message: str = "You have already voted on this proposal") -> None:
        super().__init__(message)


class ProposalNotPendingError(ConflictError):
    """Raised when a proposal has already been approved or rejected."""


class ConcurrentSubmissionError(ConflictError):
    """Raised when another request created the same pending proposal first."""


class NotFoundError(ContributionError):
    kind = ErrorKind.NOT_FOUND


class ProposalNotFoundError(NotFoundError):
    pass


class DependencyError(ContributionError):
    kind = ErrorKind.DEPENDENCY


class GraphStoreError(DependencyError):
    """Raised by graph store adapters when a statement could not be applied."""


class LedgerError(DependencyError):
    """Raised by ledger adapters when the relational store fails."""
