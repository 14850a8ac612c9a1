"""Reusable fakes and builders for contribution tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from crowdpoi.domain.errors import GraphStoreError
from crowdpoi.domain.fingerprint import fingerprint, normalize_fields
from crowdpoi.domain.model import Proposal
from crowdpoi.domain.ports import GraphStore

if TYPE_CHECKING:
    from crowdpoi.domain.model import FieldValue
    from crowdpoi.domain.ports import Binding

PROMOTE_MARKER = "# promote"
STAGE_MARKER = "INSERT DATA"


@dataclass
class FakeGraphStore(GraphStore):
    """In-memory graph store recording every statement it receives.

    ``fail_on`` makes any update containing that substring raise ``GraphStoreError``;
    ``crash_with`` makes every update raise the given exception instead.
    """

    updates: list[str] = field(default_factory=list)
    queries: list[str] = field(default_factory=list)
    rows: list[Binding] = field(default_factory=list)
    fail_on: str | None = None
    crash_with: Exception | None = None

    def update(self, statement: str) -> None:
        if self.crash_with is not None:
            raise self.crash_with
        if self.fail_on is not None and self.fail_on in statement:
            raise GraphStoreError(f"graph store refused statement containing {self.fail_on!r}")
        self.updates.append(statement)

    def select(self, statement: str) -> list[Binding]:
        self.queries.append(statement)
        return list(self.rows)

    @property
    def staged(self) -> list[str]:
        return [statement for statement in self.updates if STAGE_MARKER in statement]

    @property
    def merges(self) -> list[str]:
        return [statement for statement in self.updates if PROMOTE_MARKER in statement]

    def status_updates(self, status: str) -> list[str]:
        tag = f'ext:status "{status}"'
        return [statement for statement in self.updates if tag in statement]


def make_proposal(
    target_id: str = "poi_1",
    fields: dict[str, FieldValue] | None = None,
    *,
    proposer: str = "alice",
    threshold: int = 5,
) -> Proposal:
    """Build a pending proposal outside any unit of work."""

    proposed = normalize_fields(fields or {"telephone": "0123"})
    return Proposal(
        target_id=target_id,
        proposer_user_id=proposer,
        fingerprint=fingerprint(target_id, proposed),
        proposed_fields=proposed,
        threshold=threshold,
    )
