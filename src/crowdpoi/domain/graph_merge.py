"""Applies compiled statements to the staging and canonical graph areas."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from logging import getLogger
from typing import TYPE_CHECKING

from crowdpoi.domain.model import ProposalStatus
from crowdpoi.domain.statements import (
    compile_insert_staging,
    compile_list_pending,
    compile_merge_to_canonical,
    compile_status_update,
    mappable_fields,
)

if TYPE_CHECKING:
    from crowdpoi.domain.model import Proposal
    from crowdpoi.domain.ports import Binding, GraphStore
    from crowdpoi.domain.statements import GraphAreas

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StagedReport:
    report: str
    target: str
    user_id: str
    reported_at: datetime | None
    status: str


class GraphMergeCoordinator:
    """Stages proposals and promotes them into the canonical graph.

    The coordinator only reads proposals. Callers claim the ledger transition first
    and commit only after the graph writes succeed, so a graph failure rolls the
    claim back and exactly one transaction ever promotes a proposal.
    """

    def __init__(self, store: GraphStore, areas: GraphAreas) -> None:
        self._store = store
        self._areas = areas

    def stage(self, proposal: Proposal) -> None:
        statement = compile_insert_staging(
            proposal.report_reference,
            proposal.target_id,
            proposal.proposer_user_id,
            proposal.proposed_fields,
            proposal.created_at,
            areas=self._areas,
        )
        self._store.update(statement)
        log.info("Staged %s for %s", proposal.report_reference, proposal.target_id)

    def promote(self, proposal: Proposal) -> None:
        """Merge into the canonical graph, then flag the staged report approved.

        Replaying the statements is harmless: the merge replaces the same values.
        """

        if mappable_fields(proposal.proposed_fields):
            self._store.update(
                compile_merge_to_canonical(
                    proposal.report_reference,
                    proposal.target_id,
                    proposal.proposed_fields,
                    areas=self._areas,
                )
            )
        else:
            log.info("Proposal %s has no graph fields; canonical merge skipped", proposal.id)

        self._store.update(
            compile_status_update(
                proposal.report_reference,
                ProposalStatus.APPROVED,
                areas=self._areas,
            )
        )
        log.info("Promoted %s into %s", proposal.report_reference, self._areas.canonical)

    def reject(self, proposal: Proposal) -> None:
        self._store.update(
            compile_status_update(
                proposal.report_reference,
                ProposalStatus.REJECTED,
                areas=self._areas,
            )
        )

    def list_staged_reports(
        self,
        target: str | None = None,
        *,
        status: ProposalStatus | None = ProposalStatus.PENDING,
    ) -> list[StagedReport]:
        rows = self._store.select(
            compile_list_pending(target, areas=self._areas, status=status)
        )
        return [_staged_report_from_binding(row) for row in rows]


def _local_name(uri: str) -> str:
    for separator in ("#", "/"):
        if separator in uri:
            uri = uri.rsplit(separator, 1)[1]
    return uri


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    normalized = value.strip()
    if normalized.endswith("Z"):
        normalized = normalized[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        log.warning("Unparseable report timestamp: %s", value)
        return None


def _staged_report_from_binding(row: Binding) -> StagedReport:
    return StagedReport(
        report=_local_name(row.get("report", "")),
        target=_local_name(row.get("target", "")),
        user_id=row.get("userId", ""),
        reported_at=_parse_timestamp(row.get("timestamp")),
        status=row.get("status", ""),
    )
