"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from crowdpoi.adapters.sparql import SparqlGraphStore
from crowdpoi.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyContributionUnitOfWork,
    is_started,
    startup,
)
from crowdpoi.config import get_consensus_config, get_sparql_config, optional_env_var
from crowdpoi.config.sparql import DEFAULT_CANONICAL_GRAPH_URI, DEFAULT_STAGING_GRAPH_URI
from crowdpoi.domain.consensus import ConsensusService
from crowdpoi.domain.graph_merge import GraphMergeCoordinator
from crowdpoi.domain.ports import ContributionUnitOfWork
from crowdpoi.domain.statements import GraphAreas
from crowdpoi.domain.validation import validate_target_id

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from crowdpoi.config import ConsensusConfig, SparqlConfig
    from crowdpoi.domain.consensus import ConsensusResult, ProposalPage
    from crowdpoi.domain.graph_merge import StagedReport
    from crowdpoi.domain.model import FieldValue, Proposal, Vote
    from crowdpoi.domain.ports import GraphStore

UnitOfWorkFactory = Callable[[], ContributionUnitOfWork]

log = getLogger(__name__)


def graph_areas(config: SparqlConfig | None = None) -> GraphAreas:
    """Graph URIs from a SPARQL config, or from the environment when none is given."""

    if config is not None:
        return GraphAreas(
            staging=config.staging_graph_uri,
            canonical=config.canonical_graph_uri,
        )
    return GraphAreas(
        staging=optional_env_var("STAGING_GRAPH_URI") or DEFAULT_STAGING_GRAPH_URI,
        canonical=optional_env_var("CANONICAL_GRAPH_URI") or DEFAULT_CANONICAL_GRAPH_URI,
    )


def build_consensus_service(
    *,
    graph_store: GraphStore | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    consensus: ConsensusConfig | None = None,
    sparql: SparqlConfig | None = None,
    ledger_only: bool = False,
) -> ConsensusService:
    """Wire the consensus service to the configured ledger database and graph store.

    With ``ledger_only`` the SPARQL endpoints are not required up front; read-only
    ledger queries then work without any graph store configuration.
    """

    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyContributionUnitOfWork

    if graph_store is None:
        if sparql is None and not ledger_only:
            sparql = get_sparql_config()
        graph_store = SparqlGraphStore(config=sparql)

    settings = consensus or get_consensus_config()
    areas = graph_areas(sparql)
    log.debug(
        "Consensus service: threshold=%s, staging=%s, canonical=%s",
        settings.threshold,
        areas.staging,
        areas.canonical,
    )
    return ConsensusService(
        unit_of_work_factory=unit_of_work_factory,
        graph_merge=GraphMergeCoordinator(graph_store, areas),
        threshold=settings.threshold,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )


def submit_update(
    *,
    user_id: str,
    target_id: str,
    fields: Mapping[str, FieldValue | None],
    client_ip: str | None = None,
    service: ConsensusService | None = None,
) -> ConsensusResult:
    effective = service or build_consensus_service()
    result = effective.submit_or_vote(user_id, target_id, fields, client_ip=client_ip)
    log.info("Submission by %s on %s: %s", user_id, target_id, result.outcome)
    return result


def cast_vote(
    *,
    user_id: str,
    proposal_id: UUID | str,
    vote_type: str,
    comment: str | None = None,
    client_ip: str | None = None,
    service: ConsensusService | None = None,
) -> ConsensusResult:
    effective = service or build_consensus_service()
    return effective.vote(
        user_id,
        proposal_id,
        vote_type,
        comment=comment,
        client_ip=client_ip,
    )


def list_proposals(
    *,
    target_id: str | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int | None = None,
    service: ConsensusService | None = None,
) -> ProposalPage:
    effective = service or build_consensus_service(ledger_only=True)
    return effective.list_pending(target_id=target_id, status=status, page=page, limit=limit)


def show_proposal(
    *,
    proposal_id: UUID | str,
    service: ConsensusService | None = None,
) -> tuple[Proposal, list[Vote]]:
    effective = service or build_consensus_service(ledger_only=True)
    return effective.get_detail(proposal_id), effective.list_votes(proposal_id)


def approve_proposal(
    *,
    proposal_id: UUID | str,
    service: ConsensusService | None = None,
) -> ConsensusResult:
    effective = service or build_consensus_service()
    return effective.promote(proposal_id)


def reject_proposal(
    *,
    proposal_id: UUID | str,
    service: ConsensusService | None = None,
) -> ConsensusResult:
    effective = service or build_consensus_service()
    return effective.reject(proposal_id)


def list_staged_reports(
    *,
    target_id: str | None = None,
    graph_store: GraphStore | None = None,
    sparql: SparqlConfig | None = None,
) -> list[StagedReport]:
    """Read staged reports straight from the graph store, bypassing the ledger."""

    if graph_store is None:
        sparql = sparql or get_sparql_config()
        graph_store = SparqlGraphStore(config=sparql)
    target = validate_target_id(target_id) if target_id is not None else None
    coordinator = GraphMergeCoordinator(graph_store, graph_areas(sparql))
    return coordinator.list_staged_reports(target)
