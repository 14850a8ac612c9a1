from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from crowdpoi.adapters.sqlalchemy import start_mappers
from crowdpoi.adapters.sqlalchemy.migrations import upgrade_head
from crowdpoi.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyContributionUnitOfWork,
    shutdown,
    startup,
)
from crowdpoi.domain.consensus import ConsensusService
from crowdpoi.domain.graph_merge import GraphMergeCoordinator
from crowdpoi.domain.statements import GraphAreas
from tests.helpers.contributions import FakeGraphStore

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

STAGING_GRAPH = "http://example.org/graph/pending"
CANONICAL_GRAPH = "http://example.org/graph/canonical"


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    # File-backed so that separate sessions see each other's commits.
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'ledger.db'}", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyContributionUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyContributionUnitOfWork:
        return SqlAlchemyContributionUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def graph_areas() -> GraphAreas:
    return GraphAreas(staging=STAGING_GRAPH, canonical=CANONICAL_GRAPH)


@pytest.fixture
def graph_store() -> FakeGraphStore:
    return FakeGraphStore()


@pytest.fixture
def make_service(
    sqlite_unit_of_work: Callable[[], SqlAlchemyContributionUnitOfWork],
    graph_store: FakeGraphStore,
    graph_areas: GraphAreas,
) -> Callable[..., ConsensusService]:
    def factory(threshold: int = 5, **kwargs: int) -> ConsensusService:
        return ConsensusService(
            unit_of_work_factory=sqlite_unit_of_work,
            graph_merge=GraphMergeCoordinator(graph_store, graph_areas),
            threshold=threshold,
            **kwargs,
        )

    return factory
