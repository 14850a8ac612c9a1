"""HTTP graph store speaking the SPARQL 1.1 protocol (Apache Jena Fuseki and friends)."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from crowdpoi.adapters.http_resilience import ResilientClient
from crowdpoi.config import get_sparql_config
from crowdpoi.domain.errors import GraphStoreError

from .schema import SelectResponse

if TYPE_CHECKING:
    from collections.abc import Callable

    from crowdpoi.config import ResilienceConfig, SparqlConfig
    from crowdpoi.domain.ports import Binding, GraphStore

log = getLogger(__name__)

RESULTS_MEDIA_TYPE = "application/sparql-results+json"
_ERROR_BODY_PREVIEW = 500


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class SparqlGraphStore:
    """Blocking ``GraphStore`` backed by an async resilient HTTP client.

    Each call opens its own client, so the store is safe to share between threads
    and never keeps a connection pool across event loops. Without an explicit
    ``config`` the endpoints are read from the environment on first use.
    """

    config: SparqlConfig | None = None
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def update(self, statement: str) -> None:
        asyncio.run(self._update(statement))

    def select(self, statement: str) -> list[Binding]:
        return asyncio.run(self._select(statement))

    def resolved_config(self) -> SparqlConfig:
        if self.config is None:
            self.config = get_sparql_config()
        return self.config

    async def _update(self, statement: str) -> None:
        endpoint = self.resolved_config().update_endpoint
        log.debug("SPARQL update to %s:\n%s", endpoint, statement)
        await self._post(endpoint, {"update": statement}, accept="*/*")

    async def _select(self, statement: str) -> list[Binding]:
        endpoint = self.resolved_config().query_endpoint
        log.debug("SPARQL query to %s:\n%s", endpoint, statement)
        response = await self._post(
            endpoint,
            {"query": statement},
            accept=RESULTS_MEDIA_TYPE,
        )
        try:
            payload = SelectResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise GraphStoreError(f"Malformed SPARQL results payload: {exc}") from exc
        return payload.rows()

    async def _post(self, url: str, form: dict[str, str], *, accept: str) -> httpx.Response:
        config = self.resolved_config()
        async with self.client_factory(config.resilience) as client:
            try:
                response = await client.post(
                    url,
                    data=form,
                    headers={"Accept": accept},
                    auth=config.auth,
                )
            except httpx.HTTPError as exc:
                log.warning("SPARQL endpoint %s unreachable: %s", url, exc)
                raise GraphStoreError(f"SPARQL endpoint {url} unreachable: {exc}") from exc

        if response.is_error:
            preview = response.text[:_ERROR_BODY_PREVIEW]
            log.error("SPARQL endpoint %s returned %s: %s", url, response.status_code, preview)
            raise GraphStoreError(
                f"SPARQL endpoint {url} returned {response.status_code}: {preview}"
            )
        return response


if TYPE_CHECKING:
    _store_check: GraphStore = SparqlGraphStore()
