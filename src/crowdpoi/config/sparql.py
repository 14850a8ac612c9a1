"""SPARQL graph store configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from crowdpoi import __version__

from .env import optional_env_var, require_env_vars
from .errors import MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig

DEFAULT_FUSEKI_BASE_URL = "http://localhost:3030"
DEFAULT_STAGING_GRAPH_URI = "http://opendatafithou.org/graph/school-pending"
DEFAULT_CANONICAL_GRAPH_URI = "http://opendatafithou.org/graph/school"
SPARQL_TIMEOUT_SECONDS = 15.0
USER_AGENT = f"crowdpoi/{__version__}"


def _default_resilience() -> ResilienceConfig:
    return ResilienceConfig(
        name="sparql",
        timeout_seconds=SPARQL_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=20, per_seconds=1.0),
        default_headers={"User-Agent": USER_AGENT},
    )


@dataclass(frozen=True)
class SparqlConfig:
    """Holds SPARQL endpoint configuration values."""

    query_endpoint: str
    update_endpoint: str
    staging_graph_uri: str = DEFAULT_STAGING_GRAPH_URI
    canonical_graph_uri: str = DEFAULT_CANONICAL_GRAPH_URI
    username: str | None = None
    password: str | None = None
    resilience: ResilienceConfig = field(default_factory=_default_resilience)

    @property
    def auth(self) -> tuple[str, str] | None:
        if self.username is None or self.password is None:
            return None
        return (self.username, self.password)


def get_sparql_config(*, resilience: ResilienceConfig | None = None) -> SparqlConfig:
    """Build the SPARQL configuration from the environment.

    Explicit ``SPARQL_QUERY_ENDPOINT``/``SPARQL_UPDATE_ENDPOINT`` win; otherwise both
    are derived from ``FUSEKI_BASE_URL`` and ``FUSEKI_DATASET``.
    """

    query_endpoint = optional_env_var("SPARQL_QUERY_ENDPOINT")
    update_endpoint = optional_env_var("SPARQL_UPDATE_ENDPOINT")
    if query_endpoint is None or update_endpoint is None:
        dataset = optional_env_var("FUSEKI_DATASET")
        if dataset is None:
            raise MissingConfigurationError(
                "Missing configuration for: FUSEKI_DATASET "
                "(or SPARQL_QUERY_ENDPOINT and SPARQL_UPDATE_ENDPOINT)"
            )
        base_url = (optional_env_var("FUSEKI_BASE_URL") or DEFAULT_FUSEKI_BASE_URL).rstrip("/")
        query_endpoint = query_endpoint or f"{base_url}/{dataset}/sparql"
        update_endpoint = update_endpoint or f"{base_url}/{dataset}/update"

    username: str | None = None
    password: str | None = None
    if optional_env_var("SPARQL_USERNAME") is not None:
        credentials = require_env_vars(("SPARQL_USERNAME", "SPARQL_PASSWORD"))
        username = credentials["SPARQL_USERNAME"]
        password = credentials["SPARQL_PASSWORD"]

    config = SparqlConfig(
        query_endpoint=query_endpoint,
        update_endpoint=update_endpoint,
        staging_graph_uri=optional_env_var("STAGING_GRAPH_URI") or DEFAULT_STAGING_GRAPH_URI,
        canonical_graph_uri=(
            optional_env_var("CANONICAL_GRAPH_URI") or DEFAULT_CANONICAL_GRAPH_URI
        ),
        username=username,
        password=password,
    )
    if resilience is None:
        return config
    return replace(config, resilience=resilience)
