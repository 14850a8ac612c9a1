from __future__ import annotations

from pathlib import Path

import pytest

from crowdpoi.config import (
    ConfigurationError,
    ConsensusConfig,
    MissingConfigurationError,
    ResilienceConfig,
    StorageConfig,
    get_consensus_config,
    get_database_config,
    get_sparql_config,
    get_storage_config,
    optional_env_var,
    require_env_vars,
)
from crowdpoi.config.sparql import (
    DEFAULT_CANONICAL_GRAPH_URI,
    DEFAULT_STAGING_GRAPH_URI,
    USER_AGENT,
)

_SPARQL_VARS = (
    "SPARQL_QUERY_ENDPOINT",
    "SPARQL_UPDATE_ENDPOINT",
    "FUSEKI_BASE_URL",
    "FUSEKI_DATASET",
    "STAGING_GRAPH_URI",
    "CANONICAL_GRAPH_URI",
    "SPARQL_USERNAME",
    "SPARQL_PASSWORD",
)


@pytest.fixture
def clean_sparql_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _SPARQL_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_require_env_vars_lists_all_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PRESENT_VAR", "value")
    monkeypatch.setenv("BLANK_VAR", "   ")
    monkeypatch.delenv("ABSENT_VAR", raising=False)

    assert require_env_vars(["PRESENT_VAR"]) == {"PRESENT_VAR": "value"}
    with pytest.raises(MissingConfigurationError) as excinfo:
        require_env_vars(["PRESENT_VAR", "BLANK_VAR", "ABSENT_VAR"])

    assert "ABSENT_VAR, BLANK_VAR" in str(excinfo.value)


def test_optional_env_var_treats_blank_as_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BLANK_VAR", " ")
    monkeypatch.setenv("PADDED_VAR", " value ")

    assert optional_env_var("BLANK_VAR") is None
    assert optional_env_var("PADDED_VAR") == "value"


def test_sparql_config_derived_from_fuseki_dataset(clean_sparql_env: pytest.MonkeyPatch) -> None:
    clean_sparql_env.setenv("FUSEKI_BASE_URL", "http://fuseki:3030/")
    clean_sparql_env.setenv("FUSEKI_DATASET", "poi")

    config = get_sparql_config()

    assert config.query_endpoint == "http://fuseki:3030/poi/sparql"
    assert config.update_endpoint == "http://fuseki:3030/poi/update"
    assert config.staging_graph_uri == DEFAULT_STAGING_GRAPH_URI
    assert config.canonical_graph_uri == DEFAULT_CANONICAL_GRAPH_URI
    assert config.auth is None
    assert config.resilience.ratelimit is not None
    assert config.resilience.default_headers == {"User-Agent": USER_AGENT}


def test_sparql_config_explicit_endpoints_and_auth(clean_sparql_env: pytest.MonkeyPatch) -> None:
    clean_sparql_env.setenv("SPARQL_QUERY_ENDPOINT", "http://store/query")
    clean_sparql_env.setenv("SPARQL_UPDATE_ENDPOINT", "http://store/update")
    clean_sparql_env.setenv("STAGING_GRAPH_URI", "http://example.org/staging")
    clean_sparql_env.setenv("SPARQL_USERNAME", "admin")
    clean_sparql_env.setenv("SPARQL_PASSWORD", "secret")
    resilience = ResilienceConfig(name="custom")

    config = get_sparql_config(resilience=resilience)

    assert config.query_endpoint == "http://store/query"
    assert config.staging_graph_uri == "http://example.org/staging"
    assert config.auth == ("admin", "secret")
    assert config.resilience is resilience


def test_sparql_config_requires_dataset_or_endpoints(
    clean_sparql_env: pytest.MonkeyPatch,
) -> None:
    with pytest.raises(MissingConfigurationError):
        get_sparql_config()

    clean_sparql_env.setenv("FUSEKI_DATASET", "poi")
    clean_sparql_env.setenv("SPARQL_USERNAME", "admin")
    with pytest.raises(MissingConfigurationError) as excinfo:
        get_sparql_config()
    assert "SPARQL_PASSWORD" in str(excinfo.value)


def test_consensus_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CONSENSUS_THRESHOLD", raising=False)
    assert get_consensus_config().threshold == 5

    monkeypatch.setenv("CONSENSUS_THRESHOLD", "3")
    assert get_consensus_config().threshold == 3

    monkeypatch.setenv("CONSENSUS_THRESHOLD", "many")
    with pytest.raises(ConfigurationError):
        get_consensus_config()

    monkeypatch.setenv("CONSENSUS_THRESHOLD", "0")
    with pytest.raises(ConfigurationError):
        get_consensus_config()


def test_consensus_config_validates_page_sizes() -> None:
    with pytest.raises(ConfigurationError):
        ConsensusConfig(default_page_size=200, max_page_size=100)


def test_storage_config_uses_data_dir_env(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("CROWDPOI_DATA_DIR", str(tmp_path / "data"))

    storage = get_storage_config()

    assert storage.resolve_data_dir() == (tmp_path / "data").resolve()
    assert storage.database_path() == (tmp_path / "data" / "crowdpoi.db").resolve()
    assert (tmp_path / "data").is_dir()


def test_database_config_prefers_explicit_uri(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://db/crowdpoi")
    assert get_database_config().uri == "postgresql+psycopg://db/crowdpoi"

    monkeypatch.delenv("DATABASE_URI")
    storage = StorageConfig(data_dir=Path(tmp_path))
    assert get_database_config(storage=storage).uri == (
        f"sqlite+pysqlite:///{(tmp_path / 'crowdpoi.db').resolve()}"
    )
