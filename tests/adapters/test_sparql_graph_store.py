from __future__ import annotations

from collections.abc import Callable  # noqa: TC003
from urllib.parse import parse_qs

import httpx
import pytest

from crowdpoi.adapters.http_resilience import ResilientClient
from crowdpoi.adapters.sparql import SelectResponse, SparqlGraphStore
from crowdpoi.config import (
    MissingConfigurationError,
    ResilienceConfig,
    RetryPolicy,
    SparqlConfig,
)
from crowdpoi.domain.errors import GraphStoreError

QUERY_URL = "http://fuseki.test/poi/sparql"
UPDATE_URL = "http://fuseki.test/poi/update"

SELECT_PAYLOAD = {
    "head": {"vars": ["report", "status", "userId"]},
    "results": {
        "bindings": [
            {
                "report": {"type": "uri", "value": "http://opendatafithou.org/ext/report_1"},
                "status": {"type": "literal", "value": "pending"},
                "userId": {"type": "literal", "value": "alice", "xml:lang": "en"},
            },
            {"report": {"type": "uri", "value": "http://opendatafithou.org/ext/report_2"}},
        ]
    },
}


def _make_store(
    handler: Callable[[httpx.Request], httpx.Response],
    *,
    retry: RetryPolicy | None = None,
    username: str | None = None,
    password: str | None = None,
    headers: dict[str, str] | None = None,
) -> SparqlGraphStore:
    resilience = ResilienceConfig(
        name="sparql-test",
        timeout_seconds=5.0,
        retry=retry or RetryPolicy(total=0),
        default_headers=headers,
    )
    config = SparqlConfig(
        query_endpoint=QUERY_URL,
        update_endpoint=UPDATE_URL,
        username=username,
        password=password,
        resilience=resilience,
    )

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        return ResilientClient(resilience, transport=httpx.MockTransport(handler))

    return SparqlGraphStore(config=config, client_factory=factory)


def _form(request: httpx.Request) -> dict[str, list[str]]:
    return parse_qs(request.content.decode("utf-8"))


def test_update_posts_form_encoded_statement() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    store = _make_store(handler)
    store.update("INSERT DATA { <a> <b> \"c & d\" }")

    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == UPDATE_URL
    assert request.headers["content-type"] == "application/x-www-form-urlencoded"
    assert _form(request) == {"update": ['INSERT DATA { <a> <b> "c & d" }']}
    assert "authorization" not in request.headers


def test_default_headers_are_sent_with_every_request() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    store = _make_store(handler, headers={"User-Agent": "crowdpoi/test"})
    store.update("INSERT DATA {}")
    store.update("INSERT DATA {}")

    assert [request.headers["user-agent"] for request in seen] == ["crowdpoi/test"] * 2


def test_select_parses_results_json() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == QUERY_URL
        assert request.headers["accept"] == "application/sparql-results+json"
        assert _form(request)["query"] == ["SELECT * WHERE { ?s ?p ?o }"]
        return httpx.Response(200, json=SELECT_PAYLOAD)

    rows = _make_store(handler).select("SELECT * WHERE { ?s ?p ?o }")

    assert rows == [
        {
            "report": "http://opendatafithou.org/ext/report_1",
            "status": "pending",
            "userId": "alice",
        },
        {"report": "http://opendatafithou.org/ext/report_2"},
    ]


def test_basic_auth_is_sent_when_configured() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200)

    _make_store(handler, username="admin", password="secret").update("CLEAR DEFAULT")

    assert seen[0].headers["authorization"].startswith("Basic ")


def test_error_status_raises_graph_store_error() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(400, text="Parse error: line 1")

    with pytest.raises(GraphStoreError) as excinfo:
        _make_store(handler).update("INSERT DATA {")

    assert "400" in excinfo.value.message
    assert "Parse error" in excinfo.value.message


def test_transport_failure_raises_graph_store_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GraphStoreError) as excinfo:
        _make_store(handler).update("CLEAR DEFAULT")

    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


def test_malformed_results_raise_graph_store_error() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>not json</html>")

    with pytest.raises(GraphStoreError):
        _make_store(handler).select("SELECT * WHERE { ?s ?p ?o }")


def test_retries_transient_server_errors() -> None:
    calls: list[int] = []

    def handler(_: httpx.Request) -> httpx.Response:
        calls.append(1)
        if len(calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200)

    retry = RetryPolicy(total=2, backoff_factor=0.0, backoff_jitter=0.0)
    _make_store(handler, retry=retry).update("CLEAR DEFAULT")

    assert len(calls) == 2


def test_select_response_defaults_for_empty_payload() -> None:
    assert SelectResponse.model_validate({}).rows() == []


def test_store_reads_environment_only_when_used(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("FUSEKI_DATASET", "SPARQL_QUERY_ENDPOINT", "SPARQL_UPDATE_ENDPOINT"):
        monkeypatch.delenv(name, raising=False)
    store = SparqlGraphStore()

    with pytest.raises(MissingConfigurationError):
        store.update("INSERT DATA {}")

    monkeypatch.setenv("FUSEKI_DATASET", "poi")
    assert store.resolved_config().update_endpoint.endswith("/poi/update")
