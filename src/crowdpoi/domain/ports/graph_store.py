"""Port for the external RDF graph store."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

type Binding = dict[str, str]


@runtime_checkable
class GraphStore(Protocol):
    """Accepts textual SPARQL statements.

    Implementations raise ``GraphStoreError`` when a statement cannot be applied.
    """

    def update(self, statement: str) -> None: ...

    def select(self, statement: str) -> list[Binding]: ...
