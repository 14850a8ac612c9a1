"""Public interface for the SPARQL graph store adapter."""

from __future__ import annotations

from .client import SparqlGraphStore
from .schema import RdfTerm, SelectResponse

__all__ = ["RdfTerm", "SelectResponse", "SparqlGraphStore"]
