"""Pydantic models for the SPARQL 1.1 query results JSON format."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SparqlBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RdfTerm(SparqlBaseModel):
    type: Literal["uri", "literal", "typed-literal", "bnode", "triple"]
    value: str
    datatype: str | None = None
    language: str | None = Field(default=None, alias="xml:lang")


class ResultsHead(SparqlBaseModel):
    vars: list[str] = Field(default_factory=list)


class ResultsBody(SparqlBaseModel):
    bindings: list[dict[str, RdfTerm]] = Field(default_factory=list)


class SelectResponse(SparqlBaseModel):
    head: ResultsHead = Field(default_factory=ResultsHead)
    results: ResultsBody = Field(default_factory=ResultsBody)

    def rows(self) -> list[dict[str, str]]:
        """Flatten bindings to ``{variable: lexical value}``; unbound variables are absent."""

        return [
            {name: term.value for name, term in binding.items()}
            for binding in self.results.bindings
        ]
