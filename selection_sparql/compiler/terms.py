"""Query AST pieces: terms, triples and the per-compilation records.

Terms are rdflib ``Variable`` and ``URIRef`` objects. rdflib identifiers compare
and hash by (type, value), so a triple of terms is its own structural key:
``?x <p> ?y`` and ``<x> <p> ?y`` never collide.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from rdflib import RDF, URIRef, Variable

Term = Union[Variable, URIRef]
TripleKey = tuple[Term, Term, Term]

RDF_TYPE = RDF.type


def var(name: str) -> Variable:
    return Variable(name)


def iri(value: str) -> URIRef:
    return URIRef(value)


def to_var_safe_fragment(value: Optional[str]) -> str:
    """Lower-case ``value`` into a SPARQL variable fragment."""
    safe = re.sub(r"[^a-z0-9]+", "_", (value or "").strip().lower()).strip("_")
    if not safe:
        return "path"
    if safe[0].isdigit():
        return f"p_{safe}"
    return safe


@dataclass(frozen=True)
class Triple:
    subject: Term
    predicate: Term
    object: Term

    @property
    def key(self) -> TripleKey:
        return (self.subject, self.predicate, self.object)

    def remap(self, variable_map: Mapping[str, str]) -> 'Triple':
        """Rename variables; IRIs are left untouched."""
        if not variable_map:
            return self
        return Triple(*(remap_term(term, variable_map) for term in self.key))


def remap_term(term: Term, variable_map: Mapping[str, str]) -> Term:
    if isinstance(term, Variable) and str(term) in variable_map:
        return Variable(variable_map[str(term)])
    return term


@dataclass
class TripleRecord:
    """A unique triple and the smallest depth at which it was requested."""

    key: TripleKey
    triple: Triple
    depth: int


@dataclass(frozen=True)
class TripleEmission:
    """One request to emit a triple, attributed to the node that caused it."""

    id: str
    key: TripleKey
    depth: int
    owner_display_id: Optional[str]


@dataclass
class SelectProjection:
    variable_name: str
    depth: int
    is_central: bool = False
    coalesce_to_zero: bool = False
    source_variable_name: Optional[str] = None
