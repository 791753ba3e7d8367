"""Namespace table used to compact IRIs in generated queries.

The table is ordered: the first namespace whose IRI is a prefix of a term wins.
``rdf:type`` always renders as the SPARQL keyword ``a``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from rdflib import Namespace, RDF

# Local part of a prefixed name. Anything else renders as a full <iri>.
_PN_LOCAL = re.compile(r"^[A-Za-z0-9_](?:[A-Za-z0-9_\-.]*[A-Za-z0-9_\-])?$")

DEFAULT_NAMESPACES: tuple[tuple[str, Namespace], ...] = (
    ("aaao", Namespace("https://ontology.swissartresearch.net/aaao/")),
    ("crm", Namespace("http://www.cidoc-crm.org/cidoc-crm/")),
    ("lrmoo", Namespace("http://iflastandards.info/ns/lrm/lrmoo/")),
    ("owl", Namespace("http://www.w3.org/2002/07/owl#")),
    ("rdfschema", Namespace("http://www.w3.org/2000/01/rdf-schema#")),
    ("star", Namespace("https://r11.eu/ns/star/")),
    ("skos", Namespace("http://www.w3.org/2004/02/skos/core#")),
    ("r11", Namespace("https://r11.eu/ns/spec/")),
    ("r11pros", Namespace("https://r11.eu/ns/prosopography/")),
    ("pwro", Namespace("https://ontology.swissartresearch.net/pwro/")),
)


@dataclass(frozen=True)
class NamespaceTable:
    """Ordered (prefix, namespace) pairs."""

    entries: tuple[tuple[str, Namespace], ...] = DEFAULT_NAMESPACES

    @classmethod
    def from_pairs(cls, pairs: Iterable) -> 'NamespaceTable':
        """Build a table from ``(prefix, iri)`` tuples or ``{prefix, iri}`` dicts."""
        entries = []
        for pair in pairs:
            if isinstance(pair, dict):
                prefix, iri = pair.get('prefix'), pair.get('iri')
            else:
                prefix, iri = pair
            if not prefix or not iri:
                raise ValueError(f"Namespace entry needs a prefix and an iri: {pair!r}")
            entries.append((str(prefix).strip(), Namespace(str(iri).strip())))
        return cls(entries=tuple(entries))

    def to_pairs(self) -> list[dict[str, str]]:
        return [{'prefix': prefix, 'iri': str(ns)} for prefix, ns in self.entries]

    def match(self, iri: str) -> Optional[tuple[str, str]]:
        """Return ``(prefix, local)`` for the first namespace that can abbreviate ``iri``."""
        for prefix, ns in self.entries:
            base = str(ns)
            if iri.startswith(base):
                local = iri[len(base):]
                if _PN_LOCAL.match(local):
                    return prefix, local
        return None

    def prefix_for(self, iri: str) -> Optional[str]:
        matched = self.match(iri)
        return matched[0] if matched else None

    def compact(self, iri: str) -> str:
        """Render an IRI in query syntax: ``a``, ``prefix:local`` or ``<iri>``."""
        if iri == str(RDF.type):
            return "a"
        matched = self.match(iri)
        if matched:
            return f"{matched[0]}:{matched[1]}"
        return f"<{iri}>"

    def prefix_lines(self, used_prefixes: Iterable[str]) -> list[str]:
        """``PREFIX`` declarations for the used prefixes, in table order."""
        used = set(used_prefixes)
        return [
            f"PREFIX {prefix}: <{ns}>"
            for prefix, ns in self.entries
            if prefix in used
        ]


def abbreviate_type(value: str, table: Optional[NamespaceTable] = None) -> str:
    """Shorten a class IRI for display; unknown namespaces are returned unchanged."""
    table = table or NamespaceTable()
    matched = table.match(value)
    if matched:
        return f"{matched[0]}:{matched[1]}"
    return value
