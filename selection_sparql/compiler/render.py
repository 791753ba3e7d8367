"""Query text rendering and grammar validation.

The WHERE body is produced by scanning emissions in order while keeping a stack
of open OPTIONAL scopes. Each emission's owner carries an optional chain; the
stack is trimmed to the longest common prefix with that chain and the missing
scopes are opened before the triple line is written. A triple already written
(or excluded) only contributes its comments.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from pyparsing import ParseBaseException
from rdflib import URIRef, Variable
from rdflib.plugins.sparql.parser import parseQuery

from ..config import QueryOptions
from ..namespaces import NamespaceTable
from .builder import SelectBuild
from .terms import RDF_TYPE, SelectProjection, Term, TripleKey, remap_term

logger = logging.getLogger(__name__)

INDENT = "  "
CENTRAL_PROJECTION_NOTE = "  # <<<<< central node"


class QueryValidationError(RuntimeError):
    """The rendered query does not parse: a compiler bug, never a user error."""


@dataclass
class WhereSection:
    lines: list[str] = field(default_factory=list)
    used_prefixes: set[str] = field(default_factory=set)


@dataclass
class _OpenScope:
    root_display_id: str
    depth: int


def render_term(term: Term, namespaces: NamespaceTable,
                variable_map: Optional[Mapping[str, str]] = None) -> str:
    if variable_map:
        term = remap_term(term, variable_map)
    if isinstance(term, Variable):
        return f"?{term}"
    return namespaces.compact(str(term))


def _common_prefix_length(open_scopes: list[_OpenScope], chain: list[str]) -> int:
    length = 0
    while (
        length < len(open_scopes)
        and length < len(chain)
        and open_scopes[length].root_display_id == chain[length]
    ):
        length += 1
    return length


def _close_to(open_scopes: list[_OpenScope], length: int, lines: list[str]) -> None:
    while len(open_scopes) > length:
        closing = open_scopes.pop()
        lines.append(f"{INDENT * (closing.depth + 1)}}}")


def used_prefixes_for(
    build: SelectBuild,
    namespaces: NamespaceTable,
    excluded_keys: Iterable[TripleKey] = (),
) -> set[str]:
    """Prefixes referenced by the triples that will actually be written."""
    excluded = set(excluded_keys)
    used = set()
    seen = set()
    for emission in build.emissions:
        if emission.key in excluded or emission.key in seen or emission.key not in build.records:
            continue
        seen.add(emission.key)
        for term in emission.key:
            if isinstance(term, URIRef) and term != RDF_TYPE:
                prefix = namespaces.prefix_for(str(term))
                if prefix:
                    used.add(prefix)
    return used


def render_where_section(
    build: SelectBuild,
    namespaces: NamespaceTable,
    excluded_keys: Iterable[TripleKey] = (),
    include_central_comment: bool = True,
    variable_map: Optional[Mapping[str, str]] = None,
) -> WhereSection:
    """Render the WHERE body lines of one build.

    Args:
        build: Output of ``build_select``
        namespaces: Table used to compact IRIs
        excluded_keys: Triple keys to suppress (already present elsewhere)
        include_central_comment: Write the central node marker
        variable_map: Variable renames applied while writing terms

    Returns:
        WhereSection with the body lines and the prefixes they reference
    """
    excluded = set(excluded_keys)
    section = WhereSection(used_prefixes=used_prefixes_for(build, namespaces, excluded))
    lines = section.lines
    open_scopes: list[_OpenScope] = []
    rendered: set[TripleKey] = set()

    for emission in build.emissions:
        record = build.records.get(emission.key)
        if record is None:
            continue
        chain = []
        if emission.owner_display_id is not None:
            chain = build.optional_chain_by_id.get(emission.owner_display_id, [])
        indent = INDENT * (emission.depth + 1)

        for comment in build.comments_by_emission_id.get(emission.id, []):
            lines.append("")
            lines.append(f"{indent}{comment}")

        if include_central_comment and emission.id == build.central_emission_id:
            # The central node owns an empty chain: leave every open scope.
            _close_to(open_scopes, _common_prefix_length(open_scopes, chain), lines)
            lines.append("")
            lines.append(build.central_comment)

        if emission.key in excluded or emission.key in rendered:
            continue

        common = _common_prefix_length(open_scopes, chain)
        _close_to(open_scopes, common, lines)
        for root_display_id in chain[common:]:
            open_scopes.append(_OpenScope(root_display_id, emission.depth))
            lines.append(f"{indent}OPTIONAL {{")

        rendered.add(emission.key)
        triple = record.triple
        lines.append(
            f"{indent}{render_term(triple.subject, namespaces, variable_map)} "
            f"{render_term(triple.predicate, namespaces, variable_map)} "
            f"{render_term(triple.object, namespaces, variable_map)} ."
        )

    _close_to(open_scopes, 0, lines)
    return section


def render_projection(projection: SelectProjection) -> str:
    indent = INDENT * (projection.depth + 1)
    if projection.coalesce_to_zero:
        source = projection.source_variable_name or projection.variable_name
        text = f"(COALESCE(?{source}, 0) AS ?{projection.variable_name})"
    else:
        text = f"?{projection.variable_name}"
    note = CENTRAL_PROJECTION_NOTE if projection.is_central else ""
    return f"{indent}{text}{note}"


def render_query(
    build: SelectBuild,
    options: QueryOptions,
    extra_projections: Iterable[SelectProjection] = (),
    extra_blocks: Iterable[list[str]] = (),
    extra_prefixes: Iterable[str] = (),
) -> str:
    """Assemble prefixes, projection, WHERE body and solution modifiers."""
    namespaces = options.namespaces
    projections = list(build.projections) + list(extra_projections)
    select_lines = [render_projection(p) for p in projections] or [f"{INDENT}*"]

    where = render_where_section(build, namespaces)
    used = set(where.used_prefixes) | set(extra_prefixes)
    where_lines = list(where.lines)
    for block in extra_blocks:
        if where_lines:
            where_lines.append("")
        where_lines.extend(block)

    lines = namespaces.prefix_lines(used)
    lines += ["", "SELECT DISTINCT", *select_lines, "WHERE {", *where_lines, "}"]
    if options.order_by_variable:
        lines.append(f"ORDER BY {options.order_by_direction}(?{options.order_by_variable})")
    if options.limit:
        lines.append(f"LIMIT {options.limit}")
    return "\n".join(lines)


def validate_query(query: str) -> None:
    """Parse ``query`` with rdflib's SPARQL grammar.

    Raises:
        QueryValidationError: If the text is not a valid SPARQL query
    """
    try:
        parseQuery(query)
    except ParseBaseException as exc:
        logger.error("Generated query failed to parse: %s", exc)
        raise QueryValidationError(f"Generated query is not valid SPARQL: {exc}") from exc
