"""End-to-end compilation: selection graph and options in, validated query text out."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import QueryOptions
from ..model import Classification, SelectionGraph
from .builder import build_select
from .counts import synthesize_count_blocks
from .planner import build_count_subgraphs, compute_display_depths
from .render import render_query, validate_query

logger = logging.getLogger(__name__)

HEADER_TITLE = "# Auto-generated from currently selected graph nodes"
FULL_PREFIX_NOTE = "# Full path_array prefix constraints are included per selected node."
SHARED_PREFIX_NOTE = "# Shared path_array prefixes are deduplicated in WHERE patterns."


def effective_full_prefix(selection: SelectionGraph, options: QueryOptions) -> bool:
    """Full-prefix mode applies only when the central node is not a top-level model."""
    if not options.include_full_prefix_constraints:
        return False
    central = selection.node(selection.effective_central_id())
    if central is not None and central.path is not None:
        return central.path.classification is not Classification.ROOT
    return True


def header_lines(selection: SelectionGraph, full_prefix: bool) -> list[str]:
    lines = [HEADER_TITLE, f"# Central node: {selection.central_id or '(none)'}"]
    if len(selection):
        lines.append(f"# Selected graph nodes: {len(selection)}")
    else:
        lines.append("# No selected graph nodes found")
    lines.append(FULL_PREFIX_NOTE if full_prefix else SHARED_PREFIX_NOTE)
    return lines


def generate_sparql_query(selection: SelectionGraph, options: Optional[QueryOptions] = None) -> str:
    """Compile a selection into commented, grammar-checked SPARQL.

    Count closures are removed from the outer pattern and compiled into
    aggregate sub-selects; everything else goes through a single build.

    Args:
        selection: Selected nodes and edges with central and count designations
        options: Query shape options; defaults apply when omitted

    Returns:
        Header comment block followed by the query text

    Raises:
        QueryValidationError: If the rendered query does not parse

    Example:
        text = generate_sparql_query(selection, QueryOptions(limit=100))
    """
    options = options or QueryOptions()
    full_prefix = effective_full_prefix(selection, options)
    depth_by_id = compute_display_depths(selection)
    subgraphs = build_count_subgraphs(selection)

    outer_ids = [node_id for node_id in selection.node_ids if node_id not in subgraphs.excluded_from_outer]
    outer = build_select(selection.restrict(outer_ids), full_prefix=full_prefix)
    counts = synthesize_count_blocks(
        selection,
        outer,
        subgraphs,
        depth_by_id,
        options.namespaces,
        include_zero_count_results=options.include_zero_count_results,
        full_prefix=full_prefix,
    )

    query = render_query(
        outer,
        options,
        extra_projections=counts.projections,
        extra_blocks=counts.blocks,
        extra_prefixes=counts.used_prefixes,
    )
    validate_query(query)
    logger.debug(
        "Compiled %d nodes into %d triples and %d count blocks",
        len(selection), len(outer.records), len(counts.blocks),
    )
    return "\n".join(header_lines(selection, full_prefix)) + "\n" + query
