"""Count sub-query synthesis.

Each count node is compiled on its own, together with its boundary parent, and
rendered as a grouped ``COUNT(DISTINCT ...)`` sub-select joined to the outer
pattern through the parent's variable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

from ..model import SelectionGraph
from ..namespaces import NamespaceTable
from .builder import (
    DOWNSTREAM_ARROW,
    PLAIN_ARROW,
    UPSTREAM_ARROW,
    SelectBuild,
    build_select,
    transition_comment,
)
from .planner import CountSubgraphs
from .render import INDENT, render_where_section
from .terms import SelectProjection

logger = logging.getLogger(__name__)


@dataclass
class CountBlocks:
    """Rendered count sub-queries ready to be appended to the outer WHERE body."""

    projections: list[SelectProjection] = field(default_factory=list)
    blocks: list[list[str]] = field(default_factory=list)
    used_prefixes: set[str] = field(default_factory=set)


def _unique_alias(base: str, taken: set[str]) -> str:
    alias = base
    index = 1
    while alias in taken or f"{alias}_raw" in taken:
        index += 1
        alias = f"{base}_{index}"
    return alias


def _indented(prefix: str, line: str) -> str:
    return f"{prefix}{line}" if line.strip() else ""


def _without_comments(lines: list[str], comments: set[str]) -> list[str]:
    """Drop the given comment lines together with the blank line in front of each."""
    kept: list[str] = []
    for line in lines:
        if line.strip() in comments:
            if kept and not kept[-1].strip():
                kept.pop()
            continue
        kept.append(line)
    return kept


def _block_lines(
    comment: Optional[str],
    select_line: str,
    where_lines: list[str],
    group_by: Optional[str],
    wrap_optional: bool,
) -> list[str]:
    lines = [f"{INDENT}{comment}"] if comment else []
    if wrap_optional:
        inner = INDENT * 2
        lines += [f"{INDENT}OPTIONAL {{", f"{inner}{{", f"{inner}{select_line}", f"{inner}  WHERE {{"]
        lines += [_indented(inner, line) for line in where_lines]
        lines.append(f"{inner}  }}")
        if group_by:
            lines.append(f"{inner}  {group_by}")
        lines += [f"{inner}}}", f"{INDENT}}}"]
        return lines

    lines += [f"{INDENT}{{", f"{INDENT}  {select_line}", f"{INDENT}  WHERE {{"]
    lines += [_indented(INDENT, line) for line in where_lines]
    lines.append(f"{INDENT}  }}")
    if group_by:
        lines.append(f"{INDENT}  {group_by}")
    lines.append(f"{INDENT}}}")
    return lines


def synthesize_count_blocks(
    selection: SelectionGraph,
    outer: SelectBuild,
    subgraphs: CountSubgraphs,
    depth_by_id: Mapping[str, int],
    namespaces: NamespaceTable,
    include_zero_count_results: bool = False,
    full_prefix: bool = False,
) -> CountBlocks:
    """Compile every count node into an aggregate sub-select.

    Args:
        selection: The full selection, count closures included
        outer: Build of the selection without the count closures
        subgraphs: Count closures and boundary parents
        depth_by_id: Depths over the full selection, used for projection layout
        namespaces: Table used to compact IRIs
        include_zero_count_results: Wrap each block in OPTIONAL and project
            ``COALESCE(?raw, 0)`` so rows without matches count as zero
        full_prefix: Effective full-prefix mode of the outer build

    Returns:
        CountBlocks with one projection and one line block per emitted count
    """
    result = CountBlocks()
    taken = {projection.variable_name for projection in outer.projections}
    outer_ids = set(outer.select_variable_by_id) | set(outer.plan.ordered_ids)

    for count_id, descendants in subgraphs.descendants_by_count_id.items():
        parent_id = subgraphs.parent_by_count_id.get(count_id)
        if parent_id is not None and parent_id not in outer_ids:
            logger.debug("Count node %s skipped: parent %s is not in the outer pattern", count_id, parent_id)
            continue

        members = set(descendants)
        if parent_id is not None:
            members.add(parent_id)
        sub = build_select(selection.restrict(members, central_id=count_id), full_prefix=full_prefix)

        count_var = sub.select_variable_by_id.get(count_id)
        if not count_var:
            logger.debug("Count node %s has no select variable; skipped", count_id)
            continue

        outer_parent_var = outer.select_variable_by_id.get(parent_id) if parent_id else None
        sub_parent_var = sub.select_variable_by_id.get(parent_id) if parent_id else None
        variable_map = {}
        if sub_parent_var and outer_parent_var and sub_parent_var != outer_parent_var:
            variable_map[sub_parent_var] = outer_parent_var

        excluded = {
            key for key, record in sub.records.items()
            if record.triple.remap(variable_map).key in outer.records
        }
        section = render_where_section(
            sub,
            namespaces,
            excluded_keys=excluded,
            include_central_comment=False,
            variable_map=variable_map,
        )

        parent_name = selection.node(parent_id).name if selection.node(parent_id) else None
        count_name = selection.node(count_id).name
        edge_comments = set()
        if parent_name:
            edge_comments = {
                transition_comment(parent_name, arrow, count_name)
                for arrow in (PLAIN_ARROW, DOWNSTREAM_ARROW, UPSTREAM_ARROW)
            }
        lines = _without_comments(section.lines, edge_comments)
        if not any(line.strip() for line in lines):
            logger.debug("Count node %s adds no constraints beyond the outer pattern", count_id)
            continue

        alias = _unique_alias(f"{count_var}_count", taken)
        raw = f"{alias}_raw"
        taken.update({alias, raw})
        depth = depth_by_id.get(count_id, 0)
        if include_zero_count_results:
            result.projections.append(SelectProjection(
                variable_name=alias,
                depth=depth,
                coalesce_to_zero=True,
                source_variable_name=raw,
            ))
        else:
            result.projections.append(SelectProjection(variable_name=raw, depth=depth))

        group_by = f"GROUP BY ?{outer_parent_var}" if outer_parent_var else None
        head = f"?{outer_parent_var} " if outer_parent_var else ""
        select_line = f"SELECT {head}(COUNT(DISTINCT ?{count_var}) AS ?{raw})"
        comment = transition_comment(parent_name, PLAIN_ARROW, count_name) if parent_name else None
        result.blocks.append(
            _block_lines(comment, select_line, lines, group_by, include_zero_count_results)
        )
        result.used_prefixes |= section.used_prefixes
    return result
