"""Traversal planning over a selection graph.

Computes, for one compilation: per-node depth relative to the central node,
reference-boundary contexts, the emission order with its parent map, and the
OPTIONAL chain of every node. Count-node subgraphs are also carved out here.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Optional

from ..model import SelectionGraph
from .terms import to_var_safe_fragment

logger = logging.getLogger(__name__)

ROOT_CONTEXT = "root"


def _directed_adjacency(selection: SelectionGraph) -> tuple[dict[str, set[str]], dict[str, set[str]]]:
    outgoing: dict[str, set[str]] = {node_id: set() for node_id in selection.node_ids}
    incoming: dict[str, set[str]] = {node_id: set() for node_id in selection.node_ids}
    for edge in selection.internal_edges():
        outgoing[edge.source_display_id].add(edge.target_display_id)
        incoming[edge.target_display_id].add(edge.source_display_id)
    return outgoing, incoming


def _undirected_adjacency(selection: SelectionGraph) -> dict[str, set[str]]:
    adjacency: dict[str, set[str]] = {node_id: set() for node_id in selection.node_ids}
    for edge in selection.internal_edges():
        adjacency[edge.source_display_id].add(edge.target_display_id)
        adjacency[edge.target_display_id].add(edge.source_display_id)
    return adjacency


def compute_display_depths(selection: SelectionGraph) -> dict[str, int]:
    """Signed BFS depth from the central node, shifted so the minimum is 0.

    Parents of a node sit one level above it and children one level below.
    Nodes of other components are seeded at depth 0 in sorted-id order.
    """
    outgoing, incoming = _directed_adjacency(selection)
    depths: dict[str, int] = {}

    def bfs(start_id: str) -> None:
        depths[start_id] = 0
        queue = deque([start_id])
        while queue:
            current = queue.popleft()
            for parent in sorted(incoming[current]):
                if parent not in depths:
                    depths[parent] = depths[current] - 1
                    queue.append(parent)
            for child in sorted(outgoing[current]):
                if child not in depths:
                    depths[child] = depths[current] + 1
                    queue.append(child)

    start_id = selection.effective_central_id()
    if start_id is not None:
        bfs(start_id)
    for node_id in sorted(selection.node_ids):
        if node_id not in depths:
            logger.debug("Node %s is disconnected from the central node", node_id)
            bfs(node_id)

    shift = -min(depths.values(), default=0)
    if shift > 0:
        depths = {node_id: depth + shift for node_id, depth in depths.items()}
    return depths


def compute_boundary_contexts(selection: SelectionGraph) -> dict[str, str]:
    """Label each node with the entity-reference crossings above it.

    Two nodes may share compiled variables only when their labels are equal.
    """
    outgoing, incoming = _directed_adjacency(selection)
    boundary_edges = {
        edge.transition for edge in selection.internal_edges()
        if edge.is_entity_reference_boundary
    }

    roots = sorted(node_id for node_id in selection.node_ids if not incoming[node_id])
    preferred = selection.central_id if selection.central_id in selection else None
    if preferred is not None:
        if preferred in roots:
            roots.remove(preferred)
        roots.insert(0, preferred)

    contexts: dict[str, str] = {}

    def bfs(seeds: list[tuple[str, str]]) -> None:
        queue = deque()
        for seed_id, context in seeds:
            if seed_id not in contexts:
                contexts[seed_id] = context
                queue.append(seed_id)
        while queue:
            current = queue.popleft()
            node = selection.node(current)
            base = contexts[current]
            if node is not None and node.is_entity_reference:
                base = f"{base}|ref:{to_var_safe_fragment(current)}"
            for child in sorted(outgoing[current]):
                if child in contexts:
                    continue
                child_context = base
                child_node = selection.node(child)
                crosses = (current, child) in boundary_edges
                if crosses and child_node is not None and not child_node.is_entity_reference:
                    child_context = f"{base}|ref:{to_var_safe_fragment(child)}"
                contexts[child] = child_context
                queue.append(child)

    bfs([(root_id, ROOT_CONTEXT) for root_id in roots])
    # Only cycles without a source remain.
    for node_id in sorted(selection.node_ids):
        if node_id not in contexts:
            bfs([(node_id, f"{ROOT_CONTEXT}|orphan:{to_var_safe_fragment(node_id)}")])
    return contexts


@dataclass
class EmissionPlan:
    ordered_ids: list[str] = field(default_factory=list)
    parent_by_id: dict[str, str] = field(default_factory=dict)
    upstream_transitions: set[tuple[str, str]] = field(default_factory=set)


def plan_emission_order(selection: SelectionGraph) -> EmissionPlan:
    """Ancestors of the central node first (postorder), then a sorted downstream DFS.

    Nodes reached by neither walk are appended through their own downstream DFS,
    source nodes first, then the rest in sorted-id order.
    """
    outgoing, incoming = _directed_adjacency(selection)
    plan = EmissionPlan()
    ordered: set[str] = set()

    def append(node_id: str) -> None:
        if node_id not in ordered:
            ordered.add(node_id)
            plan.ordered_ids.append(node_id)

    def visit_downstream(current: str) -> None:
        append(current)
        for child in sorted(outgoing[current]):
            plan.parent_by_id.setdefault(child, current)
            if child not in ordered:
                visit_downstream(child)

    upstream_visited: set[str] = set()
    upstream_postorder: list[str] = []

    def visit_upstream(current: str) -> None:
        if current in upstream_visited:
            return
        upstream_visited.add(current)
        for parent in sorted(incoming[current]):
            plan.parent_by_id.setdefault(current, parent)
            plan.upstream_transitions.add((parent, current))
            visit_upstream(parent)
        upstream_postorder.append(current)

    start_id = selection.effective_central_id()
    if start_id is not None:
        visit_upstream(start_id)
        for upstream_id in upstream_postorder:
            if upstream_id != start_id:
                append(upstream_id)
        append(start_id)
        visit_downstream(start_id)

    sources = sorted(node_id for node_id in selection.node_ids if not incoming[node_id])
    for node_id in sources + sorted(selection.node_ids):
        if node_id not in ordered:
            visit_downstream(node_id)
    return plan


def compute_optional_chains(
    selection: SelectionGraph,
    ordered_ids: list[str],
    parent_by_id: dict[str, str],
    central_id: Optional[str],
) -> dict[str, list[str]]:
    """OPTIONAL scopes each node renders under.

    A multiple-valued node opens one scope; its descendants inherit the parent's
    chain instead of nesting another OPTIONAL.
    """
    memo: dict[str, list[str]] = {}
    in_progress: set[str] = set()

    def chain_for(node_id: str) -> list[str]:
        if node_id in memo:
            return memo[node_id]
        if node_id in in_progress:
            return []
        if node_id == central_id:
            memo[node_id] = []
            return memo[node_id]
        in_progress.add(node_id)
        parent_id = parent_by_id.get(node_id)
        parent_chain = chain_for(parent_id) if parent_id else []
        node = selection.node(node_id)
        if parent_chain:
            chain = list(parent_chain)
        elif node is not None and node.is_multiple:
            chain = [node_id]
        else:
            chain = []
        in_progress.discard(node_id)
        memo[node_id] = chain
        return chain

    return {node_id: chain_for(node_id) for node_id in ordered_ids}


@dataclass
class TraversalPlan:
    """Everything the triple builder needs to know about the selection's shape."""

    central_id: Optional[str]
    depth_by_id: dict[str, int]
    boundary_context_by_id: dict[str, str]
    ordered_ids: list[str]
    parent_by_id: dict[str, str]
    upstream_transitions: set[tuple[str, str]]
    optional_chain_by_id: dict[str, list[str]]


def plan_traversal(selection: SelectionGraph) -> TraversalPlan:
    central_id = selection.effective_central_id()
    emission = plan_emission_order(selection)
    return TraversalPlan(
        central_id=central_id,
        depth_by_id=compute_display_depths(selection),
        boundary_context_by_id=compute_boundary_contexts(selection),
        ordered_ids=emission.ordered_ids,
        parent_by_id=emission.parent_by_id,
        upstream_transitions=emission.upstream_transitions,
        optional_chain_by_id=compute_optional_chains(
            selection, emission.ordered_ids, emission.parent_by_id, central_id,
        ),
    )


@dataclass
class CountSubgraphs:
    """Nodes moved out of the outer pattern into count sub-queries."""

    excluded_from_outer: set[str] = field(default_factory=set)
    descendants_by_count_id: dict[str, set[str]] = field(default_factory=dict)
    parent_by_count_id: dict[str, str] = field(default_factory=dict)


def build_count_subgraphs(selection: SelectionGraph) -> CountSubgraphs:
    """Split off each count node together with everything reachable only through it.

    A BFS tree is grown from the central node over the undirected adjacency;
    a count node's closure is its subtree in that tree. Count nodes outside the
    central node's component are ignored.
    """
    result = CountSubgraphs()
    start_id = selection.effective_central_id()
    if start_id is None:
        return result

    adjacency = _undirected_adjacency(selection)
    children: dict[str, list[str]] = {}
    parent_by_id: dict[str, str] = {}
    connected = {start_id}
    queue = deque([start_id])
    while queue:
        current = queue.popleft()
        for neighbor in sorted(adjacency[current]):
            if neighbor in connected:
                continue
            connected.add(neighbor)
            parent_by_id[neighbor] = current
            children.setdefault(current, []).append(neighbor)
            queue.append(neighbor)

    for count_id in selection.count_ids:
        if count_id not in selection or count_id not in connected:
            logger.debug("Count node %s is not connected to the central node", count_id)
            continue
        descendants = {count_id}
        result.excluded_from_outer.add(count_id)
        if count_id in parent_by_id:
            result.parent_by_count_id[count_id] = parent_by_id[count_id]
        stack = list(children.get(count_id, []))
        while stack:
            current = stack.pop()
            if current in descendants:
                continue
            descendants.add(current)
            result.excluded_from_outer.add(current)
            stack.extend(children.get(current, []))
        result.descendants_by_count_id[count_id] = descendants
    return result
