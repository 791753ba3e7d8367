"""Serializable tree view of a selection.

The tree is a BFS spanning forest over the undirected in-selection adjacency,
rooted at the central node. It is the shape exported for external tooling;
the compiler itself does not consume it.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .model import SelectionGraph


@dataclass
class SelectionAstNode:
    id: str
    name: str
    path_array: list[str]
    explicit: bool = False
    optional: bool = False
    count: bool = False
    children: list['SelectionAstNode'] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'type': 'selectionNode',
            'id': self.id,
            'name': self.name,
            'path_array': list(self.path_array),
            'explicit': self.explicit,
            'optional': self.optional,
            'count': self.count,
            'children': [child.to_dict() for child in self.children],
        }


@dataclass
class SelectionAst:
    """Forest of selection nodes.

    Attributes:
        root_id: Central node, or the smallest id when no central node is selected
        children: One root per connected component, central component first
        nodes: Every node in BFS visit order
    """

    root_id: Optional[str]
    children: list[SelectionAstNode] = field(default_factory=list)
    nodes: list[SelectionAstNode] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'type': 'selectionAst',
            'rootId': self.root_id,
            'children': [child.to_dict() for child in self.children],
            'nodes': [node.to_dict() for node in self.nodes],
        }


def build_selection_ast(
    selection: SelectionGraph,
    explicit_ids: Optional[Iterable[str]] = None,
    all_optional: bool = False,
    references_optional: bool = False,
) -> SelectionAst:
    """Build the selection tree.

    Args:
        selection: Selection graph to describe
        explicit_ids: Nodes the user picked directly (the rest were pulled in
            as ancestors); defaults to no node
        all_optional: Mark every node optional
        references_optional: Mark entity-reference nodes and targets of
            boundary edges optional

    Returns:
        SelectionAst; a node is optional when forced by a flag or when it is
        multiple-valued
    """
    explicit = set(explicit_ids or ())
    counts = set(selection.count_ids)
    boundary_targets = {
        edge.target_display_id for edge in selection.internal_edges()
        if edge.is_entity_reference_boundary
    }

    adjacency: dict[str, list[str]] = {node_id: [] for node_id in selection.node_ids}
    for edge in selection.internal_edges():
        adjacency[edge.source_display_id].append(edge.target_display_id)
        adjacency[edge.target_display_id].append(edge.source_display_id)

    root_id = selection.central_id if selection.central_id in selection else None
    if root_id is None and len(selection):
        root_id = sorted(selection.node_ids)[0]

    parent_by_id: dict[str, Optional[str]] = {}
    visit_order: list[str] = []
    component_roots: list[str] = []

    def bfs(start_id: str) -> None:
        parent_by_id[start_id] = None
        component_roots.append(start_id)
        queue = deque([start_id])
        while queue:
            current = queue.popleft()
            visit_order.append(current)
            for neighbor in sorted(adjacency[current]):
                if neighbor not in parent_by_id:
                    parent_by_id[neighbor] = current
                    queue.append(neighbor)

    if root_id is not None:
        bfs(root_id)
    for node_id in sorted(selection.node_ids):
        if node_id not in parent_by_id:
            bfs(node_id)

    by_id: dict[str, SelectionAstNode] = {}
    for display_id in visit_order:
        node = selection.node(display_id)
        from_reference = references_optional and (
            node.is_entity_reference or display_id in boundary_targets
        )
        by_id[display_id] = SelectionAstNode(
            id=display_id,
            name=node.name,
            path_array=list(node.property_path),
            explicit=display_id in explicit,
            optional=all_optional or node.is_multiple or from_reference,
            count=display_id in counts,
        )

    for display_id, parent_id in parent_by_id.items():
        if parent_id is not None:
            by_id[parent_id].children.append(by_id[display_id])

    return SelectionAst(
        root_id=root_id,
        children=[by_id[node_id] for node_id in component_roots],
        nodes=[by_id[node_id] for node_id in visit_order],
    )
