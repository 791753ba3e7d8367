"""Selection graph: the user's picked display nodes and edges.

Display ids identify visual instances; several display nodes can point at the
same schema path (``source_path_id``) when a path is reached through different
reference chains.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .paths import PathElement, PathModel, parse_flag

logger = logging.getLogger(__name__)


def _list_section(data: dict, key: str) -> list:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"Selection '{key}' must be a list, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class SelectedNode:
    """A selected display node and the path element it resolves to."""

    display_id: str
    source_path_id: str
    path: Optional[PathElement] = None

    @property
    def property_path(self) -> tuple[str, ...]:
        return self.path.property_path if self.path else ()

    @property
    def is_multiple(self) -> bool:
        return bool(self.path and self.path.is_multiple)

    @property
    def is_entity_reference(self) -> bool:
        return bool(self.path and self.path.is_entity_reference)

    @property
    def name(self) -> str:
        """Label used in query comments."""
        if self.path and self.path.name:
            raw = self.path.name
        else:
            raw = self.source_path_id or self.display_id
        # Comments are line based.
        return " ".join(raw.split()) or self.display_id


@dataclass(frozen=True)
class SelectedEdge:
    """Directed edge between two selected display nodes."""

    source_display_id: str
    target_display_id: str
    bridge_predicate_iri: Optional[str] = None
    is_entity_reference_boundary: bool = False

    @property
    def transition(self) -> tuple[str, str]:
        return (self.source_display_id, self.target_display_id)

    @property
    def bridge_predicate(self) -> str:
        return (self.bridge_predicate_iri or "").strip()


@dataclass
class SelectionGraph:
    """Selected nodes and edges plus the central and count node designations."""

    nodes: list[SelectedNode] = field(default_factory=list)
    edges: list[SelectedEdge] = field(default_factory=list)
    central_id: Optional[str] = None
    count_ids: list[str] = field(default_factory=list)

    def __post_init__(self):
        self._by_id = {node.display_id: node for node in self.nodes}

    @property
    def node_ids(self) -> list[str]:
        return [node.display_id for node in self.nodes]

    def __contains__(self, display_id: object) -> bool:
        return display_id in self._by_id

    def __len__(self) -> int:
        return len(self.nodes)

    def node(self, display_id: Optional[str]) -> Optional[SelectedNode]:
        if display_id is None:
            return None
        return self._by_id.get(display_id)

    def internal_edges(self) -> list[SelectedEdge]:
        """Edges whose both endpoints are selected."""
        return [
            edge for edge in self.edges
            if edge.source_display_id in self._by_id and edge.target_display_id in self._by_id
        ]

    def edges_within(self, display_ids: Iterable[str]) -> list[SelectedEdge]:
        keep = set(display_ids)
        return [
            edge for edge in self.edges
            if edge.source_display_id in keep and edge.target_display_id in keep
        ]

    def effective_central_id(self) -> Optional[str]:
        """Central node if it is selected, otherwise the first selected node."""
        if self.central_id and self.central_id in self._by_id:
            return self.central_id
        return self.nodes[0].display_id if self.nodes else None

    def restrict(self, display_ids: Iterable[str], central_id: Optional[str] = None) -> 'SelectionGraph':
        """Sub-selection over ``display_ids`` keeping the original node order."""
        keep = set(display_ids)
        nodes = [node for node in self.nodes if node.display_id in keep]
        return SelectionGraph(
            nodes=nodes,
            edges=self.edges_within(keep),
            central_id=central_id if central_id is not None else self.central_id,
            count_ids=[cid for cid in self.count_ids if cid in keep],
        )

    def to_dict(self) -> dict:
        return {
            'central': self.central_id,
            'count': list(self.count_ids),
            'nodes': [
                {'id': node.display_id, 'path': node.source_path_id}
                for node in self.nodes
            ],
            'edges': [
                {
                    'source': edge.source_display_id,
                    'target': edge.target_display_id,
                    'bridge': edge.bridge_predicate_iri,
                    'boundary': edge.is_entity_reference_boundary,
                }
                for edge in self.edges
            ],
        }

    @classmethod
    def from_dict(cls, data: dict, path_model: PathModel) -> 'SelectionGraph':
        """Resolve a selection mapping against a path model.

        Args:
            data: Mapping with ``nodes``, ``edges``, ``central`` and ``count`` keys.
                Nodes are bare ids or ``{id, path}`` mappings; edges are
                ``{source, target, bridge?, boundary?, via_reference?}`` mappings.
            path_model: Lookup used to attach path elements to nodes

        Returns:
            SelectionGraph with unresolvable path ids kept as path-less nodes

        Example:
            selection = SelectionGraph.from_dict(
                {'central': 'person', 'nodes': ['person', 'name'],
                 'edges': [{'source': 'person', 'target': 'name'}]},
                model,
            )
        """
        if not isinstance(data, dict):
            raise ValueError(f"Selection must be a mapping, got {type(data).__name__}")

        nodes: list[SelectedNode] = []
        seen: set[str] = set()
        for raw in _list_section(data, 'nodes'):
            if isinstance(raw, dict):
                display_id = str(raw.get('id', "")).strip()
                source_path_id = str(raw.get('path') or display_id).strip()
            else:
                display_id = source_path_id = str(raw).strip()
            if not display_id or display_id in seen:
                continue
            seen.add(display_id)
            element = path_model.get(source_path_id)
            if element is None:
                logger.debug("Selected node %s has no path element %s", display_id, source_path_id)
            nodes.append(SelectedNode(display_id, source_path_id, element))

        by_id = {node.display_id: node for node in nodes}
        edges: list[SelectedEdge] = []
        for raw in _list_section(data, 'edges'):
            if not isinstance(raw, dict):
                raise ValueError(f"Selection edge must be a mapping, got {type(raw).__name__}")
            source = str(raw.get('source', "")).strip()
            target = str(raw.get('target', "")).strip()
            if source not in by_id or target not in by_id:
                continue
            boundary = raw.get('boundary')
            if boundary is None:
                boundary = by_id[target].is_entity_reference
            bridge = raw.get('bridge')
            if not bridge and raw.get('via_reference'):
                bridge = path_model.bridge_predicate_for(str(raw['via_reference']))
            edges.append(SelectedEdge(source, target, bridge or None, parse_flag(boundary, 'boundary')))

        central = data.get('central')
        count_ids = [str(cid).strip() for cid in _list_section(data, 'count')]
        return cls(
            nodes=nodes,
            edges=edges,
            central_id=str(central).strip() if central else None,
            count_ids=count_ids,
        )
