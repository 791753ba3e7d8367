"""Triple builder: turns planned selection nodes into deduplicated triples.

Each selected node's property path is walked from its root class. Variables for
path prefixes are cached per boundary context, so nodes that share a prefix
share the triples for it. Explicit bridge predicates are then folded in and
transition comments are attached to the emissions they describe.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional

from ..model import SelectionGraph, split_inverse
from .planner import TraversalPlan, plan_traversal
from .terms import (
    RDF_TYPE,
    SelectProjection,
    Term,
    Triple,
    TripleEmission,
    TripleKey,
    TripleRecord,
    iri,
    to_var_safe_fragment,
    var,
)

logger = logging.getLogger(__name__)

UPSTREAM_ARROW = "<<-"
DOWNSTREAM_ARROW = "->>"
PLAIN_ARROW = ">"
CENTRAL_MARKER = ">>>>"


def central_comment(name: str) -> str:
    return f"# {CENTRAL_MARKER} Central node: {name} <<<<"


def transition_comment(source_name: str, arrow: str, target_name: str) -> str:
    return f"# {source_name} {arrow} {target_name}"


class EmissionLog:
    """Ordered emissions with positional re-insertion by id."""

    def __init__(self):
        self._entries: list[TripleEmission] = []
        self._counter = 0

    def __iter__(self) -> Iterator[TripleEmission]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def next_id(self) -> str:
        emission_id = f"e{self._counter}"
        self._counter += 1
        return emission_id

    def append(self, emission: TripleEmission) -> None:
        self._entries.append(emission)

    def _index(self, emission_id: str) -> int:
        for index, entry in enumerate(self._entries):
            if entry.id == emission_id:
                return index
        return -1

    def move_before(self, emission_id: str, anchor_id: str) -> None:
        """Move ``emission_id`` so it sits immediately before ``anchor_id``."""
        if emission_id == anchor_id:
            return
        index = self._index(emission_id)
        if index < 0 or self._index(anchor_id) < 0:
            return
        entry = self._entries.pop(index)
        self._entries.insert(self._index(anchor_id), entry)

    def to_list(self) -> list[TripleEmission]:
        return list(self._entries)


class PrefixVariableCache:
    """Variable names for property-path prefixes, scoped to one compilation."""

    def __init__(self):
        self._by_key: dict[tuple, str] = {}
        self._names: set[str] = set()

    def get_or_create(self, key: tuple, preferred: str, fallback_suffix: str) -> str:
        existing = self._by_key.get(key)
        if existing is not None:
            return existing
        candidate = preferred
        index = 1
        while candidate in self._names:
            index += 1
            candidate = f"{preferred}_{fallback_suffix}_{index}"
        self._by_key[key] = candidate
        self._names.add(candidate)
        return candidate


@dataclass
class SelectBuild:
    """Output of one compilation pass over a (sub)selection."""

    plan: TraversalPlan
    records: dict[TripleKey, TripleRecord] = field(default_factory=dict)
    emissions: list[TripleEmission] = field(default_factory=list)
    comments_by_emission_id: dict[str, list[str]] = field(default_factory=dict)
    projections: list[SelectProjection] = field(default_factory=list)
    select_variable_by_id: dict[str, str] = field(default_factory=dict)
    first_emission_by_id: dict[str, str] = field(default_factory=dict)
    central_emission_id: Optional[str] = None
    central_comment: Optional[str] = None

    @property
    def optional_chain_by_id(self) -> dict[str, list[str]]:
        return self.plan.optional_chain_by_id

    @property
    def triples(self) -> list[Triple]:
        return [record.triple for record in self.records.values()]


class CompilationContext:
    """Mutable state of a single compilation; discarded after the build.

    Args:
        selection: Nodes and edges to compile
        full_prefix: Fold the owning node into every prefix-cache key so no two
            nodes share path variables
    """

    def __init__(self, selection: SelectionGraph, full_prefix: bool = False):
        self.selection = selection
        self.full_prefix = full_prefix
        self.plan = plan_traversal(selection)
        self.records: dict[TripleKey, TripleRecord] = {}
        self.emissions = EmissionLog()
        self.prefix_vars = PrefixVariableCache()
        self.select_variable_by_id: dict[str, str] = {}
        self.first_emission_by_id: dict[str, str] = {}
        self.comments_by_emission_id: dict[str, list[str]] = {}
        self.preferred_select_variable_by_id = self._preferred_select_variables()

    def _preferred_select_variables(self) -> dict[str, str]:
        occurrences: dict[str, int] = {}
        preferred = {}
        for display_id in self.plan.ordered_ids:
            node = self.selection.node(display_id)
            if node is None:
                continue
            base = to_var_safe_fragment(node.source_path_id)
            count = occurrences.get(base, 0)
            occurrences[base] = count + 1
            preferred[display_id] = f"{base}_node" if count == 0 else f"{base}_node_{count + 1}"
        return preferred

    def node_name(self, display_id: str) -> str:
        node = self.selection.node(display_id)
        return node.name if node is not None else display_id

    # ---- triples ----

    def add_triple(
        self,
        subject: Term,
        predicate: Term,
        obj: Term,
        depth: int,
        owner_display_id: Optional[str],
    ) -> TripleEmission:
        """Record a triple request; the record keeps the smallest depth seen."""
        triple = Triple(subject, predicate, obj)
        depth = max(0, depth)
        record = self.records.get(triple.key)
        if record is None:
            self.records[triple.key] = TripleRecord(key=triple.key, triple=triple, depth=depth)
        elif depth < record.depth:
            record.depth = depth
        emission = TripleEmission(
            id=self.emissions.next_id(),
            key=triple.key,
            depth=depth,
            owner_display_id=owner_display_id,
        )
        self.emissions.append(emission)
        return emission

    def add_comment(self, emission_id: str, comment: str) -> None:
        entries = self.comments_by_emission_id.setdefault(emission_id, [])
        if comment not in entries:
            entries.append(comment)

    def _prefix_key(self, context: str, kind: str, tokens: tuple, owner: str) -> tuple:
        if self.full_prefix:
            return (context, kind, tokens, owner)
        return (context, kind, tokens)

    def emit_node(self, display_id: str) -> None:
        """Emit the type and property triples along one node's path."""
        node = self.selection.node(display_id)
        if node is None:
            return
        path = node.property_path
        classes, predicates = path[0::2], path[1::2]
        if not classes:
            logger.debug("Node %s has an empty property path; skipped", display_id)
            return

        depth = self.plan.depth_by_id.get(display_id, 0)
        context = self.plan.boundary_context_by_id.get(display_id, "root")
        source_base = to_var_safe_fragment(node.source_path_id)
        selected_name = self.preferred_select_variable_by_id.get(display_id, f"{source_base}_node")

        root_class, _ = split_inverse(classes[0])
        current = self.prefix_vars.get_or_create(
            self._prefix_key(context, "class", (root_class,), display_id),
            f"{source_base}_root",
            "root",
        )
        first = self.add_triple(var(current), RDF_TYPE, iri(root_class), depth, display_id)
        self.first_emission_by_id[display_id] = first.id

        ends_with_class = len(classes) > len(predicates)
        tokens: tuple = (classes[0],)
        for step, raw_predicate in enumerate(predicates):
            predicate_iri, inverse = split_inverse(raw_predicate)
            tokens = tokens + (raw_predicate,)

            if step + 1 < len(classes):
                raw_class = classes[step + 1]
                class_iri, _ = split_inverse(raw_class)
                tokens = tokens + (raw_class,)
                is_terminal = ends_with_class and step + 1 == len(classes) - 1
                preferred = selected_name if is_terminal else f"{source_base}_step_{step + 1}"
                following = self.prefix_vars.get_or_create(
                    self._prefix_key(context, "classPrefix", tokens, display_id),
                    preferred,
                    f"step_{step + 1}",
                )
                self._add_link(current, predicate_iri, following, inverse, depth, display_id)
                self.add_triple(var(following), RDF_TYPE, iri(class_iri), depth, display_id)
                current = following
                continue

            # A trailing predicate reaches a plain value: no class constraint.
            value = self.prefix_vars.get_or_create(
                self._prefix_key(context, "valuePrefix", tokens, display_id),
                selected_name,
                "value",
            )
            self._add_link(current, predicate_iri, value, inverse, depth, display_id)
            current = value
            break

        self.select_variable_by_id[display_id] = current

    def _add_link(self, base: str, predicate_iri: str, other: str, inverse: bool,
                  depth: int, owner: str) -> TripleEmission:
        subject, obj = (other, base) if inverse else (base, other)
        return self.add_triple(var(subject), iri(predicate_iri), var(obj), depth, owner)

    # ---- bridges and comments ----

    def resolve_bridges(self) -> set[tuple[str, str]]:
        """Connect explicitly bridged endpoints and splice each bridge before its target."""
        bridged = set()
        for edge in self.selection.internal_edges():
            raw = edge.bridge_predicate
            if not raw:
                continue
            bridged.add(edge.transition)
            source_var = self.select_variable_by_id.get(edge.source_display_id)
            target_var = self.select_variable_by_id.get(edge.target_display_id)
            if not source_var or not target_var:
                continue
            predicate_iri, inverse = split_inverse(raw)
            emission = self._add_link(
                source_var,
                predicate_iri,
                target_var,
                inverse,
                self.plan.depth_by_id.get(edge.target_display_id, 0),
                edge.target_display_id,
            )
            arrow = UPSTREAM_ARROW if edge.transition in self.plan.upstream_transitions else DOWNSTREAM_ARROW
            self.add_comment(
                emission.id,
                transition_comment(
                    self.node_name(edge.source_display_id), arrow, self.node_name(edge.target_display_id),
                ),
            )
            anchor = self.first_emission_by_id.get(edge.target_display_id)
            if anchor:
                self.emissions.move_before(emission.id, anchor)
        return bridged

    def _arrow(self, transition: tuple[str, str], reference_transitions: set) -> str:
        if transition not in reference_transitions:
            return PLAIN_ARROW
        if transition in self.plan.upstream_transitions:
            return UPSTREAM_ARROW
        return DOWNSTREAM_ARROW

    def annotate_transitions(self, bridged: set[tuple[str, str]]) -> None:
        """Attach ``# parent > child`` comments to each child's first emission."""
        reference_transitions = set(bridged)
        for edge in self.selection.internal_edges():
            if not edge.bridge_predicate and edge.is_entity_reference_boundary:
                reference_transitions.add(edge.transition)

        handled = set()
        plain_edges = sorted(
            {edge.transition for edge in self.selection.internal_edges()} - bridged
        )
        for source_id, target_id in plain_edges:
            anchor = self.first_emission_by_id.get(target_id)
            if not anchor:
                continue
            arrow = self._arrow((source_id, target_id), reference_transitions)
            self.add_comment(
                anchor, transition_comment(self.node_name(source_id), arrow, self.node_name(target_id)),
            )
            handled.add((source_id, target_id))

        for child_id, parent_id in self.plan.parent_by_id.items():
            anchor = self.first_emission_by_id.get(child_id)
            transition = (parent_id, child_id)
            if not anchor or transition in handled or transition in bridged:
                continue
            arrow = self._arrow(transition, reference_transitions)
            self.add_comment(
                anchor, transition_comment(self.node_name(parent_id), arrow, self.node_name(child_id)),
            )

    def projections(self) -> list[SelectProjection]:
        """Unique select variables in emission order; a shared variable stays central if any owner is."""
        by_name: dict[str, SelectProjection] = {}
        for display_id in self.plan.ordered_ids:
            name = self.select_variable_by_id.get(display_id)
            if not name:
                continue
            is_central = display_id == self.plan.central_id
            existing = by_name.get(name)
            if existing is None:
                by_name[name] = SelectProjection(
                    variable_name=name,
                    depth=self.plan.depth_by_id.get(display_id, 0),
                    is_central=is_central,
                )
            elif is_central:
                existing.is_central = True
        return list(by_name.values())

    def build(self) -> SelectBuild:
        for display_id in self.plan.ordered_ids:
            self.emit_node(display_id)
        bridged = self.resolve_bridges()
        self.annotate_transitions(bridged)
        central_id = self.plan.central_id
        central_emission_id = self.first_emission_by_id.get(central_id) if central_id is not None else None
        return SelectBuild(
            plan=self.plan,
            records=self.records,
            emissions=self.emissions.to_list(),
            comments_by_emission_id=self.comments_by_emission_id,
            projections=self.projections(),
            select_variable_by_id=self.select_variable_by_id,
            first_emission_by_id=self.first_emission_by_id,
            central_emission_id=central_emission_id,
            central_comment=central_comment(self.node_name(central_id)) if central_emission_id else None,
        )


def build_select(selection: SelectionGraph, full_prefix: bool = False) -> SelectBuild:
    """Plan and build the triples of one selection.

    Args:
        selection: Selection graph to compile
        full_prefix: Disable cross-node sharing of path-prefix variables

    Returns:
        SelectBuild with unique triple records, the emission log, transition
        comments, projections and per-node select variables
    """
    return CompilationContext(selection, full_prefix=full_prefix).build()
