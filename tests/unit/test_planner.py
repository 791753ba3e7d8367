"""Tests for the traversal planner."""

from selection_sparql.compiler import (
    build_count_subgraphs,
    compute_boundary_contexts,
    compute_display_depths,
    compute_optional_chains,
    plan_emission_order,
    plan_traversal,
)
from selection_sparql.model import PathElement, SelectedNode, SelectionGraph
from tests.helpers import edge


class TestDisplayDepths:
    """Test depth assignment relative to the central node."""

    def test_downstream_depths(self, membership_selection):
        """Children sit one level below their parent."""
        assert compute_display_depths(membership_selection) == {
            'person': 0, 'name': 1, 'membership': 1, 'group_name': 2,
        }

    def test_upstream_shifted_to_zero(self, make_selection):
        """Ancestors of the central node shift everything so the minimum is 0."""
        selection = make_selection(
            ['person', 'membership', 'group_name'],
            [edge('person', 'membership'), edge('membership', 'group_name')],
            central='membership',
        )
        assert compute_display_depths(selection) == {'person': 0, 'membership': 1, 'group_name': 2}

    def test_disconnected_component_seeded_at_zero(self, make_selection):
        """Unreached nodes start their own BFS at depth 0."""
        selection = make_selection(['person', 'name', 'place'], [edge('person', 'name')], central='person')
        assert compute_display_depths(selection) == {'person': 0, 'name': 1, 'place': 0}

    def test_empty_selection(self):
        """No nodes, no depths."""
        assert compute_display_depths(SelectionGraph()) == {}


class TestBoundaryContexts:
    """Test reference-boundary labels."""

    def test_reference_children_get_new_context(self, make_selection):
        """Descendants of a reference node are labelled with it."""
        selection = make_selection(
            ['person', 'residence', 'place_name'],
            [edge('person', 'residence'), edge('residence', 'place_name')],
            central='person',
        )
        assert compute_boundary_contexts(selection) == {
            'person': 'root',
            'residence': 'root',
            'place_name': 'root|ref:residence',
        }

    def test_boundary_edge_to_plain_node(self, make_selection):
        """A boundary edge into a non-reference node labels the child itself."""
        selection = make_selection(
            ['person', 'place'], [edge('person', 'place', boundary=True)], central='person',
        )
        assert compute_boundary_contexts(selection)['place'] == 'root|ref:place'

    def test_cycle_without_source_gets_orphan_context(self, make_selection):
        """Nodes only reachable through a cycle are seeded as orphans."""
        selection = make_selection(
            ['person', 'name', 'birth'],
            [edge('name', 'birth'), edge('birth', 'name')],
            central='person',
        )
        contexts = compute_boundary_contexts(selection)
        assert contexts['person'] == 'root'
        assert contexts['birth'] == 'root|orphan:birth'
        assert contexts['name'] == 'root|orphan:birth'


class TestEmissionOrder:
    """Test emission order and parent map."""

    def test_ancestors_before_central(self, make_selection):
        """Upstream ancestors are emitted first, then the downstream DFS."""
        selection = make_selection(
            ['group_name', 'membership', 'person'],
            [edge('person', 'membership'), edge('membership', 'group_name')],
            central='membership',
        )
        plan = plan_emission_order(selection)
        assert plan.ordered_ids == ['person', 'membership', 'group_name']
        assert plan.parent_by_id == {'membership': 'person', 'group_name': 'membership'}
        assert plan.upstream_transitions == {('person', 'membership')}

    def test_children_in_sorted_order(self, membership_selection):
        """Downstream children are visited in sorted-id order."""
        plan = plan_emission_order(membership_selection)
        assert plan.ordered_ids == ['person', 'membership', 'group_name', 'name']

    def test_unreached_nodes_appended(self, make_selection):
        """Other components follow, sources first."""
        selection = make_selection(
            ['person', 'place_name', 'place'],
            [edge('place', 'place_name')],
            central='person',
        )
        assert plan_emission_order(selection).ordered_ids == ['person', 'place', 'place_name']


class TestOptionalChains:
    """Test OPTIONAL chain computation."""

    def test_multiple_branch_opens_one_scope(self, membership_selection):
        """Descendants inherit the multiple ancestor's chain."""
        plan = plan_traversal(membership_selection)
        assert plan.optional_chain_by_id == {
            'person': [],
            'membership': ['membership'],
            'group_name': ['membership'],
            'name': [],
        }

    def test_central_node_has_empty_chain(self, make_selection):
        """A multiple central node is not optional."""
        selection = make_selection(
            ['membership', 'group_name'], [edge('membership', 'group_name')], central='membership',
        )
        assert plan_traversal(selection).optional_chain_by_id == {'membership': [], 'group_name': []}

    def test_parent_cycle_terminates(self):
        """A cyclic parent map resolves to a neutral chain instead of recursing."""
        nodes = [
            SelectedNode('x', 'x', PathElement(id='x', is_multiple=True)),
            SelectedNode('y', 'y', PathElement(id='y', is_multiple=True)),
        ]
        chains = compute_optional_chains(
            SelectionGraph(nodes=nodes), ['x', 'y'], {'x': 'y', 'y': 'x'}, central_id=None,
        )
        assert chains == {'x': ['y'], 'y': ['y']}


class TestCountSubgraphs:
    """Test count closure extraction."""

    def test_closure_and_parent(self, make_selection):
        """A count node takes its BFS subtree out of the outer pattern."""
        selection = make_selection(
            ['person', 'name', 'membership', 'group_name'],
            [edge('person', 'name'), edge('person', 'membership'), edge('membership', 'group_name')],
            central='person',
            count=['membership'],
        )
        subgraphs = build_count_subgraphs(selection)
        assert subgraphs.excluded_from_outer == {'membership', 'group_name'}
        assert subgraphs.descendants_by_count_id == {'membership': {'membership', 'group_name'}}
        assert subgraphs.parent_by_count_id == {'membership': 'person'}

    def test_disconnected_count_ignored(self, make_selection):
        """Count nodes outside the central component are skipped."""
        selection = make_selection(['person', 'place'], central='person', count=['place'])
        subgraphs = build_count_subgraphs(selection)
        assert subgraphs.excluded_from_outer == set()
        assert subgraphs.descendants_by_count_id == {}
