"""Shared test fixtures for the selection-sparql test suite."""

import pytest
from pathlib import Path
from tempfile import TemporaryDirectory

from selection_sparql.model import PathModel, SelectionGraph
from tests.helpers import CRM, EX, edge


# ============================================================================
# Temporary Directory Fixtures
# ============================================================================

@pytest.fixture
def tmp_test_dir():
    """Create a temporary directory for test artifacts."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ============================================================================
# Path Model Fixtures
# ============================================================================

PERSON_PATHS = {
    'person': {
        'classification': 'model', 'name': 'Person', 'type': CRM + 'E21_Person',
        'path': [CRM + 'E21_Person'],
    },
    'name': {
        'classification': 'field', 'name': 'Name', 'parent': 'person',
        'path': [CRM + 'E21_Person', CRM + 'P1_is_identified_by',
                 CRM + 'E41_Appellation', CRM + 'P190_has_symbolic_content'],
    },
    'birth': {
        'classification': 'group', 'name': 'Birth', 'parent': 'person',
        'path': [CRM + 'E21_Person', CRM + 'P98i_was_born', CRM + 'E67_Birth'],
    },
    'birth_date': {
        'classification': 'field', 'name': 'Birth date', 'parent': 'birth',
        'path': [CRM + 'E21_Person', CRM + 'P98i_was_born', CRM + 'E67_Birth',
                 CRM + 'P4_has_time-span', CRM + 'E52_Time-Span'],
    },
    'membership': {
        'classification': 'group', 'name': 'Membership', 'parent': 'person', 'multiple': True,
        'path': [CRM + 'E21_Person', '^' + CRM + 'P107_has_current_or_former_member',
                 CRM + 'E74_Group'],
    },
    'group_name': {
        'classification': 'field', 'name': 'Group name', 'parent': 'membership',
        'path': [CRM + 'E21_Person', '^' + CRM + 'P107_has_current_or_former_member',
                 CRM + 'E74_Group', CRM + 'P1_is_identified_by', CRM + 'E41_Appellation',
                 CRM + 'P190_has_symbolic_content'],
    },
    'residence': {
        'classification': 'reference', 'name': 'Residence', 'parent': 'person',
        'path': [CRM + 'E21_Person', CRM + 'P74_has_current_or_former_residence',
                 CRM + 'E53_Place'],
    },
    'place': {
        'classification': 'model', 'name': 'Place', 'type': CRM + 'E53_Place',
        'path': [CRM + 'E53_Place'],
    },
    'place_name': {
        'classification': 'field', 'name': 'Place name', 'parent': 'place',
        'path': [CRM + 'E53_Place', CRM + 'P1_is_identified_by',
                 CRM + 'E41_Appellation', CRM + 'P190_has_symbolic_content'],
    },
}

CHAIN_PATHS = {
    'a': {'classification': 'group', 'name': 'A',
          'path': [EX + 'ClassX', EX + 'predY', EX + 'ClassZ']},
    'b': {'classification': 'field', 'name': 'B', 'parent': 'a',
          'path': [EX + 'ClassX', EX + 'predY', EX + 'ClassZ', EX + 'predQ', EX + 'ClassW']},
}


@pytest.fixture
def path_model():
    """Person / place schema with groups, a multiple group and a reference."""
    return PathModel.from_dict(PERSON_PATHS)


@pytest.fixture
def chain_model():
    """Two nested paths sharing a class/predicate/class prefix."""
    return PathModel.from_dict(CHAIN_PATHS)


@pytest.fixture
def make_selection(path_model):
    """Factory building a SelectionGraph against the person model."""

    def _make(nodes, edges=(), central=None, count=(), model=None):
        return SelectionGraph.from_dict(
            {'nodes': list(nodes), 'edges': list(edges), 'central': central, 'count': list(count)},
            model or path_model,
        )

    return _make


@pytest.fixture
def membership_selection(make_selection):
    """Person (central) with a name and a multiple membership carrying a group name."""
    return make_selection(
        ['person', 'name', 'membership', 'group_name'],
        [edge('person', 'name'), edge('person', 'membership'), edge('membership', 'group_name')],
        central='person',
    )


@pytest.fixture
def chain_selection(make_selection, chain_model):
    """A (central) with child B."""
    return make_selection(['a', 'b'], [edge('a', 'b')], central='a', model=chain_model)


@pytest.fixture
def document_data():
    """Selection document mapping as loaded from YAML."""
    return {
        'paths': PERSON_PATHS,
        'selection': {
            'central': 'person',
            'nodes': ['person', 'name', 'membership', 'group_name'],
            'edges': [
                edge('person', 'name'),
                edge('person', 'membership'),
                edge('membership', 'group_name'),
            ],
            'count': ['membership'],
            'explicit': ['name', 'group_name'],
        },
        'options': {'includeZeroCountResults': True, 'queryLimit': 25},
    }
