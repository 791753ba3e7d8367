"""Tests for the query tool wrappers."""

import json

import pytest

from selection_sparql.compiler import QueryValidationError
from selection_sparql.config import QueryOptions
from selection_sparql.logging import CompileLog
from selection_sparql.tools import (
    clamp_limit,
    inject_limit,
    make_compile_tool,
    make_query_tools,
    projected_variables,
)
from selection_sparql.tools import query_tools
from tests.helpers import assert_parses, edge

PERSON_NAME = {
    'central': 'person',
    'nodes': ['person', 'name'],
    'edges': [edge('person', 'name')],
}


class TestInjectLimit:
    """Test LIMIT injection."""

    def test_injects_when_missing(self):
        """A SELECT without LIMIT gets one on a new line."""
        query, injected = inject_limit("SELECT ?s WHERE { ?s ?p ?o }", 10)
        assert injected is True
        assert query.endswith("\nLIMIT 10")
        assert_parses(query)

    def test_existing_limit_kept(self):
        """A query with a LIMIT is unchanged."""
        query, injected = inject_limit("SELECT ?s WHERE { ?s ?p ?o } limit 5", 10)
        assert injected is False
        assert query.endswith("limit 5")

    def test_non_select_unchanged(self):
        """ASK queries are left alone."""
        query, injected = inject_limit("ASK { ?s ?p ?o }", 10)
        assert injected is False


class TestProjectedVariables:
    """Test projection parsing."""

    def test_plain_and_aggregate_lines(self):
        """The last variable on each projection line is taken."""
        text = "\n".join([
            "SELECT DISTINCT",
            "  ?person_root  # <<<<< central node",
            "    (COALESCE(?x_count_raw, 0) AS ?x_count)",
            "    ?person_root",
            "WHERE {",
            "  ?person_root a ?type .",
            "}",
        ])
        assert projected_variables(text) == ['person_root', 'x_count']

    def test_no_projection(self):
        """Text without a SELECT DISTINCT block has no variables."""
        assert projected_variables("ASK { ?s ?p ?o }") == []


class TestClampLimit:
    """Test limit bounds."""

    @pytest.mark.parametrize("raw,expected", [
        (None, 100),
        (0, 1),
        (-5, 1),
        (50, 50),
        (50000, 10000),
    ])
    def test_clamp(self, raw, expected):
        """Limits are clamped to [1, 10000] with 100 as default."""
        assert clamp_limit(raw) == expected


class TestCompileTool:
    """Test the bounded compile tool."""

    def test_tool_created(self, path_model):
        """Tool is created with a docstring."""
        tool = make_compile_tool(path_model)
        assert callable(tool)
        assert "selection" in tool.__doc__.lower()

    def test_default_limit(self, path_model):
        """Queries end in LIMIT 100 by default."""
        text = make_compile_tool(path_model)(PERSON_NAME)
        assert text.splitlines()[-1] == "LIMIT 100"
        assert_parses(text)

    def test_limit_clamped(self, path_model):
        """Requested limits are clamped."""
        tool = make_compile_tool(path_model)
        assert tool(PERSON_NAME, limit=0).splitlines()[-1] == "LIMIT 1"
        assert tool(PERSON_NAME, limit=50000).splitlines()[-1] == "LIMIT 10000"

    def test_options_limit_used(self, path_model):
        """The base options' limit applies when no limit is passed."""
        tool = make_compile_tool(path_model, QueryOptions(limit=25))
        assert tool(PERSON_NAME).splitlines()[-1] == "LIMIT 25"

    def test_events_logged(self, path_model, tmp_test_dir):
        """Compile start and end events are written."""
        log_path = tmp_test_dir / "compile.jsonl"
        log = CompileLog(log_path, run_id="r-test")
        make_compile_tool(path_model, log=log)(PERSON_NAME)
        log.close()
        events = [json.loads(line) for line in log_path.read_text().splitlines()]
        assert [e['event'] for e in events] == ['session_start', 'compile_start', 'compile_end', 'session_end']
        end = events[2]
        assert end['status'] == 'ok'
        assert end['triple_count'] == 4
        assert end['run_id'] == 'r-test'

    def test_error_logged_and_raised(self, path_model, tmp_test_dir, monkeypatch):
        """Compile errors are logged and propagate."""
        def fail(selection, options):
            raise QueryValidationError("bad render")

        monkeypatch.setattr(query_tools, "generate_sparql_query", fail)
        log_path = tmp_test_dir / "compile.jsonl"
        with CompileLog(log_path) as log:
            with pytest.raises(QueryValidationError):
                make_compile_tool(path_model, log=log)(PERSON_NAME)
        events = [json.loads(line) for line in log_path.read_text().splitlines()]
        error = [e for e in events if e['event'] == 'compile_error'][0]
        assert error['error_type'] == 'QueryValidationError'
        assert error['exception'] == 'bad render'

    def test_make_query_tools(self, path_model):
        """All tools are returned by name."""
        tools = make_query_tools(path_model)
        assert set(tools) == {'compile_selection', 'projected_variables', 'inject_limit'}
        text = tools['compile_selection'](PERSON_NAME)
        assert tools['projected_variables'](text) == ['person_root', 'name_node']
