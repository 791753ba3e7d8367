"""Bounded tool surface around the compiler.

Wraps ``generate_sparql_query`` with enforced limits and event logging, plus
small text helpers for the generated queries.
"""

from __future__ import annotations

import dataclasses
import re
from typing import Callable, Optional

from ..compiler import generate_sparql_query
from ..config import QueryOptions
from ..logging import CompileLog
from ..model import PathModel, SelectionGraph

DEFAULT_LIMIT = 100
MAX_LIMIT = 10000

_LIMIT = re.compile(r"\bLIMIT\s+\d+\b", re.IGNORECASE)
_VARIABLE = re.compile(r"\?([a-z_]\w*)", re.IGNORECASE)


def inject_limit(query: str, limit: int) -> tuple[str, bool]:
    """Append a LIMIT clause to a SELECT query if it has none.

    Args:
        query: SPARQL query string
        limit: Limit value to inject

    Returns:
        Tuple of (modified_query, was_injected)
    """
    q = query.rstrip()
    if "SELECT" not in q.upper():
        return q, False
    if _LIMIT.search(q):
        return q, False
    # LIMIT is the last solution modifier, after ORDER BY.
    return q + f"\nLIMIT {int(limit)}", True


def projected_variables(query: str) -> list[str]:
    """Variables projected by a generated ``SELECT DISTINCT``, in order.

    The last variable on each projection line is taken, so an aggregate line
    ``(COALESCE(?raw, 0) AS ?alias)`` yields ``alias``.

    Example:
        projected_variables(text)  # ['person_node', 'name_node']
    """
    variables: list[str] = []
    in_projection = False
    for line in query.splitlines():
        stripped = line.strip()
        if not in_projection:
            in_projection = stripped.upper() == "SELECT DISTINCT"
            continue
        if stripped.upper().startswith("WHERE"):
            break
        code = stripped.split("#", 1)[0]
        matches = _VARIABLE.findall(code)
        if matches and matches[-1] not in variables:
            variables.append(matches[-1])
    return variables


def _triple_line_count(query: str) -> int:
    return sum(
        1 for line in query.splitlines()
        if line.rstrip().endswith(" .") and not line.lstrip().startswith("#")
    )


def clamp_limit(limit: Optional[int], default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> int:
    if limit is None:
        return default
    return max(1, min(int(limit), maximum))


def make_compile_tool(
    path_model: PathModel,
    options: Optional[QueryOptions] = None,
    log: Optional[CompileLog] = None,
    max_limit: int = MAX_LIMIT,
) -> Callable:
    """Create a bounded compile tool for the given path model.

    Args:
        path_model: Path model used to resolve selected node ids
        options: Base query options (default ``QueryOptions()``)
        log: Optional compile event log
        max_limit: Upper bound for the LIMIT clause (default 10000)

    Returns:
        Callable tool function with signature: compile_selection(selection, limit=None)
        Limit is clamped to [1, max_limit] and defaults to 100.
    """
    base_options = options or QueryOptions()

    def compile_selection_tool(selection: dict | SelectionGraph, limit: Optional[int] = None) -> str:
        """Compile a selection into a SPARQL query.

        Args:
            selection: Selection mapping (``nodes``, ``edges``, ``central``,
                ``count``) or an already-built SelectionGraph
            limit: Row limit for the query (default 100)

        Returns:
            Commented query text ending in a LIMIT clause

        Example:
            text = compile_selection({'central': 'person', 'nodes': ['person', 'name'],
                                      'edges': [{'source': 'person', 'target': 'name'}]})
        """
        if not isinstance(selection, SelectionGraph):
            selection = SelectionGraph.from_dict(selection, path_model)
        run_options = dataclasses.replace(
            base_options, limit=clamp_limit(limit if limit is not None else base_options.limit,
                                            maximum=max_limit),
        )
        call_id = log.on_compile_start(selection, run_options) if log else None
        try:
            query = generate_sparql_query(selection, run_options)
        except Exception as exc:
            if log:
                log.on_compile_error(call_id, exc)
            raise
        if log:
            log.on_compile_end(call_id, query, triple_count=_triple_line_count(query))
        return query

    return compile_selection_tool


def make_query_tools(
    path_model: PathModel,
    options: Optional[QueryOptions] = None,
    log: Optional[CompileLog] = None,
) -> dict[str, Callable]:
    """Create all query tools at once.

    Returns:
        Dict mapping tool names to tool functions:
            - 'compile_selection': Compile a selection into a bounded query
            - 'projected_variables': List the variables a query projects
            - 'inject_limit': Add a LIMIT clause to a query lacking one
    """
    return {
        'compile_selection': make_compile_tool(path_model, options, log=log),
        'projected_variables': projected_variables,
        'inject_limit': inject_limit,
    }
