"""Selection-to-SPARQL compiler.

Pipeline: plan the traversal, build deduplicated triples, fold in bridge
predicates, synthesize count sub-selects, render and validate.
"""

from .builder import SelectBuild, build_select
from .counts import CountBlocks, synthesize_count_blocks
from .planner import (
    CountSubgraphs,
    TraversalPlan,
    build_count_subgraphs,
    compute_boundary_contexts,
    compute_display_depths,
    compute_optional_chains,
    plan_emission_order,
    plan_traversal,
)
from .query import generate_sparql_query
from .render import (
    QueryValidationError,
    WhereSection,
    render_query,
    render_where_section,
    validate_query,
)
from .terms import SelectProjection, Triple, TripleEmission, TripleRecord

__all__ = [
    "generate_sparql_query",
    "build_select",
    "SelectBuild",
    "plan_traversal",
    "plan_emission_order",
    "TraversalPlan",
    "compute_display_depths",
    "compute_boundary_contexts",
    "compute_optional_chains",
    "build_count_subgraphs",
    "CountSubgraphs",
    "synthesize_count_blocks",
    "CountBlocks",
    "render_where_section",
    "render_query",
    "validate_query",
    "WhereSection",
    "QueryValidationError",
    "Triple",
    "TripleRecord",
    "TripleEmission",
    "SelectProjection",
]
