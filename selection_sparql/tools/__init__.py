"""Bounded tool surface wrappers around query compilation."""

from .query_tools import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    clamp_limit,
    inject_limit,
    make_compile_tool,
    make_query_tools,
    projected_variables,
)

__all__ = [
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "clamp_limit",
    "inject_limit",
    "make_compile_tool",
    "make_query_tools",
    "projected_variables",
]
