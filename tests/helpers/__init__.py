"""Test helper utilities for the selection-sparql test suite."""

from .selections import CRM, EX, edge
from .query_assertions import (
    assert_line_count,
    assert_lines_in_order,
    assert_parses,
    optional_blocks,
    stripped_lines,
)

__all__ = [
    'CRM',
    'EX',
    'edge',
    'assert_line_count',
    'assert_lines_in_order',
    'assert_parses',
    'optional_blocks',
    'stripped_lines',
]
