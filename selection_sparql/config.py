"""Query generation options.

Mirrors the toggles of the selection UI. Keys may be given in snake_case or in
the camelCase used by saved selection tabs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from .model.paths import parse_flag
from .namespaces import NamespaceTable

ORDER_DIRECTIONS = ("ASC", "DESC")
VARIABLE_NAME = re.compile(r"[A-Za-z0-9_]+")

_ALIASES = {
    'includeZeroCountResults': 'include_zero_count_results',
    'includeFullPrefixConstraints': 'include_full_prefix_constraints',
    'includeFullPrefixConstraintsWhenCentralNotTopModel': 'include_full_prefix_constraints',
    'orderByVariableName': 'order_by_variable',
    'orderByDirection': 'order_by_direction',
    'queryLimit': 'limit',
}


def _normalize_limit(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return None
    return limit if limit > 0 else None


@dataclass
class QueryOptions:
    """Options controlling query shape.

    ``include_full_prefix_constraints`` is a request: it only takes effect when
    the central node is not a top-level model class.
    """

    include_zero_count_results: bool = False
    include_full_prefix_constraints: bool = False
    order_by_variable: Optional[str] = None
    order_by_direction: str = "DESC"
    limit: Optional[int] = None
    namespaces: NamespaceTable = field(default_factory=NamespaceTable)

    def __post_init__(self):
        direction = (self.order_by_direction or "DESC").strip().upper()
        if direction not in ORDER_DIRECTIONS:
            raise ValueError(f"order_by_direction must be ASC or DESC, got {self.order_by_direction!r}")
        self.order_by_direction = direction
        if self.order_by_variable is not None:
            self.order_by_variable = self.order_by_variable.strip().lstrip("?") or None
            if self.order_by_variable is not None and not VARIABLE_NAME.fullmatch(self.order_by_variable):
                raise ValueError(f"order_by_variable is not a variable name: {self.order_by_variable!r}")
        self.limit = _normalize_limit(self.limit)

    def to_dict(self) -> dict:
        return {
            'include_zero_count_results': self.include_zero_count_results,
            'include_full_prefix_constraints': self.include_full_prefix_constraints,
            'order_by_variable': self.order_by_variable,
            'order_by_direction': self.order_by_direction,
            'limit': self.limit,
            'namespaces': self.namespaces.to_pairs(),
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'QueryOptions':
        """Create options from a config mapping; unknown keys are ignored."""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError(f"Options must be a mapping, got {type(data).__name__}")

        values = {}
        for key, value in data.items():
            name = _ALIASES.get(key, key)
            if name in ('include_zero_count_results', 'include_full_prefix_constraints'):
                values[name] = parse_flag(value, key)
            elif name in ('order_by_variable', 'order_by_direction'):
                values[name] = str(value) if value is not None else None
            elif name == 'limit':
                values[name] = value
            elif name == 'namespaces' and value:
                values[name] = NamespaceTable.from_pairs(value)
        if values.get('order_by_direction') is None:
            values.pop('order_by_direction', None)
        return cls(**values)
