"""Path model: static lookup of schema path elements.

A path element describes one node of the schema tree (a model class, a group,
an entity reference or a plain field) together with its property path: the
alternating class / predicate token list that reaches the node's value from a
root class. Predicate tokens prefixed with ``^`` are traversed inversely.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Union

import yaml

logger = logging.getLogger(__name__)

INVERSE_MARKER = "^"


class Classification(str, Enum):
    """Kind of schema node."""

    ROOT = "root"
    GROUP = "group"
    REFERENCE = "reference"
    FIELD = "field"

    @classmethod
    def parse(cls, value: Optional[str]) -> 'Classification':
        raw = str(value or "field").strip().lower()
        if raw == "model":
            return cls.ROOT
        if raw in ("entity_reference", "ref"):
            return cls.REFERENCE
        return cls(raw)


_TRUE_SPELLINGS = frozenset({"true", "yes", "on", "1"})
_FALSE_SPELLINGS = frozenset({"false", "no", "off", "0", ""})


def parse_flag(value, name: str = "flag") -> bool:
    """Read a boolean from YAML/JSON input, accepting the usual string spellings.

    Raises:
        ValueError: If the value is not a boolean, 0/1 or a known spelling
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_SPELLINGS:
            return True
        if lowered in _FALSE_SPELLINGS:
            return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def clean_property_path(tokens: Optional[Iterable]) -> tuple[str, ...]:
    """Drop non-string and blank tokens, strip whitespace."""
    if tokens is None or isinstance(tokens, (str, bytes)):
        return ()
    return tuple(
        token.strip()
        for token in tokens
        if isinstance(token, str) and token.strip()
    )


def split_inverse(token: str) -> tuple[str, bool]:
    """Return ``(iri, is_inverse)`` for a path token."""
    if token.startswith(INVERSE_MARKER):
        return token[len(INVERSE_MARKER):], True
    return token, False


@dataclass(frozen=True)
class PathElement:
    """One schema node with its property path.

    Attributes:
        id: Schema path id
        type_iri: Class or datatype IRI of the node value
        is_multiple: True when the node may occur more than once per parent
        classification: root / group / reference / field
        name: Human-readable label
        parent_id: Id of the enclosing group ("0" or None for root models)
        property_path: Even indices are class IRIs, odd indices predicate IRIs
    """

    id: str
    type_iri: str = ""
    is_multiple: bool = False
    classification: Classification = Classification.FIELD
    name: str = ""
    parent_id: Optional[str] = None
    property_path: tuple[str, ...] = field(default_factory=tuple)

    @property
    def classes(self) -> tuple[str, ...]:
        return self.property_path[0::2]

    @property
    def predicates(self) -> tuple[str, ...]:
        return self.property_path[1::2]

    @property
    def is_entity_reference(self) -> bool:
        return self.classification is Classification.REFERENCE

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'type': self.type_iri,
            'multiple': self.is_multiple,
            'classification': self.classification.value,
            'name': self.name,
            'parent': self.parent_id,
            'path': list(self.property_path),
        }

    @classmethod
    def from_dict(cls, data: dict, path_id: Optional[str] = None) -> 'PathElement':
        """Create a PathElement from a mapping.

        Accepts the short keys written by ``to_dict`` as well as the field names
        of the schema export (``path_array``, ``fieldtype``, ``group_id``,
        ``cardinality``).
        """
        if not isinstance(data, dict):
            raise ValueError(f"Path element {path_id!r} must be a mapping, got {type(data).__name__}")
        element_id = str(data.get('id') or path_id or "").strip()
        if not element_id:
            raise ValueError(f"Path element without id: {data!r}")

        classification = data.get('classification')
        if classification is None:
            if str(data.get('group_id', "")).strip() == "0":
                classification = "root"
            elif str(data.get('is_group', "")).strip() == "1":
                classification = "group"
            elif data.get('fieldtype') == "entity_reference":
                classification = "reference"

        multiple = data.get('multiple')
        if multiple is None:
            multiple = str(data.get('cardinality', "")).strip() == "-1"

        parent = data.get('parent', data.get('group_id'))
        return cls(
            id=element_id,
            type_iri=str(data.get('type') or "").strip(),
            is_multiple=parse_flag(multiple, "multiple"),
            classification=Classification.parse(classification),
            name=str(data.get('name') or "").strip(),
            parent_id=str(parent).strip() if parent is not None else None,
            property_path=clean_property_path(data.get('path', data.get('path_array'))),
        )


class PathModel:
    """Read-only ``id -> PathElement`` lookup."""

    def __init__(self, elements: Iterable[PathElement] = ()):
        self._by_id: dict[str, PathElement] = {}
        for element in elements:
            self._by_id[element.id] = element

    def __contains__(self, path_id: object) -> bool:
        return path_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self):
        return iter(self._by_id.values())

    def get(self, path_id: Optional[str]) -> Optional[PathElement]:
        if path_id is None:
            return None
        return self._by_id.get(path_id.strip())

    def children_of(self, parent_id: str) -> list[PathElement]:
        children = [e for e in self._by_id.values() if e.parent_id == parent_id]
        return sorted(children, key=lambda e: (e.display_name, e.id))

    def roots(self) -> list[PathElement]:
        roots = [e for e in self._by_id.values() if e.classification is Classification.ROOT]
        return sorted(roots, key=lambda e: (e.display_name, e.id))

    def is_top_model(self, path_id: Optional[str]) -> bool:
        element = self.get(path_id)
        return element is not None and element.classification is Classification.ROOT

    def bridge_predicate_for(self, reference_id: Optional[str]) -> Optional[str]:
        """Last predicate token of a reference path, used to bridge into the referenced entity."""
        element = self.get(reference_id)
        if element is None:
            logger.debug("No path element for bridge reference %s", reference_id)
            return None
        predicates = element.predicates
        return predicates[-1] if predicates else None

    def to_dict(self) -> dict:
        return {path_id: element.to_dict() for path_id, element in self._by_id.items()}

    @classmethod
    def from_dict(cls, data: Union[dict, list]) -> 'PathModel':
        """Build a model from ``{id: element}`` or ``[element, ...]``."""
        if isinstance(data, dict):
            elements = [
                PathElement.from_dict({} if value is None else value, path_id=key)
                for key, value in data.items()
            ]
        elif isinstance(data, list):
            elements = [PathElement.from_dict(value) for value in data]
        else:
            raise ValueError(f"Path model must be a mapping or a list, got {type(data).__name__}")
        return cls(elements)

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'PathModel':
        """Load a path model from a YAML or JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Path model not found: {path}")
        raw = yaml.safe_load(path.read_text())
        if isinstance(raw, dict) and 'paths' in raw:
            raw = raw['paths']
        return cls.from_dict(raw or {})
