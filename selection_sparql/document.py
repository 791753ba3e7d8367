"""Selection documents: a path model, a selection and options in one YAML file.

Layout::

    paths:              # mapping of id -> path element, or a list of elements
      person: {type: ..., classification: model, path: [...]}
    selection:
      central: person
      nodes: [person, name]
      edges: [{source: person, target: name}]
      count: []
      explicit: [name]  # optional; defaults to every node
    options:
      include_zero_count_results: true
      limit: 100
    namespaces:         # optional; replaces the default table
      - {prefix: ex, iri: "http://example.org/"}

JSON is a YAML subset, so ``.json`` documents load through the same path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

import yaml

from .config import QueryOptions
from .model import PathModel, SelectionGraph

logger = logging.getLogger(__name__)


@dataclass
class SelectionDocument:
    paths: PathModel
    selection: SelectionGraph
    options: QueryOptions = field(default_factory=QueryOptions)
    explicit_ids: list[str] = field(default_factory=list)


def parse_document(data: dict) -> SelectionDocument:
    """Build a document from an already-loaded mapping.

    Raises:
        ValueError: If the mapping or one of its sections has the wrong shape
    """
    if not isinstance(data, dict):
        raise ValueError(f"Selection document must be a mapping, got {type(data).__name__}")

    paths = PathModel.from_dict(data.get('paths') or {})
    raw_selection = data.get('selection') or {}
    selection = SelectionGraph.from_dict(raw_selection, paths)

    raw_options = data.get('options') or {}
    if not isinstance(raw_options, dict):
        raise ValueError(f"Options must be a mapping, got {type(raw_options).__name__}")
    if data.get('namespaces'):
        raw_options = {**raw_options, 'namespaces': data['namespaces']}
    options = QueryOptions.from_dict(raw_options)

    explicit = raw_selection.get('explicit')
    explicit_ids = selection.node_ids if explicit is None else [
        str(node_id).strip() for node_id in explicit if str(node_id).strip() in selection
    ]
    logger.debug(
        "Parsed document: %d paths, %d selected nodes, %d edges",
        len(paths), len(selection), len(selection.edges),
    )
    return SelectionDocument(paths=paths, selection=selection, options=options, explicit_ids=explicit_ids)


def load_document(path: Union[str, Path]) -> SelectionDocument:
    """Load a selection document from a YAML or JSON file.

    Args:
        path: Document file

    Returns:
        SelectionDocument

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the content is not a valid selection document
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Selection document not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Could not parse {path}: {exc}") from exc
    return parse_document(data)

