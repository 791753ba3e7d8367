"""Selection SPARQL - compile graph-node selections into SPARQL queries.

A user picks nodes of a schema path tree (classes, fields and entity
references, each with a property path). This package turns that selection into
a commented SPARQL SELECT query whose shared patterns, OPTIONAL scopes and
count sub-selects follow the selection.

Architecture:
- model/: Path model lookup and the selection graph
- compiler/: Traversal planner, triple builder, bridge resolver, count
  synthesizer and renderer
- tools/: Bounded tool surface wrappers around compilation
- logging/: JSONL compile event log
- document.py: YAML/JSON selection documents
- selection_ast.py: Serializable tree view of a selection
- cli.py: Command line entry point
"""

__version__ = "0.1.0"
