#!/usr/bin/env python
"""Selection-to-SPARQL CLI.

Usage:
    selection-sparql compile DOC [--limit N] [--no-header] [--log PATH]
    selection-sparql vars DOC
    selection-sparql ast DOC [--all-optional] [--references-optional]

Examples:
    # Print the query for a selection document
    selection-sparql compile selection.yaml

    # Cap rows and record the compile in a JSONL log
    selection-sparql compile selection.yaml --limit 500 --log logs/compiles.jsonl

    # List the variables available for ORDER BY
    selection-sparql vars selection.yaml

    # Dump the selection tree
    selection-sparql ast selection.yaml --references-optional
"""

import argparse
import json
import logging
import sys

from .document import load_document
from .logging import CompileLog
from .selection_ast import build_selection_ast
from .tools import make_compile_tool, projected_variables


def strip_header(text: str) -> str:
    """Drop the leading comment block written above the query."""
    lines = text.splitlines()
    index = 0
    while index < len(lines) and lines[index].startswith("#"):
        index += 1
    return "\n".join(lines[index:])


def _compile(args) -> str:
    document = load_document(args.document)
    log = CompileLog(args.log) if getattr(args, 'log', None) else None
    try:
        compile_selection = make_compile_tool(document.paths, document.options, log=log)
        return compile_selection(document.selection, limit=getattr(args, 'limit', None))
    finally:
        if log:
            log.close()


def compile_command(args):
    """Print the compiled query."""
    text = _compile(args)
    print(strip_header(text) if args.no_header else text)
    return 0


def vars_command(args):
    """Print projected variables, one per line."""
    for name in projected_variables(_compile(args)):
        print(name)
    return 0


def ast_command(args):
    """Print the selection tree as JSON."""
    document = load_document(args.document)
    ast = build_selection_ast(
        document.selection,
        explicit_ids=document.explicit_ids,
        all_optional=args.all_optional,
        references_optional=args.references_optional,
    )
    print(json.dumps(ast.to_dict(), indent=2, ensure_ascii=False))
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='selection-sparql',
        description='Compile graph selections into SPARQL',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Log compiler decisions to stderr')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    compile_parser = subparsers.add_parser('compile', help='Compile a selection document')
    compile_parser.add_argument('document', help='Selection document (YAML or JSON)')
    compile_parser.add_argument('--limit', '-l', type=int, default=None,
                                help='Row limit, clamped to [1, 10000] (default: options or 100)')
    compile_parser.add_argument('--no-header', action='store_true',
                                help='Omit the comment header above the query')
    compile_parser.add_argument('--log', type=str, default=None,
                                help='Append compile events to this JSONL file')

    vars_parser = subparsers.add_parser('vars', help='List projected variables')
    vars_parser.add_argument('document', help='Selection document (YAML or JSON)')

    ast_parser = subparsers.add_parser('ast', help='Print the selection tree as JSON')
    ast_parser.add_argument('document', help='Selection document (YAML or JSON)')
    ast_parser.add_argument('--all-optional', action='store_true',
                            help='Mark every node optional')
    ast_parser.add_argument('--references-optional', action='store_true',
                            help='Mark entity references and boundary targets optional')

    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(name)s: %(message)s')

    commands = {
        'compile': compile_command,
        'vars': vars_command,
        'ast': ast_command,
    }
    if args.command not in commands:
        parser.print_help()
        return 1
    try:
        return commands[args.command](args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
