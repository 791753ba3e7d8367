"""Query assertion helpers for compiler tests.

These functions validate properties of generated query text:
- The text parses under rdflib's SPARQL grammar
- Triple lines are unique and appear in a given order
- OPTIONAL blocks enclose the lines they should
"""

from rdflib.plugins.sparql.parser import parseQuery


def assert_parses(text: str):
    """Assert the query (header comments included) parses."""
    try:
        parseQuery(text)
    except Exception as e:
        raise AssertionError(f"Query does not parse: {e}\n{text}") from e


def stripped_lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines()]


def assert_line_count(text: str, line: str, expected: int = 1):
    """Assert a stripped line occurs exactly ``expected`` times."""
    count = stripped_lines(text).count(line)
    assert count == expected, f"Expected {expected}x {line!r}, found {count}\n{text}"


def assert_lines_in_order(text: str, *lines: str):
    """Assert the given stripped lines appear in this relative order."""
    stripped = stripped_lines(text)
    positions = []
    for line in lines:
        assert line in stripped, f"Missing line {line!r}\n{text}"
        positions.append(stripped.index(line))
    assert positions == sorted(positions), f"Lines out of order: {lines}\n{text}"


def optional_blocks(lines: list[str]) -> list[list[str]]:
    """Stripped body lines of each top-level ``OPTIONAL {`` block."""
    blocks = []
    index = 0
    while index < len(lines):
        if lines[index].strip() == "OPTIONAL {":
            depth = 1
            body = []
            index += 1
            while index < len(lines) and depth:
                stripped = lines[index].strip()
                depth += stripped.count("{") - stripped.count("}")
                if depth:
                    body.append(stripped)
                index += 1
            blocks.append(body)
        else:
            index += 1
    return blocks
