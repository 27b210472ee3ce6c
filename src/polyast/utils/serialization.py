"""JSON output for analysis results.

``json.dumps`` recurses once per nesting level, which syntax trees of
deeply nested sources exceed. ``dumps_json`` walks containers with an
explicit stack and produces the same text as ``json.dumps(value, indent=...)``.
"""

import json
from collections.abc import Iterator
from typing import Any


def iter_json(value: Any, indent: int = 2) -> Iterator[str]:
    """Yield the JSON text of ``value`` in chunks."""
    # Work items: ("value", obj, level) or ("text", chunk, level)
    stack: list[tuple[str, Any, int]] = [("value", value, 0)]
    while stack:
        kind, item, level = stack.pop()
        if kind == "text":
            yield item
            continue

        if isinstance(item, dict) and item:
            opener, closer = "{", "}"
            entries = [(json.dumps(str(key)) + ": ", child) for key, child in item.items()]
        elif isinstance(item, (list, tuple)) and item:
            opener, closer = "[", "]"
            entries = [("", child) for child in item]
        else:
            yield json.dumps(item)
            continue

        pad = "\n" + " " * (indent * (level + 1))
        work: list[tuple[str, Any, int]] = []
        for position, (prefix, child) in enumerate(entries):
            work.append(("text", ("," if position else "") + pad + prefix, level))
            work.append(("value", child, level + 1))
        work.append(("text", "\n" + " " * (indent * level) + closer, level))

        yield opener
        stack.extend(reversed(work))


def dumps_json(value: Any, indent: int = 2) -> str:
    """Serialize ``value`` to indented JSON without recursion limits."""
    return "".join(iter_json(value, indent))
