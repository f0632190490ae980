"""AST dump (``--debug`` and ``Template.to_string_ast``)."""

from __future__ import annotations

import re
import sys
from typing import TextIO

from liqpy.ast import (
    Arguments,
    Assign,
    Block,
    Branch,
    Capture,
    Comment,
    Comparison,
    Condition,
    Counter,
    Cycle,
    Document,
    FilterCall,
    Filtered,
    ForLoop,
    Include,
    Keyword,
    Literal,
    Logical,
    Lookup,
    Output,
    Param,
    Range,
    Raw,
    Tag,
    Text,
    When,
)
from liqpy.values import to_liquid_string

_WHITESPACE = re.compile(r"\s+")


def format_ast(root: object) -> str:
    """Render the tree as indented text, one line per node.

    Each line is an indent (one segment per ancestor level: ``"|  "`` while
    that level still has siblings to visit, ``"   "`` otherwise), a marker
    (``"|- "`` when more siblings follow, ``"'- "`` for the last one), the
    node name and, when the node carries text other than its name, ``='text'``
    with whitespace collapsed.
    """
    lines: list[str] = []
    stack: list[list[object]] = [[root]]
    while stack:
        siblings = stack[-1]
        if not siblings:
            stack.pop()
            continue
        node = siblings.pop(0)
        indent = "".join("|  " if level else "   " for level in stack[:-1])
        marker = "|- " if siblings else "'- "
        name, text, children = _describe(node)
        text = _WHITESPACE.sub(" ", text).strip()
        label = f"{name}='{text}'" if text and text != name else name
        lines.append(f"{indent}{marker}{label}\n")
        if children:
            stack.append(list(children))
    return "".join(lines)


def dump_ast(root: object, *, file: TextIO = sys.stderr) -> None:
    """Print a human-readable AST tree to *file*."""
    file.write(format_ast(root))


def _present(*nodes: object) -> list[object]:
    return [n for n in nodes if n is not None]


def _describe(node: object) -> tuple[str, str, list[object]]:
    match node:
        case Document(children=children):
            return "DOCUMENT", "", list(children)
        case Block(children=children):
            return "BLOCK", "", list(children)
        case Text(value=value):
            return "TEXT", value, []
        case Raw(value=value):
            return "RAW", value, []
        case Comment(value=value):
            return "COMMENT", value, []
        case Output(expression=expression, markup=markup):
            return "OUTPUT", markup, [expression]
        case Tag(name=name, markup=markup, args=args, body=body, branches=branches):
            return "TAG", f"{name} {markup}", _present(args, body) + list(branches)
        case Branch(name=name, markup=markup, args=args, body=body):
            return "BRANCH", f"{name} {markup}", _present(args, body)
        case Literal(value=value):
            return "LITERAL", "nil" if value is None else to_liquid_string(value), []
        case Keyword(name=name):
            return "KEYWORD", name, []
        case Lookup(name=name, path=path):
            dotted = name + "".join(f".{seg}" if isinstance(seg, str) else "[]" for seg in path)
            return "LOOKUP", dotted, [seg for seg in path if not isinstance(seg, str)]
        case Range(start=start, stop=stop):
            return "RANGE", "", [start, stop]
        case Comparison(op=op, left=left, right=right):
            return "COMPARISON", op, [left, right]
        case Logical(op=op, left=left, right=right):
            return "LOGICAL", op, [left, right]
        case FilterCall(name=name, args=args):
            return "FILTER", name, list(args)
        case Filtered(expression=expression, filters=filters):
            return "FILTERED", "", [expression, *filters]
        case Arguments(values=values):
            return "ARGUMENTS", "", list(values)
        case Assign(target=target, value=value):
            return "ASSIGN", target, [value]
        case Capture(target=target):
            return "CAPTURE", target, []
        case Condition(expression=expression):
            return "CONDITION", "", [expression]
        case When(values=values):
            return "WHEN", "", list(values)
        case ForLoop(variable=variable, iterable=iterable, limit=limit, offset=offset, cols=cols, reversed=rev):
            text = f"{variable} reversed" if rev else variable
            return "FOR_LOOP", text, _present(iterable, limit, offset, cols)
        case Cycle(group=group, values=values):
            return "CYCLE", "", _present(group) + list(values)
        case Counter(variable=variable):
            return "COUNTER", variable, []
        case Include(template=template, value=value, params=params):
            return "INCLUDE", "", _present(template, value) + list(params)
        case Param(name=name, value=value):
            return "PARAM", name, [value]
        case _:
            return type(node).__name__.upper(), "", []
