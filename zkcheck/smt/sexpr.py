"""Parsing of solver responses (s-expressions and field literals)."""
import re
from typing import Dict, List, Union

from zkcheck.ff import Cell, Field
from zkcheck.smt.symbols import SymbolTable

SExpr = Union[str, List["SExpr"]]

_TOKEN = re.compile(r'\s*(\(|\)|"(?:[^"]|"")*"|\|[^|]*\||[^\s()"|]+)')
_FF_HASH = re.compile(r"^#f(-?\d+)m(\d+)$")
_FF_AS = re.compile(r"^ff(-?\d+)$")


def paren_depth(text: str) -> int:
    """Net parenthesis depth of ``text``, ignoring strings and quoted symbols."""
    depth = 0
    in_string = in_quote = False
    for ch in text:
        if in_string:
            in_string = ch != '"'
        elif in_quote:
            in_quote = ch != "|"
        elif ch == '"':
            in_string = True
        elif ch == "|":
            in_quote = True
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
    return depth


def tokenize(text: str) -> List[str]:
    tokens = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        match = _TOKEN.match(text, pos)
        if match is None:
            raise ValueError(f"cannot tokenize solver output at {text[pos:pos + 20]!r}")
        tokens.append(match.group(1))
        pos = match.end()
    return tokens


def parse_sexpr(text: str) -> SExpr:
    """Parse exactly one s-expression."""
    tokens = tokenize(text)
    if not tokens:
        raise ValueError("empty solver output")
    stack: List[List[SExpr]] = [[]]
    for tok in tokens:
        if tok == "(":
            stack.append([])
        elif tok == ")":
            if len(stack) == 1:
                raise ValueError(f"unbalanced ')' in {text!r}")
            done = stack.pop()
            stack[-1].append(done)
        else:
            stack[-1].append(tok)
    if len(stack) != 1 or len(stack[0]) != 1:
        raise ValueError(f"expected one s-expression in {text!r}")
    return stack[0][0]


def unquote_symbol(sym: str) -> str:
    if len(sym) >= 2 and sym[0] == "|" and sym[-1] == "|":
        return sym[1:-1]
    return sym


def parse_ff_value(value: SExpr, field: Field) -> int:
    """Read a field literal in any of the forms solvers print.

    Accepted: ``#f3m11``, ``(as ff3 F)``, ``ff3``, ``3`` and ``(- 3)``.
    """
    if isinstance(value, str):
        match = _FF_HASH.match(value)
        if match:
            modulus = int(match.group(2))
            if modulus != field.modulus:
                raise ValueError(f"literal {value} is not in {field}")
            return field.reduce(int(match.group(1)))
        match = _FF_AS.match(value)
        if match:
            return field.reduce(int(match.group(1)))
        if re.fullmatch(r"-?\d+", value):
            return field.reduce(int(value))
    elif len(value) == 3 and value[0] == "as":
        return parse_ff_value(value[1], field)
    elif len(value) == 2 and value[0] == "-":
        return field.neg(parse_ff_value(value[1], field))
    raise ValueError(f"not a field literal: {value!r}")


def parse_model(text: str, symbols: SymbolTable) -> Dict[Cell, int]:
    """Parse a ``get-value`` response into cell values."""
    sexpr = parse_sexpr(text)
    if not isinstance(sexpr, list):
        raise ValueError(f"not a get-value response: {text!r}")
    model: Dict[Cell, int] = {}
    for entry in sexpr:
        if not isinstance(entry, list) or len(entry) != 2 or not isinstance(entry[0], str):
            raise ValueError(f"malformed model entry: {entry!r}")
        try:
            cell = symbols.cell(unquote_symbol(entry[0]))
        except KeyError:
            raise ValueError(f"model mentions undeclared symbol {entry[0]}") from None
        model[cell] = parse_ff_value(entry[1], symbols.field)
    return model


def error_message(text: str) -> str:
    """Extract the message of an ``(error "...")`` response."""
    try:
        sexpr = parse_sexpr(text)
    except ValueError:
        return text.strip()
    if isinstance(sexpr, list) and len(sexpr) == 2 and sexpr[0] == "error":
        msg = sexpr[1]
        if isinstance(msg, str) and msg.startswith('"') and msg.endswith('"'):
            return msg[1:-1].replace('""', '"')
        return str(msg)
    return text.strip()
