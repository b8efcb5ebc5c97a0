"""A JSONPath template engine in the style used by kubectl output templates."""

from __future__ import annotations

import json
from typing import Any


class JSONPathError(ValueError):
    """Raised when a template cannot be parsed."""


class _Missing(Exception):
    pass


_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "'": "'"}


def _skip_quote(text: str, k: int) -> int:
    quote = text[k]
    k += 1
    while k < len(text):
        if text[k] == "\\":
            k += 2
            continue
        if text[k] == quote:
            return k
        k += 1
    raise JSONPathError(f"unterminated quoted string in {text!r}")


def _find_close(text: str, start: int) -> int:
    k = start
    while k < len(text):
        ch = text[k]
        if ch in "\"'":
            k = _skip_quote(text, k)
        elif ch == "}":
            return k
        k += 1
    raise JSONPathError(f"unclosed action in {text!r}")


def _unquote(s: str) -> str:
    inner = s[1:-1]
    out = []
    chars = iter(inner)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, "")
            out.append(_ESCAPES.get(nxt, "\\" + nxt))
        else:
            out.append(ch)
    return "".join(out)


def _is_quoted(s: str) -> bool:
    return len(s) >= 2 and s[0] in "\"'" and s[-1] == s[0]


def _read_name(p: str, i: int) -> tuple[str, int]:
    j = i
    while j < len(p) and p[j] not in ".[":
        j += 1
    return p[i:j], j


def _find_bracket(p: str, i: int) -> int:
    depth = 0
    k = i
    while k < len(p):
        ch = p[k]
        if ch in "\"'":
            k = _skip_quote(p, k)
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return k
        k += 1
    raise JSONPathError(f"unclosed array expect ] in {p!r}")


def _operand(s: str):
    s = s.strip()
    if s.startswith(("@", "$")):
        return ("path", _parse_path(s))
    if _is_quoted(s):
        return ("value", _unquote(s))
    if s in ("true", "false"):
        return ("value", s == "true")
    for conv in (int, float):
        try:
            return ("value", conv(s))
        except ValueError:
            pass
    raise JSONPathError(f"unrecognized filter operand {s!r}")


def _parse_filter(expr: str):
    for op in ("==", "!=", "<=", ">=", "<", ">"):
        idx = expr.find(op)
        if idx >= 0:
            return (op, _operand(expr[:idx]), _operand(expr[idx + len(op):]))
    return ("exists", _operand(expr), None)


def _parse_bracket(content: str):
    if content.startswith("?"):
        expr = content[1:].strip()
        if expr.startswith("(") and expr.endswith(")"):
            expr = expr[1:-1]
        return ("filter", _parse_filter(expr))
    if content == "*":
        return ("wildcard",)
    if _is_quoted(content):
        return ("field", _unquote(content))
    if ":" in content:
        parts = content.split(":")
        if len(parts) > 3:
            raise JSONPathError(f"invalid slice {content!r}")
        try:
            nums = [int(x) if x.strip() else None for x in parts]
        except ValueError as exc:
            raise JSONPathError(f"invalid slice {content!r}") from exc
        return ("slice", slice(*nums))
    try:
        return ("index", int(content))
    except ValueError as exc:
        raise JSONPathError(f"invalid array index {content!r}") from exc


def _parse_path(p: str):
    p = p.strip()
    is_root = p.startswith("$")
    i = 1 if p.startswith(("$", "@")) else 0
    steps = []
    while i < len(p):
        if p.startswith("..", i):
            name, i = _read_name(p, i + 2)
            steps.append(("recursive", name))
        elif p[i] == ".":
            name, i = _read_name(p, i + 1)
            if name:
                steps.append(("field", name))
        elif p[i] == "[":
            j = _find_bracket(p, i)
            steps.append(_parse_bracket(p[i + 1:j].strip()))
            i = j + 1
        else:
            raise JSONPathError(f"unrecognized character in action: {p[i:]!r}")
    return (is_root, steps)


def compile_template(template: str) -> list:
    """Parse a template into a list of nodes."""
    root: list = []
    stack = [root]
    text: list[str] = []
    i = 0
    while i < len(template):
        ch = template[i]
        if ch != "{":
            text.append(ch)
            i += 1
            continue
        if text:
            stack[-1].append(("text", "".join(text)))
            text = []
        j = _find_close(template, i + 1)
        action = template[i + 1:j].strip()
        i = j + 1
        if action == "end":
            if len(stack) == 1:
                raise JSONPathError("not in range, nothing to end")
            stack.pop()
        elif action.startswith("range ") or action == "range":
            node = ("range", _parse_path(action[5:]), [])
            stack[-1].append(node)
            stack.append(node[2])
        elif _is_quoted(action):
            stack[-1].append(("text", _unquote(action)))
        else:
            stack[-1].append(("path", _parse_path(action)))
    if text:
        stack[-1].append(("text", "".join(text)))
    if len(stack) != 1:
        raise JSONPathError("unclosed range")
    return root


def _walk(value: Any, name: str):
    if isinstance(value, dict):
        if name in value:
            yield value[name]
        for v in value.values():
            yield from _walk(v, name)
    elif isinstance(value, list):
        for v in value:
            yield from _walk(v, name)


def _test(cond, item: Any, root: Any) -> bool:
    op, left, right = cond

    def values(operand):
        if operand[0] == "path":
            return _eval(operand[1], root, item, strict=False)
        return [operand[1]]

    lv = values(left)
    if op == "exists":
        return bool(lv)
    rv = values(right)
    if not lv or not rv:
        return False
    a, b = lv[0], rv[0]
    try:
        return {
            "==": lambda: a == b,
            "!=": lambda: a != b,
            "<": lambda: a < b,
            ">": lambda: a > b,
            "<=": lambda: a <= b,
            ">=": lambda: a >= b,
        }[op]()
    except TypeError:
        return False


def _apply(step, values: list, root: Any, strict: bool) -> list:
    kind = step[0]
    out: list = []
    for v in values:
        if kind == "field":
            name = step[1]
            if isinstance(v, dict) and name == "*":
                out.extend(v.values())
            elif isinstance(v, dict) and name in v:
                out.append(v[name])
            elif strict:
                raise _Missing(name)
        elif kind == "wildcard":
            if isinstance(v, dict):
                out.extend(v.values())
            elif isinstance(v, list):
                out.extend(v)
        elif kind == "index":
            n = step[1]
            if isinstance(v, list) and -len(v) <= n < len(v):
                out.append(v[n])
            elif strict:
                raise _Missing(str(n))
        elif kind == "slice":
            if isinstance(v, list):
                out.extend(v[step[1]])
        elif kind == "filter":
            if isinstance(v, list):
                out.extend(item for item in v if _test(step[1], item, root))
        elif kind == "recursive":
            out.extend(_walk(v, step[1]))
    return out


def _eval(path, root: Any, current: Any, strict: bool = True) -> list:
    is_root, steps = path
    values = [root if is_root else current]
    for step in steps:
        values = _apply(step, values, root, strict)
    return values


def _format(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def _render(nodes: list, root: Any, current: Any, out: list[str]) -> None:
    for node in nodes:
        if node[0] == "text":
            out.append(node[1])
        elif node[0] == "path":
            out.append(" ".join(_format(v) for v in _eval(node[1], root, current)))
        else:
            for item in _eval(node[1], root, current):
                _render(node[2], root, item, out)


def render_jsonpath(data: Any, template: str) -> str:
    """Render a template against data; output stops at the first missing key."""
    nodes = compile_template(template)
    out: list[str] = []
    try:
        _render(nodes, data, data, out)
    except _Missing:
        pass
    return "".join(out)


def to_json_path(path: str) -> str:
    """Wrap a column path in a single pair of braces."""
    if path.startswith("{"):
        path = path[1:]
    if path.endswith("}"):
        path = path[:-1]
    return "{" + path + "}"