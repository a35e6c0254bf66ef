"""
Syntax Sanity Check

Cheap structural validation used to catch a rewrite that broke a file:
JSON must parse, JS/TS must have balanced brackets once strings and
comments are skipped. This is not a parser; template-literal
interpolation and regex literals are treated as plain string/code.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional

_PAIRS = {")": "(", "]": "[", "}": "{"}
_SCRIPT_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")


@dataclass(frozen=True)
class SyntaxCheck:
    valid: bool
    error: Optional[str] = None


def validate_syntax(code: str, path: str) -> SyntaxCheck:
    lowered = path.lower()
    if lowered.endswith(".json"):
        try:
            json.loads(code)
        except json.JSONDecodeError as e:
            return SyntaxCheck(False, f"JSON invalide: {e.msg} (ligne {e.lineno})")
        return SyntaxCheck(True)

    if lowered.endswith(_SCRIPT_EXTENSIONS):
        return _check_brackets(code)

    return SyntaxCheck(True)


def _check_brackets(code: str) -> SyntaxCheck:
    stack: list[tuple[str, int]] = []
    line = 1
    i = 0
    n = len(code)
    quote: Optional[str] = None

    while i < n:
        char = code[i]
        if char == "\n":
            line += 1

        if quote:
            if char == "\\":
                i += 2
                continue
            if char == quote:
                quote = None
            i += 1
            continue

        nxt = code[i + 1] if i + 1 < n else ""
        if char == "/" and nxt == "/":
            end = code.find("\n", i)
            i = n if end == -1 else end
            continue
        if char == "/" and nxt == "*":
            end = code.find("*/", i + 2)
            if end == -1:
                return SyntaxCheck(False, f"Commentaire non fermé (ligne {line})")
            line += code.count("\n", i, end)
            i = end + 2
            continue

        if char in ("'", '"', "`"):
            quote = char
        elif char in "([{":
            stack.append((char, line))
        elif char in _PAIRS:
            if not stack or stack[-1][0] != _PAIRS[char]:
                return SyntaxCheck(False, f"'{char}' inattendu (ligne {line})")
            stack.pop()
        i += 1

    if quote:
        return SyntaxCheck(False, f"Chaîne non fermée ({quote})")
    if stack:
        opener, opened_at = stack[-1]
        return SyntaxCheck(False, f"'{opener}' non fermé (ligne {opened_at})")
    return SyntaxCheck(True)
