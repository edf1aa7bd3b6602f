"""Collision-free local names for the imports of a generated file."""

from __future__ import annotations

import logging
import posixpath
from typing import Iterable

logger = logging.getLogger(__name__)

# Go keywords; an import alias may not be one of these.
GO_KEYWORDS = frozenset(
    {
        "break",
        "case",
        "chan",
        "const",
        "continue",
        "default",
        "defer",
        "else",
        "fallthrough",
        "for",
        "func",
        "go",
        "goto",
        "if",
        "import",
        "interface",
        "map",
        "package",
        "range",
        "return",
        "select",
        "struct",
        "switch",
        "type",
        "var",
    }
)

FALLBACK_NAME = "x"


def sanitize(s: str) -> str:
    """Turn an import path's base name into a valid Go identifier.

    The first character must be a letter or underscore, later ones may also be
    digits; anything else becomes `_`. Results made only of underscores (and
    the empty string) become `x`.
    """
    out: list[str] = []
    for ch in s:
        if not out:
            ok = ch.isalpha() or ch == "_"
        else:
            ok = ch.isalpha() or ch.isdecimal() or ch == "_"
        out.append(ch if ok else "_")
    t = "".join(out)
    if not t.strip("_"):
        return FALLBACK_NAME
    return t


def base_name(import_path: str) -> str:
    return posixpath.basename(import_path.rstrip("/"))


def resolve_aliases(import_paths: Iterable[str]) -> dict[str, str]:
    """Map each import path to a unique, non-keyword local name.

    Paths are processed in lexicographic order so the result does not depend
    on the iteration order of the input. Duplicate base names get numeric
    suffixes: `html/template` -> `template`, `text/template` -> `template0`.
    """
    aliases: dict[str, str] = {}
    taken: set[str] = set()
    for path in sorted(set(import_paths)):
        base = sanitize(base_name(path))
        name = base
        i = 0
        while name in taken or name in GO_KEYWORDS:
            name = f"{base}{i}"
            i += 1
        aliases[path] = name
        taken.add(name)
        logger.debug("import %s as %s", path, name)
    return aliases
