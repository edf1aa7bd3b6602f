"""Canonical formatting of generated Go source through `gofmt`."""

from __future__ import annotations

import subprocess

from .config import gofmt_command
from .errors import FormatError


def format_source(src: str) -> bytes:
    """Format Go source, failing loudly if it is not well-formed.

    A rejected source is a generation bug, so the raw text is attached to the
    error (numbered, for reading against gofmt's line:col messages).
    """
    cmd = [gofmt_command()]
    try:
        proc = subprocess.run(
            cmd,
            input=src.encode("utf-8"),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=False,
        )
    except FileNotFoundError as e:
        raise FormatError(
            f"gofmt not found (`{cmd[0]}` is missing from PATH). "
            "Install Go, set GOMOCKGEN_GOFMT, or generate without formatting.",
            source=src,
        ) from e

    if proc.returncode != 0:
        stderr = (proc.stderr or b"").decode("utf-8", errors="replace").strip("\n")
        raise FormatError(
            f"failed to format generated source code: {stderr}\n{_numbered(src)}",
            source=src,
        )
    return proc.stdout


def _numbered(src: str) -> str:
    return "\n".join(f"{i:4d}  {line}" for i, line in enumerate(src.splitlines(), start=1))
