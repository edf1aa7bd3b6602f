from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_RUNTIME_IMPORT = "github.com/petergtz/pegomock"


@dataclass(frozen=True)
class RuntimeSupport:
    """Identifiers the generated code uses from the runtime-support package."""

    import_path: str = DEFAULT_RUNTIME_IMPORT
    fail_handler: str = "GlobalFailHandler"
    mock_accessor: str = "GetGenericMockFrom"
    matcher: str = "Matcher"
    times: str = "Times"
    in_order_context: str = "InOrderContext"
    param: str = "Param"


def default_runtime_support() -> RuntimeSupport:
    """Return the runtime-support configuration for this process.

    Override the import path with `GOMOCKGEN_RUNTIME_IMPORT`.
    """
    override = os.environ.get("GOMOCKGEN_RUNTIME_IMPORT")
    if override:
        return RuntimeSupport(import_path=override)
    return RuntimeSupport()


def gofmt_command() -> str:
    """Return the formatter executable. Override with `GOMOCKGEN_GOFMT`."""
    return os.environ.get("GOMOCKGEN_GOFMT") or "gofmt"
