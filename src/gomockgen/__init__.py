"""gomockgen: generate pegomock-style mocks and verifiers for Go interfaces."""

from __future__ import annotations

from . import errors, model
from .generator import MockGenerator, generate_mock_source
from .imports import resolve_aliases
from .model_io import dump_package, load_package
from .scan import scan_package, scan_source
from .writer import generate_mock

__all__ = [
    "MockGenerator",
    "dump_package",
    "errors",
    "generate_mock",
    "generate_mock_source",
    "load_package",
    "model",
    "resolve_aliases",
    "scan_package",
    "scan_source",
]
