"""Domain-specific errors for gomockgen."""

from __future__ import annotations


class GoMockGenError(Exception):
    """Base error for gomockgen."""


class ModelError(GoMockGenError):
    """Raised when an interface model document is malformed."""


class ScanError(GoMockGenError):
    """Raised when extracting an interface model from Go code fails."""


class RenderError(GoMockGenError):
    """Raised when mock source text cannot be rendered from a model."""


class FormatError(GoMockGenError):
    """Raised when the generated source is rejected by the Go formatter."""

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source
