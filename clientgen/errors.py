"""Exceptions that abort a generation run.

Recoverable schema problems never raise; the resolver degrades them to
sentinel descriptors and records a warning instead.
"""

from __future__ import annotations


class GeneratorError(Exception):
    """Base class for fatal generation errors."""


class SpecLoadError(GeneratorError):
    """Raised when the API document cannot be read or is not OpenAPI/Swagger."""


class ConfigError(GeneratorError):
    """Raised for invalid generator configuration."""


class DuplicateNameError(GeneratorError):
    """Raised when two generated symbols in one emitted unit share a name."""

    def __init__(self, name: str, unit: str, detail: str = "") -> None:
        self.name = name
        self.unit = unit
        message = f"Duplicate generated name {name!r} in {unit}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
