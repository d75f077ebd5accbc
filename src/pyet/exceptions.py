"""pyet Exceptions

Custom exceptions raised by the template engine. Faults raised by code
inside a template are not wrapped; they propagate with their own type.
"""

from __future__ import annotations

from pathlib import Path


class PyetError(Exception):
    """Base exception for all pyet errors."""

    pass


class LexError(PyetError):
    """Raised when a template contains a malformed tag."""

    def __init__(self, message: str, line: int, column: int, name: str = "<template>"):
        self.line = line
        self.column = column
        self.name = name
        super().__init__(f"{message} ({name}, line {line}, column {column})")


class CompileError(PyetError):
    """Raised when fragments cannot be assembled into an executable body."""

    def __init__(self, message: str, line: int | None = None, name: str = "<template>"):
        self.line = line
        self.name = name
        where = f"{name}, line {line}" if line is not None else name
        super().__init__(f"{message} ({where})")


class LoaderError(PyetError):
    """Raised when a template file cannot be read."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"{reason}: {path}")


class TemplateNotFoundError(LoaderError):
    """Raised when a template file does not exist."""

    def __init__(self, path: Path):
        super().__init__(path, "Template not found")


class TemplateLoadError(LoaderError):
    """Raised when a template file exists but cannot be read or decoded."""

    def __init__(self, path: Path, error: Exception):
        super().__init__(path, f"Failed to load template ({error})")


class IncludeError(PyetError):
    """Raised when an include cannot be resolved."""

    def __init__(self, reference: str, reason: str):
        self.reference = reference
        super().__init__(f"Cannot include '{reference}': {reason}")
