# app/errors.py
from __future__ import annotations

from typing import Any, List, Optional


class BoardError(Exception):
    """Base for every failure that terminates a board run."""


class InputError(BoardError):
    """The URL failed the syntax or `.json` extension check."""

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class FetchError(BoardError):
    """Network, HTTP status, or JSON-parse failure while loading a board."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.url = url


class SchemaError(BoardError):
    def __init__(self, message: str, issues: List[Any]):
        super().__init__(message)
        self.issues = issues


class RenderError(BoardError):
    def __init__(self, message: str, *, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class StageOrderError(BoardError):
    """A stage was advanced out of order, or after the run was closed."""
