"""Exceptions raised by the duration-resolution core."""

from __future__ import annotations

from typing import Any


class DomainError(ValueError):
    """
    Raised when a rhythm tree or fraction violates the conversion contract.

    Attributes:
        node_id: Id of the offending RhythmNode or rendered element, if known.
        span:    The span (usually a Fraction) that was being resolved.
    """

    def __init__(self, message: str, *, node_id: str | None = None, span: Any = None) -> None:
        super().__init__(message)
        self.node_id = node_id
        self.span = span
