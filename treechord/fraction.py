"""Fraction: exact rational value type used for every span in the core."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from math import gcd

from treechord.errors import DomainError

_FRACTION_PATTERN = re.compile(r"^\s*(-?\d+)\s*/\s*(-?\d+)\s*$")


@total_ordering
@dataclass(frozen=True, eq=False)
class Fraction:
    """
    An immutable numerator/denominator pair.

    Unlike ``fractions.Fraction`` this type never reduces on its own: 6/8 and
    3/4 are equal in value, but a span of 6/8 means "six eighths" to the
    duration resolver. Call ``reduce()`` when lowest terms are wanted.

    Attributes:
        numerator:   Any integer.
        denominator: Positive integer (a negative one is folded into the numerator).
    """

    numerator: int
    denominator: int

    def __post_init__(self) -> None:
        if not _is_integer(self.numerator) or not _is_integer(self.denominator):
            raise DomainError(
                f"Fraction components must be integers, got {self.numerator!r}/{self.denominator!r}.",
                span=(self.numerator, self.denominator),
            )
        if self.denominator == 0:
            raise DomainError(
                f"Fraction {self.numerator}/0 has a zero denominator.",
                span=(self.numerator, self.denominator),
            )
        if self.denominator < 0:
            object.__setattr__(self, "numerator", -self.numerator)
            object.__setattr__(self, "denominator", -self.denominator)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def zero(cls) -> Fraction:
        return cls(0, 1)

    @classmethod
    def parse(cls, text: str) -> Fraction:
        """
        Parse ``"n/d"`` (e.g. a meter such as ``"5/4"``) without reducing it.

        Raises:
            DomainError: If the text is not of the form ``n/d`` or d is zero.
        """
        match = _FRACTION_PATTERN.match(text)
        if not match:
            raise DomainError(f"Cannot parse fraction from '{text}'.", span=text)
        return cls(int(match.group(1)), int(match.group(2)))

    # ------------------------------------------------------------------
    # Arithmetic (every operation returns a new value)
    # ------------------------------------------------------------------

    def reduce(self) -> Fraction:
        divisor = gcd(self.numerator, self.denominator)
        if divisor in (0, 1):
            return self
        return Fraction(self.numerator // divisor, self.denominator // divisor)

    def add(self, other: Fraction) -> Fraction:
        if self.denominator == other.denominator:
            return Fraction(self.numerator + other.numerator, self.denominator)
        return Fraction(
            self.numerator * other.denominator + other.numerator * self.denominator,
            self.denominator * other.denominator,
        )

    def multiply(self, factor: int) -> Fraction:
        return Fraction(self.numerator * factor, self.denominator)

    def divide(self, divisor: int) -> Fraction:
        """
        Divide by an integer by scaling the denominator.

        Raises:
            DomainError: If ``divisor`` is zero.
        """
        if divisor == 0:
            raise DomainError(f"Cannot divide {self} by zero.", span=self)
        return Fraction(self.numerator, self.denominator * divisor)

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Fraction):
            return NotImplemented
        return self.numerator * other.denominator == other.numerator * self.denominator

    def __lt__(self, other: Fraction) -> bool:
        if not isinstance(other, Fraction):
            return NotImplemented
        return self.numerator * other.denominator < other.numerator * self.denominator

    def __hash__(self) -> int:
        reduced = self.reduce()
        return hash((reduced.numerator, reduced.denominator))

    def __str__(self) -> str:
        return f"{self.numerator}/{self.denominator}"


def _is_integer(value: object) -> bool:
    # bool is an int subclass but never a meaningful fraction component
    return isinstance(value, int) and not isinstance(value, bool)
