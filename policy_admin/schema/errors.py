"""Error taxonomy for dynamic-schema records.

- `ConfigurationError`: the admin-authored schema itself is malformed.
- `ValidationFailure`: a payload broke one or more schema rules. Carries every
  violation so the caller can fix the payload in one round trip.
- `NotFoundError` / `ConflictError`: record lookups and uniqueness.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:  # pragma: no cover
    from .validator import Violation


@dataclass
class ConfigurationError(Exception):
    """Raised when a schema definition cannot be used.

    Attributes:
        errors: one human-readable line per authoring problem.
        message: top-level message.
    """

    errors: List[str]
    message: str = "Invalid schema definition"

    def __str__(self) -> str:
        if not self.errors:
            return self.message
        return f"{self.message}: {'; '.join(self.errors)}"


@dataclass
class ValidationFailure(Exception):
    """Raised when dynamic fields do not satisfy their schema.

    Attributes:
        violations: every rule failure found by the validator.
        message: comma-joined violation messages unless given explicitly.
    """

    violations: List["Violation"] = field(default_factory=list)
    message: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = ", ".join(v.message for v in self.violations) or "Validation failed"

    def __str__(self) -> str:
        return self.message


@dataclass
class NotFoundError(Exception):
    message: str = "Record not found"

    def __str__(self) -> str:
        return self.message


@dataclass
class ConflictError(Exception):
    message: str = "Record already exists"

    def __str__(self) -> str:
        return self.message
