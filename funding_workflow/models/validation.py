"""ValidationResult - structured validation output shared by every validator."""

from __future__ import annotations

from typing import Iterable, Optional, Union

from pydantic import BaseModel, Field

PathPart = Union[str, int]


class ValidationIssue(BaseModel):
    """A single rule violation scoped to a field, a list index or a whole list."""

    path: list[PathPart] = Field(default_factory=list, description="Location, e.g. ['milestones', 1, 'start_date']")
    message: str = Field(..., description="Human readable explanation")

    @property
    def field_name(self) -> Optional[str]:
        """Last string segment of the path, if any."""
        for part in reversed(self.path):
            if isinstance(part, str):
                return part
        return None

    @property
    def index(self) -> Optional[int]:
        """First integer segment of the path (the offending list index)."""
        for part in self.path:
            if isinstance(part, int):
                return part
        return None

    def render(self) -> str:
        if not self.path:
            return self.message
        return f"{'.'.join(str(p) for p in self.path)} - {self.message}"


class ValidationResult(BaseModel):
    """All issues found by a validator. Empty means valid."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    def add(self, path: Iterable[PathPart], message: str) -> None:
        self.issues.append(ValidationIssue(path=list(path), message=message))

    def extend(self, other: "ValidationResult", prefix: Iterable[PathPart] = ()) -> "ValidationResult":
        prefix = list(prefix)
        for issue in other.issues:
            self.issues.append(ValidationIssue(path=prefix + issue.path, message=issue.message))
        return self

    def for_path(self, *prefix: PathPart) -> list[ValidationIssue]:
        """Issues whose path starts with ``prefix``."""
        n = len(prefix)
        return [i for i in self.issues if tuple(i.path[:n]) == prefix]

    def messages(self) -> list[str]:
        return [issue.render() for issue in self.issues]

    @classmethod
    def merge(cls, *results: "ValidationResult") -> "ValidationResult":
        merged = cls()
        for result in results:
            merged.extend(result)
        return merged
