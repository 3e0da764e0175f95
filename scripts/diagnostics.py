#!/usr/bin/env python3
"""
Diagnostic model shared by the structural validators and the adjacent checks.

Every problem found in a document, whatever produced it, is reported as a
Diagnostic value so the batch driver can merge and print them uniformly.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional

from mdx_ast import Position


class ErrorType(str, Enum):
    """Category of a diagnostic."""
    MDX_ERROR = "MDX_ERROR"
    FRONTMATTER_ERROR = "FRONTMATTER_ERROR"
    FRONTMATTER_FIELD_ERROR = "FRONTMATTER_FIELD_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    IMAGE_IMPORT_ERROR = "IMAGE_IMPORT_ERROR"


@dataclass(frozen=True)
class Diagnostic:
    """
    One reported problem.

    Attributes:
        reason: Human-readable description of the problem
        kind: Category of the problem
        line: Line number (1-based), None for document-level problems
        column: Column number (1-based), None for document-level problems
        file_path: Document the problem was found in, once known
        snippet: Source excerpt around the problem (frontmatter errors)
    """
    reason: str
    kind: ErrorType
    line: Optional[int] = None
    column: Optional[int] = None
    file_path: Optional[str] = None
    snippet: Optional[str] = None

    @classmethod
    def at(cls, position: Position, reason: str, kind: ErrorType = ErrorType.VALIDATION_ERROR) -> "Diagnostic":
        """Create a diagnostic anchored at a source position."""
        return cls(reason=reason, kind=kind, line=position.line, column=position.column)

    def with_file(self, file_path: str) -> "Diagnostic":
        """Return a copy of this diagnostic attributed to a document."""
        return replace(self, file_path=str(file_path))

    def format_error(self) -> str:
        """
        Format diagnostic for console output.

        Returns:
            Formatted error string

        Example:
            [VALIDATION_ERROR] src/content/docs/setup.mdx:12:3
              <Steps> component must only contain <Step> components as immediate children but found "Some text"
        """
        location = self.file_path or "<document>"
        if self.line is not None:
            location = f"{location}:{self.line}"
            if self.column is not None:
                location = f"{location}:{self.column}"

        parts = [f"[{self.kind.value}] {location}", f"  {self.reason}"]
        if self.snippet:
            parts.append("  Snippet:")
            parts.extend(f"    {line}" for line in self.snippet.splitlines())

        return "\n".join(parts)


@dataclass
class DocumentResult:
    """Diagnostics collected for one document."""
    file_path: str
    errors: List[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors
