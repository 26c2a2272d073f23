"""
Result Models

Outcomes handed back to the presentation layer: write results at the
storage boundary and input validation reports.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class WriteResult(BaseModel):
    """
    Outcome of a create/delete against the document store.

    Failures carry a reason that can be shown to the user as-is.
    """

    ok: bool
    entity_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, entity_id: Optional[str] = None) -> "WriteResult":
        return cls(ok=True, entity_id=entity_id)

    @classmethod
    def failure(cls, error: str) -> "WriteResult":
        return cls(ok=False, error=error)


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage entry validation.

    Stage 1: Schema validation (types, required fields)
    Stage 2: Semantic validation (logic checks)
    """

    validated_at: datetime = Field(
        default_factory=datetime.now
    )

    # Stage results
    schema_valid: bool = Field(
        ...,
        description="Did schema validation pass?"
    )
    semantic_valid: bool = Field(
        ...,
        description="Did semantic validation pass?"
    )

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    # Warnings don't block but should be shown
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def is_valid(self) -> bool:
        """Can the entry be saved?"""
        return self.schema_valid and self.semantic_valid

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
