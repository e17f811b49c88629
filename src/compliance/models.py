"""Compliance domain models — pure data, no I/O."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

REDACTION_MARKER = "*** (보호된 표현) ***"


class Severity(StrEnum):
    """How serious a flagged expression is."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class PublishPolicy(StrEnum):
    """How a publish surface handles a failed compliance check."""

    AUTO_CORRECT = "auto_correct"
    REJECT_ON_VIOLATION = "reject_on_violation"


class Violation(BaseModel):
    """A single flagged expression within a piece of text."""

    model_config = ConfigDict(frozen=True)

    matched_text: str
    reason: str
    severity: Severity


class ComplianceResult(BaseModel):
    """Outcome of evaluating text against a rule set.

    ``suggestions`` is a generic remediation pool for the rule set, attached
    only when the text fails.  It is not tailored to individual violations.
    """

    passed: bool
    violations: list[Violation] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    rule_set: str = ""

    @property
    def high_severity_count(self) -> int:
        return sum(1 for v in self.violations if v.severity == Severity.HIGH)
