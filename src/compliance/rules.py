"""Rule matchers and immutable rule sets.

A rule set is a frozen bundle of matchers plus a remediation pool.  Swapping
the active pack means replacing the whole ``RuleSet`` object; no rule set is
ever mutated in place.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from ambassador.compliance.models import ComplianceResult, Severity, Violation

logger = logging.getLogger(__name__)


@runtime_checkable
class Rule(Protocol):
    """Anything that can scan text and report violations."""

    def scan(self, text: str) -> list[Violation]: ...


@dataclass(frozen=True)
class PhraseRule:
    """Exact prohibited phrases; each non-overlapping occurrence is one HIGH violation."""

    phrases: tuple[str, ...]
    reason_template: str = '"{phrase}" is a prohibited expression.'

    def scan(self, text: str) -> list[Violation]:
        violations: list[Violation] = []
        for phrase in self.phrases:
            if not phrase:
                continue
            reason = self.reason_template.format(phrase=phrase)
            violations.extend(
                Violation(matched_text=phrase, reason=reason, severity=Severity.HIGH)
                for _ in range(text.count(phrase))
            )
        return violations


@dataclass(frozen=True)
class PatternRule:
    """A regex matcher; every match is reported, duplicates included."""

    pattern: re.Pattern[str]
    reason: str
    severity: Severity

    @classmethod
    def compile(
        cls, expression: str, reason: str, severity: Severity, *, ignore_case: bool = False
    ) -> PatternRule:
        flags = re.IGNORECASE if ignore_case else 0
        return cls(pattern=re.compile(expression, flags), reason=reason, severity=severity)

    def scan(self, text: str) -> list[Violation]:
        return [
            Violation(matched_text=m.group(0), reason=self.reason, severity=self.severity)
            for m in self.pattern.finditer(text)
            if m.group(0)
        ]


@dataclass(frozen=True)
class RuleSet:
    """A named, versioned compliance pack.

    Phrase rules are listed before pattern rules so prohibited phrases are
    reported first, matching how reviewers read the result.
    """

    name: str
    rules: tuple[Rule, ...]
    suggestions: tuple[str, ...] = field(default_factory=tuple)
    version: str = "1"

    def evaluate(self, text: str) -> ComplianceResult:
        violations: list[Violation] = []
        for rule in self.rules:
            violations.extend(rule.scan(text))

        passed = not violations
        logger.debug(
            "Rule set %s evaluated %d chars: %d violation(s)",
            self.name, len(text), len(violations),
        )
        return ComplianceResult(
            passed=passed,
            violations=violations,
            suggestions=[] if passed else list(self.suggestions),
            rule_set=self.name,
        )
