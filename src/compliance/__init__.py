"""Compliance domain — rule packs that flag regulated phrasing.

The filter evaluates generated text against a pluggable, vertical-specific
rule set (medical, finance) and can redact flagged expressions when a publish
surface runs under the auto-correct policy.
"""

from ambassador.compliance.filter import ComplianceFilter
from ambassador.compliance.models import (
    REDACTION_MARKER,
    ComplianceResult,
    PublishPolicy,
    Severity,
    Violation,
)
from ambassador.compliance.packs import (
    FINANCE_RULE_SET,
    MEDICAL_RULE_SET,
    available_rule_sets,
    get_rule_set,
    register_rule_set,
)
from ambassador.compliance.rules import PatternRule, PhraseRule, Rule, RuleSet

__all__ = [
    "FINANCE_RULE_SET",
    "MEDICAL_RULE_SET",
    "REDACTION_MARKER",
    "ComplianceFilter",
    "ComplianceResult",
    "PatternRule",
    "PhraseRule",
    "PublishPolicy",
    "Rule",
    "RuleSet",
    "Severity",
    "Violation",
    "available_rule_sets",
    "get_rule_set",
    "register_rule_set",
]
