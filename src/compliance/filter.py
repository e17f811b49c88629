"""Compliance filter with a swappable, process-wide rule set.

``evaluate`` reads the active rule-set reference exactly once per call, so a
concurrent ``set_rule_set`` is seen either completely or not at all.  Swaps are
serialized by a lock and bump ``version``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from ambassador.compliance.models import REDACTION_MARKER, ComplianceResult, Violation
from ambassador.compliance.rules import RuleSet

logger = logging.getLogger(__name__)


class ComplianceFilter:
    """Evaluates text against the active rule set and redacts on request."""

    def __init__(self, rule_set: RuleSet, *, marker: str = REDACTION_MARKER) -> None:
        self._rule_set = rule_set
        self._marker = marker
        self._version = 1
        self._swap_lock = threading.Lock()
        self._check_marker(rule_set)

    @property
    def rule_set(self) -> RuleSet:
        return self._rule_set

    @property
    def rule_set_name(self) -> str:
        return self._rule_set.name

    @property
    def version(self) -> int:
        """Monotonic counter of rule-set swaps, starting at 1."""
        return self._version

    @property
    def marker(self) -> str:
        return self._marker

    def evaluate(self, text: str) -> ComplianceResult:
        """Scan ``text``; never modifies it."""
        rule_set = self._rule_set
        return rule_set.evaluate(text)

    def set_rule_set(self, rule_set: RuleSet) -> int:
        """Atomically replace the active rule set.

        Returns:
            The new filter version.

        Raises:
            ValueError: If the redaction marker would itself trip the new pack.
        """
        self._check_marker(rule_set)
        with self._swap_lock:
            previous = self._rule_set.name
            self._rule_set = rule_set
            self._version += 1
            version = self._version
        logger.info("Compliance rule set %s -> %s (v%d)", previous, rule_set.name, version)
        return version

    def apply_auto_correction(self, text: str, violations: Iterable[Violation]) -> str:
        """Redact the first literal occurrence of each violation's text.

        Replacements are applied one after another by value, not by offset.
        A violation whose text no longer occurs (already redacted by an
        earlier, overlapping violation) is a no-op.
        """
        corrected = text
        for violation in violations:
            if not violation.matched_text:
                continue
            corrected = corrected.replace(violation.matched_text, self._marker, 1)
        return corrected

    def _check_marker(self, rule_set: RuleSet) -> None:
        if not rule_set.evaluate(self._marker).passed:
            raise ValueError(
                f"Redaction marker {self._marker!r} matches rule set {rule_set.name!r}"
            )
