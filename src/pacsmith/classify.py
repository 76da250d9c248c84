"""Classify installer output into known failure categories."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Protocol


class ErrorCategory(str, Enum):
    FILE_CONFLICT = "file_conflict"
    DEPENDENCY_ISSUE = "dependency_issue"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SignatureRule:
    """Named regular expression that identifies one failure category."""

    name: str
    pattern: re.Pattern
    category: ErrorCategory

    @classmethod
    def compile(
        cls, name: str, pattern: str, category: ErrorCategory | str
    ) -> SignatureRule:
        return cls(
            name=name,
            pattern=re.compile(pattern, re.IGNORECASE | re.MULTILINE),
            category=ErrorCategory(category),
        )

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


@dataclass(frozen=True)
class Classification:
    """Category assigned to a failure and the rule that matched."""

    category: ErrorCategory
    rule: str | None = None


class Classifier(Protocol):
    """Anything that can classify raw installer output."""

    def classify(self, text: str) -> Classification:
        ...


DEFAULT_RULES = (
    SignatureRule.compile(
        "file-conflict",
        r"exists in filesystem",
        ErrorCategory.FILE_CONFLICT,
    ),
    SignatureRule.compile(
        "missing-dependency",
        r"could not satisfy dependencies"
        r"|unable to satisfy dependency"
        r"|dependency \S+ is required"
        r"|breaks dependency",
        ErrorCategory.DEPENDENCY_ISSUE,
    ),
)


class ErrorClassifier:
    """Ordered signature rules; the first matching rule wins.

    Output matching no rule is UNKNOWN. Rules are checked in the order
    given, so a failure reporting both a file conflict and a dependency
    problem is treated as a file conflict with the default rules.
    """

    def __init__(self, rules: Iterable[SignatureRule] = DEFAULT_RULES):
        self.rules = tuple(rules)

    @classmethod
    def from_config(cls, rules: list[dict]) -> ErrorClassifier:
        """Build from config.classifier.rules entries.

        An empty list keeps the default rules.
        """
        if not rules:
            return cls()
        return cls(
            SignatureRule.compile(r["name"], r["pattern"], r["category"])
            for r in rules
        )

    def classify(self, text: str) -> Classification:
        for rule in self.rules:
            if rule.matches(text):
                return Classification(rule.category, rule.name)
        return Classification(ErrorCategory.UNKNOWN)
