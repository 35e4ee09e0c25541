"""
Heuristic pass/fail classification of executor outcomes.

Executors report free text only, so whether an attempt actually succeeded is
inferred from its wording. Everything that inspects that wording goes through
``classify_outcome``.
"""

import re
from enum import Enum
from typing import Optional, Pattern, Sequence

from pydantic import BaseModel


class OutcomeClass(str, Enum):
    """Classification of one execution attempt."""
    PASSED = "passed"
    RECOVERABLE_FAILURE = "recoverable_failure"
    PERMANENT_FAILURE = "permanent_failure"


class OutcomeAssessment(BaseModel):
    """Result of classifying an attempt."""
    outcome: OutcomeClass
    reason: str
    matched: Optional[str] = None

    @property
    def recoverable(self) -> bool:
        return self.outcome == OutcomeClass.RECOVERABLE_FAILURE


def _compile(patterns: Sequence[str]) -> Sequence[Pattern[str]]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# Transient failure language: build/test/lint/typecheck, command exits, edits.
RECOVERABLE_FAILURE_PATTERNS = _compile((
    r"\b(build|compile|compilation|bundl(e|ing))\b[^\n]*\b(fail(ed|s|ure)?|error(s)?|broken)\b",
    r"\b(fail(ed|ing|ure)?|error(s)?)\b[^\n]*\b(build|compile|compilation)\b",
    r"\btests?\b[^\n]*\b(fail(ed|ing|s|ure|ures)?)\b",
    r"\b(fail(ed|ing|ure)?)\b[^\n]*\btests?\b",
    r"\b(lint(er|ing)?|eslint|flake8|ruff|pylint)\b[^\n]*\b(fail(ed|s|ure)?|error(s)?|violation(s)?)\b",
    r"\b(type[- ]?check(ing)?|tsc|mypy|pyright)\b[^\n]*\b(fail(ed|s|ure)?|error(s)?)\b",
    r"\bexit(ed)?\s+(with\s+)?(code|status)\s*[:=]?\s*[1-9]\d*\b",
    r"\b(exit|return)\s+code\s*[:=]?\s*[1-9]\d*\b",
    r"\bnon-?zero\s+exit\b",
    r"\bcommand\b[^\n]*\b(failed|not found|returned non-?zero)\b",
    r"\b(edit|patch|replacement)\b[^\n]*\b(failed|could not be applied|not applied|did not apply|unresolved)\b",
    r"\b(search|old)[ _]string\b[^\n]*\bnot found\b",
    r"\bno match(es)? found for (the )?(edit|replacement)\b",
))

# Summary wording that says the work did not actually succeed.
LOOKS_FAILED_PATTERNS = _compile((
    r"\bfail(ed|ing|ure|ures|s)?\b",
    r"\bblocked\b",
    r"\bunable to\b",
    r"\bcould not\b",
    r"\bcouldn'?t\b",
    r"\bcannot\b",
    r"\bcan'?t\b",
    r"\bnot (fixed|resolved|completed|implemented)\b",
))

# Explicit pass language that overrides a looks-failed match.
LOOKS_PASSED_PATTERNS = _compile((
    r"\b(build|tests?|checks?|lint(ing)?|type[- ]?check(s|ing)?|ci|pipeline)\s+(now\s+)?(pass(es|ed|ing)?|succeed(s|ed)?|green)\b",
    r"\ball\s+(\d+\s+)?(tests|checks|specs)\s+(now\s+)?pass",
    r"\bno\s+(more\s+)?(failures|failing tests|errors)\b",
    r"\b0\s+(failed|failures|errors)\b",
    r"\bpassed\s+successfully\b",
))


def _first_match(patterns: Sequence[Pattern[str]], text: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None


def classify_outcome(summary: Optional[str] = None, error: Optional[str] = None) -> OutcomeAssessment:
    """
    Classify an execution attempt.

    Args:
        summary: Text of a result the executor declared successful
        error: Message of the exception the executor raised

    Returns:
        OutcomeAssessment: passed, recoverable failure or permanent failure
    """
    if error is not None:
        matched = _first_match(RECOVERABLE_FAILURE_PATTERNS, error)
        if matched:
            return OutcomeAssessment(
                outcome=OutcomeClass.RECOVERABLE_FAILURE,
                reason="error matches a recoverable failure pattern",
                matched=matched,
            )
        return OutcomeAssessment(
            outcome=OutcomeClass.PERMANENT_FAILURE,
            reason="error does not match a recoverable failure pattern",
        )

    text = summary or ""
    failed = _first_match(LOOKS_FAILED_PATTERNS, text)
    if failed and not _first_match(LOOKS_PASSED_PATTERNS, text):
        return OutcomeAssessment(
            outcome=OutcomeClass.RECOVERABLE_FAILURE,
            reason="summary reports failure without a passing signal",
            matched=failed,
        )
    return OutcomeAssessment(outcome=OutcomeClass.PASSED, reason="summary accepted")
