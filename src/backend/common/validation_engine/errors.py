"""Exception hierarchy for the validation engine."""

from __future__ import annotations


class ValidationEngineError(Exception):
    """Base exception for all validation engine errors."""


class ConfigurationError(ValidationEngineError):
    """A rule declaration could not be turned into a usable rule.

    Raised while the registry is built; no partially built registry survives.
    """


class UsageError(ValidationEngineError):
    """Engine operations were invoked out of order."""


class RuleEvaluationError(ValidationEngineError):
    """An expression rule raised while being evaluated against one row.

    Never propagates out of a validation run; it is converted into a single
    failure for the offending row and rule.
    """

    def __init__(self, rule_name: str, row_number: int, cause: BaseException) -> None:
        super().__init__(f"Rule '{rule_name}' raised on row {row_number}: {cause}")
        self.rule_name = rule_name
        self.row_number = row_number
        self.cause = cause
