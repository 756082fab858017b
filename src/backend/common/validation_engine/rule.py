from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

from .declarations import RowValidator
from .errors import ConfigurationError, RuleEvaluationError
from .expressions import CompiledExpression
from .fields import field_names
from .models import ROW_SCOPE, RuleKind, ValidationFailure

logger = logging.getLogger(__name__)

DEFAULT_VALIDATOR_MESSAGE = "Validation failed"

FieldCheck = Callable[[Any, Any], bool]


class Rule(ABC):
    kind: RuleKind

    def __init__(self, *, rule_name: str, field_name: str = ROW_SCOPE):
        if not rule_name:
            raise ValueError("Rule must define rule_name")
        self.rule_name = rule_name
        self.field_name = field_name

    @abstractmethod
    def evaluate(self, row: Any, row_number: int) -> List[ValidationFailure]:  # pragma: no cover
        raise NotImplementedError

    def _failure(self, row_number: int, message: str) -> ValidationFailure:
        return ValidationFailure(
            row_number=row_number,
            rule_name=self.rule_name,
            field_name=self.field_name,
            error_message=message,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(rule_name={self.rule_name!r}, field_name={self.field_name!r})"


class CapabilityRule(Rule):
    """Delegates to a `RowValidator`. Exceptions from the validator propagate."""

    kind = RuleKind.CAPABILITY

    def __init__(self, validator: RowValidator, *, rule_name: str, field_name: str = ROW_SCOPE):
        super().__init__(rule_name=rule_name, field_name=field_name)
        self.validator = validator

    def evaluate(self, row: Any, row_number: int) -> List[ValidationFailure]:
        ok, message = self.validator.validate(row)
        if ok:
            return []
        return [self._failure(row_number, message or DEFAULT_VALIDATOR_MESSAGE)]


class ExpressionRule(Rule):
    """Evaluates a compiled expression.

    An exception raised while evaluating one row becomes a single failure
    for that row; the run carries on.
    """

    kind = RuleKind.EXPRESSION

    def __init__(
        self,
        predicate: CompiledExpression,
        *,
        rule_name: str,
        error_message: str,
        field_name: str = ROW_SCOPE,
    ):
        super().__init__(rule_name=rule_name, field_name=field_name)
        self.predicate = predicate
        self.error_message = error_message

    def evaluate(self, row: Any, row_number: int) -> List[ValidationFailure]:
        try:
            passed = self.predicate(row)
        except Exception as exc:
            logger.warning("%s", RuleEvaluationError(self.rule_name, row_number, exc))
            detail = str(exc) or type(exc).__name__
            return [self._failure(row_number, f"{self.error_message} (runtime error: {detail})")]
        if passed:
            return []
        return [self._failure(row_number, self.error_message)]


class ClosureRule(Rule):
    """Calls `check(value, row)` for one field. Exceptions from `check` propagate."""

    kind = RuleKind.CLOSURE

    def __init__(self, check: FieldCheck, *, field_name: str, rule_name: str, error_message: str):
        super().__init__(rule_name=rule_name, field_name=field_name)
        self.check = check
        self.error_message = error_message

    def evaluate(self, row: Any, row_number: int) -> List[ValidationFailure]:
        if self.check(getattr(row, self.field_name), row):
            return []
        return [self._failure(row_number, self.error_message)]


def field_rule(
    row_type: type,
    field_name: str,
    check: FieldCheck,
    error_message: Optional[str] = None,
    rule_name: Optional[str] = None,
) -> ClosureRule:
    """Build a fluent rule bound to one field of `row_type`."""
    if field_name not in field_names(row_type):
        raise ConfigurationError(f"'{field_name}' is not a field of {row_type.__name__}.")
    if not callable(check):
        raise ConfigurationError(f"Check registered for '{field_name}' is not callable.")
    return ClosureRule(
        check,
        field_name=field_name,
        rule_name=rule_name or f"ForColumn:{field_name}",
        error_message=error_message or f"Column validation failed for {field_name}",
    )
