from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Optional, Tuple

from .cache import ExpressionCache
from .errors import UsageError
from .models import ValidationFailure
from .registry import RuleRegistry
from .report import ReportBuilder, report_fields
from .rule import Rule
from .runner import Row, ValidationRunner


class EngineState(str, Enum):
    BUILT = "BUILT"
    ROWS_LOADED = "ROWS_LOADED"
    VALIDATED = "VALIDATED"
    REPORTED = "REPORTED"


class ValidationEngine:
    """Validates rows of one row type and hands the outcome to reporting.

    Lifecycle: BUILT -> ROWS_LOADED -> VALIDATED -> REPORTED. Loading rows
    again at any point returns to ROWS_LOADED and discards earlier failures.
    Row types with a field named RowNumber, Status or Errors raise
    `ConfigurationError`; those names are report keys.
    """

    def __init__(
        self,
        row_type: type,
        *,
        fluent_rules: Iterable[Rule] = (),
        cache: Optional[ExpressionCache] = None,
    ):
        self.row_type = row_type
        report_fields(row_type)
        self.registry = RuleRegistry.build(row_type, fluent_rules, cache=cache)
        self._runner = ValidationRunner(self.registry.rules)
        self._rows: Optional[Tuple[Row, ...]] = None
        self._failures: Optional[Tuple[ValidationFailure, ...]] = None
        self._state = EngineState.BUILT

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def rows(self) -> Tuple[Row, ...]:
        if self._rows is None:
            raise UsageError("No rows loaded; call load_rows() first.")
        return self._rows

    def load_rows(self, rows: Iterable[Row]) -> "ValidationEngine":
        self._rows = tuple((item, row_number) for item, row_number in rows)
        self._failures = None
        self._state = EngineState.ROWS_LOADED
        return self

    def validate(self) -> Tuple[ValidationFailure, ...]:
        if self._rows is None:
            raise UsageError("Call load_rows() before validate().")
        self._failures = self._runner.validate(self._rows)
        self._state = EngineState.VALIDATED
        return self._failures

    @property
    def failures(self) -> Tuple[ValidationFailure, ...]:
        return self._ensure_validated()

    def valid_rows(self) -> Tuple[Any, ...]:
        invalid = {f.row_number for f in self._ensure_validated()}
        return tuple(item for item, row_number in self.rows if row_number not in invalid)

    def invalid_rows(self) -> Tuple[Any, ...]:
        invalid = {f.row_number for f in self._ensure_validated()}
        return tuple(item for item, row_number in self.rows if row_number in invalid)

    def report(self) -> ReportBuilder:
        builder = ReportBuilder(self.rows, self._ensure_validated(), row_type=self.row_type)
        self._state = EngineState.REPORTED
        return builder

    def _ensure_validated(self) -> Tuple[ValidationFailure, ...]:
        if self._failures is None:
            raise UsageError("Call validate() before accessing validation results.")
        return self._failures
