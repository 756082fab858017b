from __future__ import annotations

import logging
from typing import Any, Iterable, List, Tuple

from .models import ValidationFailure
from .rule import Rule

logger = logging.getLogger(__name__)

Row = Tuple[Any, int]


class ValidationRunner:
    def __init__(self, rules: Iterable[Rule]):
        self._rules = tuple(rules)

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._rules

    def validate(self, rows: Iterable[Row]) -> Tuple[ValidationFailure, ...]:
        """Run every rule over every row, in order.

        Failures come back ordered by row, then by rule. Only expression rules
        recover from their own exceptions; anything raised by a validator or a
        fluent check aborts the run.
        """
        failures: List[ValidationFailure] = []
        row_count = 0
        for item, row_number in rows:
            row_count += 1
            for rule in self._rules:
                failures.extend(rule.evaluate(item, row_number))

        logger.info(
            "Validated %d rows against %d rules: %d failures",
            row_count,
            len(self._rules),
            len(failures),
        )
        return tuple(failures)
