from __future__ import annotations

import importlib
import logging
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .cache import ExpressionCache, default_expression_cache
from .declarations import (
    InlineValidation,
    RowValidator,
    RuleDeclaration,
    Validator,
    class_declarations,
    validator_row_type,
)
from .errors import ConfigurationError
from .fields import row_fields
from .models import ROW_SCOPE, RuleKind
from .rule import CapabilityRule, ExpressionRule, Rule

logger = logging.getLogger(__name__)


class RuleRegistry:
    """The ordered rule table for one row type.

    Built once; rule order is the evaluation order and therefore the order
    of failures within a row.
    """

    def __init__(self, row_type: type, rules: Tuple[Rule, ...], declarations: Tuple[RuleDeclaration, ...]):
        self.row_type = row_type
        self.rules = rules
        self.declarations = declarations

    @classmethod
    def build(
        cls,
        row_type: type,
        fluent_rules: Iterable[Rule] = (),
        *,
        cache: Optional[ExpressionCache] = None,
    ) -> "RuleRegistry":
        """Discover declared rules on `row_type` and append `fluent_rules`.

        Order: class-level validators, class-level expressions, then for each
        field its validators followed by its expressions, then fluent rules.
        Any unusable declaration raises `ConfigurationError`.
        """
        cache = cache if cache is not None else default_expression_cache()
        builder = _RuleTableBuilder(row_type, cache)

        declared = class_declarations(row_type)
        for decl in declared:
            if isinstance(decl, Validator):
                builder.add_validator(decl, ROW_SCOPE)
        for decl in declared:
            if isinstance(decl, InlineValidation):
                builder.add_expression(decl, ROW_SCOPE)

        for field in row_fields(row_type):
            for meta in field.metadata:
                if isinstance(meta, Validator):
                    builder.add_validator(meta, field.name)
            for meta in field.metadata:
                if isinstance(meta, InlineValidation):
                    builder.add_expression(meta, field.name)

        for rule in fluent_rules:
            builder.add_fluent(rule)

        logger.debug("Built %d validation rules for %s", len(builder.rules), row_type.__name__)
        return cls(row_type, tuple(builder.rules), tuple(builder.declarations))

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)


class _RuleTableBuilder:
    def __init__(self, row_type: type, cache: ExpressionCache):
        self._row_type = row_type
        self._cache = cache
        self.rules: List[Rule] = []
        self.declarations: List[RuleDeclaration] = []

    def add_validator(self, decl: Validator, scope: str) -> None:
        validator_type = decl.validator_type
        rule_name = decl.rule_name or getattr(validator_type, "__name__", str(validator_type))
        validator = self._instantiate(validator_type)
        self.rules.append(CapabilityRule(validator, rule_name=rule_name, field_name=scope))
        self.declarations.append(
            RuleDeclaration(
                kind=RuleKind.CAPABILITY,
                scope=scope,
                rule_name=rule_name,
                validator_type=validator_type,
            )
        )

    def add_expression(self, decl: InlineValidation, scope: str) -> None:
        predicate = self._cache.get_or_compile(decl.expression, self._row_type)
        rule_name = decl.rule_name or decl.expression
        if decl.error_message:
            message = decl.error_message
        elif scope == ROW_SCOPE:
            message = f"Expression failed: {decl.expression}"
        else:
            message = f"Expression failed for {scope}: {decl.expression}"
        self.rules.append(
            ExpressionRule(predicate, rule_name=rule_name, error_message=message, field_name=scope)
        )
        self.declarations.append(
            RuleDeclaration(
                kind=RuleKind.EXPRESSION,
                scope=scope,
                rule_name=rule_name,
                error_message=message,
                expression=decl.expression,
            )
        )

    def add_fluent(self, rule: Rule) -> None:
        if not isinstance(rule, Rule):
            raise ConfigurationError(f"Fluent rule {rule!r} is not a Rule; build it with field_rule().")
        self.rules.append(rule)
        self.declarations.append(
            RuleDeclaration(
                kind=rule.kind,
                scope=rule.field_name,
                rule_name=rule.rule_name,
                error_message=getattr(rule, "error_message", None),
            )
        )

    def _instantiate(self, validator_type: type) -> RowValidator:
        row_name = self._row_type.__name__
        if not (isinstance(validator_type, type) and issubclass(validator_type, RowValidator)):
            raise ConfigurationError(
                f"Type {getattr(validator_type, '__name__', validator_type)} does not implement RowValidator[{row_name}]."
            )
        accepted = validator_row_type(validator_type)
        if accepted is not None and not issubclass(self._row_type, accepted):
            raise ConfigurationError(
                f"Type {validator_type.__name__} validates {accepted.__name__} rows, not {row_name}."
            )
        try:
            return validator_type()
        except Exception as exc:
            raise ConfigurationError(f"Failed to create instance of {validator_type.__name__}: {exc}") from exc


class RowModelRegistry:
    """Named row types exposed to the CLI and HTTP surfaces."""

    def __init__(self):
        self._models: Dict[str, type] = {}

    def register(self, name: str, row_type: type) -> None:
        if not name:
            raise ValueError("Row model name must not be empty")
        if name in self._models and self._models[name] is not row_type:
            raise ValueError(f"Duplicate row model registered: {name}")
        self._models[name] = row_type

    def get(self, name: str) -> type:
        return self._models[name]

    def names(self) -> Iterable[str]:
        return self._models.keys()

    def resolve(self, reference: str) -> type:
        """Look up a registered name, or import `package.module:ClassName`."""
        if reference in self._models:
            return self._models[reference]
        module_name, sep, attr = reference.partition(":")
        if not sep or not module_name or not attr:
            raise ValueError(
                f"Unknown row model '{reference}' (expected a registered name or 'module:ClassName')."
            )
        module = importlib.import_module(module_name)
        try:
            row_type = getattr(module, attr)
        except AttributeError as exc:
            raise ValueError(f"Module '{module_name}' has no attribute '{attr}'.") from exc
        if not isinstance(row_type, type):
            raise ValueError(f"'{reference}' does not name a class.")
        return row_type


row_models = RowModelRegistry()


def register_row_model(name: str) -> Callable[[type], type]:
    def _register(row_type: type) -> type:
        row_models.register(name, row_type)
        return row_type

    return _register
