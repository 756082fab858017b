"""Rule declarations attached to row types.

Both declaration kinds can be used as a class decorator (row-level rule) or
as `Annotated[...]` metadata on a single field::

    @InlineValidation("min_age <= max_age", rule_name="AgeRange")
    class Bracket(BaseModel):
        min_age: Annotated[int, InlineValidation("min_age >= 0")]
        max_age: int
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, Optional, Tuple, TypeVar, Union, get_args, get_origin

from .models import RuleKind

T = TypeVar("T")

_DECLARATIONS_ATTR = "__row_rule_declarations__"


class RowValidator(ABC, Generic[T]):
    """Reusable validation logic referenced by `Validator` declarations.

    Subclasses must be constructible without arguments. Parameterize the base
    (`RowValidator[MyRow]`) to restrict which row types may reference it.
    """

    @abstractmethod
    def validate(self, row: T) -> Tuple[bool, Optional[str]]:  # pragma: no cover
        raise NotImplementedError


def validator_row_type(validator_type: type) -> Optional[type]:
    """Return the row type a validator is parameterized with, or None for any."""
    for klass in validator_type.__mro__:
        for base in klass.__dict__.get("__orig_bases__", ()):
            if get_origin(base) is RowValidator:
                args = get_args(base)
                if args and isinstance(args[0], type):
                    return args[0]
                return None
    return None


@dataclass(frozen=True)
class Validator:
    """References a `RowValidator` subclass for multi-field checks."""

    validator_type: type
    rule_name: Optional[str] = None

    def __call__(self, row_type: type) -> type:
        _declare(row_type, self)
        return row_type


@dataclass(frozen=True)
class InlineValidation:
    """A boolean expression evaluated against each row.

    `row` names the current row; bare field names resolve to field values.
    """

    expression: str
    error_message: Optional[str] = None
    rule_name: Optional[str] = None

    def __call__(self, row_type: type) -> type:
        _declare(row_type, self)
        return row_type


Declaration = Union[Validator, InlineValidation]


@dataclass(frozen=True)
class RuleDeclaration:
    """Resolved metadata for one discovered rule."""

    kind: RuleKind
    scope: str
    rule_name: str
    error_message: Optional[str] = None
    expression: Optional[str] = None
    validator_type: Optional[type] = None


def _declare(row_type: type, declaration: Declaration) -> None:
    own = row_type.__dict__.get(_DECLARATIONS_ATTR, ())
    # Decorators apply bottom-up; prepend to keep source order.
    setattr(row_type, _DECLARATIONS_ATTR, (declaration,) + tuple(own))


def class_declarations(row_type: type) -> Tuple[Declaration, ...]:
    """Class-level declarations of a row type, base classes first."""
    collected: Tuple[Declaration, ...] = ()
    for klass in reversed(row_type.__mro__):
        collected += tuple(klass.__dict__.get(_DECLARATIONS_ATTR, ()))
    return collected
