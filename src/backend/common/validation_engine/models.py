from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal

# Scope used for failures raised by class-level rules.
ROW_SCOPE = "(row)"


class RuleKind(str, Enum):
    CAPABILITY = "CAPABILITY"
    EXPRESSION = "EXPRESSION"
    CLOSURE = "CLOSURE"


class RowStatus(str, Enum):
    VALID = "Valid"
    INVALID = "Invalid"


class RowFilter(str, Enum):
    ALL = "All"
    VALID = "Valid"
    INVALID = "Invalid"


class ReportFormat(str, Enum):
    STRUCTURED = "structured"
    HUMAN_READABLE = "html"

    @property
    def extension(self) -> str:
        return "json" if self is ReportFormat.STRUCTURED else "html"


class ValidationFailure(BaseModel):
    """One failing (row, rule) pair."""

    model_config = ConfigDict(frozen=True)

    row_number: int
    rule_name: str
    field_name: str
    error_message: str


class _ReportModel(BaseModel):
    # Report payloads are emitted with PascalCase keys.
    model_config = ConfigDict(
        frozen=True,
        alias_generator=AliasGenerator(serialization_alias=to_pascal),
    )


class ReportSummary(_ReportModel):
    total_rows: int
    valid_rows: int
    invalid_rows: int
    total_errors: int
    rules_evaluated: int


class RuleFailureEntry(_ReportModel):
    row_number: int
    field_name: str
    error_message: str


class RuleFailureGroup(_ReportModel):
    rule: str
    count: int
    failures: List[RuleFailureEntry] = Field(default_factory=list)


class RowError(_ReportModel):
    rule_name: str
    field_name: str
    error_message: str


class StructuredReport(_ReportModel):
    summary: ReportSummary
    validation_errors_by_rule: List[RuleFailureGroup] = Field(default_factory=list)
    # Row payloads are assembled by the report builder and already keyed for output.
    rows: List[Dict[str, Any]] = Field(default_factory=list)
