"""Format-agnostic validation and reporting engine for imported rows.

This package intentionally contains only engine logic:
- Inputs are typed rows paired with caller-defined row numbers.
- No file parsing, type coercion or output delivery lives here.
"""

from .cache import ExpressionCache, default_expression_cache
from .declarations import InlineValidation, RowValidator, RuleDeclaration, Validator
from .engine import EngineState, ValidationEngine
from .errors import (
    ConfigurationError,
    RuleEvaluationError,
    UsageError,
    ValidationEngineError,
)
from .expressions import CompiledExpression, compile_expression
from .models import (
    ROW_SCOPE,
    ReportFormat,
    RowFilter,
    RowStatus,
    RuleKind,
    ValidationFailure,
)
from .registry import RuleRegistry, register_row_model, row_models
from .report import ReportBuilder, default_report_filename
from .rule import CapabilityRule, ClosureRule, ExpressionRule, Rule, field_rule
from .runner import ValidationRunner
