import os
import sys


# Ensure `src/backend` is on sys.path so imports like `import common...` work.
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

import pytest

from common.validation_engine.cache import ExpressionCache
from common.validation_engine.engine import ValidationEngine
from common.validation_engine.expressions import compile_expression


class CountingCompiler:
    """Compiler double that records every compilation it performs."""

    def __init__(self, before_compile=None):
        self.calls = []
        self._before_compile = before_compile

    def __call__(self, expression, row_type):
        self.calls.append((expression, row_type))
        if self._before_compile is not None:
            self._before_compile()
        return compile_expression(expression, row_type)


@pytest.fixture
def counting_compiler():
    return CountingCompiler()


@pytest.fixture
def make_counting_compiler():
    def _make(before_compile=None) -> CountingCompiler:
        return CountingCompiler(before_compile)

    return _make


@pytest.fixture
def expression_cache():
    return ExpressionCache()


@pytest.fixture
def make_engine(expression_cache):
    def _make(row_type, *, rows=None, fluent_rules=()) -> ValidationEngine:
        engine = ValidationEngine(row_type, fluent_rules=fluent_rules, cache=expression_cache)
        if rows is not None:
            engine.load_rows(rows)
        return engine

    return _make
