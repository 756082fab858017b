from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from .errors import ConfigurationError
from .expressions import CompiledExpression, compile_expression

logger = logging.getLogger(__name__)

Compiler = Callable[[str, type], CompiledExpression]
CacheKey = Tuple[str, type]


class ExpressionCache:
    """Compiled expressions keyed by `(expression, row_type)`.

    Safe to share between threads and engines. Two threads compiling the same
    key at once may both compile, but only the first stored entry is kept and
    returned to every caller. Entries are never replaced while cached.

    With `max_entries` set, the least recently used entry is evicted once the
    cache is full; otherwise it grows for the life of the process.
    """

    def __init__(self, compiler: Compiler = compile_expression, *, max_entries: Optional[int] = None):
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be a positive integer or None.")
        self._compiler = compiler
        self._max_entries = max_entries
        self._entries: "OrderedDict[CacheKey, CompiledExpression]" = OrderedDict()
        self._lock = threading.Lock()

    @property
    def max_entries(self) -> Optional[int]:
        return self._max_entries

    def get_or_compile(self, expression: str, row_type: type) -> CompiledExpression:
        key = (expression, row_type)
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                if self._max_entries is not None:
                    self._entries.move_to_end(key)
                return cached

        # Compile outside the lock; expressions are pure so duplicate work is harmless.
        try:
            compiled = self._compiler(expression, row_type)
        except ConfigurationError:
            raise
        except Exception as exc:
            raise ConfigurationError(
                f"Failed to compile inline validation expression '{expression}': {exc}"
            ) from exc

        with self._lock:
            retained = self._entries.setdefault(key, compiled)
            if self._max_entries is not None:
                self._entries.move_to_end(key)
                while len(self._entries) > self._max_entries:
                    (evicted_expr, evicted_type), _ = self._entries.popitem(last=False)
                    logger.debug(
                        "Evicted compiled expression %r for %s", evicted_expr, evicted_type.__name__
                    )
        return retained

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_default_cache: Optional[ExpressionCache] = None
_default_cache_lock = threading.Lock()


def default_expression_cache() -> ExpressionCache:
    """Process-wide cache used by engines that are not given one explicitly."""
    global _default_cache
    with _default_cache_lock:
        if _default_cache is None:
            from .config import get_engine_settings

            settings = get_engine_settings()
            _default_cache = ExpressionCache(max_entries=settings.expression_cache_max_entries)
        return _default_cache
