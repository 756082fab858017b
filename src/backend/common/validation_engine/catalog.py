from __future__ import annotations

import argparse
import json
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel

from .cache import ExpressionCache
from .models import RuleKind
from .registry import RuleRegistry, row_models
from .rule import Rule


class RuleCatalogEntry(BaseModel):
    position: int
    kind: RuleKind
    scope: str
    rule_name: str
    error_message: Optional[str] = None
    expression: Optional[str] = None
    validator: Optional[str] = None


def build_rule_catalog(
    row_type: type,
    fluent_rules: Iterable[Rule] = (),
    *,
    cache: Optional[ExpressionCache] = None,
) -> List[RuleCatalogEntry]:
    """Describe the rules of `row_type` in evaluation order."""
    registry = RuleRegistry.build(row_type, fluent_rules, cache=cache)
    entries: List[RuleCatalogEntry] = []
    for position, decl in enumerate(registry.declarations, start=1):
        validator_name = None
        if decl.validator_type is not None:
            validator_name = f"{decl.validator_type.__module__}.{decl.validator_type.__qualname__}"
        entries.append(
            RuleCatalogEntry(
                position=position,
                kind=decl.kind,
                scope=decl.scope,
                rule_name=decl.rule_name,
                error_message=decl.error_message,
                expression=decl.expression,
                validator=validator_name,
            )
        )
    return entries


def _dump_json(catalog: list[dict[str, Any]]) -> str:
    return json.dumps(catalog, indent=2)


def _dump_yaml(catalog: list[dict[str, Any]]) -> str:
    try:
        import yaml  # type: ignore
    except ModuleNotFoundError as exc:
        raise SystemExit(
            "PyYAML is required for YAML output. Install it in your backend venv (e.g., `uv add pyyaml`)."
        ) from exc

    return yaml.safe_dump(catalog, sort_keys=False)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="List the validation rules discovered on a row model.")
    parser.add_argument(
        "row_model",
        help="Registered row model name or 'package.module:ClassName'.",
    )
    parser.add_argument(
        "--format",
        choices=("yaml", "json"),
        default="yaml",
        help="Output format (default: yaml).",
    )
    args = parser.parse_args(argv)

    row_type = row_models.resolve(args.row_model)
    catalog = [e.model_dump(mode="json", exclude_none=True) for e in build_rule_catalog(row_type)]
    if args.format == "json":
        print(_dump_json(catalog))
    else:
        print(_dump_yaml(catalog))


if __name__ == "__main__":
    main()
