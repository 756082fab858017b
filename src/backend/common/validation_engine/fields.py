from __future__ import annotations

import dataclasses
import typing
from dataclasses import dataclass
from typing import Annotated, Any, Dict, Optional, Tuple, get_args, get_origin

from pydantic import BaseModel

from .errors import ConfigurationError


@dataclass(frozen=True)
class RowField:
    name: str
    alias: Optional[str] = None
    # Declared type with `Annotated[...]` extras stripped.
    annotation: Any = None
    # `Annotated[...]` extras attached to the field, in declaration order.
    metadata: Tuple[Any, ...] = ()


def row_fields(row_type: type) -> Tuple[RowField, ...]:
    """Return the fields of a row type in declaration order.

    Row types are pydantic models or stdlib dataclasses. Rule declarations
    must sit on the outermost `Annotated[...]` of a field to be discovered.
    """
    if isinstance(row_type, type) and issubclass(row_type, BaseModel):
        return tuple(
            RowField(
                name=name,
                alias=info.alias,
                annotation=info.annotation,
                metadata=tuple(info.metadata),
            )
            for name, info in row_type.model_fields.items()
        )

    if isinstance(row_type, type) and dataclasses.is_dataclass(row_type):
        try:
            hints = typing.get_type_hints(row_type, include_extras=True)
        except NameError as exc:
            raise ConfigurationError(
                f"Cannot resolve field annotations of {row_type.__name__}: {exc}"
            ) from exc

        fields = []
        for f in dataclasses.fields(row_type):
            hint = hints.get(f.name, f.type)
            metadata: Tuple[Any, ...] = ()
            if get_origin(hint) is Annotated:
                hint, *extras = get_args(hint)
                metadata = tuple(extras)
            fields.append(RowField(name=f.name, annotation=hint, metadata=metadata))
        return tuple(fields)

    raise ConfigurationError(
        f"{row_type!r} is not a pydantic model or dataclass; its fields cannot be discovered."
    )


def field_names(row_type: type) -> Tuple[str, ...]:
    return tuple(f.name for f in row_fields(row_type))


def field_values(item: Any, fields: Tuple[RowField, ...]) -> Dict[str, Any]:
    return {f.name: getattr(item, f.name, None) for f in fields}
