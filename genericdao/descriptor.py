"""Per-type field metadata.

A TypeDescriptor lists the persistent fields of an entity type in declaration
order, the semantic kind of each one and the key field. Descriptors are built
once per type by a DescriptorRegistry and never change afterwards.
"""

import logging
import threading
import types
from dataclasses import dataclass, fields, is_dataclass
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel, ValidationError

from genericdao.exceptions import MaterializationError, UnsupportedTypeError

logger = logging.getLogger(__name__)

KEY_FIELD = "id"


class FieldKind(str, Enum):
    INTEGER = "integer"
    TEXT = "text"
    REAL = "real"
    BOOLEAN = "boolean"
    OTHER = "other"


_ACCEPTED_TYPES: dict[FieldKind, tuple[type, ...]] = {
    FieldKind.INTEGER: (int,),
    FieldKind.TEXT: (str,),
    FieldKind.REAL: (float, int, Decimal),
    FieldKind.BOOLEAN: (bool,),
}


def _strip_annotation(annotation: Any) -> Any:
    """Remove Annotated[...] metadata and a single `| None`"""
    origin = get_origin(annotation)
    if origin is Annotated:
        return _strip_annotation(get_args(annotation)[0])
    if origin in (Union, types.UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return _strip_annotation(args[0])
    return annotation


def is_nullable(annotation: Any) -> bool:
    """Whether a field annotation admits None (unknown annotations do)"""
    if annotation is None or annotation is Any or annotation is type(None):
        return True
    origin = get_origin(annotation)
    if origin is Annotated:
        return is_nullable(get_args(annotation)[0])
    if origin in (Union, types.UnionType):
        return any(is_nullable(arg) for arg in get_args(annotation))
    return False


def kind_of(annotation: Any) -> FieldKind:
    """Map a field annotation to its semantic kind"""
    tp = _strip_annotation(annotation)
    if get_origin(tp) is not None or not isinstance(tp, type):
        return FieldKind.OTHER
    # bool is a subclass of int, so it has to be checked first
    if issubclass(tp, bool):
        return FieldKind.BOOLEAN
    if issubclass(tp, int):
        return FieldKind.INTEGER
    if issubclass(tp, str):
        return FieldKind.TEXT
    if issubclass(tp, (float, Decimal)):
        return FieldKind.REAL
    return FieldKind.OTHER


@dataclass(frozen=True)
class FieldDescriptor:
    """One persistent field: its name, kind and accessor pair"""

    name: str
    kind: FieldKind
    annotation: Any = None

    @property
    def nullable(self) -> bool:
        return is_nullable(self.annotation)

    def accepts(self, value: Any) -> bool:
        """Check whether a column value may be stored in this field.

        NULL only fits fields annotated `X | None`.
        """
        if self.kind is FieldKind.OTHER:
            return True
        if value is None:
            return self.nullable
        if isinstance(value, bool) and self.kind is not FieldKind.BOOLEAN:
            return False
        return isinstance(value, _ACCEPTED_TYPES[self.kind])

    def get(self, entity: Any) -> Any:
        return getattr(entity, self.name)

    def set(self, entity: Any, value: Any) -> None:
        """Assign a value, refusing values whose type does not fit the field"""
        if not self.accepts(value):
            raise MaterializationError(
                f"Cannot assign {type(value).__name__} value {value!r} to "
                f"{self.kind.value} field '{self.name}' of {type(entity).__name__}"
            )
        try:
            setattr(entity, self.name, value)
        except (AttributeError, TypeError, ValidationError) as e:
            raise MaterializationError(
                f"Cannot assign field '{self.name}' of {type(entity).__name__}: {e}"
            ) from e


@dataclass(frozen=True)
class TypeDescriptor:
    """Immutable mapping metadata for one entity type"""

    entity_class: type
    table_name: str
    fields: tuple[FieldDescriptor, ...]
    key_field: str | None

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def non_key_fields(self) -> tuple[FieldDescriptor, ...]:
        return tuple(f for f in self.fields if f.name != self.key_field)

    def field(self, name: str) -> FieldDescriptor | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def key_value(self, entity: Any) -> Any:
        """Return the entity's key, or 0 when the type has no `id` field"""
        if self.key_field is None:
            return 0
        return getattr(entity, self.key_field)


def _declared_fields(entity_class: type) -> list[FieldDescriptor]:
    if isinstance(entity_class, type) and issubclass(entity_class, BaseModel):
        return [
            FieldDescriptor(name, kind_of(info.annotation), info.annotation)
            for name, info in entity_class.model_fields.items()
        ]
    if isinstance(entity_class, type) and is_dataclass(entity_class):
        hints = get_type_hints(entity_class, include_extras=True)
        return [
            FieldDescriptor(f.name, kind_of(hints.get(f.name)), hints.get(f.name))
            for f in fields(entity_class)
        ]
    raise UnsupportedTypeError(
        f"{entity_class!r} is neither a pydantic model nor a dataclass"
    )


def describe(entity_class: type) -> TypeDescriptor:
    """Build the descriptor of an entity type.

    Raises:
        UnsupportedTypeError: the type declares no fields, more than one field
            could be the key, or the `id` field is not an integer.
    """
    declared = _declared_fields(entity_class)
    if not declared:
        raise UnsupportedTypeError(f"{entity_class.__name__} declares no fields")

    candidates = [f for f in declared if f.name.lower() == KEY_FIELD]
    if len(candidates) > 1:
        names = ", ".join(f.name for f in candidates)
        raise UnsupportedTypeError(
            f"{entity_class.__name__} has an ambiguous key ({names})"
        )

    key = next((f for f in declared if f.name == KEY_FIELD), None)
    if key is not None and key.kind is not FieldKind.INTEGER:
        raise UnsupportedTypeError(
            f"{entity_class.__name__}.{KEY_FIELD} must be an integer, "
            f"got {key.kind.value}"
        )

    return TypeDescriptor(
        entity_class=entity_class,
        table_name=entity_class.__name__,
        fields=tuple(declared),
        key_field=key.name if key is not None else None,
    )


class DescriptorRegistry:
    """Thread-safe cache of descriptors keyed by entity type.

    Lookups of an already described type take no lock. The first lookup of a
    type builds its descriptor under the registry lock, so concurrent first
    callers all get the same instance.
    """

    def __init__(self):
        self._descriptors: dict[type, TypeDescriptor] = {}
        self._lock = threading.Lock()

    def get(self, entity_class: type) -> TypeDescriptor:
        descriptor = self._descriptors.get(entity_class)
        if descriptor is not None:
            return descriptor

        with self._lock:
            descriptor = self._descriptors.get(entity_class)
            if descriptor is None:
                descriptor = describe(entity_class)
                self._descriptors[entity_class] = descriptor
                logger.debug(
                    "Described %s: fields=%s key=%s",
                    entity_class.__name__,
                    descriptor.field_names,
                    descriptor.key_field,
                )
        return descriptor

    def clear(self):
        with self._lock:
            self._descriptors.clear()

    def __contains__(self, entity_class: object) -> bool:
        return entity_class in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)


default_registry = DescriptorRegistry()
