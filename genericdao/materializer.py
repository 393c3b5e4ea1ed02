import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from genericdao.descriptor import TypeDescriptor
from genericdao.exceptions import MaterializationError

logger = logging.getLogger(__name__)


class RowMaterializer[T]:
    """Turns result rows into entity instances of one type"""

    def __init__(self, descriptor: TypeDescriptor):
        self.descriptor = descriptor
        self.entity_class: type[T] = descriptor.entity_class

    def construct(self) -> T:
        """Create an empty instance through the zero-argument constructor"""
        try:
            return self.entity_class()
        except (TypeError, ValidationError) as e:
            raise MaterializationError(
                f"{self.entity_class.__name__} cannot be constructed without arguments: {e}"
            ) from e

    def map_row_to_entity(self, row: Mapping[str, Any]) -> T:
        """Map a database row to an entity.

        Columns without a matching field are skipped. A field without a column,
        or a value that does not fit its field, raises MaterializationError.
        """
        instance = self.construct()
        columns = set(row.keys())

        for field in self.descriptor.fields:
            if field.name not in columns:
                raise MaterializationError(
                    f"Row has no column '{field.name}' for {self.entity_class.__name__}"
                )
            field.set(instance, row[field.name])

        unmapped = columns.difference(self.descriptor.field_names)
        if unmapped:
            logger.debug(
                "Skipping unmapped columns %s for %s",
                sorted(unmapped),
                self.entity_class.__name__,
            )
        return instance

    def map_rows_to_entities(self, rows: Iterable[Mapping[str, Any]]) -> list[T]:
        """Map all rows; the first failing row aborts the whole call"""
        return [self.map_row_to_entity(row) for row in rows]

    materialize = map_rows_to_entities
