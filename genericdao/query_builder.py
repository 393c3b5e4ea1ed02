"""
QueryBuilder for the five statements the entity mapper runs.
The goal is to produce SQL from a TypeDescriptor without execution.
"""

from enum import Enum
from typing import Any, NamedTuple

from genericdao.descriptor import TypeDescriptor


class Operation(str, Enum):
    SELECT_BY_KEY = "select_by_key"
    SELECT_ALL = "select_all"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class Statement(NamedTuple):
    sql: str
    params: list[Any]


def render_literal(value: Any) -> str:
    """Render a value the way it is embedded in literal SQL.

    Strings are wrapped in single quotes verbatim; embedded quotes are NOT
    escaped, so literal statements must never carry untrusted text.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, str):
        return f"'{value}'"
    return str(value)


class QueryBuilder:
    """
    Builds the statements of one entity type.

    By default every value is passed as a positional parameter. With
    literal_values=True the insert, update and delete statements embed the
    rendered values in the SQL text instead.

    Usage:
        builder = QueryBuilder(descriptor)
        query, params = builder.build(Operation.SELECT_BY_KEY)
        query, params = builder.update(person)
    """

    def __init__(
        self,
        descriptor: TypeDescriptor,
        *,
        db_schema: str | None = None,
        literal_values: bool = False,
        quote_identifiers: bool = False,
    ):
        self.descriptor = descriptor
        self.literal_values = literal_values
        self.quote_identifiers = quote_identifiers
        table_name = (
            f'"{descriptor.table_name}"' if quote_identifiers else descriptor.table_name
        )
        self.table_name = f"{db_schema}.{table_name}" if db_schema else table_name

    def _column(self, name: str) -> str:
        """Column reference; quoted names keep their case in PostgreSQL"""
        return f'"{name}"' if self.quote_identifiers else name

    def _value(self, value: Any, params: list[Any]) -> str:
        """Return a placeholder (and record the param) or a rendered literal"""
        if self.literal_values:
            return render_literal(value)
        params.append(value)
        return f"${len(params)}"

    def select_by_key(self, key_field: str | None = None) -> Statement:
        """SELECT by key; the key is bound when the statement runs"""
        field = self._column(key_field or self.descriptor.key_field or "id")
        return Statement(f"SELECT * FROM {self.table_name} WHERE {field} = $1", [])

    def select_all(self) -> Statement:
        return Statement(f"SELECT * FROM {self.table_name}", [])

    def insert(self, entity: Any) -> Statement:
        params: list[Any] = []
        values = ", ".join(
            self._value(field.get(entity), params) for field in self.descriptor.fields
        )
        return Statement(f"INSERT INTO {self.table_name} VALUES ({values})", params)

    def update(self, entity: Any) -> Statement:
        """UPDATE every non-key field, addressed by the entity's key.

        A type without non-key fields produces "SET WHERE", which the store
        rejects.
        """
        params: list[Any] = []
        set_clause = ", ".join(
            f"{self._column(field.name)}={self._value(field.get(entity), params)}"
            for field in self.descriptor.non_key_fields
        )
        key = self._value(self.descriptor.key_value(entity), params)
        key_column = self._column("id")
        if not set_clause:
            return Statement(
                f"UPDATE {self.table_name} SET WHERE {key_column}={key}", params
            )
        return Statement(
            f"UPDATE {self.table_name} SET {set_clause} WHERE {key_column}={key}",
            params,
        )

    def delete(self, entity: Any) -> Statement:
        params: list[Any] = []
        key = self._value(self.descriptor.key_value(entity), params)
        key_column = self._column("id") if self.quote_identifiers else "ID"
        return Statement(
            f"DELETE FROM {self.table_name} WHERE {key_column}={key}", params
        )

    def build(self, operation: Operation, entity: Any = None) -> Statement:
        """Build the statement for an operation.

        Raises:
            ValueError: a write operation was requested without an entity
        """
        if operation is Operation.SELECT_BY_KEY:
            return self.select_by_key()
        if operation is Operation.SELECT_ALL:
            return self.select_all()

        if entity is None:
            raise ValueError(f"{operation.value} requires an entity")
        if operation is Operation.INSERT:
            return self.insert(entity)
        if operation is Operation.UPDATE:
            return self.update(entity)
        return self.delete(entity)

    def to_sql(self, operation: Operation, entity: Any = None) -> str:
        """Return the SQL string for debugging"""
        return self.build(operation, entity).sql
