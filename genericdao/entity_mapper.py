"""EntityMapper: generic data access for any described entity type"""

import logging
from collections.abc import Callable, Iterable
from typing import Any, get_args, get_origin

from pydantic import BaseModel, Field

from genericdao.database_operations import DatabaseOperations
from genericdao.db_context import ConnectionProvider, DatabaseManager
from genericdao.descriptor import DescriptorRegistry, TypeDescriptor, default_registry
from genericdao.exceptions import StorageError
from genericdao.materializer import RowMaterializer
from genericdao.outcome import Outcome
from genericdao.query_builder import Operation, QueryBuilder, Statement

logger = logging.getLogger(__name__)

FailureObserver = Callable[[str, type, StorageError], None]


def log_failure(operation: str, entity_class: type, error: StorageError) -> None:
    """Default observer: one WARNING per failed call"""
    logger.warning("%sDAO:%s %s", entity_class.__name__, operation, error)


class MapperConfig(BaseModel):
    """Configuration options for EntityMapper"""

    db_name: str = Field(
        default="default",
        description="DatabaseManager pool used when no provider is given",
    )
    db_schema: str | None = Field(default=None, description="Database schema name")
    literal_values: bool = Field(
        default=False,
        description="Embed values in insert/update/delete SQL instead of binding them",
    )
    quote_identifiers: bool = Field(
        default=False,
        description="Double-quote table and column names in every statement",
    )


class EntityMapper[T]:
    """Finds, inserts, updates and deletes entities of one type.

    SQL is derived from the entity's declared fields: the table is named after
    the class and each column after a field. Every call borrows its own
    connection from the provider and gives it back before returning.

    Storage failures are not raised. They are passed to the observer and
    returned as a FAILED Outcome. Errors turning rows into entities are raised.

    Usage:
        people = EntityMapper(Person, provider=PoolConnectionProvider(pool))
        await people.insert(Person(id=1, name="Ada"))
        outcome = await people.find_by_id(1)

    or bind the type through subclassing:

        class PersonDao(EntityMapper[Person]):
            pass
    """

    _entity_class: type | None = None

    def __init_subclass__(cls, **kwargs: Any):
        super().__init_subclass__(**kwargs)
        for base in cls.__dict__.get("__orig_bases__", ()):
            origin = get_origin(base)
            if isinstance(origin, type) and issubclass(origin, EntityMapper):
                args = get_args(base)
                if args and isinstance(args[0], type):
                    cls._entity_class = args[0]

    def __init__(
        self,
        entity_class: type[T] | None = None,
        *,
        provider: ConnectionProvider | None = None,
        config: MapperConfig | None = None,
        registry: DescriptorRegistry | None = None,
        observer: FailureObserver | None = None,
    ):
        entity_class = entity_class or self._entity_class
        if entity_class is None:
            raise ValueError("entity_class is required")

        self.entity_class: type[T] = entity_class
        self.config = config or MapperConfig()
        self.provider = provider or DatabaseManager.provider(self.config.db_name)
        self.registry = registry or default_registry
        self.observer = observer or log_failure
        self._query_builder: QueryBuilder | None = None
        self._materializer: RowMaterializer[T] | None = None

    @property
    def descriptor(self) -> TypeDescriptor:
        """Descriptor of the mapped type, built on first use"""
        return self.registry.get(self.entity_class)

    @property
    def query_builder(self) -> QueryBuilder:
        if self._query_builder is None:
            self._query_builder = QueryBuilder(
                self.descriptor,
                db_schema=self.config.db_schema,
                literal_values=self.config.literal_values,
                quote_identifiers=self.config.quote_identifiers,
            )
        return self._query_builder

    @property
    def materializer(self) -> RowMaterializer[T]:
        if self._materializer is None:
            self._materializer = RowMaterializer(self.descriptor)
        return self._materializer

    def statement(self, operation: Operation, entity: T | None = None) -> Statement:
        """Return the statement a call would run, without running it"""
        return self.query_builder.build(operation, entity)

    def _failed(self, operation: str, error: StorageError) -> Outcome[Any]:
        self.observer(operation, self.entity_class, error)
        return Outcome.failure(error)

    async def _read(self, operation: str, statement: Statement) -> Outcome[list[T]]:
        # Rows are materialized before the connection goes back to the provider
        try:
            async with DatabaseManager.connection(self.provider) as conn:
                rows = await DatabaseOperations(conn).fetch_all(*statement)
                return Outcome.ok(self.materializer.map_rows_to_entities(rows))
        except StorageError as e:
            return self._failed(operation, e)

    async def _write(self, operation: str, statement: Statement) -> Outcome[None]:
        try:
            async with DatabaseManager.connection(self.provider) as conn:
                await DatabaseOperations(conn).execute_query(*statement)
        except StorageError as e:
            return self._failed(operation, e)
        return Outcome.ok()

    async def find_by_id(self, entity_id: int) -> Outcome[T]:
        """Find an entity by key; NOT_FOUND when no row matches"""
        query, _ = self.query_builder.select_by_key()
        outcome = await self._read("find_by_id", Statement(query, [entity_id]))
        if outcome.failed:
            return Outcome.failure(outcome.error)
        if not outcome.value:
            return Outcome.not_found()
        return Outcome.ok(outcome.value[0])

    async def find_all(self) -> Outcome[list[T]]:
        """Return every row of the table in storage order"""
        return await self._read("find_all", self.query_builder.select_all())

    async def insert(self, entity: T) -> Outcome[None]:
        """Insert the entity as-is; its key must already be set"""
        return await self._write("insert", self.query_builder.insert(entity))

    async def update(self, entity: T) -> Outcome[None]:
        """Overwrite every non-key column of the row with the entity's key"""
        return await self._write("update", self.query_builder.update(entity))

    async def delete(self, entity: T) -> Outcome[None]:
        return await self._write("delete", self.query_builder.delete(entity))

    def header(self) -> list[str]:
        """Field names in column order"""
        return self.descriptor.field_names

    def tabulate(self, entities: Iterable[T]) -> list[list[Any]]:
        """Raw field values, one row per entity, columns in header order"""
        fields = self.descriptor.fields
        return [[field.get(entity) for field in fields] for entity in entities]
