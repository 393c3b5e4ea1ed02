"""genericdao: descriptor-driven data access for asyncpg"""

from genericdao.db_context import (
    ConnectionProvider,
    DatabaseManager,
    PoolConnectionProvider,
    QueryTracker,
)
from genericdao.descriptor import (
    DescriptorRegistry,
    FieldDescriptor,
    FieldKind,
    TypeDescriptor,
    describe,
)
from genericdao.entities import BaseEntity
from genericdao.entity_mapper import EntityMapper, MapperConfig
from genericdao.exceptions import (
    DaoError,
    MaterializationError,
    StatementError,
    StorageConnectionError,
    StorageError,
    UnsupportedTypeError,
)
from genericdao.materializer import RowMaterializer
from genericdao.outcome import Outcome, OutcomeStatus
from genericdao.query_builder import Operation, QueryBuilder, Statement

__all__ = [
    "BaseEntity",
    "ConnectionProvider",
    "DaoError",
    "DatabaseManager",
    "DescriptorRegistry",
    "EntityMapper",
    "FieldDescriptor",
    "FieldKind",
    "MapperConfig",
    "MaterializationError",
    "Operation",
    "Outcome",
    "OutcomeStatus",
    "PoolConnectionProvider",
    "QueryBuilder",
    "QueryTracker",
    "RowMaterializer",
    "Statement",
    "StatementError",
    "StorageConnectionError",
    "StorageError",
    "TypeDescriptor",
    "UnsupportedTypeError",
    "describe",
]
