from typing import Any

import asyncpg

from genericdao.db_context import DatabaseManager
from genericdao.exceptions import StatementError, StorageConnectionError


class DatabaseOperations:
    """Composition class for running statements on one borrowed connection.

    Driver errors are translated: lost or unusable connections become
    StorageConnectionError, anything PostgreSQL rejects becomes StatementError.
    """

    def __init__(self, connection: Any):
        self.connection = connection

    async def fetch_all(self, query: str, params: list[Any]) -> list[Any]:
        """Execute query and fetch all rows"""
        DatabaseManager.log_query(query, params)
        try:
            return await self.connection.fetch(query, *params)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            raise self._translate(e, query) from e

    async def execute_query(self, query: str, params: list[Any]) -> str:
        """Execute a statement and return its status string"""
        DatabaseManager.log_query(query, params)
        try:
            return await self.connection.execute(query, *params)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            raise self._translate(e, query) from e

    @staticmethod
    def _translate(error: Exception, query: str) -> Exception:
        if isinstance(error, asyncpg.exceptions.PostgresConnectionError):
            return StorageConnectionError(str(error))
        # asyncpg reports unencodable parameters as InterfaceError subclasses
        # that are also ValueErrors
        if isinstance(error, (asyncpg.PostgresError, ValueError)):
            return StatementError(str(error), sql=query)
        return StorageConnectionError(str(error))
