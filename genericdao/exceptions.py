"""Exceptions raised by the data-access layer"""


class DaoError(Exception):
    """Base class for all data-access errors"""


class StorageError(DaoError):
    """Failure reported by the underlying store.

    Facade operations never raise these; they are returned inside a failed
    Outcome and passed to the mapper's observer.
    """


class StorageConnectionError(StorageError):
    """A connection could not be acquired or was lost mid-call"""


class StatementError(StorageError):
    """The store rejected a statement (syntax, constraint violation, ...)"""

    def __init__(self, message: str, sql: str | None = None):
        super().__init__(message)
        self.sql = sql


class MaterializationError(DaoError):
    """A row could not be turned into an entity instance"""


class UnsupportedTypeError(DaoError):
    """No usable field set can be derived for an entity type"""
