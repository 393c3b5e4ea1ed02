"""Tagged results returned by the entity mapper"""

from dataclasses import dataclass
from enum import Enum

from genericdao.exceptions import StorageError


class OutcomeStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome[T]:
    """Result of one mapper call.

    A storage failure is never raised by the mapper; it comes back as a FAILED
    outcome carrying the error, so "nothing there" and "could not look" stay
    distinguishable.

    Usage:
        outcome = await people.find_by_id(7)
        if outcome.succeeded:
            person = outcome.value
        elif outcome.failed:
            log.warning("lookup failed: %s", outcome.error)
    """

    status: OutcomeStatus
    value: T | None = None
    error: StorageError | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> "Outcome[T]":
        return cls(OutcomeStatus.OK, value)

    @classmethod
    def not_found(cls) -> "Outcome[T]":
        return cls(OutcomeStatus.NOT_FOUND)

    @classmethod
    def failure(cls, error: StorageError) -> "Outcome[T]":
        return cls(OutcomeStatus.FAILED, error=error)

    @property
    def succeeded(self) -> bool:
        """True for an OK outcome: a row was found or a write went through"""
        return self.status is OutcomeStatus.OK

    @property
    def is_not_found(self) -> bool:
        return self.status is OutcomeStatus.NOT_FOUND

    @property
    def failed(self) -> bool:
        return self.status is OutcomeStatus.FAILED

    def unwrap(self) -> T | None:
        """Return the value, raising the storage error of a failed outcome.

        A NOT_FOUND outcome unwraps to None.
        """
        if self.error is not None:
            raise self.error
        return self.value
