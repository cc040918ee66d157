"""Errors shared by the datastore adapters and the components."""

from __future__ import annotations


class DatastoreError(Exception):
    """
    Any lookup/insert/update/delete failure of the underlying datastore.

    Raised by the repository adapters in place of driver exceptions so the
    components never depend on the driver.
    """

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Datastore failure during {operation}{detail}")


class IntegrityViolation(DatastoreError):
    """A unique or check constraint rejected the write."""

    pass


# Message rendered to end users for any datastore failure
GENERIC_ERROR_MESSAGE = "Something went wrong while processing your request. Please try again later."
