"""Data store exceptions."""

from typing import Any, Optional


class StoreError(Exception):
    """Raised when a fetch or upsert against the data store fails."""

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        status_code: Optional[int] = None,
        response: Optional[Any] = None,
    ):
        super().__init__(message)
        self.entity = entity
        self.status_code = status_code
        self.response = response


class RecordNotFoundError(StoreError):
    """A singleton fetch matched no row."""
