from __future__ import annotations


class StoreError(Exception):
    """Base class for countdown store failures."""


# PUBLIC_INTERFACE
class StorageReadError(StoreError):
    """The data file is missing, unreadable, or does not hold a valid record list."""


# PUBLIC_INTERFACE
class StorageWriteError(StoreError):
    """Writing the temp file or renaming it over the data file failed."""


# PUBLIC_INTERFACE
class NotFoundError(StoreError):
    """No countdown with the given id exists."""

    def __init__(self, countdown_id: str) -> None:
        super().__init__(f"Countdown {countdown_id!r} not found")
        self.countdown_id = countdown_id
