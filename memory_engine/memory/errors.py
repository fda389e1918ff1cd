"""Exceptions raised by the memory engine."""


class MemoryEngineError(Exception):
    """Base class for all memory engine errors."""


class InvalidQuery(MemoryEngineError, ValueError):
    """Search requested with empty or whitespace-only query text."""


class InvalidWindow(MemoryEngineError, ValueError):
    """Timeline window is not one of the supported sizes."""


class StoreUnavailable(MemoryEngineError, RuntimeError):
    """The external memory store could not be read or written."""


class RecordNotFound(MemoryEngineError, KeyError):
    """No memory record exists with the requested id."""

    def __init__(self, record_id: str):
        super().__init__(record_id)
        self.record_id = record_id

    def __str__(self) -> str:
        return f"Memory record not found: {self.record_id}"
