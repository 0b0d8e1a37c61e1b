"""Result codes and exceptions raised by the log store."""

from __future__ import annotations

import enum


class ErrorCode(enum.IntEnum):
    """Numeric result codes of store operations."""

    OK = 0
    INPUT_OUTPUT_ERROR = 1
    OUT_OF_MEMORY = 2
    INVALID_PARAMETER = 3
    NOT_FOUND = 4
    REVISION_CONFLICT = 5
    TAMPERED = 6


_DESCRIPTIONS = {
    ErrorCode.OK: "success",
    ErrorCode.INPUT_OUTPUT_ERROR: "input/output error",
    ErrorCode.OUT_OF_MEMORY: "out of memory",
    ErrorCode.INVALID_PARAMETER: "bad argument(s)",
    ErrorCode.NOT_FOUND: "no such entity",
    ErrorCode.TAMPERED: "data was tampered with",
    ErrorCode.REVISION_CONFLICT: "revision conflict",
}


def describe(code):
    """Return an English description of a result code, or None if unknown."""
    try:
        return _DESCRIPTIONS[ErrorCode(code)]
    except ValueError:
        return None


class LogStoreError(Exception):
    """Base class of all store errors; ``code`` names the failure."""

    code: ErrorCode = ErrorCode.INPUT_OUTPUT_ERROR

    def __init__(self, message=None):
        super().__init__(message if message is not None else describe(self.code))


class StoreIOError(LogStoreError):
    """Reading or writing the log or index file failed."""

    code = ErrorCode.INPUT_OUTPUT_ERROR


class InvalidParameterError(LogStoreError, ValueError):
    """An argument was out of range or the store is closed."""

    code = ErrorCode.INVALID_PARAMETER


class NotFoundError(LogStoreError, LookupError):
    """The requested entry has been removed."""

    code = ErrorCode.NOT_FOUND


class RevisionConflictError(LogStoreError):
    """The revision given to a put is not the entry's current revision."""

    code = ErrorCode.REVISION_CONFLICT


class TamperedError(LogStoreError):
    """The log record found for an entry does not belong to it."""

    code = ErrorCode.TAMPERED