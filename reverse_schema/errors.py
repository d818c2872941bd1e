"""Error types for reverse-schema."""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Failure domain of a ReverseSchemaError."""

    CONNECTION_FAILURE = "connection_failure"
    METADATA_EXTRACTION_FAILURE = "metadata_extraction_failure"
    NAMING_CONFLICT = "naming_conflict"
    CONFIGURATION_INVALID = "configuration_invalid"


class ReverseSchemaError(Exception):
    """Single error type raised (or recorded) by the engine.

    The ``kind`` tells callers which failure domain they are looking at.
    The underlying driver or validation error, when there is one, is kept
    as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.details = details or {}
        if cause is not None:
            self.__cause__ = cause

    @property
    def code(self) -> str:
        return self.kind.value.upper()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to a dictionary for structured output."""
        result = {
            "code": self.code,
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
        }
        if self.__cause__ is not None:
            result["cause"] = f"{type(self.__cause__).__name__}: {self.__cause__}"
        return result

    @classmethod
    def connection_failure(
        cls,
        message: str,
        cause: Optional[BaseException] = None,
        **details: Any,
    ) -> "ReverseSchemaError":
        return cls(message, ErrorKind.CONNECTION_FAILURE, details, cause)

    @classmethod
    def metadata_extraction(
        cls,
        message: str,
        cause: Optional[BaseException] = None,
        **details: Any,
    ) -> "ReverseSchemaError":
        return cls(message, ErrorKind.METADATA_EXTRACTION_FAILURE, details, cause)

    @classmethod
    def naming_conflict(
        cls,
        message: str,
        cause: Optional[BaseException] = None,
        **details: Any,
    ) -> "ReverseSchemaError":
        return cls(message, ErrorKind.NAMING_CONFLICT, details, cause)

    @classmethod
    def configuration_invalid(
        cls,
        message: str,
        cause: Optional[BaseException] = None,
        **details: Any,
    ) -> "ReverseSchemaError":
        return cls(message, ErrorKind.CONFIGURATION_INVALID, details, cause)

    def __str__(self) -> str:
        return self.message
