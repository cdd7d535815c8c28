"""
Service Errors

Every failure the core raises on purpose is a ServiceError tagged with an
ErrorKind. The kind carries the HTTP status code, so the boundary handler in
main.py converts errors to responses by matching on the kind alone.
"""

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"  # malformed or missing caller input
    NOT_FOUND = "NOT_FOUND"  # referenced entity absent
    PROCESSING = "PROCESSING"  # pipeline or upstream-service failure

    @property
    def status_code(self) -> int:
        if self is ErrorKind.VALIDATION:
            return 400
        elif self is ErrorKind.NOT_FOUND:
            return 404
        else:  # PROCESSING
            return 500


class ServiceError(Exception):
    """An expected failure with a kind and a human-readable message."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def __repr__(self) -> str:
        return f"ServiceError({self.kind.value}, {self.message!r})"


def validation_error(message: str) -> ServiceError:
    return ServiceError(ErrorKind.VALIDATION, message)


def not_found_error(message: str) -> ServiceError:
    return ServiceError(ErrorKind.NOT_FOUND, message)


def processing_error(message: str) -> ServiceError:
    return ServiceError(ErrorKind.PROCESSING, message)
