from dataclasses import dataclass
from typing import Generic, TypeVar, Union


class StudioError(Exception):
    """Base error. Messages start with a stable code so callers can classify
    them by substring (the HTTP boundary does exactly that)."""

    code = "STUDIO_ERROR"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"{self.code}: {detail}")


class InvalidPayload(StudioError):
    code = "INVALID_PAYLOAD"


class ProviderConfig(StudioError):
    code = "GEMINI_CONFIG"


class RateLimited(StudioError):
    code = "RATE_LIMIT"


class NoImageReturned(StudioError):
    code = "GEMINI_NO_IMAGE"


class ProviderFailure(StudioError):
    """Unclassified provider failure; keeps the original message untouched."""

    def __init__(self, message: str):
        self.detail = message
        Exception.__init__(self, message)


class InvalidImport(StudioError):
    code = "INVALID_IMPORT"


class JobNotFound(StudioError):
    code = "JOB_NOT_FOUND"


T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: Exception

    @property
    def message(self) -> str:
        return str(self.error)


Result = Union[Ok[T], Err]
