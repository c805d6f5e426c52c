"""
Outcome of an adapter call.

Adapters return ``Success`` or ``Failure`` instead of raising, and the HTTP layer
maps each ``FailureKind`` to a status code.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


class FailureKind(str, Enum):
    NOT_CONFIGURED = "not_configured"
    INVALID_REQUEST = "invalid_request"
    UPSTREAM_FAILURE = "upstream_failure"


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    message: str
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return False


Result = Union[Success[T], Failure]
