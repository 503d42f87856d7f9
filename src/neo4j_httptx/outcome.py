"""
Tagged result values for the translation layer

The response translator returns Ok or Err instead of raising, so each
failure kind is enumerated in one place. The public API unwraps these into
exceptions at the session and transaction boundary.
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """
    A failed outcome.

    error is one of ProtocolError, TranslationError, DiscoveryError,
    MisuseError, or the original transport exception when the server sent no
    structured error body.
    """

    error: BaseException

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self) -> Any:
        raise self.error


Outcome = Union[Ok[T], Err]


__all__ = ["Ok", "Err", "Outcome"]
