"""Explicit success/failure values threaded between pipeline stages."""
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from .errors import ObjectFinderError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: ObjectFinderError


Outcome = Union[Ok[T], Err]
