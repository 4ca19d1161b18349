"""Typed Result container for the engine's success/failure seams.

The generation service hands back untrusted payloads. Everything that crosses
from that side into the card model goes through a function returning
``Result[T, GenerationFailure]`` so callers branch on ``is_ok()`` instead of
catching exceptions in the update loop.

Example
-------
>>> from talkpoints.core.result import ok, err
>>> ok(4).map(lambda n: n * 2).unwrap()
8
>>> err("no cards").get_or(0)
0
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar, cast

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


class Result(Generic[T, E]):
    """Either ``Ok[T]`` (validated value) or ``Err[E]`` (failure payload)."""

    def is_ok(self) -> bool:
        """Return ``True`` if this is an :class:`Ok` value."""
        return isinstance(self, Ok)

    def is_err(self) -> bool:
        """Return ``True`` if this is an :class:`Err` value."""
        return isinstance(self, Err)

    def unwrap(self) -> T:
        """Return the success value, or raise ``RuntimeError`` on ``Err``."""
        if isinstance(self, Ok):
            return cast(Ok[T, E], self).value
        raise RuntimeError(f"Attempted to unwrap Err: {self!r}")

    def unwrap_err(self) -> E:
        """Return the failure payload, or raise ``RuntimeError`` on ``Ok``."""
        if isinstance(self, Err):
            return cast(Err[T, E], self).error
        raise RuntimeError(f"Attempted to unwrap_err on Ok: {self!r}")

    def get_or(self, default: T) -> T:
        """Return the success value, or ``default`` on ``Err``."""
        if isinstance(self, Ok):
            return cast(Ok[T, E], self).value
        return default

    def map(self, fn: Callable[[T], U]) -> Result[U, E]:
        """Apply ``fn`` to the success value; pass failures through."""
        if isinstance(self, Ok):
            return Ok(fn(cast(Ok[T, E], self).value))
        return cast(Result[U, E], self)

    def __repr__(self) -> str:  # pragma: no cover - trivial representation
        if isinstance(self, Ok):
            return f"Ok({cast(Ok[T, E], self).value!r})"
        if isinstance(self, Err):
            return f"Err({cast(Err[T, E], self).error!r})"
        return "Result(?)"


@dataclass(frozen=True)
class Ok(Result[T, E]):
    """Successful result wrapping a value of type ``T``."""

    value: T


@dataclass(frozen=True)
class Err(Result[T, E]):
    """Failed result wrapping an error payload of type ``E``."""

    error: E


def ok(value: T) -> Result[T, E]:
    """Construct :class:`Ok` with better type inference at call sites."""
    return Ok(value)


def err(error: E) -> Result[T, E]:
    """Construct :class:`Err` with better type inference at call sites."""
    return Err(error)


__all__ = ["Err", "Ok", "Result", "err", "ok"]
