"""
defaults.py — "use the library default" slots for defaultable arguments.

A learner entry point that takes a collaborator (options, problem spec, split
functor, ...) accepts either a concrete object or the DEFAULT sentinel.
The callee resolves the argument once, by type:

    opts = resolve(options, Options())
    spec = resolve_factory(spec, ProblemSpec)

The sentinel is never compared by value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")


class UseDefault:
    """Sentinel type. There is one instance per process: DEFAULT."""

    __slots__ = ()
    _instance: "UseDefault"

    def __new__(cls) -> "UseDefault":
        try:
            return cls._instance
        except AttributeError:
            inst = super().__new__(cls)
            cls._instance = inst
            return inst

    def __repr__(self) -> str:
        return "DEFAULT"

    def __reduce__(self):
        return (UseDefault, ())


# Created at import time.
DEFAULT = UseDefault()


@dataclass(frozen=True)
class Explicit(Generic[T]):
    """Caller-supplied value, for call sites that prefer an explicit wrapper."""

    value: T


def rf_default() -> UseDefault:
    return DEFAULT


def is_default(argument: Any) -> bool:
    return isinstance(argument, UseDefault)


def resolve(argument: Any, fallback: Any) -> Any:
    """Return `fallback` for the sentinel, the wrapped value for Explicit, else `argument` as is."""
    if isinstance(argument, UseDefault):
        return fallback
    if isinstance(argument, Explicit):
        return argument.value
    return argument


def resolve_factory(argument: Any, factory: Callable[[], Any]) -> Any:
    """Like resolve(), but only builds the fallback when it is needed."""
    if isinstance(argument, UseDefault):
        return factory()
    if isinstance(argument, Explicit):
        return argument.value
    return argument
