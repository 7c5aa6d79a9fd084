"""Exceptions raised by forestspec."""

from __future__ import annotations


class ForestSpecError(Exception):
    """Base class for errors detected by this package."""


class InvalidArgument(ForestSpecError, ValueError):
    """A strategy tag, label dtype or input array outside what the call accepts."""


class PreconditionViolation(ForestSpecError, ValueError):
    """A buffer, mapping or stored state that does not have the required shape."""


class IndexOutOfRange(ForestSpecError, IndexError):
    """A class index outside [0, class_count)."""
