"""Errors raised while estimating the size of a value.

Every error derives from `SizeofError` and from the built-in exception
closest to its meaning, so callers can catch either.
"""




class SizeofError(Exception):
    """Base class for errors raised by this package."""


class AccessDenied(SizeofError, PermissionError):
    """A field could not be made accessible through a normal
    accessibility request, and no escalation was attempted.

    Recoverable: retry with automatic escalation enabled.
    """


class InsufficientPermission(SizeofError, PermissionError):
    """An escalated (overriding) access was attempted, but the host
    forbids the privileged override."""


class RecursionExhausted(SizeofError, RecursionError):
    """The field-reachability graph is cyclic or deeper than the
    configured depth limit."""


class UnsupportedValueKind(SizeofError, TypeError):
    """The value's runtime type falls outside the closed set of
    measurable kinds."""




class ReflectiveAccessWarning(UserWarning):
    """Issued when a field is read by overriding the access guard."""
