"""Field accessibility levels and the permission escalator.

Python has no access modifiers, so the normal access-control rules are
an `AccessGuard`, and bypassing them is an `AccessibilityOverride`. The
defaults refuse name-mangled private attributes and the C-level struct
members of built-in types to normal access, and grant overrides unless
a `sys.audit` hook vetoes the `sizeof_extensions.override` event.

Overriding a field issues a `ReflectiveAccessWarning`. Use
`disable_warnings` to silence it.
"""
import sys
import logging
import warnings
import threading
from .enum import MultiEnum
from .exceptions import AccessDenied, InsufficientPermission, ReflectiveAccessWarning
from .inspect import Field, SlotField, isitem, isprivate, isslot, iscclass
from .typing import Any, TypeVar, AccessGuard, AccessibilityOverride


logger = logging.getLogger(__name__)


AUDIT_EVENT = "sizeof_extensions.override"

_F = TypeVar("_F", bound=Field)




class Level(MultiEnum):
    """Permission levels accepted by `Escalator.modify`."""
    UNSET     = -1, 'unset'      # force accessibility off
    UNCHANGED =  0, 'unchanged'
    SET       =  1, 'set'        # normal request, checked by the guard
    OVERRIDE  =  2, 'override'   # bypass the guard




class DefaultAccessGuard:
    """Refuses name-mangled private attributes and slot members
    declared by classes implemented in C."""
    __slots__ = ()

    def permits(self, field: Field, /) -> bool:
        if isitem(field):
            return True
        if isprivate(field):
            return False
        return not (isslot(field) and iscclass(field.owner))


class AuditedOverride:
    """Grants every override after raising the `sizeof_extensions.override`
    audit event. A host audit hook may forbid it by raising."""
    __slots__ = ()

    def attempt(self, field: Field, /) -> bool:
        sys.audit(AUDIT_EVENT, field.owner, field.name)
        return True


class _Probe:
    __slots__ = ('__probe',)




# [ Warnings ]

_WARNINGS_ENABLED = True
_WARNINGS_LOCK = threading.Lock()


def disable_warnings() -> None:
    """Stop issuing `ReflectiveAccessWarning` on overrides.

    Raises `RuntimeError` if the warnings are already disabled.
    """
    global _WARNINGS_ENABLED
    with _WARNINGS_LOCK:
        if not _WARNINGS_ENABLED:
            raise RuntimeError("Warnings already disabled!")
        _WARNINGS_ENABLED = False


def enable_warnings() -> None:
    """Resume issuing `ReflectiveAccessWarning` on overrides.

    Raises `RuntimeError` if the warnings are already enabled.
    """
    global _WARNINGS_ENABLED
    with _WARNINGS_LOCK:
        if _WARNINGS_ENABLED:
            raise RuntimeError("Warnings already enabled!")
        _WARNINGS_ENABLED = True


def warnings_enabled() -> bool:
    return _WARNINGS_ENABLED




# [ Escalator ]

class Escalator:
    """Applies permission levels to fields.

    Whether overriding is possible at all is probed once, on first use,
    by attempting to override a private probe field. A refused probe is
    logged and recorded; the escalator does not probe again.
    """
    __slots__ = ('mechanism', 'guard', '_can_override', '_lock')

    def __init__(
        self,
        override: AccessibilityOverride | None = None,
        guard   : AccessGuard | None = None,
    ):
        self.mechanism: AccessibilityOverride = override or AuditedOverride()
        self.guard    : AccessGuard = guard or DefaultAccessGuard()
        self._can_override: bool | None = None
        self._lock = threading.Lock()

    def __repr__(self):
        return f"<{type(self).__name__} can_override={self._can_override}>"

    @property
    def can_override(self) -> bool:
        """True if the override mechanism is available. Probed once."""
        if self._can_override is None:
            with self._lock:
                if self._can_override is None:
                    self._can_override = self._probe()
        return self._can_override

    def _probe(self) -> bool:
        field = SlotField('_Probe__probe', _Probe, _Probe.__dict__['_Probe__probe'])
        try:
            granted = bool(self.mechanism.attempt(field))
        except (PermissionError, RuntimeError) as e:
            logger.warning(f"Cannot override field access - permission overriding will not work ({e})")
            return False
        if not granted:
            logger.warning("Cannot override field access - permission overriding will not work")
        return granted

    def override(self, field: _F, /) -> _F:
        """Make *field* accessible, bypassing the guard.

        Raises `InsufficientPermission` if overriding is unavailable or
        is refused for this field.
        """
        if not self.can_override:
            raise InsufficientPermission("Do not have permission to override.")
        try:
            granted = self.mechanism.attempt(field)
        except (PermissionError, RuntimeError) as e:
            raise InsufficientPermission(f"override of {field!r} was refused") from e
        if not granted:
            raise InsufficientPermission(f"override of {field!r} was refused")

        field.accessible = True
        if _WARNINGS_ENABLED:
            warnings.warn(
                f"Illegal reflective access to {field.owner.__qualname__}.{field.name}",
                ReflectiveAccessWarning,
                stacklevel=2,
            )
        return field

    def try_override(self, field: _F, /) -> _F:
        """Override *field* if possible, otherwise fall back to a
        normal accessibility request."""
        return self.modify(field, Level.OVERRIDE if self.can_override else Level.SET)

    def modify(self, field: _F, level: Level | int | str = Level.SET, /) -> _F:
        """Apply the permission *level* to *field* and return it.

        `Level.SET` raises `AccessDenied` when the guard refuses the
        field.
        """
        level = Level(level)
        if level is Level.OVERRIDE:
            self.override(field)
        elif level is Level.SET:
            if not self.guard.permits(field):
                raise AccessDenied(
                    f"cannot make field {field.name!r} of {field.owner.__qualname__!r} accessible"
                )
            field.accessible = True
        elif level is Level.UNSET:
            field.accessible = False
        return field




_DEFAULT_ESCALATOR: Escalator | None = None
_DEFAULT_ESCALATOR_LOCK = threading.Lock()


def default_escalator() -> Escalator:
    """Return the process-wide escalator."""
    global _DEFAULT_ESCALATOR
    if _DEFAULT_ESCALATOR is None:
        with _DEFAULT_ESCALATOR_LOCK:
            if _DEFAULT_ESCALATOR is None:
                _DEFAULT_ESCALATOR = Escalator()
    return _DEFAULT_ESCALATOR
