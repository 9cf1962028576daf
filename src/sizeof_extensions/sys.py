from sys import *
import os
import struct
import logging
import threading
from .typing import Any, Bits


logger = logging.getLogger(__name__)


ARCH_ENV_VAR = "SIZEOF_EXTENSIONS_ARCH"

_ARCHITECTURE: bool | None = None
_ARCHITECTURE_LOCK = threading.Lock()




# [ Architecture ]

def _read_architecture() -> bool:
    arch = os.environ.get(ARCH_ENV_VAR) or f"{struct.calcsize('P') * 8}bit"
    is_wide = "64" in arch
    logger.debug(f"Architecture resolved: arch={arch!r} wide={is_wide}")
    return is_wide


def is64bit() -> bool:
    """Return True if the host architecture is 64-bit.

    Read once per process, from the `SIZEOF_EXTENSIONS_ARCH` environment
    variable when it is set, otherwise from the interpreter's pointer
    width. Any value containing "64" is a wide architecture.
    """
    global _ARCHITECTURE
    if _ARCHITECTURE is None:
        with _ARCHITECTURE_LOCK:
            if _ARCHITECTURE is None:
                _ARCHITECTURE = _read_architecture()
    return _ARCHITECTURE


def halve(bits: Bits) -> Bits:
    """Integer half of *bits*, truncated toward zero."""
    half = abs(bits) // 2
    return half if bits >= 0 else -half


def bittage(bits: Bits) -> Bits:
    """Return *bits* unchanged on a 64-bit architecture, otherwise
    halve it (truncating toward zero).

    Every architecture-dependent constant (null, object, array and
    string overheads) is derived through this function.
    """
    return bits if is64bit() else halve(bits)

scale = bittage




# [ Estimation ]

def memory(obj: Any, /) -> Bits:
    """The total number of bits used to store *obj*, including the
    values reachable through its fields.

    On a 64-bit architecture the result is always a multiple of 8. On
    a 32-bit architecture every None reached, directly or through a
    field, adds 4 bits, so the total need not be.

    Raises `RecursionExhausted` when *obj* (directly or through its
    fields) refers to itself, or when its fields nest deeper than
    `sys.getrecursionlimit()`.
    """
    from .context import default_context
    return default_context().estimator.memory(obj)


def overhead(obj: Any, /) -> Bits:
    """The number of bits of *obj* taken up by data that does not
    directly represent its state (headers and bookkeeping)."""
    from .context import default_context
    return default_context().estimator.overhead(obj)


def getautoescalation() -> bool:
    """Return the current value of the automatic escalation flag."""
    from .context import default_context
    return default_context().automatic_escalation


def setautoescalation(flag: bool, /) -> None:
    """Set whether an inaccessible field is read by overriding the
    access guard (True, the default) or raises `AccessDenied` (False).

    The flag is not synchronized; estimations already in progress may
    observe either value.
    """
    from .context import default_context
    default_context().automatic_escalation = bool(flag)
