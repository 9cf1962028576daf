import threading
from . import sys as _sys
from .estimator import Estimator
from .permission import Escalator, default_escalator
from .typing import Bits


class SizingContext:
    """Configuration held by an `Estimator`.

    Args:
        * wide: True for a 64-bit architecture, False for 32-bit. Defaults
        to the process-wide fact (`sys.is64bit`), read once on first use.

        * automatic_escalation: When True, a field refused by the access
        guard is read by overriding it; when False, `AccessDenied` is
        raised instead.

        * max_depth: Deepest field nesting followed before raising
        `RecursionExhausted`. Defaults to `sys.getrecursionlimit()`.

        * escalator: The permission escalator. Defaults to the
        process-wide escalator, so its override probe runs at most once.


    `automatic_escalation` is ordinary shared state and is not
    synchronized: an estimation already in progress may observe either
    value when it is toggled concurrently.
    """
    __slots__ = ('automatic_escalation', 'max_depth', 'escalator', '_wide', '_lock', '_estimator')

    def __init__(
        self,
        *,
        wide                : bool | None = None,
        automatic_escalation: bool = True,
        max_depth           : int | None = None,
        escalator           : Escalator | None = None,
    ):
        self.automatic_escalation = automatic_escalation
        self.max_depth = _sys.getrecursionlimit() if max_depth is None else max_depth
        self.escalator = escalator or default_escalator()
        self._wide = wide
        self._lock = threading.Lock()
        self._estimator: Estimator | None = None

    def __repr__(self):
        return (
            f"{type(self).__name__}(wide={self._wide}, "
            f"automatic_escalation={self.automatic_escalation}, max_depth={self.max_depth})"
        )

    @property
    def wide(self) -> bool:
        """The architecture fact; fixed after the first read."""
        if self._wide is None:
            with self._lock:
                if self._wide is None:
                    self._wide = _sys.is64bit()
        return self._wide

    def bittage(self, bits: Bits) -> Bits:
        """`sys.bittage` for this context's architecture."""
        return bits if self.wide else _sys.halve(bits)

    @property
    def estimator(self) -> Estimator:
        """The estimator bound to this context."""
        if self._estimator is None:
            with self._lock:
                if self._estimator is None:
                    self._estimator = Estimator(self)
        return self._estimator




_DEFAULT_CONTEXT: SizingContext | None = None
_DEFAULT_CONTEXT_LOCK = threading.Lock()


def default_context() -> SizingContext:
    """Return the process-wide context used by `sys.memory` and
    `sys.overhead`."""
    global _DEFAULT_CONTEXT
    if _DEFAULT_CONTEXT is None:
        with _DEFAULT_CONTEXT_LOCK:
            if _DEFAULT_CONTEXT is None:
                _DEFAULT_CONTEXT = SizingContext()
    return _DEFAULT_CONTEXT
