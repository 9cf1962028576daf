from typing_extensions import *
from typing import *




_MISSING = object()




# [ Aliases ]

# sizes, always in bits
Bits = TypeAliasType("Bits", int)







# [ Structural Types ]

class FieldLike(Protocol):
    """Minimal interface of a field handle, as seen by access guards
    and override mechanisms."""
    __slots__ = ()
    name      : str
    owner     : type[Any]
    accessible: bool
    def get(self, obj: Any, /) -> Any: ...


class AccessGuard(Protocol):
    """The host's normal access-control rules.

    `permits` returns False when a field may not be made accessible
    through a normal accessibility request.
    """
    __slots__ = ()
    def permits(self, field: FieldLike, /) -> bool: ...


class AccessibilityOverride(Protocol):
    """A privileged mechanism that bypasses an `AccessGuard`.

    `attempt` returns True when the override was granted. It may also
    raise `PermissionError` or `RuntimeError` when the host forbids it.
    """
    __slots__ = ()
    def attempt(self, field: FieldLike, /) -> bool: ...
