from . import sizes
from .exceptions import RecursionExhausted
from .inspect import Introspector
from .typing import Any, Bits, TYPE_CHECKING

if TYPE_CHECKING:
    from .context import SizingContext


_ENTER = 0
_EXIT  = 1


class Estimator:
    """Estimates the logical memory footprint of values.

    Null, scalar, text and primitive-sequence values are sized in
    closed form. Classes, functions, modules and similar runtime
    machinery are charged their overhead only. Any other value costs
    its overhead plus the memory of each of its field values,
    recursively.

    The field graph is walked with an explicit stack. Values reachable
    along several paths are counted once per path. A value that is its
    own ancestor, or nesting deeper than the context's `max_depth`,
    raises `RecursionExhausted`.
    """
    __slots__ = ('context', 'introspector')

    def __init__(self, context: "SizingContext"):
        self.context      = context
        self.introspector = Introspector(context)

    def overhead(self, obj: Any, /) -> Bits:
        return sizes.overhead_of(sizes.classify(obj), self.context.bittage)

    def memory(self, obj: Any, /) -> Bits:
        bittage   = self.context.bittage
        max_depth = self.context.max_depth
        total     = 0
        visiting: set[int] = set()
        # (action, value, depth); the value in an exit entry keeps its
        # id from being reused until the entry is popped
        stack: list[tuple[int, Any, int]] = [(_ENTER, obj, 0)]

        while stack:
            action, value, depth = stack.pop()
            if action == _EXIT:
                visiting.discard(id(value))
                continue

            info = sizes.classify(value)
            if info.is_leaf:
                total += sizes.memory_of(info, bittage)
                continue

            if depth >= max_depth:
                raise RecursionExhausted(
                    f"field nesting exceeds {max_depth} levels at {type(value).__name__!r} object"
                )
            if id(value) in visiting:
                raise RecursionExhausted(
                    f"{type(value).__name__!r} object refers to itself through its fields"
                )

            total += sizes.overhead_of(info, bittage)
            visiting.add(id(value))
            stack.append((_EXIT, value, depth))
            stack.extend(
                (_ENTER, field_value, depth + 1)
                for _, field_value in self.introspector.values(value)
            )

        return total
