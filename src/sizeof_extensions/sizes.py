"""Value classification and the closed-form size model.

All sizes are in bits, written for a 64-bit architecture and scaled
through a `bittage` function (halved on 32-bit architectures).
"""
import array
import ctypes
import types
import dataclasses
import collections
from .enum import Enum, auto
from .exceptions import UnsupportedValueKind
from .inspect import PyTypeFlag, hasfeature
from .typing import Any, Bits, Callable




# [ Constants ]

NULL_OVERHEAD   = 8     # a bare reference
OBJECT_OVERHEAD = 256   # object/array header
SCALAR_WIDTH    = 32    # boolean, byte, char, short, int, float
WIDE_WIDTH      = 64    # long, double
STRING_FIELDS   = 96    # coder byte + hash int + hash-is-zero boolean
STRING_ARRAY    = 256   # overhead of the backing byte array
CHAR_WIDTH      = 8

# per-element widths of primitive arrays
ARRAY_WIDTHS: dict[str, Bits] = {
    'boolean': 8,
    'char'   : 8,
    'byte'   : 8,
    'short'  : 16,
    'int'    : 32,
    'float'  : 32,
    'long'   : 64,
    'double' : 64,
}

INT32_RANGE = range(-(1 << 31), 1 << 31)
INT64_RANGE = range(-(1 << 63), 1 << 63)
INT_DIGIT_BITS = 30  # CPython stores ints as 30-bit digits in 32-bit words

# Runtime machinery is charged its header only. Its fields lead into
# the interpreter's module graph and are never visited.
OPAQUE_TYPES: tuple[type[Any], ...] = (
    type,
    types.ModuleType,
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.MethodWrapperType,
    types.WrapperDescriptorType,
    types.MethodDescriptorType,
    types.CodeType,
    types.FrameType,
    types.TracebackType,
    types.GeneratorType,
    types.CoroutineType,
    types.AsyncGeneratorType,
)




# [ Classification ]

class Kind(Enum):
    NULL        = auto()
    SCALAR      = auto()  # 32-bit class
    WIDE_SCALAR = auto()  # 64-bit class
    TEXT        = auto()
    SEQUENCE    = auto()
    COMPOSITE   = auto()
    OPAQUE      = auto()  # classes, functions, modules, ...


@dataclasses.dataclass(frozen=True, slots=True)
class Classification:
    """The kind of a value plus what the size model needs to know about
    it. *width* is the element width of a primitive sequence (None for
    sequences of references); *length* is the element or character
    count."""
    kind  : Kind
    width : Bits | None = None
    length: int = 0

    @property
    def is_leaf(self) -> bool:
        """True if the value is sized in closed form, without visiting
        its fields."""
        if self.kind is Kind.SEQUENCE:
            return self.width is not None
        return self.kind is not Kind.COMPOSITE


NULL        = Classification(Kind.NULL)
SCALAR      = Classification(Kind.SCALAR)
WIDE_SCALAR = Classification(Kind.WIDE_SCALAR)
COMPOSITE   = Classification(Kind.COMPOSITE)
OPAQUE      = Classification(Kind.OPAQUE)


def _classify_int(value: int) -> Classification:
    if value in INT32_RANGE:
        return SCALAR
    if value in INT64_RANGE:
        return WIDE_SCALAR
    digits = -(-value.bit_length() // INT_DIGIT_BITS)
    return Classification(Kind.SEQUENCE, SCALAR_WIDTH, digits)


def _classify_ctypes(value: ctypes._SimpleCData) -> Classification:  # type: ignore[name-defined]
    return SCALAR if ctypes.sizeof(value) * 8 <= SCALAR_WIDTH else WIDE_SCALAR


def _classify_memoryview(value: memoryview) -> Classification:
    try:
        itemsize = value.itemsize or 1
        nbytes   = value.nbytes
    except ValueError:
        # released; the view no longer exposes a buffer
        return Classification(Kind.SEQUENCE, ARRAY_WIDTHS['byte'], 0)
    return Classification(Kind.SEQUENCE, itemsize * 8, nbytes // itemsize)


def _length(value: Any) -> int:
    # `len` of a subclass may be overridden to misbehave
    try:
        return len(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise UnsupportedValueKind(f"cannot measure {type(value).__name__!r} object: {e}") from e


# Exact-type fast paths. Subclasses fall through to the flag checks
# in `classify`.
_EXACT: dict[type[Any], Callable[[Any], Classification]] = {
    type(None) : lambda v: NULL,
    bool       : lambda v: SCALAR,
    int        : _classify_int,
    float      : lambda v: WIDE_SCALAR,
    str        : lambda v: Classification(Kind.TEXT, CHAR_WIDTH, len(v)),
    bytes      : lambda v: Classification(Kind.SEQUENCE, ARRAY_WIDTHS['byte'], len(v)),
    bytearray  : lambda v: Classification(Kind.SEQUENCE, ARRAY_WIDTHS['byte'], len(v)),
    memoryview : _classify_memoryview,
    array.array: lambda v: Classification(Kind.SEQUENCE, v.itemsize * 8, len(v)),
    list       : lambda v: Classification(Kind.SEQUENCE, None, len(v)),
    tuple      : lambda v: Classification(Kind.SEQUENCE, None, len(v)),
}


def classify(value: Any, /) -> Classification:
    """Classify *value* into the closed set of `Kind`s.

    Modules, classes, functions and other runtime machinery are `OPAQUE`.
    Raises `UnsupportedValueKind` when a subclass of a built-in text or
    sequence type cannot report its length.
    """
    tp = type(value)
    try:
        return _EXACT[tp](value)
    except KeyError:
        pass

    if hasfeature(tp, PyTypeFlag.LONG_SUBCLASS):
        return _classify_int(int(value))
    if isinstance(value, float):
        return WIDE_SCALAR
    if hasfeature(tp, PyTypeFlag.UNICODE_SUBCLASS):
        return Classification(Kind.TEXT, CHAR_WIDTH, _length(value))
    if hasfeature(tp, PyTypeFlag.BYTES_SUBCLASS) or isinstance(value, bytearray):
        return Classification(Kind.SEQUENCE, ARRAY_WIDTHS['byte'], _length(value))
    if isinstance(value, array.array):
        return Classification(Kind.SEQUENCE, value.itemsize * 8, _length(value))
    if isinstance(value, ctypes._SimpleCData):  # type: ignore[attr-defined]
        return _classify_ctypes(value)
    if hasfeature(tp, PyTypeFlag.LIST_SUBCLASS | PyTypeFlag.TUPLE_SUBCLASS) or isinstance(value, collections.deque):
        return Classification(Kind.SEQUENCE, None, _length(value))
    if isinstance(value, OPAQUE_TYPES):
        return OPAQUE
    return COMPOSITE




# [ Size Model ]

def overhead_of(info: Classification, bittage: Callable[[Bits], Bits]) -> Bits:
    """Header cost of a value classified as *info*."""
    kind = info.kind
    if kind is Kind.NULL:
        return bittage(NULL_OVERHEAD)
    if kind is Kind.SCALAR or kind is Kind.WIDE_SCALAR:
        return 0
    return bittage(OBJECT_OVERHEAD)


def memory_of(info: Classification, bittage: Callable[[Bits], Bits]) -> Bits:
    """Closed-form size of a leaf value classified as *info*.

    Raises `ValueError` for composites and sequences of references,
    whose size depends on their fields.
    """
    kind = info.kind
    if kind is Kind.NULL or kind is Kind.OPAQUE:
        return overhead_of(info, bittage)
    if kind is Kind.SCALAR:
        return SCALAR_WIDTH
    if kind is Kind.WIDE_SCALAR:
        return WIDE_WIDTH
    if kind is Kind.TEXT:
        return overhead_of(info, bittage) + STRING_FIELDS + bittage(STRING_ARRAY) + CHAR_WIDTH * info.length
    if info.is_leaf:
        return overhead_of(info, bittage) + info.width * info.length  # type: ignore[operator]
    raise ValueError(f"{kind.name} value cannot be sized without its fields")
