from inspect import *
import types
import enum
import logging
import collections
from .exceptions import AccessDenied
from .typing import (
    overload,
    Any,
    Iterator,
    TypeIs,
    TYPE_CHECKING,
    _MISSING,
)

if TYPE_CHECKING:
    from .context import SizingContext
    from .permission import Level


logger = logging.getLogger(__name__)




class PyTypeFlag(enum.IntFlag):
    """Python type bit masks (`type.__flags__`, `PyTypeObject.tp_flags`).

    A type's flag bit mask is created when the object is defined --
    changing it from Python does nothing helpful.
    """
    HEAPTYPE                 = (1 << 9)
    LONG_SUBCLASS            = (1 << 24)  # |- used for `Py<type>_Check`, `isinstance`, `issubclass`
    LIST_SUBCLASS            = (1 << 25)  # |
    TUPLE_SUBCLASS           = (1 << 26)  # |
    BYTES_SUBCLASS           = (1 << 27)  # |
    UNICODE_SUBCLASS         = (1 << 28)  # |
    DICT_SUBCLASS            = (1 << 29)  # |


def hasfeature(cls: type[Any], /, flags: PyTypeFlag | int) -> bool:
    """Python implementation of the Python C-API `PyType_HasFeature`
    macro.
    """
    return bool(cls.__flags__ & flags)


def iscclass(obj: type[Any] | Any, /) -> TypeIs[type[Any]]:
    """Return True if *obj* is a class implemented in C."""
    return isinstance(obj, type) and not hasfeature(obj, PyTypeFlag.HEAPTYPE)




# [ Fields ]

class Field:
    """Handle to one instance field of an object.

    A field is read with `get` and written with `set`. Both fail with
    `AccessDenied` until the field has been made accessible (see `permission.Escalator`).
    """
    __slots__ = ('name', 'owner', 'accessible')

    def __init__(self, name: str, owner: type[Any]):
        self.name       = name
        self.owner      = owner
        self.accessible = False

    def __repr__(self):
        return f"<{type(self).__name__} {self.owner.__qualname__}.{self.name}>"

    def get(self, obj: Any, /) -> Any:
        if not self.accessible:
            raise AccessDenied(f"cannot access field {self.name!r} of {self.owner.__qualname__!r} object")
        return self._read(obj)

    def set(self, obj: Any, value: Any, /) -> None:
        if not self.accessible:
            raise AccessDenied(f"cannot access field {self.name!r} of {self.owner.__qualname__!r} object")
        self._write(obj, value)

    def _read(self, obj: Any) -> Any:
        raise NotImplementedError

    def _write(self, obj: Any, value: Any) -> None:
        raise NotImplementedError


class SlotField(Field):
    """A slot member (`types.MemberDescriptorType`) declared by a class
    in the object's MRO. An empty slot reads as None."""
    __slots__ = ('descriptor',)

    def __init__(self, name: str, owner: type[Any], descriptor: types.MemberDescriptorType):
        super().__init__(name, owner)
        self.descriptor = descriptor

    def _read(self, obj: Any) -> Any:
        # Read through the owner's own descriptor; a slot shadowed by
        # a subclass is still a distinct storage location.
        try:
            return self.descriptor.__get__(obj, self.owner)
        except AttributeError:
            return None

    def _write(self, obj: Any, value: Any) -> None:
        self.descriptor.__set__(obj, value)


class AttributeField(Field):
    """An entry of the object's instance dictionary."""
    __slots__ = ()

    def _read(self, obj: Any) -> Any:
        return _instance_dict(obj)[self.name]

    def _write(self, obj: Any, value: Any) -> None:
        _instance_dict(obj)[self.name] = value


class ItemField(Field):
    """An element of a container (sequence item, set member, mapping
    key or mapping value). Item fields are always public."""
    __slots__ = ('value',)

    def __init__(self, name: str, owner: type[Any], value: Any):
        super().__init__(name, owner)
        self.value = value

    def _read(self, obj: Any) -> Any:
        return self.value




# [ Field Predicates ]

def _mangle_prefix(cls: type[Any]) -> str:
    return f"_{cls.__name__.lstrip('_')}__"


def isslot(field: Field, /) -> TypeIs[SlotField]:
    return isinstance(field, SlotField)


def isitem(field: Field, /) -> TypeIs[ItemField]:
    return isinstance(field, ItemField)


def isprivate(field: Field, /) -> bool:
    """Return True if *field* is a name-mangled (`__name`) attribute
    of its owner."""
    if isitem(field):
        return False
    prefix = _mangle_prefix(field.owner)
    return field.name.startswith(prefix) and len(field.name) > len(prefix)


def isprotected(field: Field, /) -> bool:
    """Return True if *field* is a single-underscore attribute."""
    name = field.name
    return (
        not isitem(field)
        and name.startswith('_')
        and not (name.startswith('__') and name.endswith('__'))
        and not isprivate(field)
    )


def ispublic(field: Field, /) -> bool:
    return not isprivate(field) and not isprotected(field)




# [ Introspection ]

def _instance_dict(obj: Any) -> dict[str, Any]:
    # `vars` could be intercepted by a custom `__getattribute__`
    try:
        d = object.__getattribute__(obj, '__dict__')
    except AttributeError:
        return {}
    return d if isinstance(d, dict) else {}


def _attribute_owner(cls: type[Any], name: str) -> type[Any]:
    for tp in cls.__mro__:
        prefix = _mangle_prefix(tp)
        if name.startswith(prefix) and len(name) > len(prefix):
            return tp
    return cls


def slotted_members(cls: type[Any]) -> list[tuple[type[Any], str, types.MemberDescriptorType]]:
    """Return `(owner, name, descriptor)` for each slot member declared
    anywhere in *cls*' MRO, excluding `object`.

    A name declared by more than one class is included once per
    declaring class, most derived first.
    """
    # This cannot be cached. Class dictionaries are mutable, so slots
    # found on a class once may not exist later (unlikely, but
    # possible). `__slots__` cannot be relied on for the same reason.
    member_descriptor = types.MemberDescriptorType
    return [
        (tp, s, v)
        for tp in cls.__mro__[:-1]
        for s, v in tuple(tp.__dict__.items())
        if isinstance(v, member_descriptor)
    ]


def _item_fields(obj: Any) -> Iterator[Field]:
    tp = type(obj)
    if hasfeature(tp, PyTypeFlag.DICT_SUBCLASS):
        for i, (k, v) in enumerate(dict.items(obj)):
            yield ItemField(f"key[{i}]", tp, k)
            yield ItemField(f"value[{i}]", tp, v)
    elif hasfeature(tp, PyTypeFlag.LIST_SUBCLASS | PyTypeFlag.TUPLE_SUBCLASS):
        for i, v in enumerate(tuple(obj)):
            yield ItemField(f"[{i}]", tp, v)
    elif isinstance(obj, (set, frozenset, collections.deque)):
        for i, v in enumerate(tuple(obj)):
            yield ItemField(f"[{i}]", tp, v)


def getfields(obj: Any, /) -> list[Field]:
    """Return the instance fields of *obj*: container items, then slot
    members of every class in its MRO, then instance-dictionary
    attributes.

    Class-level (static) attributes are never included. The returned
    fields are not yet accessible.
    """
    tp = type(obj)
    fields: list[Field] = list(_item_fields(obj))
    fields.extend(SlotField(name, owner, d) for owner, name, d in slotted_members(tp))
    fields.extend(
        AttributeField(name, _attribute_owner(tp, name))
        for name in tuple(_instance_dict(obj))
        if isinstance(name, str)
    )
    return fields


def _named_field(obj: Any, name: str) -> Field:
    found = next((f for f in getfields(obj) if f.name == name and not isitem(f)), _MISSING)
    if found is _MISSING:
        raise AttributeError(f"{type(obj).__name__!r} object has no instance field {name!r}")
    return found


@overload
def getfield(obj: Any, name: str, /) -> Any: ...
@overload
def getfield(obj: Any, name: str, level: "Level | int | str", /) -> Any: ...
def getfield(obj: Any, name: str, level: "Level | int | str | None" = None, /) -> Any:
    """Read the instance field *name* of *obj* after applying the
    permission *level* to it (default `Level.SET`).

    Slot members are looked up before instance attributes, most
    derived class first. Raises `AttributeError` when *obj* has no
    such instance field.
    """
    from .permission import Level, default_escalator
    field = _named_field(obj, name)
    default_escalator().modify(field, Level.SET if level is None else Level(level))
    return field.get(obj)


@overload
def setfield(obj: Any, name: str, value: Any, /) -> None: ...
@overload
def setfield(obj: Any, name: str, value: Any, level: "Level | int | str", /) -> None: ...
def setfield(obj: Any, name: str, value: Any, level: "Level | int | str | None" = None, /) -> None:
    """Write *value* to the instance field *name* of *obj*. Same lookup
    and permission rules as `getfield`."""
    from .permission import Level, default_escalator
    field = _named_field(obj, name)
    default_escalator().modify(field, Level.SET if level is None else Level(level))
    field.set(obj, value)




class Introspector:
    """Enumerates an object's fields and unlocks each one before it is
    read, escalating to an override when the context allows it.
    """
    __slots__ = ('context',)

    def __init__(self, context: "SizingContext"):
        self.context = context

    def unlock(self, field: Field) -> Field:
        from .permission import Level
        escalator = self.context.escalator
        try:
            escalator.modify(field, Level.SET)
        except AccessDenied:
            # read once per field; toggling the flag mid-estimation is
            # an accepted race
            if not self.context.automatic_escalation:
                raise
            logger.debug(f"Escalating access: field={field!r}")
            escalator.override(field)
        return field

    def values(self, obj: Any, /) -> Iterator[tuple[Field, Any]]:
        for field in getfields(obj):
            yield field, self.unlock(field).get(obj)
