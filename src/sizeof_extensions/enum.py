from enum import *  # type: ignore
import enum
from .typing import Any




class EnumType(enum.EnumMeta):
    """An extension of `enum.EnumType` whose membership test can be
    customized by the enum class itself."""
    def __contains__(self, value: Any) -> bool:
        return self.__class_contains__(self, value)

    @staticmethod
    def __class_contains__(inst, value: Any, /):  # pyright: ignore[reportSelfClsParameterName]
        """Hook used to override or extend the behavior of 'EnumType.__contains__'.

        Called unbound with the enum class and the value to check. The
        default implementation checks member values first, then members.
        """
        try:
            if value in inst._value2member_map_ or isinstance(value, inst):
                return True
        except AttributeError:  # in case internals ('._value2member_map_') changes in the future
            try:
                res = enum.EnumMeta.__contains__(inst, value)
            except TypeError:
                pass
            else:
                if res:
                    return True
        except TypeError:  # unhashable
            return False
        return inst._missing_(value) is not None

EnumMeta = EnumType




class MultiEnum(enum.Enum, metaclass=EnumType):
    """An enumeration type where members are associated with one or more
    constants. The first constant is the member's value; the rest are
    aliases accepted by lookup (`Enum(alias)`) and equality.
    """
    _values_: tuple[Any, ...]

    def __new__(cls, *values):
        assert values
        try:
            # bypass the `EnumType` attribute guards
            cache = type.__getattribute__(cls, '_alias_map_')
        except AttributeError:
            # Members do not exist yet; the "0_SETUP" key tells
            # `cls._missing_` to resolve aliases to members later.
            cache = {"0_SETUP": None}
            type.__setattr__(cls, '_alias_map_', cache)

        value, *_consts = values
        aliases = []
        for v in _consts:
            if value == v:
                continue
            if v in cache:
                raise ValueError(f"{v!r} is already associated with another member")  # type: ignore
            aliases.append(v)
            cache[v] = None

        self = object.__new__(cls)
        self._value_  = value
        self._values_ = tuple(aliases)
        return self

    def __str__(self):
        return str(self._values_[0] if self._values_ else self._value_)

    def __hash__(self):
        return hash(self._value_)

    def __eq__(self, other: Any):
        return self._value_ == other or other in self._values_

    @classmethod
    def _missing_(cls, value: Any):
        cache = getattr(cls, '_alias_map_')
        if '0_SETUP' in cache:
            for member in cls.__members__.values():
                for alias in member._values_:
                    cache[alias] = member
            del cache['0_SETUP']
        try:
            return cache.get(value, None)
        except TypeError:  # unhashable
            return None
