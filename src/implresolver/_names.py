from __future__ import annotations

import ctypes
import decimal
import typing
from typing import Annotated, Any, ForwardRef


# Fixed-width ctypes scalars stand in for the primitive widths Python does not name.
_PRIMITIVE_TOKENS: dict[Any, str] = {
    int: "int",
    ctypes.c_int: "int",
    ctypes.c_short: "short",
    ctypes.c_byte: "byte",
    ctypes.c_ubyte: "byte",
    bool: "bool",
    ctypes.c_bool: "bool",
    ctypes.c_long: "long",
    ctypes.c_longlong: "long",
    float: "float",
    ctypes.c_float: "float",
    ctypes.c_double: "double",
    decimal.Decimal: "decimal",
    str: "string",
}

PRIMITIVE_TOKENS = frozenset(_PRIMITIVE_TOKENS.values())


def normalize(tp: Any) -> str:
    """Build the canonical lookup key for a type descriptor.

    Rules, first match wins:

    1. primitives map to a fixed short token (``int``, ``short``, ``byte``,
       ``bool``, ``long``, ``float``, ``double``, ``decimal``, ``string``);
    2. a parameterized type maps to ``Base[Arg1, Arg2]`` with every argument
       normalized recursively;
    3. anything else maps to its unqualified simple name.

    Example:
      normalize(dict[str, list[int]])  # "dict[string, list[int]]"

    """
    if isinstance(tp, str):
        # already a key
        return tp

    if isinstance(tp, ForwardRef):
        return tp.__forward_arg__

    if isinstance(tp, (list, tuple)):
        # Callable[[A, B], R] carries its parameters as a plain list
        return "[" + ", ".join(normalize(arg) for arg in tp) + "]"

    if tp is None or tp is type(None):
        return "None"

    if tp is Ellipsis:
        return "..."

    if isinstance(tp, type):
        token = _PRIMITIVE_TOKENS.get(tp)
        if token is not None:
            return token

    origin = typing.get_origin(tp)
    if origin is Annotated:
        return normalize(typing.get_args(tp)[0])

    args = typing.get_args(tp)
    # bare aliases such as typing.List carry no __args__; tuple[()] carries an empty one
    if origin is not None and (args or getattr(tp, "__args__", None) == ()):
        return f"{_simple_name(origin)}[{', '.join(normalize(arg) for arg in args)}]"

    return _simple_name(tp)


def _simple_name(tp: Any) -> str:
    name = getattr(tp, "__name__", None) or getattr(tp, "_name", None)
    if isinstance(name, str) and name:
        return name

    # unnamed typing special forms and Literal values
    return repr(tp).removeprefix("typing.")
