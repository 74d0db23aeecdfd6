"""
Signature introspection for funcspy

Describes the declared parameters and return types of a spied function, binds
incoming calls against it, and knows the zero value of each return type so a
fake can answer without running the original.
"""

import collections.abc
import inspect
import types
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    ForwardRef,
    List,
    Literal,
    Tuple,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from ..errors import FakeReturnMismatch, InvalidTarget

# Types whose zero value is simply their no-argument constructor
_ZERO_FACTORIES = {
    str: str,
    int: int,
    float: float,
    complex: complex,
    bool: bool,
    bytes: bytes,
    bytearray: bytearray,
    list: list,
    dict: dict,
    set: set,
    frozenset: frozenset,
    tuple: tuple,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Iterable: list,
    collections.abc.Mapping: dict,
    collections.abc.MutableMapping: dict,
    collections.abc.Set: set,
    collections.abc.MutableSet: set,
}


def _is_union(tp: Any) -> bool:
    return get_origin(tp) is Union or isinstance(tp, types.UnionType)


def _is_error_type(tp: Any) -> bool:
    return isinstance(tp, type) and issubclass(tp, BaseException)


def type_name(tp: Any) -> str:
    """Readable name of a type hint for error messages."""
    if tp is Any:
        return "Any"
    if isinstance(tp, type) and get_origin(tp) is None:
        return tp.__qualname__
    return repr(tp).replace("typing.", "")


def zero_value(tp: Any) -> Any:
    """Return the zero value of a declared type.

    Containers get a fresh empty instance on every call. Optionals, unions,
    error types, ``Any`` and anything without an obvious zero give ``None``.
    """
    if tp is Any or tp is None or tp is type(None) or _is_union(tp):
        return None
    origin = get_origin(tp) or tp
    try:
        factory = _ZERO_FACTORIES.get(origin)
    except TypeError:
        # Unhashable hint objects have no registered zero
        return None
    return factory() if factory else None


def is_assignable(value: Any, tp: Any) -> bool:
    """Check whether ``value`` may be returned where ``tp`` is declared.

    An error-shaped slot (an exception type) also accepts ``None``, meaning
    "no error". Hints that cannot be checked at runtime are accepted.
    """
    if tp is Any or isinstance(tp, (TypeVar, ForwardRef, str)):
        return True
    if tp is None or tp is type(None):
        return value is None
    if _is_union(tp):
        return any(is_assignable(value, arg) for arg in get_args(tp))

    origin = get_origin(tp)
    if origin is Literal:
        return value in get_args(tp)
    if _is_error_type(tp):
        return value is None or isinstance(value, tp)
    if origin is not None:
        tp = origin

    # Numeric tower: int is acceptable where float or complex is declared
    if tp is float:
        return isinstance(value, (int, float))
    if tp is complex:
        return isinstance(value, (int, float, complex))

    if isinstance(tp, type):
        try:
            return isinstance(value, tp)
        except TypeError:
            # Non-runtime-checkable protocols and the like
            return True
    return True


def _resolve_hints(func: Callable) -> dict:
    try:
        return get_type_hints(func)
    except (NameError, TypeError, AttributeError):
        # Unresolvable forward references, partials and builtins
        return {}


def _return_types(hint: Any) -> Tuple[Tuple[Any, ...], bool]:
    """Return positions of ``hint`` and whether they are packed in a tuple."""
    if hint is None or hint is type(None):
        return (), False
    if isinstance(hint, str):
        return (Any,), False
    if get_origin(hint) is tuple:
        args = get_args(hint)
        if args and args[-1] is not Ellipsis and args != ((),):
            return tuple(args), True
    return (hint,), False


@dataclass(frozen=True)
class FunctionSignature:
    """Declared parameters and return types of a spied function."""

    name: str
    signature: inspect.Signature
    parameters: Tuple[inspect.Parameter, ...]
    parameter_types: Tuple[Any, ...]
    return_types: Tuple[Any, ...]
    is_async: bool
    # Fixed Tuple[...] annotation, so even one position comes back as a tuple
    returns_tuple: bool = False

    @property
    def return_arity(self) -> int:
        return len(self.return_types)

    def bind_arguments(self, args: tuple, kwargs: dict) -> List[Any]:
        """Bind a call and return its values in declared parameter order.

        Defaults are filled in; ``*args`` becomes one tuple entry and
        ``**kwargs`` one dict entry. Raises ``TypeError`` exactly when the
        original would reject the call.
        """
        bound = self.signature.bind(*args, **kwargs)
        bound.apply_defaults()
        return [bound.arguments[param.name] for param in self.parameters]

    def zero_returns(self) -> List[Any]:
        return [zero_value(tp) for tp in self.return_types]

    def shape_result(self, values: List[Any]) -> Any:
        """Turn one value per return position into what the function returns."""
        if self.returns_tuple:
            return tuple(values)
        if self.return_arity == 0:
            return None
        if self.return_arity == 1:
            return values[0]
        return tuple(values)

    def check_returns(self, values: tuple, strict: bool = True) -> None:
        """Validate fake return values against the declared return types."""
        if len(values) != self.return_arity:
            raise FakeReturnMismatch(
                f"{self.name} declares {self.return_arity} return value(s), "
                f"got {len(values)} fake value(s)"
            )
        if not strict:
            return
        for position, (value, tp) in enumerate(zip(values, self.return_types)):
            if not is_assignable(value, tp):
                raise FakeReturnMismatch(
                    f"fake return value {position} of {self.name} ({value!r}) "
                    f"is not assignable to {type_name(tp)}",
                    position=position,
                )


def inspect_signature(func: Callable) -> FunctionSignature:
    """Capture the signature of ``func``."""
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError) as e:
        raise InvalidTarget(f"cannot introspect the signature of {func!r}: {e}") from e

    hints = _resolve_hints(func)

    parameter_types = []
    for name, param in sig.parameters.items():
        hint = hints.get(name, param.annotation)
        parameter_types.append(Any if hint is param.empty or isinstance(hint, str) else hint)

    if sig.return_annotation is sig.empty:
        return_types, returns_tuple = (Any,), False
    else:
        return_types, returns_tuple = _return_types(hints.get("return", sig.return_annotation))

    return FunctionSignature(
        name=getattr(func, "__qualname__", None) or repr(func),
        signature=sig,
        parameters=tuple(sig.parameters.values()),
        parameter_types=tuple(parameter_types),
        return_types=return_types,
        is_async=inspect.iscoroutinefunction(func),
        returns_tuple=returns_tuple,
    )
