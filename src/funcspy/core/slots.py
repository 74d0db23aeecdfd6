"""
Target slots for funcspy

A slot is a writable reference to the place a function value lives: an
explicit ``FunctionCell``, an attribute of a module, class or instance, or a
dotted import path that resolves to one of those.

Slots hold no restore state of their own. ``capture()`` hands back a token
describing the current value and ``restore(token)`` puts exactly that back,
so any number of spies can share one slot.
"""

import functools
import importlib
import inspect
import logging
from typing import Any, Callable, NamedTuple, Optional, Tuple

from ..errors import InvalidTarget

logger = logging.getLogger(__name__)


def is_function(value: Any) -> bool:
    """True for values funcspy can spy on: routines and partials, not classes."""
    return inspect.isroutine(value) or isinstance(value, functools.partial)


class TargetSlot:
    """Base class for references to a function-valued variable."""

    def get(self) -> Any:
        """Return the current function value."""
        raise NotImplementedError

    def set(self, value: Callable) -> None:
        """Store a new function value."""
        raise NotImplementedError

    def capture(self) -> Any:
        """Return a token for the current value, for a later ``restore``."""
        raise NotImplementedError

    def restore(self, saved: Any) -> None:
        """Put back the value described by a ``capture`` token."""
        raise NotImplementedError

    def describe(self) -> str:
        return repr(self)


class FunctionCell(TargetSlot):
    """An explicit, swappable holder for a function.

    Code under test calls the cell like the function it holds::

        fetch = FunctionCell(fetch_remote)
        fetch("key")  # runs fetch_remote("key"), or the spy once installed
    """

    def __init__(self, func: Callable):
        self.value = func

    def __call__(self, *args, **kwargs):
        return self.value(*args, **kwargs)

    def get(self) -> Any:
        return self.value

    def set(self, value: Callable) -> None:
        self.value = value

    def capture(self) -> Any:
        return self.value

    def restore(self, saved: Any) -> None:
        self.value = saved

    def __repr__(self):
        return f"FunctionCell({self.value!r})"


class SavedAttribute(NamedTuple):
    """What an attribute looked like before a spy was installed."""

    local: bool  # False when the value was inherited and gets shadowed
    value: Any  # raw value, staticmethod/classmethod descriptors included


class AttributeSlot(TargetSlot):
    """The attribute ``name`` of a module, class or instance."""

    def __init__(self, owner: Any, name: str):
        try:
            inspect.getattr_static(owner, name)
        except AttributeError as e:
            raise InvalidTarget(f"{owner!r} has no attribute {name!r}") from e

        self.owner = owner
        self.name = name

    def _descriptor(self) -> Optional[Any]:
        # staticmethod / classmethod on a class: spy the underlying function
        if not inspect.isclass(self.owner):
            return None
        static = inspect.getattr_static(self.owner, self.name)
        if isinstance(static, (staticmethod, classmethod)):
            return static
        return None

    def _is_local(self) -> bool:
        owner_dict = getattr(self.owner, "__dict__", None)
        return owner_dict is None or self.name in owner_dict

    def get(self) -> Any:
        descriptor = self._descriptor()
        if descriptor is not None:
            return descriptor.__func__
        return getattr(self.owner, self.name)

    def set(self, value: Callable) -> None:
        descriptor = self._descriptor()
        if descriptor is not None:
            value = type(descriptor)(value)
        try:
            setattr(self.owner, self.name, value)
        except (AttributeError, TypeError) as e:
            raise InvalidTarget(f"cannot assign to {self.describe()}: {e}") from e

    def capture(self) -> SavedAttribute:
        descriptor = self._descriptor()
        value = descriptor if descriptor is not None else getattr(self.owner, self.name)
        return SavedAttribute(local=self._is_local(), value=value)

    def restore(self, saved: SavedAttribute) -> None:
        if saved.local:
            setattr(self.owner, self.name, saved.value)
        elif self._is_local():
            delattr(self.owner, self.name)

    def describe(self) -> str:
        owner_name = getattr(self.owner, "__name__", type(self.owner).__name__)
        return f"{owner_name}.{self.name}"

    def __repr__(self):
        return f"AttributeSlot({self.describe()})"


def _resolve_dotted(path: str) -> Tuple[Any, str]:
    """Split ``package.module.attr`` into an imported owner and attribute name."""
    parts = path.split(".")
    if len(parts) < 2 or not all(parts):
        raise InvalidTarget(f"{path!r} is not a dotted path to a function")

    for split in range(len(parts) - 1, 0, -1):
        module_name = ".".join(parts[:split])
        try:
            owner = importlib.import_module(module_name)
        except ImportError:
            continue
        try:
            for attr in parts[split:-1]:
                owner = getattr(owner, attr)
        except AttributeError as e:
            raise InvalidTarget(f"cannot resolve {path!r}: {e}") from e
        return owner, parts[-1]

    raise InvalidTarget(f"cannot import any module from {path!r}")


def resolve_target(target: Any, attribute: Optional[str] = None) -> TargetSlot:
    """Turn whatever the caller passed into a slot holding a function.

    Raises ``InvalidTarget`` without touching anything when the target is
    not a reference, or when the referenced value is not a function.
    """
    if attribute is not None:
        slot = AttributeSlot(target, attribute)
    elif isinstance(target, TargetSlot):
        slot = target
    elif isinstance(target, tuple) and len(target) == 2 and isinstance(target[1], str):
        slot = AttributeSlot(*target)
    elif isinstance(target, str):
        slot = AttributeSlot(*_resolve_dotted(target))
    elif is_function(target):
        raise InvalidTarget(
            f"got the function value {target!r}; pass a reference to the variable "
            f"holding it: a FunctionCell, an (owner, name) pair or a dotted path"
        )
    else:
        raise InvalidTarget(f"{target!r} is not a reference to a function-valued variable")

    value = slot.get()
    if not is_function(value):
        raise InvalidTarget(
            f"{slot.describe()} holds {type(value).__name__} {value!r}, not a function"
        )
    logger.debug(f"Resolved spy target {slot.describe()}")
    return slot
