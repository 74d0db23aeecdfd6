"""
Function Spy for funcspy

Replaces a function-valued variable with an instrumented stand-in that keeps
the original signature, records every call in a thread-safe log, and either
forwards to the original or answers with fake return values. The original can
be put back at any time with ``restore()``.
"""

import copy
import functools
import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..config import Config
from ..errors import FakeReturnMismatch, IndexOutOfRange
from .signature import FunctionSignature, inspect_signature
from .slots import TargetSlot, resolve_target

logger = logging.getLogger(__name__)


class SpyMode(Enum):
    """How the replacement produces its results."""

    SPY = "spy"  # forward to the original
    FAKE = "fake"  # answer with fake or zero values


class CallRecord(tuple):
    """Arguments of one invocation, in declared parameter order.

    Compares equal to a plain tuple of the same values. ``args`` and
    ``kwargs`` keep the call exactly as it was made.
    """

    def __new__(cls, values, args: tuple = (), kwargs: Optional[dict] = None):
        record = super().__new__(cls, values)
        record.args = args
        record.kwargs = dict(kwargs or {})
        return record

    def __repr__(self):
        return f"CallRecord{tuple.__repr__(self)}"


def _snapshot(value: Any, mode: str) -> Any:
    if mode == "none":
        return value
    try:
        return copy.deepcopy(value) if mode == "deep" else copy.copy(value)
    except Exception as e:
        logger.debug(f"Recording {type(value).__name__} argument by reference: {e}")
        return value


class FunctionSpy:
    """Spy installed on a single function-valued variable."""

    # Spies that are installed and not yet restored
    _registry: List["FunctionSpy"] = []
    _registry_lock = threading.RLock()

    def __init__(
        self,
        target: Any,
        attribute: Optional[str] = None,
        mode: SpyMode = SpyMode.SPY,
        fake_returns: Optional[tuple] = None,
    ):
        """Validate the target, capture its signature and install the spy.

        Nothing is modified unless every check passes.
        """
        if fake_returns and mode is SpyMode.SPY:
            raise FakeReturnMismatch("fake return values need SpyMode.FAKE; a spy forwards to the original")

        self.slot: TargetSlot = resolve_target(target, attribute)
        self.original: Callable = self.slot.get()
        self.signature: FunctionSignature = inspect_signature(self.original)
        self.mode = mode

        config = Config.get_instance()
        if fake_returns:
            self.signature.check_returns(fake_returns, strict=config.strict_returns)
            self.fake_returns: Optional[tuple] = tuple(fake_returns)
        else:
            self.fake_returns = None
        self._copy_mode = config.copy_args

        self._calls: List[CallRecord] = []
        self._restored = False
        self._lock = threading.RLock()

        self.replacement = self._build_replacement()
        # Taken only once every check has passed
        self._saved = self.slot.capture()
        self.slot.set(self.replacement)

        with self._registry_lock:
            self._registry.append(self)
        logger.debug(f"Installed {self.mode.value} on {self.slot.describe()}")

    def _build_replacement(self) -> Callable:
        original = self.original

        if self.signature.is_async:

            async def replacement(*args, **kwargs):
                if not self._record(args, kwargs) or self.mode is SpyMode.SPY:
                    return await original(*args, **kwargs)
                return self._fake_result()

        else:

            def replacement(*args, **kwargs):
                if not self._record(args, kwargs) or self.mode is SpyMode.SPY:
                    return original(*args, **kwargs)
                return self._fake_result()

        functools.update_wrapper(replacement, original)
        replacement.__signature__ = self.signature.signature
        replacement.__spy__ = self
        return replacement

    def _record(self, args: tuple, kwargs: dict) -> bool:
        """Append a call record; False once restored."""
        if self._restored:
            return False
        # Raises TypeError for calls the original would reject
        values = self.signature.bind_arguments(args, kwargs)
        record = CallRecord([_snapshot(v, self._copy_mode) for v in values], args, kwargs)
        with self._lock:
            if self._restored:
                return False
            self._calls.append(record)
        return True

    def _fake_result(self) -> Any:
        if self.fake_returns is not None:
            return self.signature.shape_result(list(self.fake_returns))
        return self.signature.shape_result(self.signature.zero_returns())

    def called(self) -> bool:
        """True if the function was called since install or the last reset."""
        with self._lock:
            return bool(self._calls)

    def call_count(self) -> int:
        with self._lock:
            return len(self._calls)

    def calls(self) -> Optional[List[CallRecord]]:
        """All recorded calls in order, or ``None`` if there are none."""
        with self._lock:
            if not self._calls:
                return None
            return list(self._calls)

    def args_for_call(self, n: int) -> CallRecord:
        """Arguments of the n-th call (0-based).

        Raises ``IndexOutOfRange`` for any ``n`` outside ``[0, call_count())``.
        """
        with self._lock:
            if not 0 <= n < len(self._calls):
                raise IndexOutOfRange(n, len(self._calls))
            return self._calls[n]

    def reset(self):
        """Forget all recorded calls. The spy stays installed."""
        with self._lock:
            self._calls = []
        logger.debug(f"Reset call log of {self.slot.describe()}")

    def restore(self):
        """Put the original function back. Safe to call more than once.

        Spies stacked on the same slot may be restored in any order. When a
        newer spy is still installed on top, the slot is left alone and this
        spy's replacement just forwards; the newer spy skips past it later.
        """
        with self._lock:
            if self._restored:
                return
            self._restored = True
            outer = getattr(self.slot.get(), "__spy__", None)
            if outer is None or outer.restored:
                self.slot.restore(self._restore_point())
            else:
                logger.debug(f"{outer!r} still installed over {self.slot.describe()}")
        with self._registry_lock:
            if self in self._registry:
                self._registry.remove(self)
        logger.debug(f"Restored {self.slot.describe()}")

    def _restore_point(self) -> Any:
        """Capture token of the nearest value below that is not a restored spy."""
        saved, below = self._saved, getattr(self.original, "__spy__", None)
        while below is not None and below.restored:
            saved = below._saved
            below = getattr(below.original, "__spy__", None)
        return saved

    @property
    def restored(self) -> bool:
        return self._restored

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.restore()
        return False

    def __repr__(self):
        state = "restored" if self._restored else "installed"
        return (
            f"FunctionSpy({self.slot.describe()}, mode={self.mode.value}, "
            f"{state}, calls={self.call_count()})"
        )

    @classmethod
    def active_spies(cls) -> List["FunctionSpy"]:
        """Spies that are installed and not yet restored."""
        with cls._registry_lock:
            return list(cls._registry)

    @classmethod
    def restore_all(cls) -> int:
        """Restore every active spy, newest first. Returns how many were restored."""
        with cls._registry_lock:
            spies = list(reversed(cls._registry))
        for active in spies:
            active.restore()
        return len(spies)

    def get_metrics(self) -> Dict[str, Any]:
        """Summary of the spy's state."""
        return {
            "target": self.slot.describe(),
            "mode": self.mode.value,
            "call_count": self.call_count(),
            "restored": self._restored,
            "return_arity": self.signature.return_arity,
            "fake_returns": self.fake_returns,
        }


def spy(target: Any, attribute: Optional[str] = None) -> FunctionSpy:
    """
    Spy on a function without changing its behaviour.

    Every call is recorded and then forwarded to the original, whose results
    and exceptions pass through untouched.

    Args:
        target: A ``FunctionCell``, an ``(owner, name)`` pair, a dotted path
            such as ``"package.module.func"``, or an owner object when
            ``attribute`` is given.
        attribute: Name of the function attribute on ``target``.

    Example:
        calls = spy(payments, "charge")
        checkout(cart)
        assert calls.call_count() == 1
        calls.restore()
    """
    return FunctionSpy(target, attribute, SpyMode.SPY)


def spy_and_fake(target: Any, attribute: Optional[str] = None) -> FunctionSpy:
    """Spy on a function and make it return the zero value of each return type."""
    return FunctionSpy(target, attribute, SpyMode.FAKE)


def spy_and_fake_with_return(
    target: Any, *fake_returns: Any, attribute: Optional[str] = None
) -> FunctionSpy:
    """
    Spy on a function and make it return ``fake_returns``.

    One value is needed per declared return position: a function annotated
    ``-> Tuple[str, int]`` takes two, ``-> int`` takes one. Passing no values
    at all behaves like ``spy_and_fake``.

    Raises:
        FakeReturnMismatch: the number of values or one of their types does
            not match the declared return annotation.
    """
    return FunctionSpy(target, attribute, SpyMode.FAKE, fake_returns)
