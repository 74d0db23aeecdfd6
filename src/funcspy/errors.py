"""
Errors raised by funcspy.

Every error is a programmer error in the calling test: a bad target, fake
values that do not fit the spied function, or a lookup past the end of the
call log. None of them are meant to be recovered from.
"""


class SpyError(Exception):
    """Base class for all funcspy errors."""


class InvalidTarget(SpyError, TypeError):
    """The target is not a reference to a function-valued variable."""


class FakeReturnMismatch(SpyError, TypeError):
    """Fake return values do not match the declared return arity or types."""

    def __init__(self, message: str, position: int = None):
        super().__init__(message)
        self.position = position


class IndexOutOfRange(SpyError, IndexError):
    """A call index outside [0, call_count()) was requested."""

    def __init__(self, index: int, call_count: int):
        super().__init__(f"call index {index} out of range (call count is {call_count})")
        self.index = index
        self.call_count = call_count
