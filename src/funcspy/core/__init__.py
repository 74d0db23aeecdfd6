"""
Core functionality package for funcspy.

This package contains target resolution, signature introspection and the
function spy itself.
"""

from .function_spy import (
    CallRecord,
    FunctionSpy,
    SpyMode,
    spy,
    spy_and_fake,
    spy_and_fake_with_return,
)
from .signature import FunctionSignature, inspect_signature, is_assignable, zero_value
from .slots import AttributeSlot, FunctionCell, TargetSlot, is_function, resolve_target
