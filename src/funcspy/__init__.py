"""
funcspy - Function spies and fakes for Python unit tests

Swap a function-valued variable for an instrumented stand-in that records
every call and optionally fakes the results, then put the original back.
"""

__version__ = "0.1.0"
__license__ = "Apache-2.0"

# Core public API
# Configuration
from .config import Config, SpyConfig, get_config, load_config
from .core.function_spy import (
    CallRecord,
    FunctionSpy,
    SpyMode,
    spy,
    spy_and_fake,
    spy_and_fake_with_return,
)
from .core.signature import FunctionSignature, inspect_signature
from .core.slots import AttributeSlot, FunctionCell, TargetSlot

# Errors
from .errors import FakeReturnMismatch, IndexOutOfRange, InvalidTarget, SpyError

restore_all = FunctionSpy.restore_all

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Core functionality
    "spy",
    "spy_and_fake",
    "spy_and_fake_with_return",
    "restore_all",
    "FunctionSpy",
    "SpyMode",
    "CallRecord",
    # Targets
    "FunctionCell",
    "AttributeSlot",
    "TargetSlot",
    # Introspection
    "FunctionSignature",
    "inspect_signature",
    # Errors
    "SpyError",
    "InvalidTarget",
    "FakeReturnMismatch",
    "IndexOutOfRange",
    # Configuration
    "Config",
    "SpyConfig",
    "load_config",
    "get_config",
]
