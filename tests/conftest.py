"""Test fixtures for funcspy tests."""

import pytest

from funcspy import Config, FunctionSpy


@pytest.fixture(autouse=True)
def clean_state():
    """Fresh configuration for every test; no spy outlives its test."""
    Config.reset()
    yield
    FunctionSpy.restore_all()
    Config.reset()


@pytest.fixture
def priced_function():
    """Pricing function with a defaulted parameter."""

    def price(amount: int, tax: int = 10) -> int:
        return amount + tax

    return price


@pytest.fixture
def options_function():
    """Function taking variadic and keyword-only arguments."""

    def configure(base: dict, *layers, merge: bool = True, **overrides) -> dict:
        """Merge option layers over a base mapping."""
        result = dict(base)
        if merge:
            for layer in layers:
                result.update(layer)
        result.update(overrides)
        return result

    return configure
