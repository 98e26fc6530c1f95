"""Test fixtures shared across the suite."""
from __future__ import annotations

import pytest

from fakes import TRADE_MESSAGE, FakeTransport, FixedSequence, copy_message


@pytest.fixture
def trade_message() -> dict:
    return copy_message(TRADE_MESSAGE)


@pytest.fixture
def sequence() -> FixedSequence:
    return FixedSequence()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
