"""Shared fixtures for overpass_client unit tests."""

import random

import pytest

from tests.unit.fakes import ManualClock, RecordingSleep


@pytest.fixture
def sleep():
    """Recording replacement for asyncio.sleep."""
    return RecordingSleep()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def seeded_rng():
    return random.Random(42)
