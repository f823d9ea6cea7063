"""Shared fixtures — a fake Discord platform and a connection over it."""

from __future__ import annotations

import pytest

from guildgate.core.connection import ConnectionManager
from tests.fakes import FakeDiscord


@pytest.fixture
def fake():
    return FakeDiscord()


@pytest.fixture
def connection(fake):
    return ConnectionManager("test-token", fake.factory, ready_timeout=1.0)
