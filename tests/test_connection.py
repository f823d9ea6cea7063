"""Tests for guildgate.core.connection."""

from __future__ import annotations

import asyncio

import pytest

from guildgate.core.connection import ConnectionManager, ConnectionState
from guildgate.core.errors import ConfigError, ConnectionTimeoutError, LoginFailure, UpstreamError


@pytest.mark.asyncio
async def test_acquire_logs_in_and_becomes_ready(connection, fake):
    assert connection.state is ConnectionState.ABSENT
    client = await connection.acquire()
    assert client is fake.clients[0]
    assert connection.is_ready
    assert connection.state is ConnectionState.READY
    assert fake.login_count == 1


@pytest.mark.asyncio
async def test_acquire_reuses_ready_client(connection, fake):
    first = await connection.acquire()
    second = await connection.acquire()
    assert first is second
    assert fake.login_count == 1


@pytest.mark.asyncio
async def test_missing_token_is_config_error(fake):
    conn = ConnectionManager("", fake.factory)
    with pytest.raises(ConfigError):
        await conn.acquire()
    assert fake.clients == []


@pytest.mark.asyncio
async def test_concurrent_acquire_shares_one_login(connection, fake):
    """Many waiters, one login; all resolve to the same client."""
    clients = await asyncio.gather(*(connection.acquire() for _ in range(5)))
    assert fake.login_count == 1
    assert all(c is clients[0] for c in clients)


@pytest.mark.asyncio
async def test_ready_timeout(fake):
    fake.auto_ready = False
    conn = ConnectionManager("test-token", fake.factory, ready_timeout=0.05)
    with pytest.raises(ConnectionTimeoutError):
        await conn.acquire()
    assert not conn.is_ready


@pytest.mark.asyncio
async def test_login_failure_resets_state(fake):
    """Rejected token → LoginFailure; a later call retries with a fresh client."""
    fake.login_error = LoginFailure("Improper token has been passed.")
    conn = ConnectionManager("test-token", fake.factory, ready_timeout=1.0)

    with pytest.raises(LoginFailure):
        await conn.acquire()
    assert conn.state is ConnectionState.ABSENT
    assert fake.clients[0].closed

    fake.login_error = None
    client = await conn.acquire()
    assert client is fake.clients[1]
    assert fake.login_count == 2


@pytest.mark.asyncio
async def test_unexpected_login_error_wrapped(fake):
    fake.login_error = OSError("network down")
    conn = ConnectionManager("test-token", fake.factory)
    with pytest.raises(LoginFailure, match="network down"):
        await conn.acquire()


@pytest.mark.asyncio
async def test_disconnect_waits_for_readiness_again(connection, fake):
    client = await connection.acquire()
    client.hooks.on_disconnect(None)
    assert connection.state is ConnectionState.DISCONNECTED
    assert not connection.is_ready

    asyncio.get_running_loop().call_later(0.01, client.signal_ready)
    again = await connection.acquire()
    assert again is client
    assert fake.login_count == 1


@pytest.mark.asyncio
async def test_error_event_replaces_client(connection, fake):
    client = await connection.acquire()
    client.hooks.on_disconnect(RuntimeError("gateway crashed"))
    assert connection.state is ConnectionState.ERROR

    replacement = await connection.acquire()
    assert replacement is not client
    assert client.closed
    assert fake.login_count == 2


@pytest.mark.asyncio
async def test_stale_hooks_ignored_after_close(connection, fake):
    client = await connection.acquire()
    await connection.close()
    assert client.closed
    assert connection.state is ConnectionState.ABSENT

    client.hooks.on_ready()  # late event from the dropped client
    assert not connection.is_ready


@pytest.mark.asyncio
async def test_close_without_client_is_noop(connection, fake):
    await connection.close()
    assert fake.clients == []


@pytest.mark.asyncio
async def test_gateway_failure_wakes_waiters(fake):
    """A connect failure before readiness fails every waiter at once."""
    fake.auto_ready = False
    conn = ConnectionManager("test-token", fake.factory, ready_timeout=5.0)
    loop = asyncio.get_running_loop()
    loop.call_later(
        0.01, lambda: fake.clients[0].hooks.on_disconnect(RuntimeError("privileged intents required"))
    )

    start = loop.time()
    results = await asyncio.gather(conn.acquire(), conn.acquire(), return_exceptions=True)

    assert loop.time() - start < 1.0
    assert all(isinstance(r, UpstreamError) for r in results)
    assert "privileged intents required" in str(results[0])
    assert isinstance(results[0].__cause__, RuntimeError)
    assert fake.login_count == 1
    assert fake.clients[0].closed
    assert conn.state is ConnectionState.ABSENT

    fake.auto_ready = True
    client = await conn.acquire()
    assert client is fake.clients[1]
