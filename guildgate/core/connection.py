"""ConnectionManager — one shared, lazily established platform connection."""

from __future__ import annotations

import asyncio
from enum import Enum

from loguru import logger

from guildgate.core.errors import ConfigError, ConnectionTimeoutError, LoginFailure, UpstreamError
from guildgate.core.platform.base import ConnectionHooks, PlatformClient, PlatformFactory


class ConnectionState(str, Enum):
    ABSENT = "absent"
    CONNECTING = "connecting"
    READY = "ready"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class ConnectionManager:
    """Owns the single platform client of the process.

    Login is serialized by a lock; every caller waits on the same readiness
    event, so concurrent ``acquire()`` calls share one login. After a
    disconnect the next ``acquire()`` waits for readiness again; a client
    that failed for good is replaced. A gateway failure before readiness
    wakes every waiter with ``UpstreamError``.
    """

    def __init__(self, token: str, factory: PlatformFactory, ready_timeout: float = 30.0):
        self._token = token
        self._factory = factory
        self.ready_timeout = ready_timeout
        self._client: PlatformClient | None = None
        self._generation = 0
        self._lock = asyncio.Lock()
        self._ready = asyncio.Event()
        # Resolved with the fatal error of the current login, if any
        self._failure: asyncio.Future | None = None
        self.state = ConnectionState.ABSENT

    @property
    def is_ready(self) -> bool:
        return self._client is not None and self.state is ConnectionState.READY

    async def acquire(self) -> PlatformClient:
        """Return a ready client, logging in on first use."""
        if self.is_ready:
            return self._client

        if not self._token:
            raise ConfigError("Discord bot token is not configured")

        async with self._lock:
            if self._client is not None and (
                self.state is ConnectionState.ERROR or self._client.is_closed()
            ):
                logger.warning(f"Discord client unusable (state={self.state.value}), replacing it")
                await self._drop_client()
            if self._client is None:
                await self._login()
            client = self._client
            failure = self._failure

        if not self._ready.is_set():
            logger.debug("Waiting for Discord client to become ready...")
            await self._wait_ready(client, failure)
        return client

    async def close(self) -> None:
        """Tear the connection down. A later ``acquire()`` starts over."""
        async with self._lock:
            if self._client is None:
                return
            logger.info("Destroying Discord client...")
            await self._drop_client()

    async def _login(self) -> None:
        logger.info("Initializing Discord client...")
        self._generation += 1
        self._failure = asyncio.get_running_loop().create_future()
        self._client = self._factory(self._hooks(self._generation))
        self.state = ConnectionState.CONNECTING
        try:
            await self._client.login(self._token)
        except Exception as e:
            logger.error(f"Failed to login Discord client: {e}")
            await self._drop_client()
            if isinstance(e, LoginFailure):
                raise
            raise LoginFailure(f"Discord login failed: {e}") from e

    async def _wait_ready(self, client: PlatformClient, failure: asyncio.Future) -> None:
        ready = asyncio.ensure_future(self._ready.wait())
        try:
            await asyncio.wait({ready, failure}, timeout=self.ready_timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            ready.cancel()

        if self._ready.is_set() and self._client is client:
            return
        if failure.done():
            error = failure.result()
            async with self._lock:
                if self._client is client:
                    await self._drop_client()
            raise UpstreamError(f"Discord gateway connection failed: {error}") from error
        raise ConnectionTimeoutError(f"Discord client not ready after {self.ready_timeout:g}s")

    async def _drop_client(self) -> None:
        client = self._client
        self._client = None
        self._generation += 1  # silence hooks of the dropped client
        self._ready.clear()
        self.state = ConnectionState.ABSENT
        if client is not None:
            await client.close()

    # ── Hooks (called by the client) ────────────────────────

    def _hooks(self, generation: int) -> ConnectionHooks:
        def on_ready() -> None:
            if generation != self._generation:
                return
            self.state = ConnectionState.READY
            self._ready.set()

        def on_disconnect(error: BaseException | None) -> None:
            if generation != self._generation:
                return
            self.state = ConnectionState.ERROR if error else ConnectionState.DISCONNECTED
            self._ready.clear()
            if error is not None and self._failure is not None and not self._failure.done():
                self._failure.set_result(error)

        return ConnectionHooks(on_ready=on_ready, on_disconnect=on_disconnect)
