"""Byte stream carried over a WebSocket, and relaying it to upstream targets."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterable, Awaitable, Callable
from typing import Protocol

import aiohttp

from .config import Config
from .dns import doh

MAX_WEBSOCKET_SIZE = 512 * 1024
MAX_BUFFER_SIZE = 4 * 1024 * 1024
UDP_READ_SIZE = 65535
_COPY_CHUNK = 64 * 1024

log = logging.getLogger(__name__)


class WebSocketSender(Protocol):
    async def send_bytes(self, data: bytes) -> None: ...


Connector = Callable[[str, int], Awaitable[tuple[asyncio.StreamReader, asyncio.StreamWriter]]]
Resolver = Callable[[bytes], Awaitable[bytes]]


class ProxyStream:
    """Buffered reader and writer over the messages of one WebSocket.

    ``events`` yields the incoming messages: binary payloads as bytes,
    text messages (which carry no bytes and are skipped). The end of the
    iteration means the socket was closed.
    """

    def __init__(
        self,
        config: Config,
        ws: WebSocketSender,
        events: AsyncIterable[bytes | str],
        *,
        connector: Connector | None = None,
        resolver: Resolver | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.config = config
        self.ws = ws
        self.buffer = bytearray()
        self._events = aiter(events)
        self._connector = connector or asyncio.open_connection
        self._resolver = resolver or (lambda data: doh(data, session))

    async def _next_message(self) -> bytes | None:
        """Return the next binary payload, or None once the socket is closed."""
        while True:
            try:
                event = await anext(self._events)
            except StopAsyncIteration:
                return None
            except OSError:
                raise
            except Exception as exc:
                raise OSError(str(exc)) from exc
            if isinstance(event, (bytes, bytearray, memoryview)):
                return bytes(event)

    async def fill_buffer_until(self, n: int) -> None:
        """Buffer incoming messages until ``n`` bytes are held or the socket closes."""
        while len(self.buffer) < n:
            data = await self._next_message()
            if data is None:
                break
            self.buffer.extend(data)

    def peek_buffer(self, n: int) -> bytes:
        """Return up to ``n`` buffered bytes without consuming them."""
        return bytes(self.buffer[:n])

    async def read(self, n: int) -> bytes:
        """Return up to ``n`` bytes; an empty result means the socket closed."""
        if n <= 0:
            return b""
        while not self.buffer:
            data = await self._next_message()
            if data is None:
                return b""
            if len(data) > MAX_WEBSOCKET_SIZE:
                raise OSError("websocket buffer too long")
            self.buffer.extend(data)
        chunk = bytes(self.buffer[:n])
        del self.buffer[:n]
        return chunk

    async def read_exact(self, n: int) -> bytes:
        """Return exactly ``n`` bytes or raise EOFError."""
        parts = bytearray()
        while len(parts) < n:
            chunk = await self.read(n - len(parts))
            if not chunk:
                raise EOFError(f"needed {n} bytes, got {len(parts)}")
            parts.extend(chunk)
        return bytes(parts)

    async def read_u8(self) -> int:
        return (await self.read_exact(1))[0]

    async def read_u16(self) -> int:
        return int.from_bytes(await self.read_exact(2), "big")

    async def write(self, data: bytes) -> int:
        """Send ``data`` as one binary message and return its length."""
        try:
            await self.ws.send_bytes(bytes(data))
        except OSError:
            raise
        except Exception as exc:
            raise OSError(str(exc)) from exc
        return len(data)

    async def handle_tcp_outbound(self, addr: str, port: int) -> None:
        """Connect to ``addr:port`` and relay bytes both ways until upstream closes."""
        log.info("connecting to upstream %s:%s", addr, port)
        reader, writer = await self._connector(addr, port)
        upstream = asyncio.create_task(self._pump_to_remote(writer))
        downstream = asyncio.create_task(self._pump_from_remote(reader))
        tasks = {upstream, downstream}
        try:
            while not downstream.done():
                done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    tasks.discard(task)
                    task.result()
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            writer.close()
            with contextlib.suppress(Exception):
                await writer.wait_closed()

    async def _pump_to_remote(self, writer: asyncio.StreamWriter) -> None:
        while chunk := await self.read(_COPY_CHUNK):
            writer.write(chunk)
            await writer.drain()
        if writer.can_write_eof():
            writer.write_eof()

    async def _pump_from_remote(self, reader: asyncio.StreamReader) -> None:
        while chunk := await reader.read(_COPY_CHUNK):
            await self.write(chunk)

    async def connect_pool(self, remote_addr: str, remote_port: int) -> tuple[str, int] | None:
        """Relay to the requested target, falling back to the configured proxy.

        Returns the target that carried the session, or None if none did.
        """
        pool = [(remote_addr, remote_port), (self.config.proxy_addr, self.config.proxy_port)]
        for target_addr, target_port in pool:
            try:
                await self.handle_tcp_outbound(target_addr, target_port)
            except Exception as exc:
                log.error("error handling tcp: %s", exc)
                continue
            return target_addr, target_port
        return None

    async def handle_udp_outbound(self) -> None:
        """Pass one datagram to DNS over HTTPS and echo it back once it is answered."""
        data = await self.read(UDP_READ_SIZE)
        try:
            await self._resolver(data)
        except Exception as exc:
            log.warning("dns query failed: %s", exc)
            return
        await self.write(data)