"""Shadowsocks (no cipher) request handling."""

from __future__ import annotations

from .addr import parse_addr
from .stream import ProxyStream


async def process_shadowsocks(stream: ProxyStream) -> None:
    """Read a Shadowsocks target header from ``stream`` and relay over TCP."""
    remote_addr = await parse_addr(stream)
    remote_port = await stream.read_u16()
    await stream.connect_pool(remote_addr, remote_port)