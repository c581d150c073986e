"""Reading of the address field shared by VMess, VLESS, Trojan and Shadowsocks."""

from __future__ import annotations

import ipaddress
from typing import Protocol


class AddressError(ValueError):
    """The address type byte is not one that is understood."""


class AsyncByteReader(Protocol):
    async def read_exact(self, n: int) -> bytes: ...

    async def read_u8(self) -> int: ...


class BytesReader:
    """Awaitable reader over an in-memory byte string."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    async def read_exact(self, n: int) -> bytes:
        if n > self.remaining:
            raise EOFError(f"needed {n} bytes, {self.remaining} left")
        chunk = self._data[self._pos:self._pos + n]
        self._pos += n
        return chunk

    async def read_u8(self) -> int:
        return (await self.read_exact(1))[0]

    async def read_u16(self) -> int:
        return int.from_bytes(await self.read_exact(2), "big")


async def parse_addr(reader: AsyncByteReader) -> str:
    """Read a type-prefixed address and return it as text.

    Type 1 is IPv4, types 2 and 3 are length-prefixed domain names and
    type 4 is IPv6.
    """
    kind = await reader.read_u8()
    if kind == 1:
        return str(ipaddress.IPv4Address(await reader.read_exact(4)))
    if kind in (2, 3):
        length = await reader.read_u8()
        return (await reader.read_exact(length)).decode("utf-8", errors="replace")
    if kind == 4:
        return str(ipaddress.IPv6Address(await reader.read_exact(16)))
    raise AddressError("invalid address")