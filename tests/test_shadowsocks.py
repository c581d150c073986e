import asyncio
import ipaddress
import uuid

import pytest

from siren.addr import AddressError
from siren.config import Config
from siren.shadowsocks import process_shadowsocks
from siren.stream import ProxyStream


class FakeWebSocket:
    def __init__(self):
        self.sent = []

    async def send_bytes(self, data):
        self.sent.append(data)


class EchoWriter:
    def __init__(self, reader):
        self.reader = reader
        self.data = bytearray()

    def write(self, data):
        self.data.extend(data)

    async def drain(self):
        pass

    def can_write_eof(self):
        return True

    def write_eof(self):
        self.reader.feed_data(bytes(self.data))
        self.reader.feed_eof()

    def close(self):
        pass

    async def wait_closed(self):
        pass


class RecordingConnector:
    def __init__(self, failing=()):
        self.calls = []
        self.failing = set(failing)

    async def __call__(self, addr, port):
        self.calls.append((addr, port))
        if (addr, port) in self.failing:
            raise ConnectionRefusedError("refused")
        reader = asyncio.StreamReader()
        return reader, EchoWriter(reader)


async def events(*items):
    for item in items:
        yield item


def make_config():
    return Config(
        uuid=uuid.UUID(int=1),
        host="proxy.example.com",
        main_page_url="https://example.com/",
        sub_page_url="https://example.com/sub",
    )


def make_stream(data, ws, **kwargs):
    return ProxyStream(make_config(), ws, events(data), **kwargs)


@pytest.mark.asyncio
async def test_domain_target_relays_payload():
    ws = FakeWebSocket()
    connector = RecordingConnector()
    name = b"site.example.com"
    data = b"\x03" + bytes([len(name)]) + name + (443).to_bytes(2, "big") + b"hello"
    await process_shadowsocks(make_stream(data, ws, connector=connector))
    assert connector.calls == [("site.example.com", 443)]
    assert b"".join(ws.sent) == b"hello"


@pytest.mark.asyncio
async def test_ipv6_target():
    ws = FakeWebSocket()
    connector = RecordingConnector()
    target = ipaddress.IPv6Address("2001:db8::1")
    data = b"\x04" + target.packed + (8443).to_bytes(2, "big")
    await process_shadowsocks(make_stream(data, ws, connector=connector))
    assert connector.calls == [(str(target), 8443)]


@pytest.mark.asyncio
async def test_failed_target_falls_back_to_proxy():
    ws = FakeWebSocket()
    config = make_config()
    connector = RecordingConnector(failing={("192.0.2.1", 80)})
    data = b"\x01" + bytes([192, 0, 2, 1]) + (80).to_bytes(2, "big") + b"body"
    stream = ProxyStream(config, ws, events(data), connector=connector)
    await process_shadowsocks(stream)
    assert connector.calls == [("192.0.2.1", 80), (config.proxy_addr, config.proxy_port)]
    assert b"".join(ws.sent) == b"body"


@pytest.mark.asyncio
async def test_unknown_address_type_raises():
    ws = FakeWebSocket()
    connector = RecordingConnector()
    with pytest.raises(AddressError):
        await process_shadowsocks(make_stream(b"\x07abc", ws, connector=connector))
    assert connector.calls == []


@pytest.mark.asyncio
async def test_missing_port_raises_eof():
    ws = FakeWebSocket()
    with pytest.raises(EOFError):
        await process_shadowsocks(make_stream(b"\x01" + bytes([192, 0, 2, 1]) + b"\x00", ws))