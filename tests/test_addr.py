import ipaddress

import pytest

from siren.addr import AddressError, BytesReader, parse_addr


@pytest.mark.asyncio
async def test_reader_reads_in_order():
    reader = BytesReader(b"\x07" + (0x1234).to_bytes(2, "big") + b"xyz")
    assert await reader.read_u8() == 7
    assert await reader.read_u16() == 0x1234
    assert await reader.read_exact(3) == b"xyz"
    assert reader.remaining == 0


@pytest.mark.asyncio
async def test_reader_eof():
    reader = BytesReader(b"ab")
    with pytest.raises(EOFError):
        await reader.read_exact(3)
    assert await reader.read_exact(2) == b"ab"


@pytest.mark.asyncio
async def test_reader_u8_on_empty():
    with pytest.raises(EOFError):
        await BytesReader(b"").read_u8()


@pytest.mark.asyncio
async def test_parse_ipv4():
    packed = ipaddress.IPv4Address("10.1.2.3").packed
    assert await parse_addr(BytesReader(b"\x01" + packed)) == "10.1.2.3"


@pytest.mark.asyncio
@pytest.mark.parametrize("kind", [2, 3])
async def test_parse_domain(kind):
    name = b"example.com"
    data = bytes([kind, len(name)]) + name
    assert await parse_addr(BytesReader(data)) == "example.com"


@pytest.mark.asyncio
async def test_parse_domain_lossy():
    data = bytes([3, 3]) + b"a\xffb"
    assert await parse_addr(BytesReader(data)) == "a\ufffdb"


@pytest.mark.asyncio
async def test_parse_ipv6_compressed():
    packed = ipaddress.IPv6Address("2001:db8::1").packed
    assert await parse_addr(BytesReader(b"\x04" + packed)) == "2001:db8::1"


@pytest.mark.asyncio
async def test_parse_leaves_following_bytes():
    name = b"example.com"
    reader = BytesReader(bytes([2, len(name)]) + name + (443).to_bytes(2, "big"))
    await parse_addr(reader)
    assert await reader.read_u16() == 443


@pytest.mark.asyncio
async def test_parse_invalid_type():
    with pytest.raises(AddressError):
        await parse_addr(BytesReader(b"\x05abcd"))


@pytest.mark.asyncio
async def test_parse_truncated():
    with pytest.raises(EOFError):
        await parse_addr(BytesReader(b"\x01\x0a\x00"))